"""
Clinical Documentation Service
Encounter transcription, clinical summary and E/M coding
"""

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from contextlib import asynccontextmanager
import structlog

from clinidoc.routers import analysis, encounters
from clinidoc.config import settings


def log_renderer(debug: bool):
    """Colored console output in debug mode, JSON lines otherwise"""
    if debug:
        return structlog.dev.ConsoleRenderer()
    return structlog.processors.JSONRenderer()


# Configure structured logging
structlog.configure(
    processors=[
        structlog.stdlib.filter_by_level,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.add_log_level,
        structlog.processors.TimeStamper(fmt="iso"),
        log_renderer(settings.debug)
    ],
    wrapper_class=structlog.stdlib.BoundLogger,
    context_class=dict,
    logger_factory=structlog.stdlib.LoggerFactory(),
)

logger = structlog.get_logger()

SERVICE_VERSION = "1.0.0"


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Startup and shutdown events"""
    logger.info("Starting Clinical Documentation Service",
                environment=settings.environment)
    yield
    logger.info("Shutting down Clinical Documentation Service")


app = FastAPI(
    title="Clinical Documentation Service",
    description="Clinical summaries and E/M coding recommendations from encounter transcriptions",
    version=SERVICE_VERSION,
    lifespan=lifespan
)

# CORS configuration
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Include routers
app.include_router(analysis.router, prefix="/v1/analysis", tags=["Clinical Analysis"])
app.include_router(encounters.router, prefix="/v1/encounters", tags=["Encounters"])


@app.get("/health")
async def health_check():
    """Health check endpoint"""
    return {"status": "healthy", "service": settings.service_name}


@app.get("/")
async def root():
    """Root endpoint"""
    return {
        "service": "Clinical Documentation Service",
        "version": SERVICE_VERSION,
        "docs": "/docs"
    }
