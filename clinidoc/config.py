"""
Configuration settings for the Clinical Documentation Service
"""

from pydantic_settings import BaseSettings
from functools import lru_cache
from typing import List


class Settings(BaseSettings):
    """Application settings from environment variables"""

    # Service
    service_name: str = "clinidoc-analysis"
    environment: str = "development"
    debug: bool = False

    # AssemblyAI
    assemblyai_api_key: str = ""
    transcription_language_code: str = "en-US"

    # Force the canned demo transcripts even when an API key is present
    demo_transcription: bool = False

    # Input limits
    max_transcription_length: int = 100000

    # CORS
    cors_origins: List[str] = [
        "http://localhost:3000",
        "http://localhost:5173",
        "http://localhost:8080",
    ]

    class Config:
        env_file = ".env"
        case_sensitive = False


@lru_cache()
def get_settings() -> Settings:
    return Settings()


settings = get_settings()
