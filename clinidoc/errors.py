"""
Error types and client-safe error responses

Service-layer failures are raised as ClinicalDocumentationError subclasses
carrying an HTTP status and a standardized error code. Messages returned to
clients are sanitized so paths, connection strings and secrets never leak.
"""

import re
import uuid
from enum import Enum
from typing import Any, Dict, Optional

import structlog
from fastapi import HTTPException

logger = structlog.get_logger()


class ErrorCode(str, Enum):
    """Standardized error codes for client responses."""
    NOT_FOUND = "RES_001"
    INVALID_INPUT = "VAL_001"
    INVALID_FORMAT = "VAL_003"
    INTERNAL_ERROR = "INT_001"


class ClinicalDocumentationError(Exception):
    """Base class for errors surfaced to API clients"""
    status_code = 500
    error_code = ErrorCode.INTERNAL_ERROR

    def __init__(self, message: str):
        self.message = message
        super().__init__(message)


class EncounterNotFoundError(ClinicalDocumentationError):
    status_code = 404
    error_code = ErrorCode.NOT_FOUND

    def __init__(self, encounter_id: int):
        self.encounter_id = encounter_id
        super().__init__(f"Encounter {encounter_id} not found")


class InvalidInputError(ClinicalDocumentationError):
    status_code = 400
    error_code = ErrorCode.INVALID_INPUT


# Patterns that indicate sensitive information
SENSITIVE_PATTERNS = [
    r'/[a-zA-Z0-9_\-./]+\.(py|js|ts|json|wav|mp3|m4a)',
    r'File "[^"]+", line \d+',
    r'Traceback \(most recent call last\)',
    r'(postgresql|postgres|sqlite|redis)://[^\s]+',
    r'(api[_-]?key|secret|token|password)["\']?\s*[:=]\s*["\']?[a-zA-Z0-9_\-]+',
    r'Bearer [a-zA-Z0-9\-._~+/]+=*',
    r'localhost:\d+',
    r'127\.0\.0\.1:\d+',
]

_compiled_patterns = [re.compile(p, re.IGNORECASE | re.MULTILINE) for p in SENSITIVE_PATTERNS]

MAX_ERROR_MESSAGE_LENGTH = 200

DEFAULT_MESSAGES = {
    400: "Invalid request",
    404: "Resource not found",
    422: "Validation error",
    500: "Internal server error",
    502: "Service temporarily unavailable",
}


def generate_correlation_id() -> str:
    """Generate a unique correlation ID for error tracking."""
    return str(uuid.uuid4())[:8].upper()


def contains_sensitive_info(message: str) -> bool:
    if not message:
        return False
    return any(pattern.search(message) for pattern in _compiled_patterns)


def sanitize_error_message(message: str) -> str:
    """Replace sensitive messages with a generic one and truncate long ones"""
    if not message:
        return "An error occurred"

    if contains_sensitive_info(message):
        return "An error occurred while processing your request"

    if len(message) > MAX_ERROR_MESSAGE_LENGTH:
        message = message[:MAX_ERROR_MESSAGE_LENGTH] + "..."

    return message


def get_safe_error_response(
    status_code: int,
    original_error: Optional[str] = None,
    error_code: Optional[ErrorCode] = None,
    correlation_id: Optional[str] = None,
) -> Dict[str, Any]:
    """
    Build the error body returned to clients.

    5xx responses never carry the original message; client errors carry a
    sanitized version of it.
    """
    correlation_id = correlation_id or generate_correlation_id()

    if status_code >= 500 or not original_error:
        message = DEFAULT_MESSAGES.get(status_code, "An error occurred")
    else:
        message = sanitize_error_message(original_error)

    if error_code is None:
        error_code = {
            400: ErrorCode.INVALID_INPUT,
            404: ErrorCode.NOT_FOUND,
            422: ErrorCode.INVALID_FORMAT,
        }.get(status_code, ErrorCode.INTERNAL_ERROR)

    return {
        "error": message,
        "code": error_code.value,
        "request_id": correlation_id,
    }


def to_http_exception(error: ClinicalDocumentationError) -> HTTPException:
    """Client-safe HTTPException for a service-layer error"""
    return HTTPException(
        status_code=error.status_code,
        detail=get_safe_error_response(error.status_code, error.message, error.error_code),
    )


def internal_error(error: Exception, **context: Any) -> HTTPException:
    """Log an unexpected failure with a correlation ID and hide its details"""
    correlation_id = generate_correlation_id()
    logger.error("Unhandled error",
                 correlation_id=correlation_id,
                 error_type=type(error).__name__,
                 error=str(error),
                 **context)
    return HTTPException(
        status_code=500,
        detail=get_safe_error_response(500, correlation_id=correlation_id),
    )
