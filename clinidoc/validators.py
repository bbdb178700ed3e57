"""
Input sanitization for transcription text entering the service
OWASP Top 10 - A03:2021 Injection Prevention
"""

import re
from typing import Optional

from clinidoc.errors import InvalidInputError

# Script injection fragments stripped from free text
DANGEROUS_PATTERNS = [
    re.compile(r'<script[^>]*>.*?</script>', re.IGNORECASE | re.DOTALL),
    re.compile(r'[<>]'),
    re.compile(r'javascript:', re.IGNORECASE),
    re.compile(r'on\w+\s*=', re.IGNORECASE),
]


def sanitize_text(text: Optional[str]) -> str:
    """
    Remove markup and script fragments from user-supplied text.
    Clinical wording is otherwise left untouched.
    """
    if not text:
        return ""

    result = text
    for pattern in DANGEROUS_PATTERNS:
        result = pattern.sub('', result)
    return result.strip()


def validate_transcription_text(text: Optional[str], max_length: int) -> str:
    """Sanitize text and enforce the configured length limit"""
    cleaned = sanitize_text(text)
    if len(cleaned) > max_length:
        raise InvalidInputError(
            f"Transcription text exceeds maximum length of {max_length} characters"
        )
    return cleaned


# Scheme, non-empty host, optional path; no whitespace
AUDIO_URL_PATTERN = re.compile(r"^https?://[^\s/?#]+[^\s]*$", re.IGNORECASE)


def validate_audio_url(audio_source: Optional[str]) -> str:
    """
    Accept only remote http(s) audio URLs.

    The speech SDK uploads anything that is not a URL as a local file,
    so filesystem paths and other schemes are rejected.
    """
    source = (audio_source or "").strip()
    if not source:
        raise InvalidInputError("Audio source is required")

    if not AUDIO_URL_PATTERN.match(source):
        raise InvalidInputError("Audio source must be an http or https URL")
    return source
