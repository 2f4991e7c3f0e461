"""
Input Validators and Sanitizers

This module provides validation and sanitization functions for user inputs.
These functions help prevent security issues and ensure data integrity.

Security Considerations:
- Only http and https URLs are accepted (no javascript:, data:, file:)
- Short codes are restricted to the base62 alphabet before any query runs
- Length limits prevent oversized payloads from reaching the database
"""

import re
from typing import Optional
from urllib.parse import urlparse

from shrink.core.exceptions import (
    EmptyURLError,
    InvalidURLError,
    MissingSchemeError,
    URLTooLongError,
)

# Maximum accepted URL length (common browser / RFC 7230 recommendation)
MAX_URL_LENGTH = 2048

# Longest short code we will ever look up
MAX_SHORT_CODE_LENGTH = 20

ALLOWED_SCHEMES = {"http", "https"}

_SHORT_CODE_PATTERN = re.compile(r"^[0-9a-zA-Z]+$")


def validate_url(url: str, max_length: int = MAX_URL_LENGTH) -> str:
    """
    Validate a URL submitted for shortening.

    Args:
        url: The URL to validate
        max_length: Maximum allowed length

    Returns:
        The URL, unchanged

    Raises:
        EmptyURLError: URL is empty
        URLTooLongError: URL is longer than max_length
        MissingSchemeError: URL scheme is not http/https
        InvalidURLError: URL cannot be parsed or has no host
    """
    if not url:
        raise EmptyURLError()

    if len(url) > max_length:
        raise URLTooLongError(url, max_length)

    try:
        parsed = urlparse(url)
    except ValueError as e:
        raise InvalidURLError(url, reason=f"Unparseable URL ({e})")

    if parsed.scheme.lower() not in ALLOWED_SCHEMES:
        raise MissingSchemeError(url)

    if not parsed.netloc:
        raise InvalidURLError(url, reason="URL is missing a host")

    return url


def sanitize_short_code(short_code: str) -> Optional[str]:
    """
    Sanitize and validate short code format.

    Short codes should only contain base62 characters: [0-9a-zA-Z]
    This prevents injection attacks and ensures consistency.

    Args:
        short_code: The short code to sanitize

    Returns:
        Sanitized short code if valid, None otherwise
    """
    if not short_code or not isinstance(short_code, str):
        return None

    short_code = short_code.strip()

    if len(short_code) > MAX_SHORT_CODE_LENGTH:
        return None

    if not _SHORT_CODE_PATTERN.match(short_code):
        return None

    return short_code
