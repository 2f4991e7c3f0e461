"""
Custom Exceptions

This module defines custom exceptions for better error handling
and more specific error messages.

Error categories:
- Configuration errors: raised once at startup, never at request time
- Validation errors: surfaced to clients as HTTP 400
- Lookup errors: surfaced to clients as HTTP 404
- Database errors: surfaced to clients as HTTP 500
- Request faults: unexpected crashes caught by the recovery middleware
"""

from typing import Optional


class ShrinkException(Exception):
    """Base exception for the shrink service."""
    pass


class ConfigurationError(ShrinkException):
    """Raised when the service is started with invalid settings."""

    def __init__(self, setting: str, reason: str):
        self.setting = setting
        self.reason = reason
        super().__init__(f"Invalid {setting}: {reason}")


class InvalidURLError(ShrinkException):
    """Raised when URL validation fails."""

    # Message returned to API consumers
    public_message = "invalid url"

    def __init__(self, url: str, reason: str = "Invalid URL format"):
        self.url = url
        self.reason = reason
        super().__init__(f"{reason}: {url}")


class EmptyURLError(InvalidURLError):
    """Raised when no URL was supplied."""

    public_message = "url is required"

    def __init__(self):
        super().__init__("", reason="URL cannot be empty")


class URLTooLongError(InvalidURLError):
    """Raised when a URL exceeds the maximum accepted length."""

    public_message = "url exceeds maximum length"

    def __init__(self, url: str, max_length: int):
        self.max_length = max_length
        super().__init__(url, reason=f"URL longer than {max_length} characters")


class MissingSchemeError(InvalidURLError):
    """Raised when a URL does not use http or https."""

    public_message = "url must have http or https scheme"

    def __init__(self, url: str):
        super().__init__(url, reason="URL must have http or https scheme")


class InvalidCodeError(ShrinkException):
    """Raised when a string cannot be decoded as a base62 short code."""

    def __init__(self, code: str):
        self.code = code
        super().__init__(f"Invalid base62 input: '{code}'")


class ShortCodeNotFoundError(ShrinkException):
    """Raised when a short code is not found in the database."""

    def __init__(self, short_code: str):
        self.short_code = short_code
        super().__init__(f"Short code '{short_code}' not found")


class DatabaseError(ShrinkException):
    """Raised when database operations fail."""

    def __init__(self, message: str, original_error: Optional[Exception] = None):
        self.original_error = original_error
        super().__init__(f"Database error: {message}")


class RequestFault(ShrinkException):
    """
    An unexpected crash that is fatal to a single request.

    Built by the recovery middleware from whatever escaped the downstream
    stages, so the rest of the recovery path deals with one error value
    instead of an arbitrary exception.

    Attributes:
        request_id: Correlation id of the failed request
        error: The exception that escaped the pipeline
        stack: Formatted traceback of ``error``
    """

    def __init__(self, request_id: str, error: BaseException, stack: str = ""):
        self.request_id = request_id
        self.error = error
        self.stack = stack
        super().__init__(f"{type(error).__name__}: {error}")
