"""
Error Response Helpers

Every error that reaches a client uses the same JSON shape:

    {"error": "<message>", "code": <HTTP status>}

Both the route exception handlers and the middleware stages build their
responses through these helpers.
"""

from typing import Mapping, Optional

from fastapi.responses import JSONResponse


def error_body(status_code: int, message: str) -> dict:
    """Build the uniform error payload."""
    return {"error": message, "code": status_code}


def error_response(
    status_code: int,
    message: str,
    headers: Optional[Mapping[str, str]] = None,
) -> JSONResponse:
    """
    Build a JSON error response.

    Args:
        status_code: HTTP status code (also repeated in the body)
        message: Human readable error message
        headers: Extra response headers (e.g. Retry-After)

    Returns:
        JSONResponse with the uniform error body
    """
    return JSONResponse(
        status_code=status_code,
        content=error_body(status_code, message),
        headers=dict(headers) if headers else None,
    )
