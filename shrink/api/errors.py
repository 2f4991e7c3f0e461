"""
API Exception Handlers

Renders framework-level errors in the uniform {"error", "code"} shape:
- HTTPException (raised by endpoints, or by routing for 404/405)
- RequestValidationError (malformed JSON body) -> 400
"""

import logging

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from starlette.exceptions import HTTPException as StarletteHTTPException

from shrink.api.responses import error_response
from shrink.middleware.request_id import get_request_id

logger = logging.getLogger(__name__)

INVALID_BODY_MESSAGE = "invalid JSON body"


async def http_exception_handler(request: Request, exc: StarletteHTTPException):
    message = exc.detail if isinstance(exc.detail, str) else str(exc.detail)
    return error_response(exc.status_code, message, headers=getattr(exc, "headers", None))


async def validation_exception_handler(request: Request, exc: RequestValidationError):
    logger.debug(f"[{get_request_id(request.scope)}] Rejected request body: {exc.errors()}")
    return error_response(status.HTTP_400_BAD_REQUEST, INVALID_BODY_MESSAGE)


def register_exception_handlers(app: FastAPI) -> None:
    """Attach the uniform error handlers to the application."""
    app.add_exception_handler(StarletteHTTPException, http_exception_handler)
    app.add_exception_handler(RequestValidationError, validation_exception_handler)
