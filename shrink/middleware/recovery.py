"""
Recovery Middleware

Keeps one request's crash from leaking into the rest of the server.

Any exception escaping the stages below (CORS, rate limiting, routing,
route handlers) is caught here, turned into a RequestFault, logged with
the request id and stack trace, and answered with:

    HTTP 500 {"error": "internal server error", "code": 500}

Notes:
- Only `Exception` is caught; asyncio.CancelledError (client disconnect,
  shutdown) keeps propagating so cancellation still works
- If the response was already started, no second response can be sent;
  the fault is logged and the request simply ends
- A fault raised while sending the 500 itself is not caught again. It
  ends this request only; the server keeps serving other requests
"""

import logging
import traceback

from fastapi import status
from starlette.types import ASGIApp, Message, Receive, Scope, Send

from shrink.api.responses import error_response
from shrink.core.exceptions import RequestFault
from shrink.middleware.request_id import get_request_id

logger = logging.getLogger(__name__)

INTERNAL_ERROR_MESSAGE = "internal server error"


class RecoveryMiddleware:
    """ASGI middleware converting unexpected crashes into a JSON 500."""

    def __init__(self, app: ASGIApp) -> None:
        self.app = app

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        if scope["type"] != "http":
            await self.app(scope, receive, send)
            return

        response_started = False

        async def tracking_send(message: Message) -> None:
            nonlocal response_started
            if message["type"] == "http.response.start":
                response_started = True
            await send(message)

        try:
            await self.app(scope, receive, tracking_send)
        except Exception as exc:
            fault = RequestFault(
                request_id=get_request_id(scope),
                error=exc,
                stack=traceback.format_exc(),
            )
            self._log_fault(fault)

            if response_started:
                return

            response = error_response(
                status.HTTP_500_INTERNAL_SERVER_ERROR,
                INTERNAL_ERROR_MESSAGE,
            )
            await response(scope, receive, send)

    def _log_fault(self, fault: RequestFault) -> None:
        logger.error(
            f"[{fault.request_id}] PANIC: {fault}",
            exc_info=(type(fault.error), fault.error, fault.error.__traceback__),
            extra={"request_id": fault.request_id},
        )
