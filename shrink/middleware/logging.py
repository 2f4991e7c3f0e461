"""
Logging Middleware for Request/Response Logging

This middleware logs every HTTP request for observability.
It captures:
- Correlation (request) id
- Request method and path
- Response status code, as actually written downstream
- Response size in bytes
- Request processing time

Design Decisions:
- Pure ASGI middleware: the real `send` callable is wrapped in a
  ResponseRecorder, so the logged status is whatever the route handler or
  the recovery middleware really sent, not a value decided up front
- One log line per request on the "shrink.access" logger, with the same
  values attached as structured `extra` fields for log processors
- A failing client connection must not turn into a second fault: write
  errors are logged and swallowed here
"""

import logging
import time
from typing import Optional

from starlette.types import ASGIApp, Message, Receive, Scope, Send

from shrink.middleware.request_id import get_request_id

logger = logging.getLogger("shrink.access")


class ResponseRecorder:
    """
    Wraps an ASGI `send` callable and records what went through it.

    Forwards every message to the wrapped sink while remembering the status
    of the first `http.response.start` message and the total number of body
    bytes actually delivered.
    """

    def __init__(self, send: Send, scope: Optional[Scope] = None) -> None:
        self._send = send
        self._scope = scope
        self.status: Optional[int] = None
        self.bytes_sent = 0
        self.disconnected = False

    @property
    def started(self) -> bool:
        return self.status is not None

    async def __call__(self, message: Message) -> None:
        if message["type"] == "http.response.start" and self.status is None:
            self.status = message["status"]

        if self.disconnected:
            return

        try:
            await self._send(message)
        except OSError as e:
            # Client went away; the rest of the response is dropped
            self.disconnected = True
            logger.warning(f"[{get_request_id(self._scope)}] Failed to write response: {e}")
            return

        if message["type"] == "http.response.body":
            self.bytes_sent += len(message.get("body", b""))


class LoggingMiddleware:
    """
    Middleware for logging HTTP requests and responses.

    Format: [REQUEST_ID] METHOD PATH STATUS DURATION_MS BYTES
    """

    def __init__(self, app: ASGIApp) -> None:
        self.app = app

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        if scope["type"] != "http":
            await self.app(scope, receive, send)
            return

        recorder = ResponseRecorder(send, scope)
        start_time = time.perf_counter()

        try:
            await self.app(scope, receive, recorder)
        finally:
            duration_ms = (time.perf_counter() - start_time) * 1000
            self._log_request(scope, recorder, duration_ms)

    def _log_request(self, scope: Scope, recorder: ResponseRecorder, duration_ms: float) -> None:
        request_id = get_request_id(scope)
        method = scope.get("method", "")
        path = scope.get("path", "")
        # Nothing was written at all: the server will answer with a 500
        status_code = recorder.status if recorder.started else 500

        logger.info(
            f"[{request_id}] {method} {path} {status_code} "
            f"{duration_ms:.3f}ms {recorder.bytes_sent} bytes",
            extra={
                "request_id": request_id,
                "method": method,
                "path": path,
                "status_code": status_code,
                "duration_ms": round(duration_ms, 3),
                "response_bytes": recorder.bytes_sent,
            },
        )
