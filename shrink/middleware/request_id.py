"""
Request ID Middleware

Assigns a correlation id to every request and returns it to the client.

Behavior:
1. If the client (or an upstream proxy) sent the request id header, reuse it
2. Otherwise synthesize one from an in-process counter (base62 text)
3. Attach the id to the request (scope state + ContextVar) for later stages
4. Set the id on the response header exactly once

Design Decisions:
- Counter-based ids are collision-free within the process by construction
- The counter belongs to a RequestIDGenerator instance that is injected
  into the middleware, so tests and separate apps never share ids
- ContextVar makes the id readable from loggers without passing it around;
  scope["state"] makes it readable from route handlers via request.state
"""

import itertools
import threading
from contextvars import ContextVar
from typing import Optional

from starlette.datastructures import Headers, MutableHeaders
from starlette.types import ASGIApp, Message, Receive, Scope, Send

from shrink.core.encoding import encode_base62

DEFAULT_REQUEST_ID_HEADER = "X-Request-ID"

# Coroutine-local id of the request currently being processed
request_id_var: ContextVar[str] = ContextVar("request_id", default="")


class RequestIDGenerator:
    """Thread-safe source of unique, compact request ids."""

    def __init__(self, start: int = 1):
        self._counter = itertools.count(start)
        self._lock = threading.Lock()

    def next_id(self) -> str:
        with self._lock:
            value = next(self._counter)
        return encode_base62(value)


def get_request_id(scope: Optional[Scope] = None) -> str:
    """
    Return the correlation id of the current request.

    Args:
        scope: ASGI scope of the request; when omitted the id is read from
            the current context

    Returns:
        The request id, or an empty string outside of a request
    """
    if scope is not None:
        state = scope.get("state") or {}
        request_id = state.get("request_id")
        if request_id:
            return request_id
    return request_id_var.get()


class RequestIDMiddleware:
    """ASGI middleware that tags each HTTP request with a correlation id."""

    def __init__(
        self,
        app: ASGIApp,
        header_name: str = DEFAULT_REQUEST_ID_HEADER,
        generator: Optional[RequestIDGenerator] = None,
    ) -> None:
        self.app = app
        self.header_name = header_name
        self.generator = generator or RequestIDGenerator()

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        if scope["type"] != "http":
            await self.app(scope, receive, send)
            return

        request_id = Headers(scope=scope).get(self.header_name) or self.generator.next_id()

        scope.setdefault("state", {})["request_id"] = request_id
        token = request_id_var.set(request_id)

        async def send_with_request_id(message: Message) -> None:
            if message["type"] == "http.response.start":
                message.setdefault("headers", [])
                headers = MutableHeaders(scope=message)
                headers[self.header_name] = request_id
            await send(message)

        try:
            await self.app(scope, receive, send_with_request_id)
        finally:
            request_id_var.reset(token)
