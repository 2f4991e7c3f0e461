"""
CORS Middleware

Applies the cross-origin policy to browser requests.

Behavior:
- No Origin header: same-origin request, passed through untouched
- Origin allowed ("*" or exact match): the allowed origin is echoed back
  together with the allowed methods, headers and preflight max-age
- OPTIONS with an Origin header (preflight): answered here with 204 and no
  body; the request never reaches rate limiting or the route handlers
- Origin not allowed: no CORS headers are added and the browser blocks
  the response
"""

from dataclasses import dataclass
from typing import Tuple

from fastapi import status
from starlette.datastructures import Headers, MutableHeaders
from starlette.responses import Response
from starlette.types import ASGIApp, Message, Receive, Scope, Send

# One day, in seconds
CORS_MAX_AGE = 86400

WILDCARD_ORIGIN = "*"


@dataclass(frozen=True)
class CORSConfig:
    """Cross-origin policy."""
    allowed_origins: Tuple[str, ...] = (WILDCARD_ORIGIN,)
    allowed_methods: Tuple[str, ...] = ("GET", "POST", "OPTIONS")
    allowed_headers: Tuple[str, ...] = ("Content-Type", "X-Request-ID")
    max_age: int = CORS_MAX_AGE

    def __post_init__(self) -> None:
        # Accept any iterable (settings hand over lists)
        object.__setattr__(self, "allowed_origins", tuple(self.allowed_origins))
        object.__setattr__(self, "allowed_methods", tuple(self.allowed_methods))
        object.__setattr__(self, "allowed_headers", tuple(self.allowed_headers))

    def is_origin_allowed(self, origin: str) -> bool:
        return WILDCARD_ORIGIN in self.allowed_origins or origin in self.allowed_origins

    def response_headers(self, origin: str) -> dict:
        """Headers attached to responses for an allowed origin."""
        return {
            "Access-Control-Allow-Origin": origin,
            "Access-Control-Allow-Methods": ", ".join(self.allowed_methods),
            "Access-Control-Allow-Headers": ", ".join(self.allowed_headers),
            "Access-Control-Max-Age": str(self.max_age),
        }


DEFAULT_CORS_CONFIG = CORSConfig()


class CORSMiddleware:
    """ASGI middleware enforcing a CORSConfig."""

    def __init__(self, app: ASGIApp, config: CORSConfig = DEFAULT_CORS_CONFIG) -> None:
        self.app = app
        self.config = config

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        if scope["type"] != "http":
            await self.app(scope, receive, send)
            return

        origin = Headers(scope=scope).get("origin")
        if not origin:
            await self.app(scope, receive, send)
            return

        cors_headers = (
            self.config.response_headers(origin)
            if self.config.is_origin_allowed(origin)
            else {}
        )

        if scope["method"] == "OPTIONS":
            response = Response(status_code=status.HTTP_204_NO_CONTENT, headers=cors_headers)
            await response(scope, receive, send)
            return

        if not cors_headers:
            await self.app(scope, receive, send)
            return

        async def send_with_cors(message: Message) -> None:
            if message["type"] == "http.response.start":
                message.setdefault("headers", [])
                headers = MutableHeaders(scope=message)
                headers.update(cors_headers)
            await send(message)

        await self.app(scope, receive, send_with_cors)
