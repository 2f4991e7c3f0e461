"""
Rate Limiting Middleware

Admission control in front of the route handlers. Each request is charged
against its client's token bucket (see shrink.core.rate_limit); requests
without a token are rejected with:

    HTTP 429 {"error": "rate limit exceeded", "code": 429}
    Retry-After: <seconds>

Client identity:
- First address in X-Forwarded-For (set by proxies / load balancers)
- Then X-Real-IP
- Then the address of the connection itself
- Otherwise "" (all such clients share one bucket)
"""

import logging

from fastapi import status
from starlette.datastructures import Headers
from starlette.types import ASGIApp, Receive, Scope, Send

from shrink.api.responses import error_response
from shrink.core.rate_limit import TokenBucketLimiter
from shrink.middleware.request_id import get_request_id

logger = logging.getLogger(__name__)

RATE_LIMIT_MESSAGE = "rate limit exceeded"


def get_client_ip(scope: Scope) -> str:
    """
    Extract the client IP address from a request scope.

    Handles proxies and load balancers by checking forwarding headers first.

    Args:
        scope: ASGI HTTP scope

    Returns:
        IP address as string, or "" if none is known
    """
    headers = Headers(scope=scope)

    forwarded_for = headers.get("x-forwarded-for")
    if forwarded_for:
        # X-Forwarded-For can contain multiple IPs, take the first one
        return forwarded_for.split(",")[0].strip()

    real_ip = headers.get("x-real-ip")
    if real_ip:
        return real_ip.strip()

    client = scope.get("client")
    return client[0] if client else ""


class RateLimitMiddleware:
    """ASGI middleware rejecting clients that exhausted their token bucket."""

    def __init__(self, app: ASGIApp, limiter: TokenBucketLimiter) -> None:
        self.app = app
        self.limiter = limiter

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        if scope["type"] != "http":
            await self.app(scope, receive, send)
            return

        client_ip = get_client_ip(scope)
        if self.limiter.allow(client_ip):
            await self.app(scope, receive, send)
            return

        logger.warning(
            f"[{get_request_id(scope)}] Rate limit exceeded for client '{client_ip}'"
        )
        response = error_response(
            status.HTTP_429_TOO_MANY_REQUESTS,
            RATE_LIMIT_MESSAGE,
            headers={"Retry-After": str(self.limiter.retry_after())},
        )
        await response(scope, receive, send)
