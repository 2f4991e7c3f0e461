"""
Middleware Chain

Builds the request pipeline that wraps every HTTP request.

A stage is any callable taking the next ASGI app and returning a new ASGI
app (a middleware class, or functools.partial of one). Stages are composed
so that the first stage listed is the outermost one:

    compose(A, B, C)(app) == A(B(C(app)))

The composer does not enforce an order; the deployment order lives in
build_pipeline():

    RequestID -> Logging -> Recovery -> CORS -> RateLimit -> routes

- RequestID is outermost so every log line and response carries the id
- Logging wraps Recovery so it records the 500 written after a crash
- Recovery wraps CORS, rate limiting and the route handlers
- CORS answers preflight requests before they spend a rate limit token
"""

from functools import partial
from typing import Callable, Optional, Tuple

from starlette.types import ASGIApp, Receive, Scope, Send

from shrink.core.rate_limit import TokenBucketLimiter
from shrink.core.setting import Settings
from shrink.middleware.cors import CORSConfig, CORSMiddleware
from shrink.middleware.logging import LoggingMiddleware
from shrink.middleware.rate_limit import RateLimitMiddleware
from shrink.middleware.recovery import RecoveryMiddleware
from shrink.middleware.request_id import RequestIDGenerator, RequestIDMiddleware

Stage = Callable[[ASGIApp], ASGIApp]


class Pipeline:
    """An immutable, ordered sequence of stages."""

    __slots__ = ("_stages",)

    def __init__(self, stages: Tuple[Stage, ...]):
        self._stages = tuple(stages)

    @property
    def stages(self) -> Tuple[Stage, ...]:
        return self._stages

    def __call__(self, app: ASGIApp) -> ASGIApp:
        """Wrap `app` in every stage, last stage innermost."""
        for stage in reversed(self._stages):
            app = stage(app)
        return app

    def __len__(self) -> int:
        return len(self._stages)


def compose(*stages: Stage) -> Pipeline:
    """Compose stages into a Pipeline; the first stage is outermost."""
    return Pipeline(stages)


class ChainMiddleware:
    """
    Mounts a composed Pipeline into Starlette's middleware stack.

    Usage:
        app.add_middleware(ChainMiddleware, pipeline=build_pipeline(settings))
    """

    def __init__(self, app: ASGIApp, pipeline: Pipeline) -> None:
        self.app = pipeline(app)

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        await self.app(scope, receive, send)


def build_pipeline(
    settings: Settings,
    limiter: Optional[TokenBucketLimiter] = None,
    generator: Optional[RequestIDGenerator] = None,
) -> Pipeline:
    """
    Build the standard request pipeline from settings.

    Args:
        settings: Application settings
        limiter: Rate limiter to use (built from settings if omitted)
        generator: Request id generator to use (a fresh one if omitted)

    Returns:
        Pipeline in deployment order

    Raises:
        ConfigurationError: If the rate limit settings are invalid
    """
    if limiter is None:
        limiter = TokenBucketLimiter(
            rate=settings.RATE_LIMIT,
            burst=settings.RATE_BURST,
            idle_ttl=settings.RATE_LIMIT_IDLE_TTL,
        )

    cors_config = CORSConfig(
        allowed_origins=settings.CORS_ALLOWED_ORIGINS,
        allowed_methods=settings.CORS_ALLOWED_METHODS,
        allowed_headers=settings.CORS_ALLOWED_HEADERS,
        max_age=settings.CORS_MAX_AGE,
    )

    return compose(
        partial(
            RequestIDMiddleware,
            header_name=settings.REQUEST_ID_HEADER,
            generator=generator or RequestIDGenerator(),
        ),
        LoggingMiddleware,
        RecoveryMiddleware,
        partial(CORSMiddleware, config=cors_config),
        partial(RateLimitMiddleware, limiter=limiter),
    )
