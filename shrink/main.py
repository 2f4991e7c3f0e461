"""
FastAPI Application Entry Point

This module initializes the FastAPI application and configures:
- API routes
- Exception handlers (uniform {"error", "code"} bodies)
- The request pipeline: request id, logging, recovery, CORS, rate limiting
- Startup/shutdown (table creation, engine disposal)

Run with:
    uvicorn shrink.main:app
or the `shrink` console script.
"""

import logging
import time
from contextlib import asynccontextmanager
from typing import Optional

import uvicorn
from fastapi import FastAPI

from shrink.api import endpoints
from shrink.api.errors import register_exception_handlers
from shrink.core.setting import Settings, settings as default_settings
from shrink.db.session import engine, init_models
from shrink.middleware.chain import ChainMiddleware, Pipeline, build_pipeline

logger = logging.getLogger(__name__)

LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s %(message)s"


def configure_logging(level: str) -> None:
    """Install a basic root handler; no-op if logging is already configured."""
    logging.basicConfig(level=level, format=LOG_FORMAT)
    logging.getLogger("shrink").setLevel(level)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Initialize services on startup, clean up on shutdown."""
    await init_models()
    app_settings = app.state.settings
    logger.info(
        f"shrink started: base_url={app_settings.BASE_URL} "
        f"rate_limit={app_settings.RATE_LIMIT}/s burst={app_settings.RATE_BURST}"
    )
    yield
    logger.info("Shutting down shrink")
    await engine.dispose()


def create_app(
    app_settings: Optional[Settings] = None,
    pipeline: Optional[Pipeline] = None,
) -> FastAPI:
    """
    Create and configure the FastAPI application.

    Args:
        app_settings: Settings to use (module settings if omitted)
        pipeline: Middleware pipeline (built from settings if omitted)

    Returns:
        Configured FastAPI instance

    Raises:
        ConfigurationError: If the rate limit settings are invalid
    """
    app_settings = app_settings or default_settings

    app = FastAPI(
        title="shrink",
        description="URL shortener with per-client rate limiting",
        version="1.0.0",
        lifespan=lifespan,
    )
    app.state.settings = app_settings
    app.state.started_at = time.monotonic()

    register_exception_handlers(app)
    app.add_middleware(ChainMiddleware, pipeline=pipeline or build_pipeline(app_settings))
    app.include_router(endpoints.router)

    return app


configure_logging(default_settings.LOG_LEVEL)
app = create_app()


def run() -> None:
    """Console entry point: serve the application with uvicorn."""
    uvicorn.run(
        "shrink.main:app",
        host=default_settings.HOST,
        port=default_settings.PORT,
        log_level=default_settings.LOG_LEVEL.lower(),
    )
