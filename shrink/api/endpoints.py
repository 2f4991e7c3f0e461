"""
FastAPI Endpoints for the shrink Service

This module defines all REST API endpoints with minimal logic.
Endpoints only handle:
- Request parsing (Pydantic models)
- Mapping service errors to HTTP status codes
- Delegating to the service layer

Rate limiting, CORS, request ids, logging and crash recovery are applied
to every route by the middleware pipeline (shrink.middleware.chain).

Error mapping:
- InvalidURLError -> 400 with a specific message
- ShortCodeNotFoundError -> 404
- Any other service error -> 500
"""

import logging
import time

from fastapi import APIRouter, BackgroundTasks, Depends, HTTPException, Request, status
from fastapi.responses import RedirectResponse
from sqlalchemy.ext.asyncio import AsyncSession

from shrink.api.schemas import (
    ErrorResponse,
    GlobalStatsResponse,
    HealthResponse,
    ShortenRequest,
    ShortenResponse,
    StatsResponse,
)
from shrink.core.exceptions import InvalidURLError, ShortCodeNotFoundError, ShrinkException
from shrink.db import session as db_session
from shrink.db.session import get_session
from shrink.middleware.request_id import get_request_id
from shrink.services.background_tasks import increment_clicks_background
from shrink.services.url_service import URLService

logger = logging.getLogger(__name__)

NOT_FOUND_MESSAGE = "short url not found"

router = APIRouter()


def error_responses(*status_codes: int) -> dict:
    """OpenAPI entries documenting the uniform error body for these statuses."""
    return {code: {"model": ErrorResponse} for code in status_codes}


def get_url_service(
    request: Request,
    session: AsyncSession = Depends(get_session),
) -> URLService:
    return URLService(session, base_url=request.app.state.settings.BASE_URL)


def format_uptime(seconds: float) -> str:
    """Format a duration as e.g. "45s", "3m7s", "2h0m12s"."""
    total = int(round(seconds))
    hours, remainder = divmod(total, 3600)
    minutes, secs = divmod(remainder, 60)
    if hours:
        return f"{hours}h{minutes}m{secs}s"
    if minutes:
        return f"{minutes}m{secs}s"
    return f"{secs}s"


def _server_error(request: Request, message: str, error: Exception) -> HTTPException:
    logger.error(f"[{get_request_id(request.scope)}] {message}: {error}")
    return HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail=message)


@router.post(
    "/api/shorten",
    response_model=ShortenResponse,
    status_code=status.HTTP_201_CREATED,
    responses=error_responses(400, 429, 500),
    summary="Create a short URL",
    description="Takes a long URL and returns a shortened version with a unique code"
)
async def create_short_url(
    request: Request,
    body: ShortenRequest,
    url_service: URLService = Depends(get_url_service),
) -> ShortenResponse:
    """
    Create a new short URL from a long URL.

    Returns:
        ShortenResponse with short_url and code

    Raises:
        HTTPException 400: If the URL is empty, too long, or not http(s)
        HTTPException 500: If the URL could not be stored
    """
    try:
        result = await url_service.shorten(body.url)
    except InvalidURLError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=e.public_message)
    except ShrinkException as e:
        raise _server_error(request, "failed to create short url", e)

    return ShortenResponse(short_url=result.short_url, code=result.code)


@router.get(
    "/api/health",
    response_model=HealthResponse,
    responses=error_responses(429),
    summary="Health check",
)
async def health_check(request: Request) -> HealthResponse:
    """
    Health check endpoint for monitoring.

    Reports "degraded" when the database does not answer.
    """
    healthy = await db_session.ping()
    uptime = time.monotonic() - request.app.state.started_at
    return HealthResponse(status="ok" if healthy else "degraded", uptime=format_uptime(uptime))


@router.get(
    "/api/stats",
    response_model=GlobalStatsResponse,
    responses=error_responses(429, 500),
    summary="Global statistics",
)
async def get_global_stats(
    request: Request,
    url_service: URLService = Depends(get_url_service),
) -> GlobalStatsResponse:
    """Aggregate statistics for all short URLs."""
    try:
        stats = await url_service.global_stats()
    except ShrinkException as e:
        raise _server_error(request, "failed to get global stats", e)

    return GlobalStatsResponse(
        total_urls=stats.total_urls,
        total_clicks=stats.total_clicks,
        urls_today=stats.urls_today,
    )


@router.get(
    "/api/urls/{code}",
    response_model=StatsResponse,
    responses=error_responses(404, 429, 500),
    summary="Get URL statistics",
    description="Returns statistics for a short URL including click count and creation date"
)
async def get_url_stats(
    code: str,
    request: Request,
    url_service: URLService = Depends(get_url_service),
) -> StatsResponse:
    """
    Get statistics for a short URL.

    Raises:
        HTTPException 404: If short code not found
    """
    try:
        stats = await url_service.stats(code)
    except ShortCodeNotFoundError:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=NOT_FOUND_MESSAGE)
    except ShrinkException as e:
        raise _server_error(request, "failed to get stats", e)

    return StatsResponse(
        code=stats.code,
        original_url=stats.original_url,
        clicks=stats.clicks,
        created_at=stats.created_at,
    )


@router.get(
    "/{code}",
    status_code=status.HTTP_301_MOVED_PERMANENTLY,
    responses=error_responses(404, 429, 500),
    summary="Redirect to original URL",
    description="Takes a short code and redirects to the original long URL"
)
async def redirect_to_url(
    code: str,
    request: Request,
    background_tasks: BackgroundTasks,
    url_service: URLService = Depends(get_url_service),
) -> RedirectResponse:
    """
    Redirect to the original URL for a given short code.

    The click count is incremented in a background task after the
    response has been sent.

    Raises:
        HTTPException 404: If short code not found
    """
    try:
        original_url = await url_service.resolve(code)
    except ShortCodeNotFoundError:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=NOT_FOUND_MESSAGE)
    except ShrinkException as e:
        raise _server_error(request, "failed to resolve url", e)

    background_tasks.add_task(increment_clicks_background, code=code.strip())

    return RedirectResponse(url=original_url, status_code=status.HTTP_301_MOVED_PERMANENTLY)
