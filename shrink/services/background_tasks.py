"""
Background Task Helpers

Provides helper functions for background tasks that create their own database sessions.
Background tasks cannot use the endpoint's session as it's closed after the endpoint returns.
"""

import logging

from sqlalchemy.exc import SQLAlchemyError

from shrink.core.exceptions import ShrinkException
from shrink.db.repository import URLRepository
from shrink.db.session import async_session_maker

logger = logging.getLogger(__name__)


async def increment_clicks_background(code: str) -> None:
    """
    Background task to increment the click count of a short URL.

    Runs after the redirect response was sent. Uses a database-level
    increment for atomicity; failures are logged and never reach the client.

    Args:
        code: The short code that was resolved
    """
    try:
        async with async_session_maker() as session:
            await URLRepository(session).increment_clicks(code)
            await session.commit()
    except (ShrinkException, SQLAlchemyError) as e:
        logger.error(
            f"Failed to increment clicks for {code}: {str(e)}",
            exc_info=True
        )
