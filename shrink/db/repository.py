"""
URL Repository

All SQL for the urls table lives here; services never build queries.

Design Decisions:
- Missing rows raise ShortCodeNotFoundError instead of returning None
- SQLAlchemy errors are wrapped in DatabaseError with the failing operation
- Codes are derived from the row id inside the creating transaction:
  insert, flush to get the id, set code = base62(id), commit
- Click counts use a single UPDATE ... SET clicks = clicks + 1 so
  concurrent increments are never lost
"""

from dataclasses import dataclass
from datetime import datetime, timezone

from sqlalchemy import func, select, update
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from shrink.core.encoding import encode_base62
from shrink.core.exceptions import DatabaseError, ShortCodeNotFoundError
from shrink.db.models import ShortURL


@dataclass(frozen=True)
class GlobalStatsRecord:
    """Aggregate counters over all short URLs."""
    total_urls: int
    total_clicks: int
    urls_today: int


class URLRepository:
    """Data access for ShortURL rows."""

    def __init__(self, session: AsyncSession):
        """
        Args:
            session: Async database session for database operations
        """
        self.session = session

    async def create(self, original: str) -> ShortURL:
        """
        Insert a new URL and assign its short code.

        Args:
            original: The long URL

        Returns:
            The stored ShortURL with id and code populated

        Raises:
            DatabaseError: If the insert fails
        """
        try:
            short_url = ShortURL(original=original)
            self.session.add(short_url)
            await self.session.flush()

            short_url.code = encode_base62(short_url.id)
            await self.session.flush()
            await self.session.commit()
            await self.session.refresh(short_url)
            return short_url
        except SQLAlchemyError as e:
            await self.session.rollback()
            raise DatabaseError("create url", original_error=e)

    async def get_by_code(self, code: str) -> ShortURL:
        """
        Retrieve a URL by its short code.

        Raises:
            ShortCodeNotFoundError: If no URL has this code
            DatabaseError: If the query fails
        """
        short_url = await self._first(select(ShortURL).where(ShortURL.code == code), "get url by code")
        if short_url is None:
            raise ShortCodeNotFoundError(code)
        return short_url

    async def get_by_original(self, original: str) -> ShortURL:
        """
        Retrieve a URL by its original URL (for deduplication).

        Raises:
            ShortCodeNotFoundError: If the URL was never shortened
            DatabaseError: If the query fails
        """
        statement = select(ShortURL).where(ShortURL.original == original).order_by(ShortURL.id).limit(1)
        short_url = await self._first(statement, "get url by original")
        if short_url is None:
            raise ShortCodeNotFoundError(original)
        return short_url

    async def increment_clicks(self, code: str) -> None:
        """
        Increase the click count for a URL by 1.

        Commit is left to the caller.

        Raises:
            ShortCodeNotFoundError: If no URL has this code
            DatabaseError: If the update fails
        """
        statement = (
            update(ShortURL)
            .where(ShortURL.code == code)
            .values(clicks=ShortURL.clicks + 1)
        )
        try:
            result = await self.session.execute(statement)
        except SQLAlchemyError as e:
            raise DatabaseError("increment clicks", original_error=e)

        if result.rowcount == 0:
            raise ShortCodeNotFoundError(code)

    async def global_stats(self) -> GlobalStatsRecord:
        """
        Aggregate statistics for all URLs.

        "Today" is the current UTC calendar day.
        """
        start_of_today = datetime.now(timezone.utc).replace(hour=0, minute=0, second=0, microsecond=0)

        try:
            totals = await self.session.execute(
                select(func.count(ShortURL.id), func.coalesce(func.sum(ShortURL.clicks), 0))
            )
            total_urls, total_clicks = totals.one()

            today = await self.session.execute(
                select(func.count(ShortURL.id)).where(ShortURL.created_at >= start_of_today)
            )
            urls_today = today.scalar_one()
        except SQLAlchemyError as e:
            raise DatabaseError("get global stats", original_error=e)

        return GlobalStatsRecord(
            total_urls=int(total_urls),
            total_clicks=int(total_clicks),
            urls_today=int(urls_today),
        )

    async def _first(self, statement, operation: str):
        try:
            result = await self.session.execute(statement)
        except SQLAlchemyError as e:
            raise DatabaseError(operation, original_error=e)
        return result.scalars().first()
