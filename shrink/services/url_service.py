"""
URL Shortening Service

This service handles the core business logic for URL shortening:
- Validating submitted URLs
- Creating short codes (or reusing the code of an already shortened URL)
- Resolving codes to their original URLs
- Per-URL and global statistics

Design Decisions:
- Codes are base62 encodings of the row id (see URLRepository.create)
- Shortening the same URL twice returns the same code
- Resolve does not touch the click counter itself: the caller schedules
  increment_clicks_background() so the redirect never waits on a write
"""

from dataclasses import dataclass
from datetime import datetime

from sqlalchemy.ext.asyncio import AsyncSession

from shrink.core.exceptions import ShortCodeNotFoundError
from shrink.core.validators import sanitize_short_code, validate_url
from shrink.db.repository import GlobalStatsRecord, URLRepository


@dataclass(frozen=True)
class ShortenResult:
    code: str
    short_url: str


@dataclass(frozen=True)
class StatsResult:
    code: str
    original_url: str
    clicks: int
    created_at: datetime


class URLService:
    """
    Core business logic for URL shortening.

    Separated from API layer for testability and maintainability.
    """

    def __init__(self, session: AsyncSession, base_url: str):
        """
        Initialize the URL shortening service.

        Args:
            session: Database session
            base_url: Public base URL short links are built on
        """
        self.repository = URLRepository(session)
        self.base_url = base_url.rstrip("/")

    def build_short_url(self, code: str) -> str:
        return f"{self.base_url}/{code}"

    async def shorten(self, original_url: str) -> ShortenResult:
        """
        Create a short URL, or return the existing one for this URL.

        Args:
            original_url: The long URL to shorten

        Returns:
            ShortenResult with the code and the complete short URL

        Raises:
            InvalidURLError: If the URL fails validation
            DatabaseError: If a database operation fails
        """
        validate_url(original_url)

        try:
            short_url = await self.repository.get_by_original(original_url)
        except ShortCodeNotFoundError:
            short_url = await self.repository.create(original_url)

        return ShortenResult(code=short_url.code, short_url=self.build_short_url(short_url.code))

    async def resolve(self, code: str) -> str:
        """
        Look up the original URL for a short code.

        Raises:
            ShortCodeNotFoundError: If the code is malformed or unknown
            DatabaseError: If the lookup fails
        """
        short_url = await self.repository.get_by_code(self._checked_code(code))
        return short_url.original

    async def stats(self, code: str) -> StatsResult:
        """
        Get statistics for a short URL.

        Raises:
            ShortCodeNotFoundError: If the code is malformed or unknown
            DatabaseError: If the lookup fails
        """
        short_url = await self.repository.get_by_code(self._checked_code(code))
        return StatsResult(
            code=short_url.code,
            original_url=short_url.original,
            clicks=short_url.clicks,
            created_at=short_url.created_at,
        )

    async def global_stats(self) -> GlobalStatsRecord:
        """Aggregate statistics for all URLs."""
        return await self.repository.global_stats()

    @staticmethod
    def _checked_code(code: str) -> str:
        sanitized = sanitize_short_code(code)
        if sanitized is None:
            raise ShortCodeNotFoundError(code)
        return sanitized
