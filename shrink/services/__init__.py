"""
Services module for business logic separation.

This module contains service classes that encapsulate business logic,
keeping it separate from API endpoints and database queries.
"""

from shrink.services.url_service import ShortenResult, StatsResult, URLService

__all__ = ["URLService", "ShortenResult", "StatsResult"]
