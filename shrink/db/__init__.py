"""
Database module.

This module provides:
- ShortURL model: the urls table
- URLRepository: CRUD and statistics queries over urls
- Session management: engine, session factory and the FastAPI dependency
"""

from shrink.db.session import async_session_maker, engine, get_session
from shrink.db.repository import URLRepository

__all__ = [
    "URLRepository",
    "get_session",
    "async_session_maker",
    "engine",
]
