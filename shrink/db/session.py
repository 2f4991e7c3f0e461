"""
Database Session Management

This module handles async database connections using SQLAlchemy's async engine.

Key Features:
- SQLite defaults: single connection per session (NullPool),
  check_same_thread disabled for aiosqlite, WAL journal for concurrent readers
- Async session management: Proper async context management
- Error handling: Automatic rollback on exceptions
"""

import logging
from typing import Any, AsyncGenerator

from sqlalchemy import event, text
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import NullPool
from sqlmodel import SQLModel
from sqlmodel.ext.asyncio.session import AsyncSession as SQLModelAsyncSession

from shrink.core.setting import settings

logger = logging.getLogger(__name__)


def is_sqlite(database_url: str) -> bool:
    return database_url.startswith("sqlite")


def _enable_wal(dbapi_connection: Any, connection_record: Any) -> None:
    """Switch SQLite to write-ahead logging so reads don't block on writes."""
    cursor = dbapi_connection.cursor()
    try:
        cursor.execute("PRAGMA journal_mode=WAL")
    except Exception as e:
        logger.warning(f"Could not enable WAL mode: {e}")
    finally:
        cursor.close()


def create_engine(database_url: str, **kwargs: Any) -> AsyncEngine:
    """
    Create the async engine for a database URL.

    Args:
        database_url: Async connection string (e.g. sqlite+aiosqlite:///./shrink.db)
        **kwargs: Extra engine options, merged over the defaults

    Returns:
        Configured AsyncEngine
    """
    engine_kwargs: dict[str, Any] = {"echo": False}
    if is_sqlite(database_url):
        engine_kwargs["poolclass"] = NullPool
        engine_kwargs["connect_args"] = {"check_same_thread": False}
    engine_kwargs.update(kwargs)

    async_engine = create_async_engine(database_url, **engine_kwargs)

    if is_sqlite(database_url) and ":memory:" not in database_url:
        event.listen(async_engine.sync_engine, "connect", _enable_wal)

    return async_engine


engine = create_engine(settings.DATABASE_URL)

# expire_on_commit=False keeps loaded rows usable after commit
async_session_maker = async_sessionmaker(
    engine,
    class_=SQLModelAsyncSession,
    expire_on_commit=False,
    autoflush=False,
)


async def get_session() -> AsyncGenerator[AsyncSession, None]:
    """
    Dependency function for FastAPI to get database session.

    This function:
    - Creates a new async session
    - Yields it to the endpoint
    - Automatically commits on success
    - Rolls back on exception
    - Closes session automatically (context manager handles it)
    """
    async with async_session_maker() as session:
        try:
            yield session
            await session.commit()
        except Exception:
            await session.rollback()
            raise


async def init_models() -> None:
    """Create missing tables (idempotent); alembic migrations remain the source of truth."""
    from shrink.db import models  # noqa: F401  (registers tables on the metadata)

    async with engine.begin() as connection:
        await connection.run_sync(SQLModel.metadata.create_all)


async def ping() -> bool:
    """Return True if the database answers a trivial query."""
    try:
        async with engine.connect() as connection:
            await connection.execute(text("SELECT 1"))
        return True
    except Exception as e:
        logger.warning(f"Database ping failed: {e}")
        return False
