"""
Shared pytest fixtures.

Settings are read from the environment when shrink is first imported, so
the test database and a generous rate limit are configured here before any
application module is loaded.
"""

import asyncio
import os
import tempfile

TEST_DB_DIR = tempfile.mkdtemp(prefix="shrink_test_")
os.environ["DATABASE_URL"] = f"sqlite+aiosqlite:///{os.path.join(TEST_DB_DIR, 'test.db')}"
os.environ["BASE_URL"] = "http://localhost:8080"
os.environ["RATE_LIMIT"] = "1000"
os.environ["RATE_BURST"] = "1000"

import pytest  # noqa: E402
import pytest_asyncio  # noqa: E402
from fastapi.testclient import TestClient  # noqa: E402
from sqlmodel import SQLModel  # noqa: E402

from shrink.db import models  # noqa: E402,F401
from shrink.db.session import async_session_maker, engine  # noqa: E402
from shrink.main import create_app  # noqa: E402


class FakeClock:
    """Manually advanced monotonic clock for rate limiter tests."""

    def __init__(self, start: float = 1000.0):
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


async def reset_tables() -> None:
    async with engine.begin() as connection:
        await connection.run_sync(SQLModel.metadata.drop_all)
        await connection.run_sync(SQLModel.metadata.create_all)


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def reset_database():
    """Start every API test from empty tables."""
    asyncio.run(reset_tables())


@pytest.fixture
def client(reset_database):
    """TestClient for a freshly built application (new limiter, new id counter)."""
    with TestClient(create_app()) as test_client:
        yield test_client


@pytest_asyncio.fixture
async def session():
    """Async database session on empty tables."""
    await reset_tables()
    async with async_session_maker() as db_session:
        yield db_session
