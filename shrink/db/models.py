"""
Database Models for the shrink Service

This module defines the SQLModel database schema for:
- ShortURL: Stores the mapping between short codes and original URLs

Design Decisions:
- The short code is the base62 encoding of the row id, so codes are unique
  by construction; the unique index is a safety net
- Index on code for fast redirects (most common operation)
- Index on original for deduplication on create
- Index on created_at for the "URLs created today" statistic
- clicks is updated with an atomic UPDATE, never read-modify-write
"""

from datetime import datetime, timezone
from typing import Optional

from sqlalchemy import DateTime, Integer, String, Text
from sqlmodel import Column, Field, SQLModel


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class ShortURL(SQLModel, table=True):
    """
    Main table storing URL shortening mappings.

    Fields:
    - id: Auto-incrementing primary key (source of the base62 code)
    - code: Short code; NULL only inside the creating transaction
    - original: The long URL that was shortened
    - clicks: Number of redirects served
    - created_at: Timestamp when URL was shortened
    """
    __tablename__ = "urls"

    id: Optional[int] = Field(default=None, primary_key=True)
    code: Optional[str] = Field(
        default=None,
        sa_column=Column(String(20), nullable=True, unique=True, index=True),
    )
    original: str = Field(sa_column=Column(Text, nullable=False, index=True))
    clicks: int = Field(default=0, sa_column=Column(Integer, nullable=False, default=0))
    created_at: datetime = Field(
        default_factory=utcnow,
        sa_column=Column(DateTime(timezone=True), nullable=False, index=True),
    )
