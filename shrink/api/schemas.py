"""
API Request and Response Schemas

This module defines all Pydantic models for API requests and responses.
Separated from endpoints to keep concerns separated and enable reuse.

URL validation is done by the service layer (not by HttpUrl) so that every
validation failure maps to a specific 400 message.
"""

from datetime import datetime

from pydantic import BaseModel, Field


class ShortenRequest(BaseModel):
    """Request model for URL shortening endpoint."""
    url: str = Field(default="", description="The long URL to shorten")


class ShortenResponse(BaseModel):
    """Response model for URL shortening endpoint."""
    short_url: str = Field(..., description="The complete short URL")
    code: str = Field(..., description="The generated short code")


class StatsResponse(BaseModel):
    """Response model for the per-URL statistics endpoint."""
    code: str
    original_url: str
    clicks: int
    created_at: datetime


class GlobalStatsResponse(BaseModel):
    """Response model for the global statistics endpoint."""
    total_urls: int
    total_clicks: int
    urls_today: int


class HealthResponse(BaseModel):
    """Response model for the health endpoint."""
    status: str
    uptime: str


class ErrorResponse(BaseModel):
    """Uniform error body."""
    error: str
    code: int
