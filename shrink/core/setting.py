"""
Configuration Settings

This module defines application configuration using Pydantic Settings.
All configuration is loaded from environment variables or .env file.

Design Decisions:
- Uses pydantic-settings for type-safe configuration
- Invalid values fail at startup (pydantic ValidationError), never at request time
- Settings are frozen once loaded
- Defaults to SQLite (file-based) for easy local development
- List settings (CORS_*) are given as JSON arrays in the environment,
  e.g. CORS_ALLOWED_ORIGINS='["https://example.com"]'
"""

from __future__ import annotations

from enum import Enum
from typing import List

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

__all__ = ["Settings", "settings"]


class EnvSettingsOptions(Enum):
    """Environment options for deployment."""
    production = "production"
    staging = "staging"
    development = "dev"


class Settings(BaseSettings):
    """
    Application settings loaded from environment variables.

    All settings can be overridden via environment variables or .env file.
    """
    model_config = SettingsConfigDict(
        env_file=".env",
        case_sensitive=False,
        extra="ignore",
        frozen=True,
    )

    # Project Configuration
    ENV_SETTING: EnvSettingsOptions = Field(
        default=EnvSettingsOptions.development,
        description="Environment setting (production, staging, dev)"
    )
    LOG_LEVEL: str = Field(
        default="INFO",
        description="Root log level (DEBUG, INFO, WARNING, ERROR)"
    )

    # Server Configuration
    HOST: str = Field(default="0.0.0.0", description="Interface to bind")
    PORT: int = Field(default=8080, ge=1, le=65535, description="Port to listen on")

    # Database Configuration
    # For SQLite: sqlite+aiosqlite:///./shrink.db (default)
    DATABASE_URL: str = Field(
        default="sqlite+aiosqlite:///./shrink.db",
        description="Async database connection string"
    )

    # Application Configuration
    BASE_URL: str = Field(
        default="http://localhost:8080",
        description="Base URL for generating short URLs"
    )

    # Rate Limiting (token bucket, per client IP)
    RATE_LIMIT: float = Field(
        default=10.0,
        gt=0,
        description="Tokens added to each client's bucket per second"
    )
    RATE_BURST: int = Field(
        default=20,
        ge=1,
        description="Maximum tokens a bucket can hold (instantaneous burst)"
    )
    RATE_LIMIT_IDLE_TTL: float = Field(
        default=0.0,
        ge=0,
        description="Evict buckets idle for this many seconds (0 keeps them for the process lifetime)"
    )

    # CORS
    CORS_ALLOWED_ORIGINS: List[str] = Field(
        default_factory=lambda: ["*"],
        description="Allowed origins; '*' allows any origin"
    )
    CORS_ALLOWED_METHODS: List[str] = Field(
        default_factory=lambda: ["GET", "POST", "OPTIONS"]
    )
    CORS_ALLOWED_HEADERS: List[str] = Field(
        default_factory=lambda: ["Content-Type", "X-Request-ID"]
    )
    CORS_MAX_AGE: int = Field(
        default=86400,
        ge=0,
        description="Seconds browsers may cache a preflight response"
    )

    # Request correlation
    REQUEST_ID_HEADER: str = Field(
        default="X-Request-ID",
        min_length=1,
        description="Header carrying the per-request correlation id"
    )

    @field_validator("BASE_URL")
    @classmethod
    def strip_trailing_slash(cls, value: str) -> str:
        return value.rstrip("/")

    @field_validator("LOG_LEVEL")
    @classmethod
    def normalize_log_level(cls, value: str) -> str:
        return value.upper()


settings = Settings()
