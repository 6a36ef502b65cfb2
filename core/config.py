"""
Application configuration using Pydantic Settings.

Every tunable of the aggregation engine (deadlines, freshness window,
worker pool sizing, scraper HTTP behaviour, storage backend) is read from
environment variables or a .env file, validated, and exposed through a
cached ``get_settings()``.
"""

from __future__ import annotations

from datetime import timedelta
from functools import lru_cache
from pathlib import Path
from typing import Annotated, Literal

from pydantic import Field, field_validator, model_validator
from pydantic_settings import BaseSettings, NoDecode, SettingsConfigDict

DEFAULT_USER_AGENT = (
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 "
    "(KHTML, like Gecko) Chrome/120.0.0.0 Safari/537.36"
)


class AggregationSettings(BaseSettings):
    """Settings for the fan-out, cache and fallback behaviour."""

    model_config = SettingsConfigDict(env_prefix="PRICING_")

    overall_deadline: float = Field(
        default=15.0, gt=0, description="Deadline in seconds for one live gather"
    )
    per_vendor_budget: float | None = Field(
        default=12.0, gt=0, description="Timeout in seconds for a single vendor call"
    )
    freshness_window_hours: float = Field(
        default=3.0, ge=0, description="Maximum snapshot age served from cache"
    )
    fallback_enabled: bool = Field(
        default=True, description="Return search-link placeholders when every vendor fails"
    )
    specs_timeout: float = Field(
        default=1.0, gt=0, description="Timeout in seconds for the specs summary lookup"
    )
    vendors: Annotated[list[str], NoDecode] = Field(
        default_factory=lambda: ["flipkart", "amazon", "croma"],
        description="Enabled vendor codes, in dispatch order",
    )

    @field_validator("vendors", mode="before")
    @classmethod
    def parse_vendors(cls, v: str | list[str]) -> list[str]:
        """Parse vendor codes from a comma-separated string or list."""
        if isinstance(v, str):
            return [code.strip().lower() for code in v.split(",") if code.strip()]
        return [code.strip().lower() for code in v]

    @property
    def freshness_window(self) -> timedelta:
        """Freshness window as a timedelta."""
        return timedelta(hours=self.freshness_window_hours)


class WorkerPoolSettings(BaseSettings):
    """Sizing of the shared worker pool."""

    model_config = SettingsConfigDict(env_prefix="POOL_")

    min_workers: int = Field(default=10, ge=1, description="Background job consumers")
    max_workers: int = Field(default=40, ge=1, description="Concurrent vendor fetch slots")
    queue_capacity: int = Field(default=200, ge=1, description="Pending background jobs")
    shutdown_timeout: float = Field(
        default=5.0, ge=0, description="Seconds to wait for queued jobs on shutdown"
    )

    @model_validator(mode="after")
    def check_bounds(self) -> WorkerPoolSettings:
        """Ensure max_workers is not below min_workers."""
        if self.max_workers < self.min_workers:
            msg = "max_workers cannot be lower than min_workers"
            raise ValueError(msg)
        return self


class ScraperSettings(BaseSettings):
    """HTTP behaviour of the HTML vendor clients."""

    model_config = SettingsConfigDict(env_prefix="SCRAPER_")

    request_timeout: float = Field(default=10.0, gt=0, description="Per-request timeout")
    user_agent: str = Field(default=DEFAULT_USER_AGENT, description="User-Agent header")
    referrer: str = Field(default="https://www.google.com", description="Referer header")


class StorageSettings(BaseSettings):
    """Snapshot and history storage backend."""

    model_config = SettingsConfigDict(env_prefix="STORAGE_")

    backend: Literal["memory", "sqlite"] = Field(
        default="memory", description="Storage backend"
    )
    sqlite_path: Path = Field(
        default=Path("pricehawk.db"), description="SQLite database file"
    )


class Settings(BaseSettings):
    """
    Main application settings.

    Aggregates all configuration sections.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    environment: Literal["development", "production", "test"] = Field(
        default="development", description="Application environment"
    )
    debug: bool = Field(default=False, description="Debug mode")
    log_level: str = Field(default="INFO", description="Minimum log level")
    json_logs: bool = Field(default=False, description="Render logs as JSON")

    aggregation: AggregationSettings = Field(default_factory=AggregationSettings)
    pool: WorkerPoolSettings = Field(default_factory=WorkerPoolSettings)
    scraper: ScraperSettings = Field(default_factory=ScraperSettings)
    storage: StorageSettings = Field(default_factory=StorageSettings)

    @field_validator("log_level")
    @classmethod
    def normalize_log_level(cls, v: str) -> str:
        """Upper-case and validate the log level name."""
        level = v.upper()
        if level not in {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}:
            msg = f"Invalid log level: {v}"
            raise ValueError(msg)
        return level

    @property
    def is_production(self) -> bool:
        """Check if running in production environment."""
        return self.environment == "production"


@lru_cache
def get_settings() -> Settings:
    """
    Get cached application settings.

    Returns:
        Configured Settings instance.
    """
    return Settings()
