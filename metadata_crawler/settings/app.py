"""Lookup settings powered by Pydantic BaseSettings."""

from pathlib import Path
from typing import Literal

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

from metadata_crawler.store.constants import (
    DEFAULT_BACKOFF_MULTIPLIER,
    DEFAULT_BUSY_TIMEOUT_SECONDS,
    DEFAULT_INITIAL_INTERVAL_MS,
    DEFAULT_JITTER_FACTOR,
    DEFAULT_MAX_INTERVAL_MS,
    DEFAULT_MAX_RETRY_SECONDS,
    DEFAULT_POOL_SIZE,
    DEFAULT_POOL_TIMEOUT_SECONDS,
)
from metadata_crawler.store.retry import RetryPolicy


class LookupSettings(BaseSettings):
    """Centralized environment configuration for the lookup store."""

    model_config = SettingsConfigDict(
        env_prefix="ASSET_LOOKUP_",
        case_sensitive=False,
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    database_path: Path = Field(default=Path("data/parsed_asset_uris.sqlite"))
    pool_size: int = Field(default=DEFAULT_POOL_SIZE, ge=1, le=256)
    pool_timeout_seconds: float = Field(
        default=DEFAULT_POOL_TIMEOUT_SECONDS, gt=0.0, le=600.0
    )
    busy_timeout_seconds: float = Field(
        default=DEFAULT_BUSY_TIMEOUT_SECONDS, ge=0.0, le=600.0
    )

    # Total time a lookup may spend retrying before it gives up.
    max_retry_seconds: float = Field(
        default=DEFAULT_MAX_RETRY_SECONDS, ge=0.0, le=3600.0
    )
    initial_interval_ms: int = Field(
        default=DEFAULT_INITIAL_INTERVAL_MS, ge=1, le=60000
    )
    max_interval_ms: int = Field(default=DEFAULT_MAX_INTERVAL_MS, ge=1, le=300000)
    backoff_multiplier: float = Field(
        default=DEFAULT_BACKOFF_MULTIPLIER, ge=1.0, le=10.0
    )
    jitter_factor: float = Field(default=DEFAULT_JITTER_FACTOR, ge=0.0, le=1.0)

    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR"] = "INFO"
    log_json: bool = True

    def effective_busy_timeout_seconds(self) -> float:
        """Get the SQLite busy timeout, capped at the retry budget."""
        return min(self.busy_timeout_seconds, self.max_retry_seconds)

    def retry_policy(self) -> RetryPolicy:
        """Build the retry policy described by these settings."""
        return RetryPolicy(
            initial_interval_ms=self.initial_interval_ms,
            max_interval_ms=self.max_interval_ms,
            multiplier=self.backoff_multiplier,
            jitter_factor=self.jitter_factor,
            max_elapsed_seconds=self.max_retry_seconds,
        )


def get_settings() -> LookupSettings:
    """Get a settings instance."""
    return LookupSettings()
