"""Configuration using Pydantic Settings.

Configuration is environment-aware:
- APP_ENV determines which .env file to load
- Supports: development, testing, staging, production
- Each environment has its own .env.{environment} file
"""

from __future__ import annotations

import os
from pathlib import Path
from typing import Literal

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from kvlimit.core.errors import AppError
from kvlimit.utils.duration import ms


APP_ENV = os.getenv("APP_ENV", "development")

# Project root (so .env resolution doesn't depend on current working directory)
PROJECT_ROOT = Path(__file__).resolve().parents[2]

ENV_FILE_MAP = {
    "development": ".env.development",
    "testing": ".env.testing",
    "staging": ".env.staging",
    "production": ".env.production",
}

_env_filename = ENV_FILE_MAP.get(APP_ENV, ".env.development")
_env_path = PROJECT_ROOT / _env_filename

# Only load from file if it exists (production might inject via env vars only)
_env_file = str(_env_path) if _env_path.is_file() else None


# Nested BaseSettings don't inherit env_file, so populate os.environ first.
if _env_file:
    from dotenv import load_dotenv
    load_dotenv(_env_file, override=True)


Algorithm = Literal["fixed_window", "sliding_window", "token_bucket"]


class LimiterSettings(BaseSettings):
    """Rate limiter policy used by the HTTP integration."""

    enabled: bool = Field(
        True,
        description="Enable rate limiting on protected routes",
    )
    namespace: str = Field(
        "api",
        min_length=1,
        description="Key prefix scoping every counter of this limiter",
    )
    algorithm: Algorithm = Field(
        "sliding_window",
        description="Admission algorithm: fixed_window, sliding_window or token_bucket",
    )
    tokens: int = Field(
        10,
        ge=1,
        description="Requests allowed per window (fixed/sliding window)",
    )
    window: str = Field(
        "60s",
        description="Window duration, e.g. '60s', '1 min' (fixed/sliding window)",
    )
    refill_rate: float = Field(
        1.0,
        gt=0,
        description="Tokens credited per refill interval (token bucket)",
    )
    refill_interval: str = Field(
        "1s",
        description="Refill interval duration (token bucket)",
    )
    max_tokens: int = Field(
        10,
        ge=1,
        description="Bucket capacity (token bucket)",
    )
    ttl_multiplier: float = Field(
        2.0,
        gt=0,
        description="Token bucket record TTL expressed in refill intervals",
    )
    include_headers: bool = Field(
        True,
        description="Include X-RateLimit-* and Retry-After headers in responses",
    )

    @field_validator("window", "refill_interval")
    @classmethod
    def validate_duration(cls, value: str) -> str:
        """Reject durations the algorithms would refuse, before any request is served."""
        try:
            milliseconds = ms(value)
        except AppError as exc:
            raise ValueError(exc.message) from exc
        if milliseconds <= 0:
            raise ValueError(f"duration must be > 0, got {value!r}")
        return value

    model_config = SettingsConfigDict(
        env_prefix="LIMITER_",
        case_sensitive=False,
    )


class LogSettings(BaseSettings):
    """Logging output configuration."""

    level: str = Field("INFO", description="Root log level")
    format: Literal["json", "plain"] = Field("json", description="Log line format")
    output: Literal["stdout", "file"] = Field("stdout", description="Log destination")
    file_path: str | None = Field(None, description="Log file path when output=file")
    max_bytes: int = Field(
        10_485_760,
        ge=0,
        description="Rotate the log file at this size (0 disables rotation)",
    )
    backup_count: int = Field(5, ge=0, description="Rotated files to keep")

    model_config = SettingsConfigDict(
        env_prefix="LOG_",
        case_sensitive=False,
    )


def _build_limiter_settings() -> LimiterSettings:
    return LimiterSettings()


def _build_log_settings() -> LogSettings:
    return LogSettings()


class Settings(BaseSettings):
    """Main settings container.

    Automatically loads from the appropriate .env.{APP_ENV} file.
    Raises validation errors on startup if settings are invalid.
    """

    app_env: str = APP_ENV
    limiter: LimiterSettings = Field(default_factory=_build_limiter_settings)
    log: LogSettings = Field(default_factory=_build_log_settings)

    model_config = SettingsConfigDict(
        case_sensitive=False,
    )


settings = Settings()
