"""Application configuration using Pydantic Settings.

Configuration is environment-aware:
- APP_ENV determines which .env file to load
- Supports: development, testing, staging, production
- Each environment has its own .env.{environment} file
"""

from __future__ import annotations

import os
from pathlib import Path
from typing import Literal

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


# Determine which environment to load (default: development)
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


# Nested BaseSettings don't inherit env_file, so populate os.environ up front
if _env_file:
    from dotenv import load_dotenv
    load_dotenv(_env_file, override=True)


def _build_rate_limit_settings() -> "RateLimitSettings":
    """Build rate limit settings from environment."""

    return RateLimitSettings()


def _build_redis_settings() -> "RedisSettings":
    """Build Redis settings from environment."""

    return RedisSettings()


def _build_log_settings() -> "LogSettings":
    """Build logging settings from environment."""

    return LogSettings()


def _build_app_settings() -> "AppSettings":
    """Build app settings from environment."""

    return AppSettings()


class RateLimitSettings(BaseSettings):
    """Quota policy and counter store selection.

    The four integer quotas are the whole configuration surface consumed by
    the decision engine; the remaining fields shape the HTTP adapter.
    """

    enabled: bool = Field(
        True,
        description="Enable rate limiting on protected routes",
    )
    ip_requests_per_second: int = Field(
        10,
        description="Maximum requests per 1-second window for an IP address",
        ge=1,
    )
    ip_block_duration_seconds: int = Field(
        300,
        description="Cooldown applied to an IP address once it exceeds its quota",
        ge=0,
    )
    token_requests_per_second: int = Field(
        100,
        description="Maximum requests per 1-second window for an API token",
        ge=1,
    )
    token_block_duration_seconds: int = Field(
        600,
        description="Cooldown applied to an API token once it exceeds its quota",
        ge=0,
    )
    token_header: str = Field(
        "API_KEY",
        description="Request header carrying the API token; takes priority over IP",
    )
    include_headers: bool = Field(
        True,
        description="Include X-RateLimit-* (and Retry-After on 429) response headers",
    )
    fail_open: bool = Field(
        False,
        description="Let requests through when the counter store fails instead of answering with an error",
    )
    store_backend: Literal["memory", "redis"] = Field(
        "redis",
        description="Counter store backend: 'memory' (single process) or 'redis'",
    )
    store_timeout_seconds: float | None = Field(
        2.0,
        description="Deadline for one limit check against the store (None or 0 disables)",
        ge=0,
    )

    model_config = SettingsConfigDict(
        env_prefix="RATE_LIMIT_",
        case_sensitive=False,
    )


class RedisSettings(BaseSettings):
    """Redis connection parameters for the networked counter store."""

    host: str = Field("localhost", description="Redis host")
    port: int = Field(6379, description="Redis port")
    password: str | None = Field(None, description="Redis password (optional)")
    db: int = Field(0, description="Redis logical database index", ge=0)
    socket_timeout_seconds: float = Field(
        5.0,
        description="Socket connect/read timeout for Redis calls",
        gt=0,
    )

    model_config = SettingsConfigDict(
        env_prefix="REDIS_",
        case_sensitive=False,
    )


class LogSettings(BaseSettings):
    """Logging output configuration."""

    level: str = Field("INFO", description="Root log level")
    format: Literal["json", "plain"] = Field(
        "json",
        description="Log line format: 'json' or 'plain'",
    )
    output: Literal["stdout", "file"] = Field(
        "stdout",
        description="Log destination: 'stdout' or 'file'",
    )
    file_path: str | None = Field(
        None,
        description="Log file path when output is 'file' (default logs/app.log)",
    )
    max_bytes: int = Field(
        0,
        description="Rotate the log file after this many bytes (0 disables rotation)",
        ge=0,
    )
    backup_count: int = Field(
        5,
        description="Number of rotated log files to keep",
        ge=0,
    )
    request_id_header: str = Field(
        "X-Request-ID",
        description="Header used to read and echo the request correlation id",
    )

    model_config = SettingsConfigDict(
        env_prefix="LOG_",
        case_sensitive=False,
    )


class AppSettings(BaseSettings):
    """Application-wide configuration."""

    debug: bool = Field(
        False,
        description="Enable debug mode with verbose logging",
    )
    admin_api_keys: str | None = Field(
        None,
        description="Comma-separated list of keys accepted by the admin endpoints",
    )
    host: str = Field("0.0.0.0", description="Bind address for the HTTP server")
    port: int = Field(8080, description="Port for the HTTP server")

    model_config = SettingsConfigDict(
        env_prefix="APP_",
        case_sensitive=False,
    )


class Settings(BaseSettings):
    """Main application settings container.

    Automatically loads from the appropriate .env.{APP_ENV} file.
    Raises validation errors on startup if a setting is out of range.
    """

    app_env: str = APP_ENV
    rate_limit: RateLimitSettings = Field(default_factory=_build_rate_limit_settings)
    redis: RedisSettings = Field(default_factory=_build_redis_settings)
    log: LogSettings = Field(default_factory=_build_log_settings)
    app: AppSettings = Field(default_factory=_build_app_settings)

    model_config = SettingsConfigDict(
        case_sensitive=False,
    )


# Global settings instance - composed from domain-specific settings
settings = Settings()
