"""Application configuration using Pydantic Settings.

Configuration is environment-aware:
- APP_ENV determines which .env file to load
- Supports: development, testing, staging, production
- Each environment has its own .env.{environment} file
"""

from __future__ import annotations

import os
from pathlib import Path

from pydantic import Field, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


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

# Production may inject everything through the environment.
_env_file = str(_env_path) if _env_path.is_file() else None

# Nested BaseSettings don't inherit env_file, so populate os.environ first.
if _env_file:
    from dotenv import load_dotenv
    load_dotenv(_env_file, override=True)


class AppSettings(BaseSettings):
    """Application-wide configuration."""

    debug: bool = Field(
        False,
        description="Enable debug mode with verbose logging",
    )

    model_config = SettingsConfigDict(
        env_prefix="APP_",
        case_sensitive=False,
    )


class RedisSettings(BaseSettings):
    """Connection settings for the shared Redis store."""

    url: str = Field(
        "redis://localhost:6379/0",
        description="Redis connection URL",
    )
    socket_timeout_seconds: float = Field(
        2.0,
        description="Timeout for a single command round trip",
        gt=0,
    )
    socket_connect_timeout_seconds: float = Field(
        2.0,
        description="Timeout for establishing a connection",
        gt=0,
    )
    max_connections: int = Field(
        50,
        description="Upper bound on pooled connections per process",
        ge=1,
    )

    model_config = SettingsConfigDict(
        env_prefix="REDIS_",
        case_sensitive=False,
    )


class LockSettings(BaseSettings):
    """Settings for the exclusive-operation demo endpoint."""

    resource_key: str = Field(
        "exclusive-resource-lock",
        description="Resource key guarded by the execute endpoint",
        min_length=1,
    )
    lease_seconds: float = Field(
        5.0,
        description="Lease duration; must exceed the protected work duration",
        gt=0,
    )
    work_seconds: float = Field(
        4.0,
        description="Simulated duration of the exclusive operation",
        ge=0,
    )

    model_config = SettingsConfigDict(
        env_prefix="LOCK_",
        case_sensitive=False,
    )

    @model_validator(mode="after")
    def _lease_outlasts_work(self) -> "LockSettings":
        if self.lease_seconds <= self.work_seconds:
            raise ValueError("lease_seconds must be greater than work_seconds")
        return self


class RateLimitSettings(BaseSettings):
    """Sliding-window rate limit policy for protected endpoints."""

    enabled: bool = Field(
        True,
        description="Enable rate limiting on protected endpoints",
    )
    permit_limit: int = Field(
        3,
        description="Maximum admissions per window (per client)",
        ge=1,
    )
    window_seconds: float = Field(
        5.0,
        description="Sliding window duration in seconds",
        gt=0,
    )
    policy: str = Field(
        "sliding",
        description="Policy name combined with the client identity in store keys",
        min_length=1,
    )
    key_prefix: str = Field(
        "rate-limit",
        description="Prefix for rate window keys in the store",
        min_length=1,
    )
    fail_open: bool = Field(
        True,
        description="Admit requests when the store is unavailable (False denies them)",
    )
    include_headers: bool = Field(
        True,
        description="Include X-RateLimit-* and Retry-After headers",
    )
    trust_forwarded_for: bool = Field(
        False,
        description="Use the first X-Forwarded-For hop as client identity",
    )

    model_config = SettingsConfigDict(
        env_prefix="RATE_LIMIT_",
        case_sensitive=False,
    )


class LogSettings(BaseSettings):
    """Logging output configuration."""

    level: str = Field("INFO", description="Root log level")
    format: str = Field("json", description="Log format: json or plain")
    output: str = Field("stdout", description="Log destination: stdout or file")
    file_path: str | None = Field(
        None,
        description="Log file path when output=file",
    )
    max_bytes: int = Field(
        10_485_760,
        description="Rotate the log file after this many bytes (0 disables)",
        ge=0,
    )
    backup_count: int = Field(
        5,
        description="Number of rotated files to keep",
        ge=0,
    )
    request_id_header: str = Field(
        "X-Request-ID",
        description="Header used to accept and echo the request id",
    )

    model_config = SettingsConfigDict(
        env_prefix="LOG_",
        case_sensitive=False,
    )


class Settings(BaseSettings):
    """Main application settings container.

    Automatically loads from the appropriate .env.{APP_ENV} file.
    Raises validation errors on startup if any value is out of range.
    """

    app_env: str = APP_ENV
    app: AppSettings = Field(default_factory=AppSettings)
    redis: RedisSettings = Field(default_factory=RedisSettings)
    lock: LockSettings = Field(default_factory=LockSettings)
    rate_limit: RateLimitSettings = Field(default_factory=RateLimitSettings)
    log: LogSettings = Field(default_factory=LogSettings)

    model_config = SettingsConfigDict(
        case_sensitive=False,
    )


# Nested settings are created via default_factory so env loading works.
settings = Settings()
