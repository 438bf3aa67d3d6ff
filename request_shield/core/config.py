"""Application configuration using Pydantic Settings.

Configuration is environment-aware:
- APP_ENV determines which .env file to load
- Supports: development, testing, staging, production
- Each environment has its own .env.{environment} file

Defense settings are read once at startup and treated as immutable while the
process runs. Singletons built from them (limiter, lockout guard) are only
rebuilt when the resolved values change, which in practice only happens in
tests.
"""

from __future__ import annotations

import os
from pathlib import Path

from pydantic import Field, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


# Determine which environment to load (default: development)
APP_ENV = os.getenv("APP_ENV", "development")

# Project root (so .env resolution doesn't depend on current working directory)
PROJECT_ROOT = Path(__file__).resolve().parents[2]

# Map environments to their respective .env files (relative to PROJECT_ROOT)
ENV_FILE_MAP = {
    "development": ".env.development",
    "testing": ".env.testing",
    "staging": ".env.staging",
    "production": ".env.production",
}

# Select the .env file for the current environment
_env_filename = ENV_FILE_MAP.get(APP_ENV, ".env.development")
_env_path = PROJECT_ROOT / _env_filename

# Only load from file if it exists (production might inject via env vars only)
_env_file = str(_env_path) if _env_path.is_file() else None


# Load .env file early to populate os.environ before creating nested settings
# This is necessary because Pydantic nested BaseSettings don't inherit env_file
if _env_file:
    from dotenv import load_dotenv
    load_dotenv(_env_file, override=True)


def _build_log_settings() -> "LogSettings":
    """Build logging settings from environment."""

    return LogSettings()


def _build_defense_settings() -> "DefenseSettings":
    """Build rate limit / lockout settings from environment."""

    return DefenseSettings()


def _build_auth_settings() -> "AuthSettings":
    """Build credential settings from environment."""

    return AuthSettings()


class LogSettings(BaseSettings):
    """Logging configuration."""

    level: str = Field("INFO", description="Root log level")
    format: str = Field(
        "json",
        description="Log format: 'json' (structured) or 'plain'",
    )
    output: str = Field(
        "stdout",
        description="Log destination: 'stdout' or 'file'",
    )
    file_path: str | None = Field(
        None,
        description="Log file path when output=file (default logs/app.log)",
    )
    max_bytes: int = Field(
        10_485_760,
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
        description="Header used to read/propagate the request correlation id",
    )

    model_config = SettingsConfigDict(
        env_prefix="LOG_",
        case_sensitive=False,
    )


class DefenseSettings(BaseSettings):
    """Rate limiting, eviction, lockout and metrics configuration."""

    rate_limit_enabled: bool = Field(
        True,
        description="Enable per-client rate limiting on every request",
    )
    rate_limit_window_seconds: int = Field(
        60,
        description="Rate limit window size in seconds",
        ge=1,
    )
    rate_limit_requests: int = Field(
        100,
        description="Maximum read requests per window (default per-key limit)",
        ge=1,
    )
    rate_limit_auth_requests: int = Field(
        5,
        description="Per-window limit for login/register/password-reset endpoints",
        ge=1,
    )
    rate_limit_payment_requests: int = Field(
        10,
        description="Per-window limit for payment and wallet endpoints",
        ge=1,
    )
    rate_limit_booking_requests: int = Field(
        20,
        description="Per-window limit for lesson booking and availability endpoints",
        ge=1,
    )
    rate_limit_upload_requests: int = Field(
        5,
        description="Per-window limit for upload endpoints",
        ge=1,
    )
    rate_limit_contact_requests: int = Field(
        3,
        description="Per-window limit for the contact form",
        ge=1,
    )
    rate_limit_write_requests: int = Field(
        30,
        description="Per-window limit for other POST/PUT/PATCH/DELETE requests",
        ge=1,
    )
    rate_limit_global_requests: int = Field(
        200,
        description="Per-window limit across all endpoints for one client address",
        ge=1,
    )
    rate_limit_include_headers: bool = Field(
        True,
        description="Include X-RateLimit-* and Retry-After headers",
    )
    rate_limit_shard_count: int = Field(
        64,
        description="Number of independently locked shards in the tracker maps",
        ge=1,
    )
    trust_forwarded_headers: bool = Field(
        True,
        description="Derive the client address from X-Forwarded-For / X-Real-IP",
    )
    excluded_paths: str = Field(
        "/health,/metrics",
        description="Comma-separated paths that bypass rate limiting",
    )
    excluded_path_fragments: str = Field(
        "/uploads/",
        description="Comma-separated path fragments (user uploads) that bypass rate limiting",
    )
    excluded_suffixes: str = Field(
        ".js,.css,.ico",
        description="Comma-separated path suffixes (static assets) that bypass rate limiting",
    )

    eviction_interval_seconds: float = Field(
        300.0,
        description="Interval between background eviction sweeps",
        gt=0,
    )
    eviction_idle_seconds: float = Field(
        120.0,
        description="Entries idle for longer than this are evicted (must exceed the window)",
        gt=0,
    )

    lockout_threshold: int = Field(
        5,
        description="Consecutive failed logins before the account is locked",
        ge=1,
    )
    lockout_duration_seconds: int = Field(
        900,
        description="How long an account stays locked",
        ge=1,
    )
    lockout_idle_seconds: float = Field(
        3600.0,
        description="Unlocked failure records idle for longer than this are evicted",
        gt=0,
    )
    lockout_track_address: bool = Field(
        True,
        description="Also count failed logins per client address",
    )
    login_path: str = Field(
        "/api/auth/login",
        description="Path of the login route guarded by the lockout check",
    )
    login_account_field: str = Field(
        "email",
        description="JSON body field holding the account identifier on login",
    )

    metrics_enabled: bool = Field(
        True,
        description="Expose Prometheus metrics on /metrics",
    )

    model_config = SettingsConfigDict(
        env_prefix="APP_",
        case_sensitive=False,
    )

    @model_validator(mode="after")
    def _check_idle_exceeds_window(self) -> "DefenseSettings":
        if self.eviction_idle_seconds <= self.rate_limit_window_seconds:
            raise ValueError(
                "eviction_idle_seconds must be greater than rate_limit_window_seconds"
            )
        return self

    @property
    def excluded_path_set(self) -> frozenset[str]:
        return frozenset(p.strip() for p in self.excluded_paths.split(",") if p.strip())

    @property
    def excluded_fragment_tuple(self) -> tuple[str, ...]:
        return tuple(f.strip() for f in self.excluded_path_fragments.split(",") if f.strip())

    @property
    def excluded_suffix_tuple(self) -> tuple[str, ...]:
        return tuple(s.strip() for s in self.excluded_suffixes.split(",") if s.strip())


class AuthSettings(BaseSettings):
    """Credentials for the in-memory credential verifier."""

    credentials: str | None = Field(
        None,
        description="Comma-separated 'email:sha256hex' pairs accepted by the login route",
    )

    model_config = SettingsConfigDict(
        env_prefix="AUTH_",
        case_sensitive=False,
    )


class Settings(BaseSettings):
    """Main application settings container.

    Automatically loads from the appropriate .env.{APP_ENV} file.
    Raises validation errors on startup if settings are invalid.

    Environments:
    - development: Local development
    - testing: Automated tests (uses .env.testing)
    - staging: Pre-production (uses .env.staging)
    - production: Production deployment (uses .env.production)
    """

    app_env: str = APP_ENV
    log: LogSettings = Field(default_factory=_build_log_settings)
    app: DefenseSettings = Field(default_factory=_build_defense_settings)
    auth: AuthSettings = Field(default_factory=_build_auth_settings)

    model_config = SettingsConfigDict(
        case_sensitive=False,
    )


# Global settings instance - composed from domain-specific settings
# Nested settings are created via default_factory so env loading works.
settings = Settings()
