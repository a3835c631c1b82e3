"""Settings groups for the API, read from the environment.

Each concern has its own prefixed group (APP_, LOG_, RATE_LIMIT_, REDIS_,
SUPABASE_). Values may come from a per-environment ``.env.{APP_ENV}`` file,
which is skipped entirely when TESTING is set.
"""

from __future__ import annotations

import os
from pathlib import Path

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


APP_ENV = os.getenv("APP_ENV", "development")

# Repository root; .env files live next to pyproject.toml
PROJECT_ROOT = Path(__file__).resolve().parents[2]

KNOWN_ENVIRONMENTS = ("development", "testing", "staging", "production")


def _env_file_for(environment: str) -> Path | None:
    """Return ``.env.{environment}`` if it should be loaded, else None.

    Unknown environments fall back to development. Nothing is loaded while
    TESTING is set or when the file does not exist.
    """

    if os.getenv("TESTING"):
        return None
    name = environment if environment in KNOWN_ENVIRONMENTS else "development"
    candidate = PROJECT_ROOT / f".env.{name}"
    return candidate if candidate.is_file() else None


# Nested BaseSettings groups each read os.environ with their own prefix and do
# not share an env_file, so the file is loaded into the environment up front.
_env_file = _env_file_for(APP_ENV)
if _env_file is not None:
    from dotenv import load_dotenv

    load_dotenv(_env_file, override=True)


class AppSettings(BaseSettings):
    """Application-wide configuration."""

    debug: bool = Field(
        False,
        description="Development mode; the session cookie is not marked Secure",
    )
    max_avatar_size_mb: int = Field(
        2,
        description="Maximum avatar upload size in megabytes",
        ge=1,
    )
    protected_prefixes: list[str] = Field(
        default_factory=lambda: ["/dashboard", "/profile", "/sessions", "/settings"],
        description="Page path prefixes that require an authenticated session",
    )
    auth_pages_prefix: str = Field(
        "/auth",
        description="Path prefix of sign-in/sign-up pages (plus '/')",
    )
    entry_path: str = Field(
        "/",
        description="Where anonymous callers are redirected from protected pages",
    )
    dashboard_path: str = Field(
        "/dashboard",
        description="Where signed-in callers are redirected from auth pages",
    )
    access_token_cookie: str = Field(
        "sb-access-token",
        description="Cookie carrying the session access token for page requests",
    )

    model_config = SettingsConfigDict(
        env_prefix="APP_",
        case_sensitive=False,
    )


class LogSettings(BaseSettings):
    """Logging output configuration."""

    level: str = Field("INFO", description="Root log level")
    format: str = Field("json", description="'json' or 'plain'")
    output: str = Field("stdout", description="'stdout' or 'file'")
    file_path: str | None = Field(None, description="Log file path when output=file")
    max_bytes: int = Field(
        10 * 1024 * 1024,
        description="Rotate log file after this many bytes (0 disables rotation)",
    )
    backup_count: int = Field(5, description="Number of rotated log files to keep")
    request_id_header: str = Field(
        "X-Request-ID",
        description="Header used to propagate the request correlation id",
    )

    model_config = SettingsConfigDict(
        env_prefix="LOG_",
        case_sensitive=False,
    )


class RateLimitSettings(BaseSettings):
    """Rate limiting behaviour shared by all endpoint policies."""

    enabled: bool = Field(
        True,
        description="Enable per-endpoint rate limiting",
    )
    include_headers: bool = Field(
        True,
        description="Include X-RateLimit-* headers on limited responses",
    )
    fail_open: bool = Field(
        True,
        description="Allow requests when the shared store is unreachable",
    )
    prefix: str = Field(
        "@ratelimit",
        description="Key prefix used in the shared store",
    )
    analytics: bool = Field(
        True,
        description="Record allowed/blocked counters in the shared store",
    )
    max_identifiers: int | None = Field(
        10_000,
        description="Cap on identifiers tracked by each in-process store (None for unlimited)",
        ge=1,
    )
    sweep_interval: int = Field(
        1_000,
        description="Drop fully expired in-process records every N evaluations",
        ge=1,
    )

    model_config = SettingsConfigDict(
        env_prefix="RATE_LIMIT_",
        case_sensitive=False,
    )


class RedisSettings(BaseSettings):
    """Shared rate limit store connection.

    Both url and token must be set for the shared store to be used.
    """

    url: str | None = Field(None, description="Redis URL, e.g. rediss://host:6379")
    token: str | None = Field(None, description="Access token (Redis password)")
    timeout_seconds: float = Field(2.0, description="Socket timeout in seconds")

    model_config = SettingsConfigDict(
        env_prefix="REDIS_",
        case_sensitive=False,
    )

    @property
    def configured(self) -> bool:
        return bool(self.url and self.token)


class SupabaseSettings(BaseSettings):
    """Identity provider, profile store and object storage endpoint."""

    url: str | None = Field(None, description="Project URL, e.g. https://xyz.supabase.co")
    anon_key: str | None = Field(None, description="Public anon API key")
    avatars_bucket: str = Field("avatars", description="Storage bucket for avatars")
    timeout_seconds: float = Field(10.0, description="Request timeout in seconds")

    model_config = SettingsConfigDict(
        env_prefix="SUPABASE_",
        case_sensitive=False,
    )


def _build_app_settings() -> AppSettings:
    """Build app settings from environment.

    Pydantic Settings (v2) populates values from environment variables;
    nested groups are created via default_factory so each one reads its
    own prefix.
    """

    return AppSettings()


def _build_log_settings() -> LogSettings:
    return LogSettings()


def _build_rate_limit_settings() -> RateLimitSettings:
    return RateLimitSettings()


def _build_redis_settings() -> RedisSettings:
    return RedisSettings()


def _build_supabase_settings() -> SupabaseSettings:
    return SupabaseSettings()


class Settings(BaseSettings):
    """All settings groups composed into one object.

    Without REDIS_URL and REDIS_TOKEN every limiter uses the in-process store,
    which is what development and tests run with.
    """

    app_env: str = APP_ENV
    app: AppSettings = Field(default_factory=_build_app_settings)
    log: LogSettings = Field(default_factory=_build_log_settings)
    rate_limit: RateLimitSettings = Field(default_factory=_build_rate_limit_settings)
    redis: RedisSettings = Field(default_factory=_build_redis_settings)
    supabase: SupabaseSettings = Field(default_factory=_build_supabase_settings)

    model_config = SettingsConfigDict(
        case_sensitive=False,
    )


# Process-wide instance; tests override groups with monkeypatch
settings = Settings()
