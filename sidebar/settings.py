"""Centralized configuration management for the sidebar sites service."""

from __future__ import annotations

import logging
import os
from functools import lru_cache

from dotenv import load_dotenv
from pydantic import Field, PrivateAttr
from pydantic_settings import BaseSettings, SettingsConfigDict

# Load environment variables defined in a local .env file before instantiating the
# settings singleton so every importer of :mod:`sidebar.settings` observes them.
load_dotenv()

# -- Application-wide constants -------------------------------------------------

DEFAULT_REDIS_URL = "redis://localhost:6379/0"
DEFAULT_FAVICON_DATABASE_URL = "sqlite+aiosqlite:///./data/SidebarFaviconCache.db"
FAVICON_STORE_NAME = "SidebarFaviconCache"
FAVICON_STORE_VERSION = 1
DEFAULT_FAVICON_TTL_DAYS = 7
DEFAULT_FAVICON_MIN_BYTES = 100
DEFAULT_FAVICON_FETCH_TIMEOUT_SECONDS = 5.0
DEFAULT_IDLE_TIMEOUT_SECONDS = 300.0
DEFAULT_LOG_LEVEL = "INFO"


def _normalize_origin(origin: str) -> str:
    """Return the origin stripped of whitespace and trailing slashes."""

    return origin.strip().rstrip("/")


class AppSettings(BaseSettings):
    """Typed configuration surface built on top of ``pydantic-settings``.

    Only a handful of knobs exist: where the site list lives (Redis), where the
    favicon cache lives (an async SQLAlchemy URL), and the timing constants of
    the favicon cache and the idle controller.
    """

    _explicit_redis_url: bool = PrivateAttr(default=False)
    _explicit_cors_allow_origins: bool = PrivateAttr(default=False)

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
        populate_by_name=True,
    )

    def __init__(self, **values: object) -> None:
        """Remember which optional values were supplied explicitly."""

        normalized_keys = {str(key).lower() for key in values}
        super().__init__(**values)
        self._explicit_redis_url = "redis_url" in normalized_keys
        self._explicit_cors_allow_origins = "cors_allow_origins_raw" in normalized_keys
        redis_env = os.getenv("REDIS_URL")
        if redis_env is not None and redis_env.strip():
            self._explicit_redis_url = True
        cors_env = os.getenv("CORS_ALLOW_ORIGINS")
        if cors_env is not None and cors_env.strip():
            self._explicit_cors_allow_origins = True

    redis_url: str = Field(
        default=DEFAULT_REDIS_URL,
        alias="REDIS_URL",
        description=(
            "Redis connection string backing the persistent site list. When the"
            " server is unreachable the store degrades to an in-process dict."
        ),
    )
    favicon_database_url: str = Field(
        default=DEFAULT_FAVICON_DATABASE_URL,
        alias="FAVICON_DATABASE_URL",
        description="Async SQLAlchemy URL of the favicon cache database.",
    )
    favicon_ttl_days: float = Field(
        default=DEFAULT_FAVICON_TTL_DAYS,
        alias="FAVICON_TTL_DAYS",
        gt=0,
        description="Age after which a cached favicon is ignored and re-fetched.",
    )
    favicon_min_bytes: int = Field(
        default=DEFAULT_FAVICON_MIN_BYTES,
        alias="FAVICON_MIN_BYTES",
        ge=0,
        description="Payloads smaller than this are treated as placeholder images.",
    )
    favicon_fetch_timeout_seconds: float = Field(
        default=DEFAULT_FAVICON_FETCH_TIMEOUT_SECONDS,
        alias="FAVICON_FETCH_TIMEOUT_SECONDS",
        gt=0,
        description="Upper bound for a single favicon source request.",
    )
    idle_timeout_seconds: float = Field(
        default=DEFAULT_IDLE_TIMEOUT_SECONDS,
        alias="IDLE_TIMEOUT_SECONDS",
        gt=0,
        description="Inactivity period after which loaded content is hibernated.",
    )
    cors_allow_origins_raw: str | None = Field(
        default=None,
        alias="CORS_ALLOW_ORIGINS",
        description="Comma-separated list of origins allowed to call the API.",
    )
    log_level: str = Field(
        default=DEFAULT_LOG_LEVEL,
        alias="LOG_LEVEL",
        description="Root logging level (e.g. INFO, DEBUG, WARNING).",
    )

    @property
    def favicon_ttl_seconds(self) -> float:
        return self.favicon_ttl_days * 24 * 60 * 60

    @property
    def cors_allow_origins(self) -> list[str]:
        """Return normalised CORS origins supplied via environment variables."""

        if not self.cors_allow_origins_raw:
            return []

        origins = [
            _normalize_origin(origin)
            for origin in self.cors_allow_origins_raw.split(",")
            if origin.strip()
        ]
        return [origin for origin in origins if origin]

    @property
    def log_level_numeric(self) -> int:
        """Translate ``log_level`` into the numeric constant expected by logging."""

        candidate = logging.getLevelName(self.log_level.upper())
        if isinstance(candidate, int):
            return candidate
        return logging.INFO

    def optional_config_warnings(self) -> list[str]:
        """Return human-readable warnings for unset optional configuration."""

        warnings: list[str] = []

        if not self._explicit_redis_url and self.redis_url == DEFAULT_REDIS_URL:
            warnings.append(
                "REDIS_URL is not set - the site list falls back to an in-memory "
                "store when localhost Redis is unreachable (changes will not survive "
                "a restart)"
            )

        if not self._explicit_cors_allow_origins and not self.cors_allow_origins:
            warnings.append(
                "CORS_ALLOW_ORIGINS is not set - only localhost origins may call the API"
            )

        return warnings


@lru_cache(maxsize=1)
def get_settings() -> AppSettings:
    """Return a cached instance of :class:`AppSettings`."""

    return AppSettings()


settings = get_settings()

__all__ = [
    "AppSettings",
    "DEFAULT_FAVICON_DATABASE_URL",
    "DEFAULT_FAVICON_FETCH_TIMEOUT_SECONDS",
    "DEFAULT_FAVICON_MIN_BYTES",
    "DEFAULT_FAVICON_TTL_DAYS",
    "DEFAULT_IDLE_TIMEOUT_SECONDS",
    "DEFAULT_LOG_LEVEL",
    "DEFAULT_REDIS_URL",
    "FAVICON_STORE_NAME",
    "FAVICON_STORE_VERSION",
    "get_settings",
    "settings",
]
