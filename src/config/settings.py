"""
Runtime settings for Monthly Zen.

All values come from environment variables so the same build runs in
development, CI and production. Quota defaults live here (not as module
constants) and are injected into the QuotaStore by the API layer.

Environment:
    ZEN_DATABASE_URL          SQLAlchemy URL (default: sqlite:///monthly_zen.db)
    ZEN_DB_TIMEOUT_SECONDS    Per-connection statement/busy timeout (default: 5)
    ZEN_DEFAULT_ALLOWANCE     Generations granted per quota period (default: 50)
    ZEN_QUOTA_PERIOD_MONTHS   Quota period length in months (default: 1)
    ZEN_PATTERN_CACHE_TTL     Pattern snapshot cache TTL in seconds (default: 300)
    ZEN_ENVIRONMENT           "development" | "production"
    ZEN_DEV_MODE              "1" for human-readable logs
    ZEN_CORS_ORIGINS          Comma-separated list of allowed origins
    LOG_LEVEL                 DEBUG | INFO | WARNING | ERROR | CRITICAL (default: INFO)
"""

from __future__ import annotations

import os
from dataclasses import dataclass, field
from functools import lru_cache

from src.lib.exceptions import ConfigurationError

DEFAULT_DATABASE_URL = "sqlite:///monthly_zen.db"
DEFAULT_ALLOWANCE = 50
DEFAULT_PERIOD_MONTHS = 1
DEFAULT_DB_TIMEOUT_SECONDS = 5
DEFAULT_PATTERN_CACHE_TTL = 300
LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")


def _int_env(name: str, default: int, minimum: int = 1) -> int:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return default
    try:
        value = int(raw)
    except ValueError as exc:
        raise ConfigurationError(f"{name} must be an integer, got {raw!r}") from exc
    if value < minimum:
        raise ConfigurationError(f"{name} must be >= {minimum}, got {value}")
    return value


@dataclass(frozen=True)
class ZenSettings:
    """Application settings resolved from the environment."""

    database_url: str = DEFAULT_DATABASE_URL
    db_timeout_seconds: int = DEFAULT_DB_TIMEOUT_SECONDS
    default_allowance: int = DEFAULT_ALLOWANCE
    quota_period_months: int = DEFAULT_PERIOD_MONTHS
    pattern_cache_ttl: int = DEFAULT_PATTERN_CACHE_TTL
    environment: str = "development"
    dev_mode: bool = False
    cors_origins: list[str] = field(default_factory=lambda: ["http://localhost:3000"])
    log_level: str = "INFO"

    @property
    def is_production(self) -> bool:
        return self.environment == "production"

    @classmethod
    def from_env(cls) -> ZenSettings:
        """
        Build settings from environment variables.

        Raises:
            ConfigurationError: If a numeric variable is malformed or out of range,
                or LOG_LEVEL is not a standard level name.
        """
        origins_raw = os.getenv("ZEN_CORS_ORIGINS", "http://localhost:3000")
        origins = [o.strip() for o in origins_raw.split(",") if o.strip()]
        log_level = os.getenv("LOG_LEVEL", "INFO").strip().upper() or "INFO"
        if log_level not in LOG_LEVELS:
            raise ConfigurationError(f"LOG_LEVEL must be one of {', '.join(LOG_LEVELS)}, got {log_level!r}")

        return cls(
            database_url=os.getenv("ZEN_DATABASE_URL", DEFAULT_DATABASE_URL),
            db_timeout_seconds=_int_env("ZEN_DB_TIMEOUT_SECONDS", DEFAULT_DB_TIMEOUT_SECONDS),
            default_allowance=_int_env("ZEN_DEFAULT_ALLOWANCE", DEFAULT_ALLOWANCE),
            quota_period_months=_int_env("ZEN_QUOTA_PERIOD_MONTHS", DEFAULT_PERIOD_MONTHS),
            pattern_cache_ttl=_int_env("ZEN_PATTERN_CACHE_TTL", DEFAULT_PATTERN_CACHE_TTL, minimum=0),
            environment=os.getenv("ZEN_ENVIRONMENT", "development"),
            dev_mode=os.getenv("ZEN_DEV_MODE") == "1",
            cors_origins=origins,
            log_level=log_level,
        )


@lru_cache(maxsize=1)
def get_settings() -> ZenSettings:
    """Get the process-wide settings (resolved once)."""
    return ZenSettings.from_env()


__all__ = ["ZenSettings", "get_settings"]
