"""
Tests for ZenSettings.

Covers:
- Defaults when no environment variables are set
- Parsing of numeric values and CORS origins
- ConfigurationError on malformed or out-of-range values and unknown log levels
"""

import pytest

from src.config.settings import ZenSettings
from src.lib.exceptions import ConfigurationError

_ENV_VARS = (
    "ZEN_DATABASE_URL",
    "ZEN_DB_TIMEOUT_SECONDS",
    "ZEN_DEFAULT_ALLOWANCE",
    "ZEN_QUOTA_PERIOD_MONTHS",
    "ZEN_PATTERN_CACHE_TTL",
    "ZEN_ENVIRONMENT",
    "ZEN_DEV_MODE",
    "ZEN_CORS_ORIGINS",
    "LOG_LEVEL",
)


@pytest.fixture
def clean_env(monkeypatch):
    for name in _ENV_VARS:
        monkeypatch.delenv(name, raising=False)
    return monkeypatch


def test_defaults(clean_env):
    settings = ZenSettings.from_env()

    assert settings.database_url == "sqlite:///monthly_zen.db"
    assert settings.default_allowance == 50
    assert settings.quota_period_months == 1
    assert settings.pattern_cache_ttl == 300
    assert settings.dev_mode is False
    assert settings.is_production is False
    assert settings.cors_origins == ["http://localhost:3000"]
    assert settings.log_level == "INFO"


def test_values_from_env(clean_env):
    clean_env.setenv("ZEN_DEFAULT_ALLOWANCE", "10")
    clean_env.setenv("ZEN_QUOTA_PERIOD_MONTHS", "3")
    clean_env.setenv("ZEN_PATTERN_CACHE_TTL", "0")
    clean_env.setenv("ZEN_ENVIRONMENT", "production")
    clean_env.setenv("ZEN_CORS_ORIGINS", "https://app.example.com, https://admin.example.com,")
    clean_env.setenv("LOG_LEVEL", "debug")

    settings = ZenSettings.from_env()

    assert settings.default_allowance == 10
    assert settings.quota_period_months == 3
    assert settings.pattern_cache_ttl == 0
    assert settings.is_production is True
    assert settings.cors_origins == ["https://app.example.com", "https://admin.example.com"]
    assert settings.log_level == "DEBUG"


def test_blank_value_uses_default(clean_env):
    clean_env.setenv("ZEN_DEFAULT_ALLOWANCE", "  ")

    assert ZenSettings.from_env().default_allowance == 50


def test_non_integer_rejected(clean_env):
    clean_env.setenv("ZEN_DEFAULT_ALLOWANCE", "fifty")

    with pytest.raises(ConfigurationError, match="ZEN_DEFAULT_ALLOWANCE"):
        ZenSettings.from_env()


def test_zero_period_rejected(clean_env):
    clean_env.setenv("ZEN_QUOTA_PERIOD_MONTHS", "0")

    with pytest.raises(ConfigurationError):
        ZenSettings.from_env()


def test_unknown_log_level_rejected(clean_env):
    clean_env.setenv("LOG_LEVEL", "verbose")

    with pytest.raises(ConfigurationError, match="LOG_LEVEL"):
        ZenSettings.from_env()
