# ABOUTME: Tests for environment-driven application configuration
# ABOUTME: Defaults, SNPEDIA_HARVEST_ overrides and validation of numeric settings

import os
from unittest.mock import patch

import pytest
from pydantic import ValidationError

from snpedia_harvest.config import Config, get_config, reload_config


def test_defaults():
    with patch.dict(os.environ, {}, clear=True):
        config = Config(_env_file=None)

    assert config.snpedia_api_url == "https://bots.snpedia.com/api.php"
    assert config.database_url.startswith("sqlite+aiosqlite://")
    assert config.refresh_after_days == 30
    assert config.include_raw_content is True
    assert config.log_level == "INFO"


def test_environment_overrides():
    env = {
        "SNPEDIA_HARVEST_DATABASE_URL": "sqlite+aiosqlite:///:memory:",
        "SNPEDIA_HARVEST_REQUESTS_PER_SECOND": "0",
        "SNPEDIA_HARVEST_INCLUDE_RAW_CONTENT": "false",
        "SNPEDIA_HARVEST_LOG_LEVEL": "DEBUG",
    }
    with patch.dict(os.environ, env, clear=True):
        config = Config(_env_file=None)

    assert config.database_url == "sqlite+aiosqlite:///:memory:"
    assert config.requests_per_second == 0.0
    assert config.include_raw_content is False
    assert config.log_level == "DEBUG"


def test_invalid_values_rejected():
    with patch.dict(os.environ, {"SNPEDIA_HARVEST_MAX_FETCH_ATTEMPTS": "0"}, clear=True):
        with pytest.raises(ValidationError):
            Config(_env_file=None)


def test_get_config_is_cached_until_reloaded():
    first = get_config()

    assert get_config() is first

    with patch.dict(os.environ, {"SNPEDIA_HARVEST_REFRESH_AFTER_DAYS": "7"}):
        reloaded = reload_config()

    assert reloaded is not first
    assert reloaded.refresh_after_days == 7
    assert get_config() is reloaded
    reload_config()
