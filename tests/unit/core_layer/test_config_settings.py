"""
Unit Tests for Configuration Settings

Tests defaults, validation, the grouped views and source precedence
(keyword arguments > settings-panel file > environment).
"""

import os
from unittest.mock import patch

import orjson
import pytest
from pydantic import ValidationError

from src.core.config.constants import DEFAULT_KEY_PREFIX, ITEM_CACHE_TTL, LIST_CACHE_TTL
from src.core.config.settings import Settings, SettingsPanelSource
from tests.test_fixtures.cache_factory import MISSING_SETTINGS_FILE


def _settings(**overrides):
    return Settings(SETTINGS_FILE=MISSING_SETTINGS_FILE, **overrides)


@pytest.fixture
def clean_env():
    """Environment without any variable the settings read."""
    names = set(Settings.model_fields)
    with patch.dict(os.environ, {k: v for k, v in os.environ.items() if k not in names}, clear=True):
        yield


@pytest.mark.unit
class TestSettingsDefaults:
    """Test default values of every settings group."""

    def test_cache_is_disabled_by_default(self, clean_env):
        settings = _settings()

        assert settings.redis.ENABLE_CACHE is False
        assert settings.warmer.ENABLE_CACHE_WARMING is False

    def test_redis_defaults(self, clean_env):
        redis = _settings().redis

        assert redis.REDIS_HOST == "localhost"
        assert redis.REDIS_PORT == 6379
        assert redis.REDIS_DB == 0
        assert redis.REDIS_PASSWORD is None
        assert redis.REDIS_KEY_PREFIX == DEFAULT_KEY_PREFIX

    def test_ttl_defaults(self, clean_env):
        cache = _settings().cache

        assert cache.CACHE_LIST_TTL == LIST_CACHE_TTL == 300
        assert cache.CACHE_ITEM_TTL == ITEM_CACHE_TTL == 600
        assert cache.CACHE_TTL <= cache.CACHE_MAX_TTL

    def test_warmer_defaults(self, clean_env):
        warmer = _settings().warmer

        assert warmer.CACHE_WARM_ON_STARTUP is True
        assert warmer.CACHE_WARM_INTERVAL == 30
        assert warmer.CACHE_WARM_MAX_METRICS == 100

    def test_groups_mirror_flat_fields(self, clean_env):
        settings = _settings(REDIS_HOST="cache.internal", CACHE_LIST_TTL=120, API_BASE_PATH="/api/v2")

        assert settings.redis.REDIS_HOST == "cache.internal"
        assert settings.cache.CACHE_LIST_TTL == 120
        assert settings.app.API_BASE_PATH == "/api/v2"


@pytest.mark.unit
class TestSettingsValidation:
    """Test field and model validators."""

    def test_log_level_is_normalized(self, clean_env):
        assert _settings(LOG_LEVEL="debug").logging.LOG_LEVEL == "DEBUG"

    def test_invalid_log_level_rejected(self, clean_env):
        with pytest.raises(ValidationError):
            _settings(LOG_LEVEL="verbose")

    @pytest.mark.parametrize("field", ["CACHE_TTL", "CACHE_LIST_TTL", "CACHE_ITEM_TTL"])
    def test_non_positive_ttl_rejected(self, clean_env, field):
        with pytest.raises(ValidationError):
            _settings(**{field: 0})

    def test_default_ttl_must_fit_under_maximum(self, clean_env):
        with pytest.raises(ValidationError):
            _settings(CACHE_TTL=7200, CACHE_MAX_TTL=3600)

    def test_negative_warm_interval_rejected(self, clean_env):
        with pytest.raises(ValidationError):
            _settings(CACHE_WARM_INTERVAL=-1)

    def test_zero_warm_interval_allowed(self, clean_env):
        assert _settings(CACHE_WARM_INTERVAL=0).warmer.CACHE_WARM_INTERVAL == 0


@pytest.mark.unit
class TestSettingsLoading:
    """Test settings loading from the environment and the settings panel."""

    def test_settings_load_from_env_vars(self, clean_env):
        env_vars = {
            "ENABLE_CACHE": "true",
            "REDIS_HOST": "env-redis.example.com",
            "REDIS_PORT": "6380",
            "CACHE_ITEM_TTL": "900",
        }

        with patch.dict(os.environ, env_vars):
            settings = _settings()

        assert settings.redis.ENABLE_CACHE is True
        assert settings.redis.REDIS_HOST == "env-redis.example.com"
        assert settings.redis.REDIS_PORT == 6380
        assert settings.cache.CACHE_ITEM_TTL == 900

    def test_panel_file_overrides_environment(self, clean_env, tmp_path):
        panel = tmp_path / "settings.json"
        panel.write_bytes(
            orjson.dumps({"redis": {"host": "panel-redis", "port": 6390, "db": 3, "enabled": True}})
        )

        with patch.dict(os.environ, {"REDIS_HOST": "env-redis", "ENABLE_CACHE": "false"}):
            settings = Settings(SETTINGS_FILE=str(panel))

        assert settings.redis.REDIS_HOST == "panel-redis"
        assert settings.redis.REDIS_PORT == 6390
        assert settings.redis.REDIS_DB == 3
        assert settings.redis.ENABLE_CACHE is True

    def test_panel_file_path_from_environment(self, clean_env, tmp_path):
        panel = tmp_path / "panel.json"
        panel.write_bytes(orjson.dumps({"redis": {"host": "from-env-path"}}))

        with patch.dict(os.environ, {"SETTINGS_FILE": str(panel)}):
            settings = Settings()

        assert settings.redis.REDIS_HOST == "from-env-path"

    def test_keyword_arguments_override_panel_file(self, clean_env, tmp_path):
        panel = tmp_path / "settings.json"
        panel.write_bytes(orjson.dumps({"redis": {"host": "panel-redis"}}))

        settings = Settings(SETTINGS_FILE=str(panel), REDIS_HOST="explicit")

        assert settings.redis.REDIS_HOST == "explicit"

    def test_empty_panel_values_fall_back_to_environment(self, clean_env, tmp_path):
        panel = tmp_path / "settings.json"
        panel.write_bytes(orjson.dumps({"redis": {"host": "", "password": None, "port": 6391}}))

        with patch.dict(os.environ, {"REDIS_HOST": "env-redis"}):
            settings = Settings(SETTINGS_FILE=str(panel))

        assert settings.redis.REDIS_HOST == "env-redis"
        assert settings.redis.REDIS_PASSWORD is None
        assert settings.redis.REDIS_PORT == 6391

    def test_malformed_panel_file_is_ignored(self, clean_env, tmp_path):
        panel = tmp_path / "settings.json"
        panel.write_text("{not json")

        with patch.dict(os.environ, {"REDIS_HOST": "env-redis"}):
            settings = Settings(SETTINGS_FILE=str(panel))

        assert settings.redis.REDIS_HOST == "env-redis"

    def test_wrongly_typed_panel_value_falls_back_to_environment(self, clean_env, tmp_path):
        panel = tmp_path / "settings.json"
        panel.write_bytes(
            orjson.dumps({"redis": {"host": "cache", "port": "six-three-seven-nine", "enabled": True}})
        )

        with patch.dict(os.environ, {"REDIS_PORT": "6385"}):
            settings = Settings(SETTINGS_FILE=str(panel))

        assert settings.redis.REDIS_PORT == 6385
        assert settings.redis.REDIS_HOST == "cache"
        assert settings.redis.ENABLE_CACHE is True

    def test_wrongly_typed_panel_values_are_dropped(self, tmp_path):
        panel = tmp_path / "settings.json"
        panel.write_bytes(orjson.dumps({"redis": {"port": "abc", "db": [1], "enabled": "maybe", "host": "h"}}))

        source = SettingsPanelSource(Settings, path=panel)

        assert source() == {"REDIS_HOST": "h"}

    def test_panel_values_are_coerced_to_field_types(self, tmp_path):
        panel = tmp_path / "settings.json"
        panel.write_bytes(orjson.dumps({"redis": {"port": "6390", "enabled": "true"}}))

        source = SettingsPanelSource(Settings, path=panel)

        assert source() == {"REDIS_PORT": 6390, "ENABLE_CACHE": True}

    def test_panel_without_redis_section_contributes_nothing(self, tmp_path):
        panel = tmp_path / "settings.json"
        panel.write_bytes(orjson.dumps({"theme": "dark"}))

        source = SettingsPanelSource(Settings, path=panel)

        assert source() == {}

    def test_missing_panel_file_contributes_nothing(self):
        source = SettingsPanelSource(Settings, path=MISSING_SETTINGS_FILE)

        assert source() == {}
