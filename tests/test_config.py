"""Tests for configuration settings."""

import pytest

from prc_client.config import (
    DEFAULT_BASE_URL,
    CacheConfig,
    RequestQueueConfig,
    RetryConfig,
    Settings,
    get_settings,
)


class TestSettings:
    """Tests for Settings class."""

    def test_settings_defaults(self, monkeypatch):
        """Test default values are correct."""
        monkeypatch.delenv("PRC_SERVER_KEY", raising=False)
        settings = Settings(_env_file=None)

        assert settings.server_key == ""
        assert settings.global_key is None
        assert settings.base_url == DEFAULT_BASE_URL
        assert settings.timeout_ms == 10000
        assert settings.keep_alive is True
        assert settings.log_level == "INFO"

    def test_pipeline_defaults(self):
        """Nested pipeline configs carry their documented defaults."""
        settings = Settings(_env_file=None)

        assert settings.request_queue.enabled is False
        assert settings.request_queue.workers == 1
        assert settings.cache.enabled is True
        assert settings.cache.ttl_ms == 5000
        assert settings.cache.prefix == "prc:"
        assert settings.retry.max_attempts == 4
        assert settings.rate_limit.default_backoff_ms == 5000

    def test_settings_from_env(self, monkeypatch):
        """Test environment variables override defaults."""
        monkeypatch.setenv("PRC_SERVER_KEY", "test_key_123")
        monkeypatch.setenv("PRC_GLOBAL_KEY", "global_abc")
        monkeypatch.setenv("PRC_LOG_LEVEL", "DEBUG")
        monkeypatch.setenv("PRC_TIMEOUT_MS", "2500")

        settings = Settings(_env_file=None)

        assert settings.server_key == "test_key_123"
        assert settings.global_key == "global_abc"
        assert settings.log_level == "DEBUG"
        assert settings.timeout_ms == 2500

    def test_nested_settings_from_env(self, monkeypatch):
        """Nested configs are read with the __ delimiter."""
        monkeypatch.setenv("PRC_CACHE__TTL_MS", "1500")
        monkeypatch.setenv("PRC_CACHE__STALE_IF_ERROR", "true")
        monkeypatch.setenv("PRC_REQUEST_QUEUE__ENABLED", "true")
        monkeypatch.setenv("PRC_REQUEST_QUEUE__WORKERS", "3")

        settings = Settings(_env_file=None)

        assert settings.cache.ttl_ms == 1500
        assert settings.cache.stale_if_error is True
        assert settings.request_queue.enabled is True
        assert settings.request_queue.workers == 3

    def test_settings_log_level_validation(self, monkeypatch):
        """Test that invalid log level is rejected."""
        monkeypatch.setenv("PRC_LOG_LEVEL", "INVALID")

        with pytest.raises(ValueError):
            Settings(_env_file=None)

    def test_base_url_trailing_slash_stripped(self):
        """A trailing slash on the base URL is removed."""
        settings = Settings(_env_file=None, base_url="https://example.test/v1/")
        assert settings.base_url == "https://example.test/v1"

    def test_settings_case_insensitive(self, monkeypatch):
        """Test that env var names are case-insensitive."""
        monkeypatch.setenv("prc_server_key", "lower_key")

        settings = Settings(_env_file=None)

        assert settings.server_key == "lower_key"


class TestNestedConfigs:
    """Validation of the pipeline config models."""

    def test_queue_workers_bounds(self):
        with pytest.raises(ValueError):
            RequestQueueConfig(workers=0)
        with pytest.raises(ValueError):
            RequestQueueConfig(workers=101)

    def test_retry_jitter_bounds(self):
        with pytest.raises(ValueError):
            RetryConfig(jitter_factor=1.5)

    def test_negative_ttl_rejected(self):
        with pytest.raises(ValueError):
            CacheConfig(ttl_ms=-1)

    def test_stale_ms_requires_stale_if_error(self):
        """The stale window only applies when stale-if-error is on."""
        assert CacheConfig(stale_window_ms=30000).stale_ms == 0
        assert CacheConfig(stale_window_ms=30000, stale_if_error=True).stale_ms == 30000


class TestGetSettings:
    """Tests for get_settings function."""

    def test_get_settings_returns_settings(self):
        """Test that get_settings returns a Settings instance."""
        get_settings.cache_clear()

        settings = get_settings()

        assert isinstance(settings, Settings)

    def test_get_settings_cached(self):
        """Test that get_settings returns cached instance."""
        get_settings.cache_clear()

        settings1 = get_settings()
        settings2 = get_settings()

        assert settings1 is settings2
