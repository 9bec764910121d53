"""Tests for environment configuration."""

import pytest

from edge_guard.config import DEFAULT_ALLOWED_ORIGINS, Settings, get_settings


class TestSettingsFromEnv:
    """Tests for Settings.from_env."""

    def test_defaults(self, monkeypatch):
        """Unset variables fall back to defaults."""
        for name in (
            "EG_ALLOWED_ORIGINS",
            "EG_CORS_CREDENTIALS",
            "EG_RATE_LIMIT_CLEANUP_SECONDS",
            "EG_DEFAULT_RATE_LIMIT",
            "EG_DEBUG",
            "EG_LOG_LEVEL",
            "EG_MAX_BODY_SIZE",
            "EG_WEBHOOK_SECRET",
        ):
            monkeypatch.delenv(name, raising=False)

        settings = Settings.from_env()

        assert settings.allowed_origins == DEFAULT_ALLOWED_ORIGINS
        assert settings.cors_credentials is True
        assert settings.cleanup_interval_seconds == 300.0
        assert settings.default_rate_limit == "api"
        assert settings.debug is False
        assert settings.log_level == "INFO"
        assert settings.max_body_size == 1024 * 1024
        assert settings.webhook_secret is None

    def test_origin_list_is_normalized(self, monkeypatch):
        """Origins are split on commas with trailing slashes removed."""
        monkeypatch.setenv("EG_ALLOWED_ORIGINS", "https://a.example.com/, https://b.example.com,,")
        assert Settings.from_env().allowed_origins == ["https://a.example.com", "https://b.example.com"]

    def test_boolean_and_strings(self, monkeypatch):
        monkeypatch.setenv("EG_CORS_CREDENTIALS", "false")
        monkeypatch.setenv("EG_DEBUG", "YES")
        monkeypatch.setenv("EG_DEFAULT_RATE_LIMIT", " Read ")
        monkeypatch.setenv("EG_LOG_LEVEL", "debug")

        settings = Settings.from_env()

        assert settings.cors_credentials is False
        assert settings.debug is True
        assert settings.default_rate_limit == "read"
        assert settings.log_level == "DEBUG"

    def test_invalid_interval_falls_back(self, monkeypatch, caplog):
        """Non-numeric or non-positive intervals log a warning and use the default."""
        monkeypatch.setenv("EG_RATE_LIMIT_CLEANUP_SECONDS", "soon")
        assert Settings.from_env().cleanup_interval_seconds == 300.0
        assert "Invalid EG_RATE_LIMIT_CLEANUP_SECONDS" in caplog.text

        monkeypatch.setenv("EG_RATE_LIMIT_CLEANUP_SECONDS", "-5")
        assert Settings.from_env().cleanup_interval_seconds == 300.0

        monkeypatch.setenv("EG_RATE_LIMIT_CLEANUP_SECONDS", "2.5")
        assert Settings.from_env().cleanup_interval_seconds == 2.5


    @pytest.mark.parametrize(
        "value, expected",
        [("2048", 2048), ("64k", 64 * 1024), ("2M", 2 * 1024 * 1024), ("big", 1024 * 1024), ("0", 1024 * 1024)],
    )
    def test_max_body_size(self, monkeypatch, value, expected):
        """Sizes accept K/M/G suffixes; bad values use the default."""
        monkeypatch.setenv("EG_MAX_BODY_SIZE", value)
        assert Settings.from_env().max_body_size == expected

    def test_webhook_secret_not_in_repr(self, monkeypatch):
        monkeypatch.setenv("EG_WEBHOOK_SECRET", "s3cret")
        settings = Settings.from_env()
        assert settings.webhook_secret == "s3cret"
        assert "s3cret" not in repr(settings)

class TestGetSettings:
    """Tests for the cached accessor."""

    def test_cached_until_cleared(self, monkeypatch):
        monkeypatch.setenv("EG_DEBUG", "false")
        first = get_settings()
        monkeypatch.setenv("EG_DEBUG", "true")
        assert get_settings() is first

        get_settings.cache_clear()
        assert get_settings().debug is True
