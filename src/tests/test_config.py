"""
Tests for Configuration.

Requires Python 3.11+.
"""

import pytest
from pydantic import ValidationError

from utils.config import LoggingSettings, Settings, WatcherSettings, get_settings
from utils.logger import _add_app_context


class TestSettings:
    """Test cases for the settings classes."""

    def test_defaults(self, monkeypatch):
        """Test the watch loop defaults."""
        for name in ("WATCHER_DEBOUNCE_INTERVAL_MS", "WATCHER_SETTLE_YIELDS", "WATCHER_CLEAR_SCREEN"):
            monkeypatch.delenv(name, raising=False)

        settings = WatcherSettings()

        assert settings.debounce_interval_ms == 200
        assert settings.settle_yields == 10
        assert settings.clear_screen is True

    def test_environment_override(self, monkeypatch):
        """Test values are read from prefixed environment variables."""
        monkeypatch.setenv("WATCHER_DEBOUNCE_INTERVAL_MS", "350")
        monkeypatch.setenv("WATCHER_CLEAR_SCREEN", "false")
        monkeypatch.setenv("LOG_FORMAT", "JSON")

        settings = Settings()

        assert settings.watcher.debounce_interval_ms == 350
        assert settings.watcher.clear_screen is False
        assert settings.logging.format == "json"

    def test_invalid_values_rejected(self, monkeypatch):
        """Test out-of-range and unknown values fail validation."""
        monkeypatch.setenv("WATCHER_DEBOUNCE_INTERVAL_MS", "0")
        with pytest.raises(ValidationError):
            WatcherSettings()

        monkeypatch.setenv("LOG_FORMAT", "xml")
        with pytest.raises(ValidationError):
            LoggingSettings()


class TestAppContext:
    """Test cases for the JSON log context."""

    def test_entries_carry_app_context(self):
        """Test JSON entries are tagged with the app name, version and environment."""
        settings = get_settings()

        event = _add_app_context(None, "info", {"event": "watcher_started"})

        assert event["app"] == settings.app_name
        assert event["version"] == settings.app_version
        assert event["environment"] == settings.environment
