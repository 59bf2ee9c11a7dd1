"""
Tests for configuration and logging setup.
"""

import pytest
import structlog
from pydantic import ValidationError
from structlog.testing import capture_logs

from planitrad.platform.config import Settings, get_settings, settings
from planitrad.platform.logging import configure_logging, get_logger


def test_defaults():
    settings = Settings()

    assert settings.APP_NAME == "PlaniTrad"
    assert settings.TIMEZONE == "America/Toronto"
    assert settings.HORAIRE_DEFAUT == "9h-17h"
    assert settings.PAUSE_MIDI == "12h-13h"
    assert settings.JAT_MAX_LOOKBACK_JOURS == 30
    assert settings.JAT_HEURES_MAX_JOUR_J == 2.0


def test_environment_override(monkeypatch):
    monkeypatch.setenv("JAT_MAX_LOOKBACK_JOURS", "10")
    monkeypatch.setenv("CAPACITE_DEFAUT", "6.5")

    settings = Settings()

    assert settings.JAT_MAX_LOOKBACK_JOURS == 10
    assert settings.CAPACITE_DEFAUT == 6.5


def test_settings_cached():
    assert get_settings() is get_settings()


def test_logger_accepts_context():
    configure_logging()
    logger = get_logger("planitrad.test")

    logger.info("test.event", translator_id="trad-1", heures=3.5)


def test_invalid_values_rejected(monkeypatch):
    monkeypatch.setenv("TIMEZONE", "Mars/Olympus")

    with pytest.raises(ValidationError):
        Settings()


def test_lookback_must_be_positive(monkeypatch):
    monkeypatch.setenv("JAT_MAX_LOOKBACK_JOURS", "0")

    with pytest.raises(ValidationError):
        Settings()


def test_debug_mode_logs_debug_events(monkeypatch):
    monkeypatch.setattr(settings, "DEBUG", True)
    configure_logging()

    with capture_logs() as logs:
        get_logger("planitrad.test").debug("test.trace", jour="2025-12-09")

    assert [entry["event"] for entry in logs] == ["test.trace"]


def test_debug_events_filtered_by_default(monkeypatch):
    monkeypatch.setattr(settings, "DEBUG", False)
    configure_logging("INFO")

    with capture_logs() as logs:
        get_logger("planitrad.test").debug("test.trace")

    assert logs == []


def test_logger_configures_on_first_use():
    structlog.reset_defaults()

    get_logger("planitrad.test")

    assert structlog.is_configured()
