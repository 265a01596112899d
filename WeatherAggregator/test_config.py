"""Tests for settings and API-key handling."""
import logging
from unittest.mock import patch

import pytest
from config import (
    ApiKeyStore,
    EngineSettings,
    ResolutionConfig,
    is_usable_key,
    load_settings,
    validate_openweathermap_key,
)
from taxonomy import Source


@pytest.mark.parametrize("key, usable", [
    (None, False),
    ("", False),
    ("   ", False),
    ("*insert-your-api-key-here*", False),
    ("abc123", True),
])
def test_is_usable_key(key, usable):
    assert is_usable_key(key) is usable


def test_validate_openweathermap_key():
    assert validate_openweathermap_key("0123456789abcdef0123456789abcdef")
    assert not validate_openweathermap_key("0123456789ABCDEF0123456789ABCDEF")
    assert not validate_openweathermap_key("short")
    assert not validate_openweathermap_key(None)


def test_key_store_snapshot_is_a_copy():
    store = ApiKeyStore({"pirate": "one"})
    snapshot = store.snapshot()

    store.set("pirate", "two")
    store.set("openweathermap", "0123456789abcdef0123456789abcdef")

    assert snapshot == {"pirate": "one"}
    assert store.get("pirate") == "two"
    store.set("pirate", None)
    assert store.get("pirate") is None


def test_key_store_warns_on_malformed_owm_key(caplog):
    with caplog.at_level(logging.WARNING):
        ApiKeyStore().set("openweathermap", "not-a-hex-key")

    assert "32 character hex" in caplog.text


def test_key_store_from_env(monkeypatch):
    monkeypatch.setenv("OPENWEATHERMAP_API_KEY", "0123456789abcdef0123456789abcdef")
    monkeypatch.delenv("PIRATE_WEATHER_API_KEY", raising=False)

    store = ApiKeyStore.from_env()

    assert store.snapshot() == {"openweathermap": "0123456789abcdef0123456789abcdef"}


def test_resolution_config_key_lookup():
    config = ResolutionConfig(settings=EngineSettings(http_timeout=3.0), api_keys={"pirate": "*insert-your-api-key-here*"})

    assert config.api_key(None) is None
    assert config.api_key("pirate") == "*insert-your-api-key-here*"
    assert config.has_usable_key("pirate") is False
    assert config.has_usable_key("openweathermap") is False
    assert config.http_timeout == 3.0


def test_default_settings():
    settings = EngineSettings()

    assert settings.cache_ttl_seconds == 600
    assert settings.global_provider_order == (Source.OPEN_METEO, Source.OPENWEATHERMAP, Source.PIRATE)
    assert settings.nowcast_enabled is True


def test_load_settings_from_env(monkeypatch):
    monkeypatch.setenv("WEATHER_HTTP_TIMEOUT", "4.5")
    monkeypatch.setenv("WEATHER_USER_AGENT", "(test-agent, test@example.com)")
    monkeypatch.setenv("PIRATE_WEATHER_API_KEY", "pirate-key")

    with patch('config.load_dotenv'):
        settings, store = load_settings()

    assert settings.http_timeout == 4.5
    assert settings.user_agent == "(test-agent, test@example.com)"
    assert store.get("pirate") == "pirate-key"


def test_load_settings_invalid_timeout(monkeypatch):
    monkeypatch.setenv("WEATHER_HTTP_TIMEOUT", "soon")

    with patch('config.load_dotenv'):
        with pytest.raises(SystemExit):
            load_settings()
