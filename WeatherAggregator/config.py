"""Engine settings and API-key storage."""
import logging
import os
import re
import threading
from dataclasses import dataclass, field
from typing import Dict, Optional, Tuple

from dotenv import load_dotenv

from taxonomy import Source

PLACEHOLDER_KEYS = frozenset({"", "*insert-your-api-key-here*"})
OPENWEATHERMAP_KEY_PATTERN = re.compile(r"^[a-f0-9]{32}$")

OPENWEATHERMAP_KEY_NAME = "openweathermap"
PIRATE_WEATHER_KEY_NAME = "pirate"

DEFAULT_LAT = 40.7128
DEFAULT_LON = -74.0060
DEFAULT_USER_AGENT = "(weather-aggregator, weather-aggregator@example.com)"


@dataclass(frozen=True)
class EngineSettings:
    """Static engine configuration; safe to share between resolutions."""
    http_timeout: float = 10.0
    user_agent: str = DEFAULT_USER_AGENT
    global_provider_order: Tuple[Source, ...] = (Source.OPEN_METEO, Source.OPENWEATHERMAP, Source.PIRATE)
    cache_ttl_seconds: int = 600
    nowcast_enabled: bool = True
    nowcast_backfill: bool = True
    nws_base_url: str = "https://api.weather.gov"
    open_meteo_base_url: str = "https://api.open-meteo.com/v1/forecast"
    openweathermap_base_url: str = "https://api.openweathermap.org/data/2.5"
    pirate_base_url: str = "https://api.pirateweather.net/forecast"


def is_usable_key(key: Optional[str]) -> bool:
    """A key is usable when present and not a known placeholder."""
    return key is not None and key.strip() not in PLACEHOLDER_KEYS


def validate_openweathermap_key(key: Optional[str]) -> bool:
    """OpenWeatherMap keys are 32 lowercase hex characters."""
    return bool(key) and bool(OPENWEATHERMAP_KEY_PATTERN.match(key.strip()))


class ApiKeyStore:
    """
    In-memory key-value store for provider API keys.

    Writes may come from any thread; readers take a snapshot per resolution,
    so a write is only seen by resolutions that start after it.
    """

    def __init__(self, keys: Optional[Dict[str, str]] = None):
        self._keys: Dict[str, str] = dict(keys or {})
        self._lock = threading.Lock()

    @classmethod
    def from_env(cls) -> "ApiKeyStore":
        keys = {}
        owm_key = os.getenv("OPENWEATHERMAP_API_KEY")
        pirate_key = os.getenv("PIRATE_WEATHER_API_KEY")
        if owm_key:
            keys[OPENWEATHERMAP_KEY_NAME] = owm_key
        if pirate_key:
            keys[PIRATE_WEATHER_KEY_NAME] = pirate_key
        return cls(keys)

    def get(self, name: str) -> Optional[str]:
        with self._lock:
            return self._keys.get(name)

    def set(self, name: str, value: Optional[str]) -> None:
        if name == OPENWEATHERMAP_KEY_NAME and is_usable_key(value) and not validate_openweathermap_key(value):
            logging.warning("OpenWeatherMap API key does not look like a 32 character hex key")
        with self._lock:
            if value is None:
                self._keys.pop(name, None)
            else:
                self._keys[name] = value

    def snapshot(self) -> Dict[str, str]:
        with self._lock:
            return dict(self._keys)


@dataclass(frozen=True)
class ResolutionConfig:
    """Immutable view of settings and keys taken at the start of one resolution."""
    settings: EngineSettings
    api_keys: Dict[str, str] = field(default_factory=dict)

    def api_key(self, name: Optional[str]) -> Optional[str]:
        if not name:
            return None
        return self.api_keys.get(name)

    def has_usable_key(self, name: Optional[str]) -> bool:
        return is_usable_key(self.api_key(name))

    @property
    def http_timeout(self) -> float:
        return self.settings.http_timeout


def load_settings() -> Tuple[EngineSettings, ApiKeyStore]:
    """
    Read settings and keys from the environment (and a .env file if present).

    Returns:
        Tuple[EngineSettings, ApiKeyStore]: Engine settings and a seeded key store

    Raises:
        SystemExit: If WEATHER_HTTP_TIMEOUT is not a number
    """
    load_dotenv()
    timeout = os.getenv("WEATHER_HTTP_TIMEOUT")
    try:
        http_timeout = float(timeout) if timeout else EngineSettings.http_timeout
    except ValueError as exc:
        raise SystemExit(f"Invalid WEATHER_HTTP_TIMEOUT: {exc}") from exc

    settings = EngineSettings(
        http_timeout=http_timeout,
        user_agent=os.getenv("WEATHER_USER_AGENT", DEFAULT_USER_AGENT),
    )
    keys = ApiKeyStore.from_env()
    logging.info(
        "Settings loaded: timeout=%ss keys=%s",
        settings.http_timeout,
        sorted(name for name, value in keys.snapshot().items() if is_usable_key(value)),
    )
    return settings, keys
