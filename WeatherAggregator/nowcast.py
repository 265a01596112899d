"""Short-horizon precipitation fetch used to fill in a pending nowcast."""
import logging
from datetime import datetime
from typing import Optional

from config import PIRATE_WEATHER_KEY_NAME
from http_util import get_json
from open_meteo_provider import MINUTELY_15_PARAMS, MINUTELY_15_STEPS, process_minutely_15
from pirate_provider import process_minutely
from weather_data import Nowcast, WeatherData
from weather_provider import FailureKind, StageResult

PIRATE_NOWCAST_EXCLUDE = "currently,hourly,daily,alerts,flags"


def _pirate_nowcast(lat: float, lon: float, config) -> StageResult:
    key = config.api_key(PIRATE_WEATHER_KEY_NAME).strip()
    result = get_json(
        f"{config.settings.pirate_base_url}/{key}/{lat:.4f},{lon:.4f}",
        params={"exclude": PIRATE_NOWCAST_EXCLUDE, "units": "si"},
        timeout=config.http_timeout,
        stage="pirate-nowcast",
        secrets=[key],
    )
    if not result.ok:
        return result
    offset = int(((result.value or {}).get("offset") or 0) * 3600)
    return StageResult.success(process_minutely(result.value.get("minutely"), offset, units="si"), "pirate-nowcast")


def _open_meteo_nowcast(lat: float, lon: float, config, now: Optional[datetime]) -> StageResult:
    result = get_json(
        config.settings.open_meteo_base_url,
        params={
            "latitude": f"{lat:.4f}",
            "longitude": f"{lon:.4f}",
            "minutely_15": ",".join(MINUTELY_15_PARAMS),
            "forecast_minutely_15": MINUTELY_15_STEPS,
            "past_minutely_15": 0,
            "timezone": "auto",
        },
        timeout=config.http_timeout,
        stage="open-meteo-nowcast",
    )
    if not result.ok:
        return result
    payload = result.value or {}
    nowcast = process_minutely_15(payload.get("minutely_15"), payload.get("utc_offset_seconds", 0), now)
    return StageResult.success(nowcast, "open-meteo-nowcast")


def fetch_nowcast(lat: float, lon: float, config, now: Optional[datetime] = None) -> StageResult:
    """
    Fetch a nowcast from the best available minute-level source.

    Pirate Weather (1-minute steps) is used when a usable key is configured,
    Open-Meteo (15-minute steps) otherwise, or when the Pirate request fails.

    Args:
        lat: Latitude
        lon: Longitude
        config: ResolutionConfig snapshot
        now: Reference time for the Open-Meteo freshness check

    Returns:
        StageResult: Nowcast on success
    """
    try:
        if config.has_usable_key(PIRATE_WEATHER_KEY_NAME):
            result = _pirate_nowcast(lat, lon, config)
            if result.ok:
                return result
            logging.warning(f"Pirate Weather nowcast failed ({result}), trying Open-Meteo")
        return _open_meteo_nowcast(lat, lon, config, now)
    except (KeyError, TypeError, ValueError, IndexError, AttributeError) as e:
        logging.error(f"Failed to process nowcast data: {e}", exc_info=True)
        return StageResult.failure(FailureKind.DATA_SHAPE, f"Failed to parse nowcast: {e}", "nowcast")


def backfill_nowcast(weather: WeatherData, nowcast: Nowcast) -> WeatherData:
    """Return ``weather`` with only its nowcast replaced."""
    return weather.with_nowcast(nowcast)
