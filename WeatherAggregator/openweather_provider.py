"""OpenWeatherMap provider (Current Weather + 5 day / 3 hour forecast APIs)."""
import logging
from collections import OrderedDict
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass
from typing import Any, Dict, List

from config import OPENWEATHERMAP_KEY_NAME
from geo import format_location_name
from http_util import get_json
from icons import map_openweathermap_code
from taxonomy import Source
from time_util import format_hour, local_datetime, local_midnight
from units import meters_to_miles
from weather_data import (
    Attribution,
    Currently,
    DailyEntry,
    HourlyEntry,
    WeatherData,
    HOURLY_FORECAST_HOURS,
    pad_daily,
)
from weather_provider import FailureKind, ProviderMetadata, StageResult, WeatherProviderBase, WeatherRequest


@dataclass
class OpenWeatherPayload:
    current: Dict[str, Any]
    forecast: Dict[str, Any]


class OpenWeatherProvider(WeatherProviderBase):
    """
    Weather provider using the free OpenWeather APIs.

    Uses https://openweathermap.org/current and
    https://openweathermap.org/forecast5, which don't require a paid
    subscription like One Call API 3.0. Requests ``units=imperial`` so
    temperature (°F) and wind speed (mph) arrive in canonical units.
    """

    metadata = ProviderMetadata(
        id=Source.OPENWEATHERMAP,
        name="OpenWeatherMap",
        attribution=Attribution(name="OpenWeatherMap", url="https://openweathermap.org/"),
        requires_api_key=True,
        api_key_name=OPENWEATHERMAP_KEY_NAME,
    )

    def __init__(self, lang: str = "en"):
        """
        Initialize OpenWeather provider.

        Args:
            lang: Language code for descriptions (e.g., "en", "de")
        """
        self.lang = lang

    def fetch(self, request: WeatherRequest, config) -> StageResult:
        """
        Fetch current conditions and the 3-hourly forecast concurrently.

        Returns:
            StageResult: OpenWeatherPayload on success; a configuration
            failure without any network call when the key is unusable
        """
        if not config.has_usable_key(OPENWEATHERMAP_KEY_NAME):
            logging.warning("OpenWeatherMap API key missing or placeholder, skipping provider")
            return StageResult.failure(FailureKind.CONFIGURATION, "OpenWeatherMap API key required", "openweathermap")

        base = config.settings.openweathermap_base_url
        params = {
            "lat": f"{request.lat:.4f}",
            "lon": f"{request.lon:.4f}",
            "appid": config.api_key(OPENWEATHERMAP_KEY_NAME).strip(),
            "units": "imperial",
            "lang": self.lang,
        }
        logging.debug(f"Request parameters: lat={request.lat}, lon={request.lon}, units=imperial, lang={self.lang}")

        with ThreadPoolExecutor(max_workers=2) as executor:
            current_future = executor.submit(get_json, f"{base}/weather", params=params,
                                             timeout=config.http_timeout, stage="openweathermap-current")
            forecast_future = executor.submit(get_json, f"{base}/forecast", params=params,
                                              timeout=config.http_timeout, stage="openweathermap-forecast")
            current, forecast = current_future.result(), forecast_future.result()

        for result in (current, forecast):
            if not result.ok:
                if "401" in result.message:
                    logging.error("Invalid OpenWeatherMap API key")
                return result

        return StageResult.success(OpenWeatherPayload(current=current.value, forecast=forecast.value), "openweathermap")

    def normalize(self, payload: OpenWeatherPayload, request: WeatherRequest) -> WeatherData:
        current = payload.current
        items = payload.forecast["list"]
        offset = (payload.forecast.get("city") or {}).get("timezone", current.get("timezone", 0))

        weather_array = current.get("weather", [])
        if not weather_array:
            raise ValueError("Response missing 'weather' array")
        condition = weather_array[0]
        main_data = current["main"]
        wind_data = current.get("wind") or {}

        is_day = self._current_is_daytime(current, condition)
        currently = Currently(
            temperature=main_data["temp"],
            icon=map_openweathermap_code(condition.get("id"), is_day),
            summary=condition.get("description", ""),
            wind_speed=wind_data.get("speed", 0.0),
            wind_direction=wind_data.get("deg"),
            humidity=main_data.get("humidity", 50) / 100,
            pressure=main_data.get("pressure", Currently.pressure),
            is_daytime=is_day,
        )
        if current.get("visibility") is not None:
            currently.visibility = meters_to_miles(current["visibility"])

        logging.info(f"Parsed OpenWeatherMap data: {currently.temperature}°F, {currently.summary}")
        return WeatherData(
            source=Source.OPENWEATHERMAP,
            timezone=format_location_name(request.location_name) or request.coordinate_label,
            currently=currently,
            daily=self._daily(items, offset),
            hourly=self._hourly(items, offset),
            attribution=self.metadata.attribution,
        )

    @staticmethod
    def _current_is_daytime(current: Dict[str, Any], condition: Dict[str, Any]) -> bool:
        sys_data = current.get("sys") or {}
        sunrise, sunset, observed = sys_data.get("sunrise"), sys_data.get("sunset"), current.get("dt")
        if sunrise and sunset and observed:
            return sunrise <= observed < sunset
        return str(condition.get("icon", "d")).endswith("d")

    @staticmethod
    def _daily(items: List[Dict[str, Any]], offset: int) -> List[DailyEntry]:
        grouped: "OrderedDict[Any, List[Dict[str, Any]]]" = OrderedDict()
        for item in items:
            grouped.setdefault(local_datetime(item["dt"], offset).date(), []).append(item)

        days = []
        for day, day_items in grouped.items():
            # Condition of the item closest to local noon
            midday = min(day_items, key=lambda item: abs(local_datetime(item["dt"], offset).hour - 12))
            condition = midday["weather"][0]
            days.append(DailyEntry(
                time=local_midnight(day, offset),
                icon=map_openweathermap_code(condition.get("id"), True),
                temperature_high=max(item["main"].get("temp_max", item["main"]["temp"]) for item in day_items),
                temperature_low=min(item["main"].get("temp_min", item["main"]["temp"]) for item in day_items),
                summary=condition.get("description", ""),
                precip_chance=max(item.get("pop") or 0 for item in day_items) * 100,
            ))
        return pad_daily(days)

    @staticmethod
    def _hourly(items: List[Dict[str, Any]], offset: int) -> List[HourlyEntry]:
        hours = []
        for item in items[:HOURLY_FORECAST_HOURS]:
            condition = item["weather"][0]
            is_day = str(condition.get("icon", "d")).endswith("d")
            hours.append(HourlyEntry(
                time=item["dt"],
                formatted_time=format_hour(local_datetime(item["dt"], offset)),
                temperature=item["main"]["temp"],
                icon=map_openweathermap_code(condition.get("id"), is_day),
                summary=condition.get("description", ""),
                precip_chance=(item.get("pop") or 0) * 100,
                is_daytime=is_day,
            ))
        return hours
