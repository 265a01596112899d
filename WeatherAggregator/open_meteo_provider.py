"""Open-Meteo provider: current, hourly, daily and 15-minute data in one request."""
import logging
from datetime import date, datetime, timezone
from typing import Any, Callable, Dict, List, Optional

from geo import format_location_name
from http_util import get_json
from icons import map_wmo_code, wmo_description
from taxonomy import PrecipType, Source, precip_intensity_label
from time_util import format_hour, format_hour_minute, local_midnight, local_naive_to_unix, parse_iso
from units import celsius_to_fahrenheit, kmh_to_mph, meters_to_miles
from weather_data import (
    Attribution,
    Currently,
    DailyEntry,
    HourlyEntry,
    Nowcast,
    NowcastPoint,
    WeatherData,
    HOURLY_FORECAST_HOURS,
    pad_daily,
)
from weather_provider import ProviderMetadata, StageResult, WeatherProviderBase, WeatherRequest

CURRENT_PARAMS = (
    "temperature_2m", "relative_humidity_2m", "apparent_temperature", "is_day", "precipitation",
    "rain", "showers", "snowfall", "weather_code", "cloud_cover", "pressure_msl", "surface_pressure",
    "wind_speed_10m", "wind_direction_10m", "wind_gusts_10m",
)
HOURLY_PARAMS = (
    "temperature_2m", "relative_humidity_2m", "precipitation_probability", "precipitation",
    "weather_code", "pressure_msl", "cloud_cover", "visibility", "wind_speed_10m",
    "wind_direction_10m", "is_day",
)
DAILY_PARAMS = (
    "weather_code", "temperature_2m_max", "temperature_2m_min", "sunrise", "sunset",
    "precipitation_sum", "precipitation_probability_max",
)
MINUTELY_15_PARAMS = ("precipitation", "precipitation_probability", "snowfall")
MINUTELY_15_STEPS = 24

NOWCAST_MAX_POINTS = 20
NOWCAST_STALE_SECONDS = 30 * 60
NOWCAST_INTERVAL_MINUTES = 15
SIGNIFICANT_PROBABILITY = 0.1

OPEN_METEO_ATTRIBUTION = Attribution(name="Open-Meteo", url="https://open-meteo.com/", license="CC BY 4.0")


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)


def _value(series: Optional[List[Any]], index: int, default: float = 0) -> float:
    if not series or index >= len(series) or series[index] is None:
        return default
    return series[index]


def precip_type_for(intensity: float, snowfall: float) -> PrecipType:
    if snowfall > 0:
        return PrecipType.MIX if intensity > snowfall else PrecipType.SNOW
    if intensity > 0:
        return PrecipType.RAIN
    return PrecipType.NONE


def process_minutely_15(
    minutely: Optional[Dict[str, Any]],
    utc_offset_seconds: int = 0,
    now: Optional[datetime] = None,
) -> Nowcast:
    """
    Turn Open-Meteo ``minutely_15`` series into a nowcast.

    Starts at the first step at or after ``now``. When every step is in the
    past, the last one is still used if it is under 30 minutes old.

    Args:
        minutely: The ``minutely_15`` block (local naive timestamps)
        utc_offset_seconds: Offset of those timestamps from UTC
        now: Reference time (defaults to now, UTC)

    Returns:
        Nowcast: Available nowcast, or an unavailable one with a reason
    """
    if not minutely or not minutely.get("time") or not minutely.get("precipitation_probability"):
        logging.warning("Missing required nowcast data fields")
        return Nowcast.unavailable()

    now_unix = int((now or _utc_now()).timestamp())
    times = [local_naive_to_unix(stamp, utc_offset_seconds) for stamp in minutely["time"]]

    start_index = next((i for i, stamp in enumerate(times) if stamp >= now_unix), None)
    if start_index is None:
        if now_unix - times[-1] < NOWCAST_STALE_SECONDS:
            start_index = len(times) - 1
            logging.info("Using most recent nowcast step even though it is in the past")
        else:
            return Nowcast.unavailable("No recent precipitation forecast available")

    points = []
    for index in range(start_index, min(len(times), start_index + NOWCAST_MAX_POINTS)):
        intensity = _value(minutely.get("precipitation"), index)
        snowfall = _value(minutely.get("snowfall"), index)
        probability = _value(minutely.get("precipitation_probability"), index) / 100
        points.append(NowcastPoint(
            time=times[index],
            formatted_time=format_hour_minute(parse_iso(minutely["time"][index])),
            precip_intensity=intensity,
            precip_probability=probability,
            precip_type=precip_type_for(intensity, snowfall),
            intensity_label=precip_intensity_label(intensity),
        ))

    max_probability = max(point.precip_probability for point in points)
    if max_probability > SIGNIFICANT_PROBABILITY:
        description = f"Precipitation likely ({round(max_probability * 100)}% chance)"
    else:
        description = "No significant precipitation expected"

    return Nowcast(
        available=True,
        source=Source.OPEN_METEO,
        interval=NOWCAST_INTERVAL_MINUTES,
        start_time=times[start_index],
        end_time=times[-1],
        description=description,
        data=points,
        attribution=OPEN_METEO_ATTRIBUTION,
    )


class OpenMeteoProvider(WeatherProviderBase):
    """Consolidated global provider; free and keyless."""

    metadata = ProviderMetadata(
        id=Source.OPEN_METEO,
        name="Open-Meteo",
        attribution=OPEN_METEO_ATTRIBUTION,
        supports_nowcast=True,
    )

    def __init__(self, clock: Callable[[], datetime] = _utc_now):
        self.clock = clock

    def fetch(self, request: WeatherRequest, config) -> StageResult:
        params = {
            "latitude": f"{request.lat:.4f}",
            "longitude": f"{request.lon:.4f}",
            "current": ",".join(CURRENT_PARAMS),
            "hourly": ",".join(HOURLY_PARAMS),
            "daily": ",".join(DAILY_PARAMS),
            "timezone": "auto",
        }
        if config.settings.nowcast_enabled:
            params["minutely_15"] = ",".join(MINUTELY_15_PARAMS)
            params["forecast_minutely_15"] = MINUTELY_15_STEPS
        return get_json(config.settings.open_meteo_base_url, params=params,
                        timeout=config.http_timeout, stage="open-meteo")

    def normalize(self, payload: Dict[str, Any], request: WeatherRequest) -> WeatherData:
        offset = payload.get("utc_offset_seconds", 0)
        current = payload["current"]

        is_day = current.get("is_day", 1) == 1
        currently = Currently(
            temperature=celsius_to_fahrenheit(current["temperature_2m"]),
            icon=map_wmo_code(current.get("weather_code"), is_day),
            summary=wmo_description(current.get("weather_code")),
            wind_speed=kmh_to_mph(current.get("wind_speed_10m") or 0),
            wind_direction=current.get("wind_direction_10m"),
            humidity=(current.get("relative_humidity_2m") or 0) / 100,
            pressure=current.get("pressure_msl") or current.get("surface_pressure") or Currently.pressure,
            is_daytime=is_day,
        )
        hourly = payload.get("hourly") or {}
        visibility = _value(hourly.get("visibility"), 0, default=None)
        if visibility is not None:
            currently.visibility = meters_to_miles(visibility)

        weather = WeatherData(
            source=Source.OPEN_METEO,
            timezone=format_location_name(request.location_name) or payload.get("timezone") or request.coordinate_label,
            currently=currently,
            daily=self._daily(payload["daily"], offset),
            hourly=self._hourly(hourly, current.get("time"), offset),
            attribution=OPEN_METEO_ATTRIBUTION,
        )
        if payload.get("minutely_15"):
            weather.nowcast = process_minutely_15(payload["minutely_15"], offset, self.clock())
        return weather

    @staticmethod
    def _daily(daily: Dict[str, Any], offset: int) -> List[DailyEntry]:
        days = []
        for index, day in enumerate(daily["time"]):
            code = daily["weather_code"][index]
            days.append(DailyEntry(
                time=local_midnight(date.fromisoformat(day), offset),
                icon=map_wmo_code(code, True),
                temperature_high=celsius_to_fahrenheit(daily["temperature_2m_max"][index]),
                temperature_low=celsius_to_fahrenheit(daily["temperature_2m_min"][index]),
                summary=wmo_description(code),
                precip_chance=_value(daily.get("precipitation_probability_max"), index),
            ))
        return pad_daily(days)

    @staticmethod
    def _hourly(hourly: Dict[str, Any], current_time: Optional[str], offset: int) -> List[HourlyEntry]:
        times = hourly.get("time") or []
        start_index = 0
        if current_time:
            start_index = next((i for i, stamp in enumerate(times) if stamp > current_time), 0)

        hours = []
        for index in range(start_index, min(len(times), start_index + HOURLY_FORECAST_HOURS)):
            is_day = _value(hourly.get("is_day"), index, default=1) == 1
            code = hourly["weather_code"][index]
            hours.append(HourlyEntry(
                time=local_naive_to_unix(times[index], offset),
                formatted_time=format_hour(parse_iso(times[index])),
                temperature=celsius_to_fahrenheit(hourly["temperature_2m"][index]),
                icon=map_wmo_code(code, is_day),
                summary=wmo_description(code),
                precip_chance=_value(hourly.get("precipitation_probability"), index),
                is_daytime=is_day,
            ))
        return hours
