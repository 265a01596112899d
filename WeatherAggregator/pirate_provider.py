"""Pirate Weather provider (Dark Sky compatible API with minute-level data)."""
import logging
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

from alert_classifier import classify_alert
from config import PIRATE_WEATHER_KEY_NAME
from geo import format_location_name, is_daytime
from http_util import get_json
from icons import map_pirate_icon
from taxonomy import PrecipType, Source, precip_intensity_label
from time_util import format_hour, format_hour_minute, local_datetime
from units import inches_to_mm
from weather_data import (
    Alert,
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
from weather_provider import FailureKind, ProviderMetadata, StageResult, WeatherProviderBase, WeatherRequest

PIRATE_ATTRIBUTION = Attribution(name="Pirate Weather", url="https://pirateweather.net/")
ALERT_SUMMARY_LENGTH = 100
NOWCAST_INTERVAL_MINUTES = 1
SIGNIFICANT_PROBABILITY = 0.1


def _is_day_from_icon(icon: Optional[str], lat: float, lon: float, unix_seconds: Optional[int]) -> bool:
    if icon and icon.endswith("-day"):
        return True
    if icon and icon.endswith("-night"):
        return False
    when = datetime.fromtimestamp(unix_seconds, tz=timezone.utc) if unix_seconds else None
    return is_daytime(lat, lon, when)


def _precip_type(value: Optional[str], intensity: float) -> PrecipType:
    if intensity <= 0:
        return PrecipType.NONE
    try:
        return PrecipType(value or "rain")
    except ValueError:
        return PrecipType.RAIN


def process_minutely(minutely: Optional[Dict[str, Any]], offset_seconds: int = 0, units: str = "us") -> Nowcast:
    """
    Convert a Pirate Weather ``minutely`` block into a 1-minute nowcast.

    Intensities are reported in in/h under ``units=us`` and mm/h under
    ``units=si``; the nowcast always carries mm/h.
    """
    entries = (minutely or {}).get("data") or []
    if not entries:
        return Nowcast.unavailable()

    points = []
    for entry in entries:
        intensity = entry.get("precipIntensity") or 0.0
        if units == "us":
            intensity = inches_to_mm(intensity)
        points.append(NowcastPoint(
            time=entry["time"],
            formatted_time=format_hour_minute(local_datetime(entry["time"], offset_seconds)),
            precip_intensity=intensity,
            precip_probability=entry.get("precipProbability") or 0.0,
            precip_type=_precip_type(entry.get("precipType"), intensity),
            intensity_label=precip_intensity_label(intensity),
        ))

    description = minutely.get("summary")
    if not description:
        max_probability = max(point.precip_probability for point in points)
        if max_probability > SIGNIFICANT_PROBABILITY:
            description = f"Precipitation likely ({round(max_probability * 100)}% chance)"
        else:
            description = "No significant precipitation expected"

    return Nowcast(
        available=True,
        source=Source.PIRATE,
        interval=NOWCAST_INTERVAL_MINUTES,
        start_time=points[0].time,
        end_time=points[-1].time,
        description=description,
        data=points,
        attribution=PIRATE_ATTRIBUTION,
    )


def build_alerts(alerts: Optional[List[Dict[str, Any]]]) -> List[Alert]:
    result = []
    for alert in alerts or []:
        description = alert.get("description") or ""
        result.append(classify_alert(
            "pirate",
            title=alert.get("title"),
            description=description[:ALERT_SUMMARY_LENGTH] + "..." if description else "",
            full_text=description,
            api_severity=alert.get("severity"),
            alert_identifier=alert.get("id"),
            urgency=alert.get("urgency") or "Unknown",
            expires=alert.get("expires"),
        ))
    return result


class PirateWeatherProvider(WeatherProviderBase):
    """Minute-resolution global provider; requires an API key."""

    metadata = ProviderMetadata(
        id=Source.PIRATE,
        name="Pirate Weather",
        attribution=PIRATE_ATTRIBUTION,
        requires_api_key=True,
        api_key_name=PIRATE_WEATHER_KEY_NAME,
        supports_nowcast=True,
    )

    def fetch(self, request: WeatherRequest, config) -> StageResult:
        if not config.has_usable_key(PIRATE_WEATHER_KEY_NAME):
            logging.warning("Pirate Weather API key missing or placeholder, skipping provider")
            return StageResult.failure(FailureKind.CONFIGURATION, "Pirate Weather API key required", "pirate")

        key = config.api_key(PIRATE_WEATHER_KEY_NAME).strip()
        params = {"units": "us"}
        if not config.settings.nowcast_enabled:
            params["exclude"] = "minutely"
        return get_json(
            f"{config.settings.pirate_base_url}/{key}/{request.lat:.4f},{request.lon:.4f}",
            params=params,
            timeout=config.http_timeout,
            stage="pirate",
            secrets=[key],
        )

    def normalize(self, payload: Dict[str, Any], request: WeatherRequest) -> WeatherData:
        offset = int((payload.get("offset") or 0) * 3600)
        current = payload["currently"]

        currently = Currently(
            temperature=current["temperature"],
            icon=map_pirate_icon(current.get("icon"), True),
            summary=current.get("summary", ""),
            wind_speed=current.get("windSpeed") or 0.0,
            wind_direction=current.get("windBearing"),
            humidity=current.get("humidity", Currently.humidity),
            pressure=current.get("pressure", Currently.pressure),
            visibility=current.get("visibility", Currently.visibility),
            is_daytime=_is_day_from_icon(current.get("icon"), request.lat, request.lon, current.get("time")),
        )
        currently.icon = map_pirate_icon(current.get("icon"), currently.is_daytime)

        weather = WeatherData(
            source=Source.PIRATE,
            timezone=format_location_name(request.location_name) or payload.get("timezone") or request.coordinate_label,
            currently=currently,
            daily=self._daily((payload.get("daily") or {}).get("data") or []),
            hourly=self._hourly((payload.get("hourly") or {}).get("data") or [], offset, request),
            alerts=build_alerts(payload.get("alerts")),
            attribution=PIRATE_ATTRIBUTION,
        )
        if payload.get("minutely"):
            units = (payload.get("flags") or {}).get("units", "us")
            weather.nowcast = process_minutely(payload["minutely"], offset, units)
        return weather

    @staticmethod
    def _daily(days: List[Dict[str, Any]]) -> List[DailyEntry]:
        entries = [
            DailyEntry(
                time=day["time"],
                icon=map_pirate_icon(day.get("icon"), True),
                temperature_high=day["temperatureHigh"],
                temperature_low=day["temperatureLow"],
                summary=day.get("summary", ""),
                precip_chance=round((day.get("precipProbability") or 0) * 100),
            )
            for day in days
        ]
        return pad_daily(entries)

    @staticmethod
    def _hourly(hours: List[Dict[str, Any]], offset: int, request: WeatherRequest) -> List[HourlyEntry]:
        entries = []
        for hour in hours[:HOURLY_FORECAST_HOURS]:
            is_day = _is_day_from_icon(hour.get("icon"), request.lat, request.lon, hour["time"])
            entries.append(HourlyEntry(
                time=hour["time"],
                formatted_time=format_hour(local_datetime(hour["time"], offset)),
                temperature=hour["temperature"],
                icon=map_pirate_icon(hour.get("icon"), is_day),
                summary=hour.get("summary", ""),
                precip_chance=round((hour.get("precipProbability") or 0) * 100),
                is_daytime=is_day,
            ))
        return entries
