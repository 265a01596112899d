"""US National Weather Service (api.weather.gov) provider."""
import logging
import re
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass
from typing import Any, Dict, List, Optional, Tuple

from alert_classifier import classify_alert
from geo import format_location_name
from http_util import get_json
from icons import map_nws_icon
from station_resolver import Observation, candidates_from_features, resolve_best_observation
from taxonomy import Icon, Source
from time_util import format_hour, parse_iso, to_unix
from units import (
    celsius_to_fahrenheit,
    pressure_from_quantity,
    temperature_from_quantity,
    visibility_from_quantity,
    wind_speed_from_quantity,
)
from weather_data import (
    Alert,
    Attribution,
    Currently,
    DailyEntry,
    HourlyEntry,
    StationInfo,
    WeatherData,
    HOURLY_FORECAST_HOURS,
    create_empty_weather_data,
    pad_daily,
)
from weather_provider import (
    FailureKind,
    ProviderMetadata,
    StageResult,
    WeatherProviderBase,
    WeatherRequest,
)

FORECAST_WORDS = ("likely", "chance", "possible", "expect", "will be", "tonight", "tomorrow")
THUNDER_WORDS = ("thunder", "tstm", "lightning")
WINDY_THRESHOLD_MPH = 15
UNPAIRED_TEMPERATURE_SPREAD = 10


@dataclass
class NWSPayload:
    """Everything the NWS pipeline fetched for one resolution."""
    points: Dict[str, Any]
    forecast: Dict[str, Any]
    hourly: Dict[str, Any]
    alerts: Dict[str, Any]
    observation: Optional[Observation] = None


def extract_wind_speed(wind_speed: Optional[str]) -> Optional[int]:
    """
    Parse an NWS forecast wind string.

    "10 mph" gives 10; a range such as "5 to 10 mph" gives the upper value.
    """
    if not wind_speed:
        return None
    if "to" in wind_speed:
        match = re.search(r"(\d+)", wind_speed.split("to", 1)[1])
        if match:
            return int(match.group(1))
    match = re.search(r"(\d+)", wind_speed)
    return int(match.group(1)) if match else None


def clean_observation_text(text: str) -> Tuple[str, bool]:
    """
    Strip forecast wording from an observation description.

    Returns:
        Tuple[str, bool]: Cleaned text and whether anything was adjusted
    """
    lower = text.lower()
    if not any(word in lower for word in FORECAST_WORDS):
        return text, False

    cleaned = re.sub(r"\bchance of\b", "", text, flags=re.IGNORECASE)
    for word in FORECAST_WORDS:
        cleaned = re.sub(r"\b" + word + r"\b", "", cleaned, flags=re.IGNORECASE)
    cleaned = re.sub(r"\s+", " ", cleaned).strip()
    logging.info(f"Adjusted observation description: '{text}' -> '{cleaned or text}'")
    return cleaned or text, True


def _has_thunder(text: Optional[str]) -> bool:
    lower = (text or "").lower()
    return any(word in lower for word in THUNDER_WORDS)


def _quantity(properties: Dict[str, Any], name: str) -> Tuple[Optional[float], Optional[str]]:
    quantity = properties.get(name) or {}
    return quantity.get("value"), quantity.get("unitCode")


def _period_temperature(period: Dict[str, Any]) -> float:
    temperature = period["temperature"]
    if period.get("temperatureUnit") == "C":
        return celsius_to_fahrenheit(temperature)
    return float(temperature)


def _precip_chance(period: Optional[Dict[str, Any]]) -> float:
    if not period:
        return 0
    value = (period.get("probabilityOfPrecipitation") or {}).get("value")
    return value if value is not None else 0


def _local_midnight(start_time: str) -> int:
    moment = parse_iso(start_time)
    return to_unix(moment.replace(hour=0, minute=0, second=0, microsecond=0))


def build_daily(periods: List[Dict[str, Any]]) -> List[DailyEntry]:
    """
    Pair day periods with their "<Day> Night" counterparts.

    A trailing day without its night gets a low of high - 10; a leading
    night period such as "Tonight" gets a high of low + 10. The result is
    padded or truncated to exactly seven entries.

    Raises:
        ValueError: If the forecast has no usable periods
    """
    nights = {}
    for period in periods:
        if not period.get("isDaytime"):
            nights[period["name"].replace(" Night", "")] = period

    days: List[DailyEntry] = []
    for index, period in enumerate(periods):
        if period.get("isDaytime"):
            night = nights.get(period["name"])
            high = _period_temperature(period)
            low = _period_temperature(night) if night else high - UNPAIRED_TEMPERATURE_SPREAD
            days.append(DailyEntry(
                time=_local_midnight(period["startTime"]),
                icon=map_nws_icon(period.get("icon")),
                temperature_high=high,
                temperature_low=low,
                summary=period.get("shortForecast", ""),
                precip_chance=max(_precip_chance(period), _precip_chance(night)),
            ))
        elif index == 0:
            low = _period_temperature(period)
            days.append(DailyEntry(
                time=_local_midnight(period["startTime"]),
                icon=map_nws_icon(period.get("icon")),
                temperature_high=low + UNPAIRED_TEMPERATURE_SPREAD,
                temperature_low=low,
                summary=period.get("shortForecast", ""),
                precip_chance=_precip_chance(period),
            ))

    return pad_daily(days, truncate=True)


def build_hourly(periods: List[Dict[str, Any]]) -> List[HourlyEntry]:
    """Hourly entries from periods 1..12; period 0 describes the current hour."""
    hours = []
    for period in periods[1:HOURLY_FORECAST_HOURS + 1]:
        start = parse_iso(period["startTime"])
        hours.append(HourlyEntry(
            time=to_unix(start),
            formatted_time=format_hour(start),
            temperature=_period_temperature(period),
            icon=map_nws_icon(period.get("icon")),
            summary=period.get("shortForecast", ""),
            precip_chance=_precip_chance(period),
            is_daytime=bool(period.get("isDaytime", True)),
        ))
    return hours


def build_alerts(alerts_data: Optional[Dict[str, Any]], include_geometry: bool = True) -> List[Alert]:
    alerts = []
    for feature in (alerts_data or {}).get("features") or []:
        properties = feature.get("properties")
        if not properties:
            continue
        alerts.append(classify_alert(
            "nws",
            title=properties.get("event"),
            description=properties.get("headline"),
            full_text=properties.get("description"),
            api_severity=properties.get("severity"),
            alert_identifier=properties.get("id"),
            urgency=properties.get("urgency"),
            expires=properties.get("expires"),
            geometry=feature.get("geometry") if include_geometry else None,
        ))
    return alerts


def _geometry_points(geometry: Dict[str, Any]):
    def walk(node):
        if isinstance(node, (list, tuple)) and len(node) >= 2 and all(isinstance(v, (int, float)) for v in node[:2]):
            yield node[0], node[1]
        elif isinstance(node, (list, tuple)):
            for child in node:
                yield from walk(child)
    return walk(geometry.get("coordinates") or [])


def geometry_in_bounds(geometry: Optional[Dict[str, Any]], bounds: Dict[str, float]) -> bool:
    """True when any vertex of a GeoJSON geometry lies inside the north/south/east/west box."""
    if not geometry:
        return False
    for lon, lat in _geometry_points(geometry):
        if bounds["south"] <= lat <= bounds["north"] and bounds["west"] <= lon <= bounds["east"]:
            return True
    return False


class NWSProvider(WeatherProviderBase):
    """
    Official-station provider backed by api.weather.gov.

    Pipeline: grid lookup, station list, sequential station probing, then
    forecast, hourly forecast and alerts fetched concurrently.
    """

    metadata = ProviderMetadata(
        id=Source.NWS,
        name="National Weather Service",
        attribution=Attribution(name="National Weather Service", url="https://www.weather.gov/"),
        home_regions=("us",),
    )

    def __init__(self, max_workers: int = 3):
        self.max_workers = max_workers

    @staticmethod
    def _headers(config) -> Dict[str, str]:
        return {"User-Agent": config.settings.user_agent, "Accept": "application/geo+json"}

    def fetch(self, request: WeatherRequest, config) -> StageResult:
        base = config.settings.nws_base_url
        headers = self._headers(config)
        timeout = config.http_timeout

        points = get_json(f"{base}/points/{request.lat:.3f},{request.lon:.3f}", headers=headers,
                          timeout=timeout, stage="nws-points")
        if not points.ok:
            return points

        grid = (points.value or {}).get("properties") or {}
        grid_id, grid_x, grid_y = grid.get("gridId"), grid.get("gridX"), grid.get("gridY")
        stations_url = grid.get("observationStations")
        if grid_id is None or grid_x is None or grid_y is None or not stations_url:
            return StageResult.failure(FailureKind.DATA_SHAPE, "Grid lookup missing gridId/gridX/gridY", "nws-points")

        stations = get_json(stations_url, headers=headers, timeout=timeout, stage="nws-stations")
        if not stations.ok:
            return stations

        candidates = candidates_from_features((stations.value or {}).get("features") or [])
        observation = resolve_best_observation(
            candidates,
            request.lat,
            request.lon,
            lambda url: get_json(url, headers=headers, timeout=timeout, stage="nws-observation"),
        )
        if observation is None:
            logging.info("No usable station observation, current conditions will come from the forecast")

        grid_url = f"{base}/gridpoints/{grid_id}/{grid_x},{grid_y}"
        with ThreadPoolExecutor(max_workers=self.max_workers) as executor:
            forecast_future = executor.submit(get_json, f"{grid_url}/forecast", headers=headers,
                                              timeout=timeout, stage="nws-forecast")
            hourly_future = executor.submit(get_json, f"{grid_url}/forecast/hourly", headers=headers,
                                            timeout=timeout, stage="nws-hourly")
            alerts_future = executor.submit(get_json, f"{base}/alerts/active",
                                            params={"point": f"{request.lat:.4f},{request.lon:.4f}"},
                                            headers=headers, timeout=timeout, stage="nws-alerts")
            forecast, hourly, alerts = forecast_future.result(), hourly_future.result(), alerts_future.result()

        for result in (forecast, hourly, alerts):
            if not result.ok:
                return result

        return StageResult.success(NWSPayload(
            points=points.value,
            forecast=forecast.value,
            hourly=hourly.value,
            alerts=alerts.value,
            observation=observation,
        ), "nws")

    def normalize(self, payload: NWSPayload, request: WeatherRequest) -> WeatherData:
        forecast_periods = payload.forecast["properties"]["periods"]
        hourly_periods = payload.hourly["properties"]["periods"]
        current_period = hourly_periods[0]

        weather = create_empty_weather_data(Source.NWS, self.metadata.attribution)
        weather.timezone = self._location_label(payload.points, request)

        if payload.observation is not None:
            weather.currently, weather.station_info = self._observed_current(
                payload.observation, current_period, forecast_periods)
        else:
            weather.currently = self._forecast_current(current_period, forecast_periods)
            weather.station_info = StationInfo(display=True, is_forecast_data=True)

        weather.daily = build_daily(forecast_periods)
        weather.hourly = build_hourly(hourly_periods)
        weather.alerts = build_alerts(payload.alerts)
        return weather

    @staticmethod
    def _location_label(points: Dict[str, Any], request: WeatherRequest) -> str:
        relative = ((points.get("properties") or {}).get("relativeLocation") or {}).get("properties") or {}
        if relative.get("city") and relative.get("state"):
            return f"{relative['city']}, {relative['state']}"
        return format_location_name(request.location_name) or request.coordinate_label

    @staticmethod
    def _forecast_humidity(forecast_periods: List[Dict[str, Any]]) -> Optional[float]:
        if not forecast_periods:
            return None
        value = (forecast_periods[0].get("relativeHumidity") or {}).get("value")
        return value / 100 if value else None

    def _forecast_current(self, period: Dict[str, Any], forecast_periods: List[Dict[str, Any]]) -> Currently:
        currently = Currently(
            temperature=_period_temperature(period),
            summary=period.get("shortForecast", ""),
            icon=map_nws_icon(period.get("icon")),
            wind_speed=extract_wind_speed(period.get("windSpeed")) or 0.0,
            wind_direction=period.get("windDirection", ""),
            is_daytime=bool(period.get("isDaytime", True)),
        )
        if _has_thunder(currently.summary):
            currently.icon = Icon.THUNDERSTORM
        humidity = self._forecast_humidity(forecast_periods)
        if humidity is not None:
            currently.humidity = humidity
        return currently

    def _observed_current(
        self,
        observation: Observation,
        period: Dict[str, Any],
        forecast_periods: List[Dict[str, Any]],
    ) -> Tuple[Currently, StationInfo]:
        props = observation.properties
        currently = Currently(is_daytime=bool(period.get("isDaytime", True)))

        value, unit = _quantity(props, "temperature")
        currently.temperature = temperature_from_quantity(value, unit)

        value, unit = _quantity(props, "windSpeed")
        if value is not None:
            currently.wind_speed = wind_speed_from_quantity(value, unit)
        else:
            currently.wind_speed = extract_wind_speed(period.get("windSpeed")) or 0.0

        using_forecast_description = False
        description_adjusted = False
        if observation.description:
            currently.summary, description_adjusted = clean_observation_text(observation.description)
            if "wind" not in currently.summary.lower() and currently.wind_speed > WINDY_THRESHOLD_MPH:
                currently.summary += " and Windy"
        else:
            currently.summary = period.get("shortForecast", "")
            using_forecast_description = True

        if _has_thunder(observation.description or currently.summary):
            currently.icon = Icon.THUNDERSTORM
        elif props.get("icon"):
            currently.icon = map_nws_icon(props["icon"])
        else:
            currently.icon = map_nws_icon(period.get("icon"))

        value, _ = _quantity(props, "relativeHumidity")
        if value is not None:
            currently.humidity = value / 100
        else:
            humidity = self._forecast_humidity(forecast_periods)
            if humidity is not None:
                currently.humidity = humidity

        value, unit = _quantity(props, "barometricPressure")
        if value is not None:
            currently.pressure = pressure_from_quantity(value, unit)

        value, unit = _quantity(props, "visibility")
        if value is not None:
            currently.visibility = visibility_from_quantity(value, unit)

        value, _ = _quantity(props, "windDirection")
        currently.wind_direction = value if value is not None else period.get("windDirection", "")

        station = observation.station
        station_info = StationInfo(
            display=True,
            station_name=station.name or "NWS Station",
            station_distance=station.distance,
            observation_time=props.get("timestamp"),
            using_forecast_description=using_forecast_description,
            description_adjusted=description_adjusted,
        )
        return currently, station_info

    def fetch_area_alerts(self, bounds: Dict[str, float], config) -> List[Alert]:
        """
        Active alerts whose geometry touches a map area, for overlays.

        Args:
            bounds: Box with "north", "south", "east" and "west" keys in degrees
            config: ResolutionConfig snapshot

        Returns:
            List[Alert]: Alerts with geometry retained; empty on any failure
        """
        result = get_json(f"{config.settings.nws_base_url}/alerts/active", headers=self._headers(config),
                          timeout=config.http_timeout, stage="nws-area-alerts")
        if not result.ok:
            logging.warning(f"Area alerts unavailable: {result}")
            return []
        try:
            alerts = build_alerts(result.value, include_geometry=True)
        except (KeyError, TypeError, ValueError, AttributeError) as e:
            logging.warning(f"Failed to parse area alerts: {e}")
            return []
        return [alert for alert in alerts if geometry_in_bounds(alert.geometry, bounds)]
