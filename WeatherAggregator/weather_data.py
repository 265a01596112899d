"""Weather domain model - the canonical structure every provider normalizes into."""
from dataclasses import dataclass, field, replace
from typing import Any, Dict, List, Optional, Set, Union

from taxonomy import AlertSeverity, Hazard, Icon, PrecipIntensity, PrecipType, Source

SECONDS_PER_DAY = 86400
DAILY_FORECAST_DAYS = 7
HOURLY_FORECAST_HOURS = 12
NOWCAST_PENDING = "pending"


@dataclass
class Attribution:
    name: str
    url: str
    license: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        data = {"name": self.name, "url": self.url}
        if self.license:
            data["license"] = self.license
        return data


@dataclass
class Currently:
    """Current conditions in canonical units."""
    temperature: float = 0.0  # °F
    icon: Icon = Icon.CLOUDY
    summary: str = ""
    wind_speed: float = 0.0  # mph
    wind_direction: Union[float, str, None] = ""  # degrees or compass string, provider-dependent
    humidity: float = 0.5  # fraction 0-1
    pressure: float = 1015.0  # hPa
    visibility: float = 10.0  # miles
    is_daytime: bool = True

    def to_dict(self) -> Dict[str, Any]:
        return {
            "temperature": self.temperature,
            "icon": self.icon.value,
            "summary": self.summary,
            "windSpeed": self.wind_speed,
            "windDirection": self.wind_direction,
            "humidity": self.humidity,
            "pressure": self.pressure,
            "visibility": self.visibility,
            "isDaytime": self.is_daytime,
        }


@dataclass
class DailyEntry:
    time: int  # unix seconds, local midnight
    icon: Icon
    temperature_high: float
    temperature_low: float
    summary: str
    precip_chance: float  # 0-100

    def to_dict(self) -> Dict[str, Any]:
        return {
            "time": self.time,
            "icon": self.icon.value,
            "temperatureHigh": self.temperature_high,
            "temperatureLow": self.temperature_low,
            "summary": self.summary,
            "precipChance": self.precip_chance,
        }


@dataclass
class HourlyEntry:
    time: int
    formatted_time: str  # e.g. "3 PM"
    temperature: float
    icon: Icon
    summary: str
    precip_chance: float
    is_daytime: bool

    def to_dict(self) -> Dict[str, Any]:
        return {
            "time": self.time,
            "formattedTime": self.formatted_time,
            "temperature": self.temperature,
            "icon": self.icon.value,
            "summary": self.summary,
            "precipChance": self.precip_chance,
            "isDaytime": self.is_daytime,
        }


@dataclass
class NowcastPoint:
    time: int
    formatted_time: str  # e.g. "3:15 PM"
    precip_intensity: float  # mm/h
    precip_probability: float  # 0-1
    precip_type: PrecipType
    intensity_label: PrecipIntensity

    def to_dict(self) -> Dict[str, Any]:
        return {
            "time": self.time,
            "formattedTime": self.formatted_time,
            "precipIntensity": self.precip_intensity,
            "precipProbability": self.precip_probability,
            "precipType": self.precip_type.value,
            "intensityLabel": self.intensity_label.value,
        }


@dataclass
class Nowcast:
    """
    Short-horizon precipitation forecast.

    A provider without minute-level data emits the pending placeholder, which
    the nowcast backfill later replaces.
    """
    available: bool = False
    source: Optional[Source] = None
    interval: Optional[int] = None  # minutes: 1 or 15
    start_time: Optional[int] = None
    end_time: Optional[int] = None
    description: str = NOWCAST_PENDING
    data: List[NowcastPoint] = field(default_factory=list)
    attribution: Optional[Attribution] = None

    @classmethod
    def pending(cls) -> "Nowcast":
        return cls()

    @classmethod
    def unavailable(cls, description: str = "No precipitation forecast available") -> "Nowcast":
        return cls(description=description)

    @property
    def is_pending(self) -> bool:
        return not self.available and self.description == NOWCAST_PENDING

    def to_dict(self) -> Dict[str, Any]:
        return {
            "available": self.available,
            "source": self.source.value if self.source else None,
            "interval": self.interval,
            "startTime": self.start_time,
            "endTime": self.end_time,
            "description": self.description,
            "data": [point.to_dict() for point in self.data],
            "attribution": self.attribution.to_dict() if self.attribution else None,
        }


@dataclass
class Alert:
    id: str
    title: str
    description: str
    full_text: str
    severity: AlertSeverity
    urgency: str
    expires: Union[str, int, None]
    hazard_types: Set[Hazard]
    primary_hazard: str
    geometry: Optional[Dict[str, Any]] = None

    def to_dict(self) -> Dict[str, Any]:
        order = list(Hazard)
        return {
            "id": self.id,
            "title": self.title,
            "description": self.description,
            "fullText": self.full_text,
            "severity": self.severity.value,
            "urgency": self.urgency,
            "expires": self.expires,
            "hazardTypes": [h.value for h in sorted(self.hazard_types, key=order.index)],
            "primaryHazard": self.primary_hazard,
            "geometry": self.geometry,
        }


@dataclass
class StationInfo:
    """Observation station details; only populated by the NWS provider."""
    display: bool = False
    station_name: Optional[str] = None
    station_distance: Optional[float] = None  # miles
    observation_time: Optional[str] = None
    using_forecast_description: bool = False
    description_adjusted: bool = False
    is_forecast_data: bool = False

    def to_dict(self) -> Dict[str, Any]:
        return {
            "display": self.display,
            "stationName": self.station_name,
            "stationDistance": self.station_distance,
            "observationTime": self.observation_time,
            "usingForecastDescription": self.using_forecast_description,
            "descriptionAdjusted": self.description_adjusted,
            "isForecastData": self.is_forecast_data,
        }


@dataclass
class WeatherData:
    """Domain model for weather data, independent of any specific API."""
    source: Source
    timezone: str = ""
    currently: Currently = field(default_factory=Currently)
    daily: List[DailyEntry] = field(default_factory=list)
    hourly: List[HourlyEntry] = field(default_factory=list)
    nowcast: Nowcast = field(default_factory=Nowcast.pending)
    alerts: List[Alert] = field(default_factory=list)
    station_info: StationInfo = field(default_factory=StationInfo)
    attribution: Optional[Attribution] = None

    def with_nowcast(self, nowcast: Nowcast) -> "WeatherData":
        """Return a copy of this object with only the nowcast replaced."""
        return replace(self, nowcast=nowcast)

    def to_dict(self) -> Dict[str, Any]:
        """Serialize to the camelCase structure consumed by displays."""
        return {
            "source": self.source.value,
            "timezone": self.timezone,
            "currently": self.currently.to_dict(),
            "daily": {"data": [day.to_dict() for day in self.daily]},
            "hourly": {"data": [hour.to_dict() for hour in self.hourly]},
            "nowcast": self.nowcast.to_dict(),
            "alerts": [alert.to_dict() for alert in self.alerts],
            "stationInfo": self.station_info.to_dict(),
            "attribution": self.attribution.to_dict() if self.attribution else None,
        }


def create_empty_weather_data(source: Source, attribution: Optional[Attribution] = None) -> WeatherData:
    """Create a weather object with every field at its default."""
    return WeatherData(source=source, attribution=attribution)


def pad_daily(days: List[DailyEntry], count: int = DAILY_FORECAST_DAYS, truncate: bool = False) -> List[DailyEntry]:
    """
    Pad a daily forecast to ``count`` entries by cloning the last entry forward.

    Args:
        days: Daily entries in ascending time order
        count: Minimum number of entries
        truncate: Also cut the list down to exactly ``count`` entries

    Returns:
        List[DailyEntry]: A new list; the input is left untouched

    Raises:
        ValueError: If ``days`` is empty, since there is nothing to clone
    """
    if not days:
        raise ValueError("Cannot pad an empty daily forecast")
    padded = list(days)
    while len(padded) < count:
        last = padded[-1]
        padded.append(replace(last, time=last.time + SECONDS_PER_DAY))
    if truncate:
        padded = padded[:count]
    return padded


def validate_weather_data(data: Any) -> bool:
    """Check that a serialized weather object has the structure displays rely on."""
    if not isinstance(data, dict):
        return False
    if not isinstance(data.get("currently"), dict):
        return False
    if not isinstance(data.get("daily"), dict) or not isinstance(data["daily"].get("data"), list):
        return False
    if not isinstance(data.get("hourly"), dict) or not isinstance(data["hourly"].get("data"), list):
        return False
    if not isinstance(data.get("alerts"), list):
        return False

    for key in ("temperature", "icon", "summary", "windSpeed", "humidity"):
        if key not in data["currently"]:
            return False
    return True
