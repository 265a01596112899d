"""Tests for the National Weather Service provider."""
from datetime import datetime, timedelta, timezone
from unittest.mock import Mock, patch

import pytest
from config import EngineSettings, ResolutionConfig
from nws_provider import (
    NWSProvider,
    build_daily,
    clean_observation_text,
    extract_wind_speed,
    geometry_in_bounds,
)
from taxonomy import AlertSeverity, Icon, Source
from weather_provider import FailureKind, WeatherRequest

BASE = "https://api.weather.gov"
POINTS_URL = f"{BASE}/points/40.713,-74.006"
STATIONS_URL = f"{BASE}/gridpoints/OKX/33,35/stations"
GRID_URL = f"{BASE}/gridpoints/OKX/33,35"
ICON = "https://api.weather.gov/icons/land"


def mock_response(data=None, status=200):
    response = Mock()
    response.status_code = status
    response.ok = status < 400
    response.json.return_value = data
    response.text = "" if status < 400 else "error"
    return response


class Router:
    """Stands in for requests.get, answering by URL."""

    def __init__(self, routes):
        self.routes = routes
        self.calls = []

    def __call__(self, url, params=None, headers=None, timeout=None):
        self.calls.append((url, params))
        route = self.routes.get(url)
        if route is None:
            return mock_response(status=404)
        if isinstance(route, int):
            return mock_response(status=route)
        return mock_response(route)


def points_payload():
    return {
        "properties": {
            "gridId": "OKX",
            "gridX": 33,
            "gridY": 35,
            "observationStations": STATIONS_URL,
            "relativeLocation": {"properties": {"city": "New York", "state": "NY"}},
        }
    }


def stations_payload():
    return {
        "features": [
            {
                "id": f"{BASE}/stations/KLGA",
                "geometry": {"coordinates": [-73.88, 40.78]},
                "properties": {"stationIdentifier": "KLGA", "name": "LaGuardia Airport"},
            },
            {
                "id": f"{BASE}/stations/KNYC",
                "geometry": {"coordinates": [-73.97, 40.78]},
                "properties": {"stationIdentifier": "KNYC", "name": "New York City, Central Park"},
            },
        ]
    }


def observation_payload(text="Mostly Cloudy"):
    timestamp = (datetime.now(timezone.utc) - timedelta(minutes=20)).isoformat()
    return {
        "properties": {
            "timestamp": timestamp,
            "textDescription": text,
            "icon": f"{ICON}/day/bkn?size=medium",
            "temperature": {"value": 20.0, "unitCode": "wmoUnit:degC"},
            "windSpeed": {"value": 36.0, "unitCode": "wmoUnit:km_h-1"},
            "windDirection": {"value": 200, "unitCode": "wmoUnit:degree_(angle)"},
            "relativeHumidity": {"value": 65.0, "unitCode": "wmoUnit:percent"},
            "barometricPressure": {"value": 101325, "unitCode": "wmoUnit:Pa"},
            "visibility": {"value": 16093.44, "unitCode": "wmoUnit:m"},
        }
    }


def forecast_payload():
    """A leading "Tonight", six paired days, and an unpaired trailing day."""
    periods = [{
        "name": "Tonight",
        "isDaytime": False,
        "startTime": "2024-06-03T18:00:00-04:00",
        "temperature": 65,
        "temperatureUnit": "F",
        "icon": f"{ICON}/night/few?size=medium",
        "shortForecast": "Mostly Clear",
        "probabilityOfPrecipitation": {"value": 10},
        "relativeHumidity": {"value": 70},
    }]
    for i, day in enumerate(["Tuesday", "Wednesday", "Thursday", "Friday", "Saturday", "Sunday"]):
        periods.append({
            "name": day,
            "isDaytime": True,
            "startTime": f"2024-06-{4 + i:02d}T06:00:00-04:00",
            "temperature": 80 + i,
            "temperatureUnit": "F",
            "icon": f"{ICON}/day/few?size=medium",
            "shortForecast": "Mostly Sunny",
            "probabilityOfPrecipitation": {"value": 20},
        })
        periods.append({
            "name": f"{day} Night",
            "isDaytime": False,
            "startTime": f"2024-06-{4 + i:02d}T18:00:00-04:00",
            "temperature": 60 + i,
            "temperatureUnit": "F",
            "icon": f"{ICON}/night/few?size=medium",
            "shortForecast": "Partly Cloudy",
            "probabilityOfPrecipitation": {"value": 40 if i == 0 else None},
        })
    periods.append({
        "name": "Monday",
        "isDaytime": True,
        "startTime": "2024-06-10T06:00:00-04:00",
        "temperature": 90,
        "temperatureUnit": "F",
        "icon": f"{ICON}/day/skc?size=medium",
        "shortForecast": "Sunny",
        "probabilityOfPrecipitation": {"value": 0},
    })
    return {"properties": {"periods": periods}}


def hourly_payload():
    periods = []
    for i in range(14):
        periods.append({
            "startTime": f"2024-06-03T{10 + i:02d}:00:00-04:00",
            "isDaytime": i < 10,
            "temperature": 72 + i,
            "temperatureUnit": "F",
            "windSpeed": "5 to 10 mph",
            "windDirection": "SW",
            "icon": f"{ICON}/day/tsra,40?size=small",
            "shortForecast": "Chance Showers And Thunderstorms" if i == 0 else "Partly Sunny",
            "probabilityOfPrecipitation": {"value": 30},
        })
    return {"properties": {"periods": periods}}


def alerts_payload():
    return {
        "features": [
            {
                "geometry": {"type": "Polygon", "coordinates": [[[-74.1, 40.6], [-73.9, 40.6], [-73.9, 40.8], [-74.1, 40.6]]]},
                "properties": {
                    "id": "urn:oid:heat",
                    "event": "Heat Advisory",
                    "headline": "Heat Advisory issued June 3",
                    "description": "Heat index values up to 105.",
                    "severity": "Moderate",
                    "urgency": "Expected",
                    "expires": "2024-06-04T20:00:00-04:00",
                },
            },
            {
                "geometry": {"type": "Polygon", "coordinates": [[[-120.0, 35.0], [-119.0, 35.0], [-119.0, 36.0], [-120.0, 35.0]]]},
                "properties": {
                    "id": "urn:oid:fire",
                    "event": "Red Flag Warning",
                    "headline": "Red Flag Warning",
                    "description": "Critical fire weather.",
                    "severity": "Severe",
                    "urgency": "Expected",
                    "expires": "2024-06-04T20:00:00-07:00",
                },
            },
        ]
    }


def routes(**overrides):
    table = {
        POINTS_URL: points_payload(),
        STATIONS_URL: stations_payload(),
        f"{BASE}/stations/KNYC/observations/latest": observation_payload(),
        f"{BASE}/stations/KLGA/observations/latest": 500,
        f"{GRID_URL}/forecast": forecast_payload(),
        f"{GRID_URL}/forecast/hourly": hourly_payload(),
        f"{BASE}/alerts/active": {"features": alerts_payload()["features"][:1]},
    }
    table.update(overrides)
    return table


@pytest.fixture
def provider():
    return NWSProvider()


@pytest.fixture
def config():
    return ResolutionConfig(settings=EngineSettings())


@pytest.fixture
def request_nyc():
    return WeatherRequest(lat=40.7128, lon=-74.0060, location_name="New York, NY, USA")


def resolve(provider, request, config, table):
    router = Router(table)
    with patch('http_util.requests.get', side_effect=router):
        result = provider.fetch(request, config)
        weather = provider.normalize(result.value, request) if result.ok else None
    return result, weather, router


def test_nws_provider_with_station_observation(provider, config, request_nyc):
    """Test current conditions come from the nearest fresh observation."""
    result, weather, router = resolve(provider, request_nyc, config, routes())

    assert result.ok
    assert weather.source == Source.NWS
    assert weather.timezone == "New York, NY"
    assert weather.currently.temperature == 68.0
    assert weather.currently.wind_speed == pytest.approx(22.37, abs=0.01)
    assert weather.currently.summary == "Mostly Cloudy and Windy"
    assert weather.currently.humidity == 0.65
    assert weather.currently.pressure == pytest.approx(1013.25)
    assert weather.currently.visibility == pytest.approx(10.0, rel=1e-4)
    assert weather.currently.wind_direction == 200
    assert weather.currently.icon == Icon.PARTLY_CLOUDY_DAY
    assert weather.station_info.display is True
    assert weather.station_info.station_name == "New York City, Central Park"
    assert weather.station_info.station_distance == pytest.approx(5.0, abs=0.1)
    assert weather.station_info.is_forecast_data is False
    assert weather.nowcast.is_pending
    assert weather.attribution.name == "National Weather Service"

    urls = [url for url, _ in router.calls]
    assert urls.index(f"{BASE}/stations/KNYC/observations/latest") < urls.index(f"{GRID_URL}/forecast")
    alert_params = [params for url, params in router.calls if url == f"{BASE}/alerts/active"]
    assert alert_params == [{"point": "40.7128,-74.0060"}]


def test_nws_provider_forecast_shapes(provider, config, request_nyc):
    _, weather, _ = resolve(provider, request_nyc, config, routes())

    assert len(weather.daily) == 7
    tonight = weather.daily[0]
    assert tonight.temperature_low == 65
    assert tonight.temperature_high == 75
    assert tonight.time == int(datetime(2024, 6, 3, 4, 0, tzinfo=timezone.utc).timestamp())
    tuesday = weather.daily[1]
    assert (tuesday.temperature_high, tuesday.temperature_low) == (80, 60)
    assert tuesday.precip_chance == 40
    assert weather.daily[2].precip_chance == 20

    assert len(weather.hourly) == 12
    assert weather.hourly[0].formatted_time == "11 AM"
    assert weather.hourly[0].temperature == 73
    assert weather.hourly[-1].is_daytime is False

    assert len(weather.alerts) == 1
    assert weather.alerts[0].id == "urn:oid:heat"
    assert weather.alerts[0].severity == AlertSeverity.MODERATE
    assert weather.alerts[0].primary_hazard == "heat"


def test_nws_provider_without_observation_uses_forecast(provider, config, request_nyc):
    """Test the current hour's forecast stands in when no station is usable."""
    table = routes(**{f"{BASE}/stations/KNYC/observations/latest": 500})

    result, weather, _ = resolve(provider, request_nyc, config, table)

    assert result.ok
    assert weather.currently.temperature == 72
    assert weather.currently.wind_speed == 10
    assert weather.currently.wind_direction == "SW"
    assert weather.currently.icon == Icon.THUNDERSTORM
    assert weather.currently.humidity == 0.7
    assert weather.station_info.display is True
    assert weather.station_info.is_forecast_data is True


def test_nws_provider_points_failure(provider, config, request_nyc):
    result, weather, router = resolve(provider, request_nyc, config, routes(**{POINTS_URL: 500}))

    assert not result.ok
    assert result.failure_kind == FailureKind.NETWORK
    assert "500" in result.message
    assert len(router.calls) == 1


def test_nws_provider_missing_grid(provider, config, request_nyc):
    table = routes(**{POINTS_URL: {"properties": {"gridId": "OKX"}}})

    result, _, router = resolve(provider, request_nyc, config, table)

    assert result.failure_kind == FailureKind.DATA_SHAPE
    assert len(router.calls) == 1


def test_nws_provider_forecast_failure(provider, config, request_nyc):
    result, _, _ = resolve(provider, request_nyc, config, routes(**{f"{GRID_URL}/forecast/hourly": 503}))

    assert not result.ok
    assert result.failure_kind == FailureKind.NETWORK


def test_nws_location_label_falls_back_to_request(provider, config):
    points = points_payload()
    del points["properties"]["relativeLocation"]
    request = WeatherRequest(lat=40.7128, lon=-74.0060)

    _, weather, _ = resolve(provider, request, config, routes(**{POINTS_URL: points}))

    assert weather.timezone == "40.7128, -74.0060"


def test_fetch_area_alerts_filters_by_bounds(provider, config):
    bounds = {"north": 41.0, "south": 40.0, "east": -73.0, "west": -75.0}
    router = Router({f"{BASE}/alerts/active": alerts_payload()})

    with patch('http_util.requests.get', side_effect=router):
        alerts = provider.fetch_area_alerts(bounds, config)

    assert [alert.id for alert in alerts] == ["urn:oid:heat"]
    assert alerts[0].geometry["type"] == "Polygon"


def test_fetch_area_alerts_failure_is_empty(provider, config):
    with patch('http_util.requests.get', side_effect=Router({})):
        assert provider.fetch_area_alerts({"north": 1, "south": 0, "east": 1, "west": 0}, config) == []


def test_build_daily_unpaired_day():
    periods = [{
        "name": "Monday",
        "isDaytime": True,
        "startTime": "2024-06-10T06:00:00-04:00",
        "temperature": 70,
        "icon": None,
        "shortForecast": "Cloudy",
    }]

    days = build_daily(periods)

    assert len(days) == 7
    assert days[0].temperature_low == 60
    assert days[0].icon == Icon.CLOUDY
    assert days[6].time - days[0].time == 6 * 86400


@pytest.mark.parametrize("text, expected", [
    ("Clear", ("Clear", False)),
    ("Chance of Rain Likely", ("Rain", True)),
    ("Showers possible tonight", ("Showers", True)),
    ("Likely", ("Likely", True)),
])
def test_clean_observation_text(text, expected):
    assert clean_observation_text(text) == expected


@pytest.mark.parametrize("value, expected", [
    ("10 mph", 10),
    ("5 to 15 mph", 15),
    ("calm", None),
    (None, None),
])
def test_extract_wind_speed(value, expected):
    assert extract_wind_speed(value) == expected


def test_geometry_in_bounds():
    bounds = {"north": 41.0, "south": 40.0, "east": -73.0, "west": -75.0}

    assert geometry_in_bounds({"type": "Point", "coordinates": [-74.0, 40.5]}, bounds)
    assert not geometry_in_bounds({"type": "Point", "coordinates": [-80.0, 40.5]}, bounds)
    assert not geometry_in_bounds(None, bounds)


def test_nws_normalize_is_idempotent(provider, config, request_nyc):
    result, first, _ = resolve(provider, request_nyc, config, routes())

    assert provider.normalize(result.value, request_nyc) == first
