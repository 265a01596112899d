"""Tests for the Pirate Weather provider."""
import dataclasses
from unittest.mock import Mock, patch

import pytest
from config import EngineSettings, ResolutionConfig
from pirate_provider import PirateWeatherProvider, process_minutely
from taxonomy import AlertSeverity, Icon, PrecipIntensity, PrecipType, Source
from weather_provider import FailureKind, WeatherRequest

API_KEY = "pirate-test-key"
LOCAL_MIDNIGHT = 1717387200  # 2024-06-03 00:00 at UTC-4
NOON = LOCAL_MIDNIGHT + 12 * 3600


@pytest.fixture
def sample_pirate_response():
    """Sample Pirate Weather forecast in US units."""
    return {
        "latitude": 40.7128,
        "longitude": -74.006,
        "timezone": "America/New_York",
        "offset": -4.0,
        "currently": {
            "time": NOON,
            "summary": "Partly Cloudy",
            "icon": "partly-cloudy-day",
            "temperature": 75.3,
            "humidity": 0.55,
            "pressure": 1012.4,
            "windSpeed": 12.1,
            "windBearing": 180,
            "visibility": 9.5,
        },
        "minutely": {
            "summary": "Light rain starting in 30 min.",
            "data": [
                {
                    "time": NOON + m * 60,
                    "precipIntensity": 0.01 if m >= 30 else 0.0,
                    "precipProbability": 0.6 if m >= 30 else 0.0,
                    "precipType": "rain" if m >= 30 else "none",
                }
                for m in range(61)
            ],
        },
        "hourly": {
            "data": [
                {
                    "time": LOCAL_MIDNIGHT + h * 3600,
                    "icon": "rain" if h == 3 else ("clear-day" if 6 <= h < 20 else "clear-night"),
                    "summary": "Rain" if h == 3 else "Clear",
                    "temperature": 60.0 + h,
                    "precipProbability": 0.234 if h == 3 else 0.0,
                }
                for h in range(24)
            ]
        },
        "daily": {
            "data": [
                {
                    "time": LOCAL_MIDNIGHT + d * 86400,
                    "icon": "rain" if d == 1 else "clear-day",
                    "summary": "Rain" if d == 1 else "Clear throughout the day.",
                    "temperatureHigh": 80.0 + d,
                    "temperatureLow": 60.0 + d,
                    "precipProbability": 0.75 if d == 1 else 0.05,
                }
                for d in range(8)
            ]
        },
        "alerts": [
            {
                "title": "Flood Watch",
                "description": "x" * 150,
                "severity": "Moderate",
                "expires": 1717500000,
            }
        ],
        "flags": {"units": "us"},
    }


@pytest.fixture
def provider():
    return PirateWeatherProvider()


@pytest.fixture
def config():
    return ResolutionConfig(settings=EngineSettings(), api_keys={"pirate": API_KEY})


@pytest.fixture
def request_nyc():
    return WeatherRequest(lat=40.7128, lon=-74.0060, location_name="New York, NY, USA")


def test_pirate_normalize_current(provider, sample_pirate_response, request_nyc):
    weather = provider.normalize(sample_pirate_response, request_nyc)

    assert weather.source == Source.PIRATE
    assert weather.timezone == "New York, NY"
    assert weather.currently.temperature == 75.3
    assert weather.currently.icon == Icon.PARTLY_CLOUDY_DAY
    assert weather.currently.wind_speed == 12.1
    assert weather.currently.wind_direction == 180
    assert weather.currently.humidity == 0.55
    assert weather.currently.visibility == 9.5
    assert weather.currently.is_daytime is True
    assert weather.attribution.name == "Pirate Weather"


def test_pirate_daily_and_hourly(provider, sample_pirate_response, request_nyc):
    weather = provider.normalize(sample_pirate_response, request_nyc)

    assert len(weather.daily) == 8
    assert weather.daily[1].precip_chance == 75
    assert weather.daily[1].icon == Icon.RAIN

    assert len(weather.hourly) == 12
    assert weather.hourly[0].formatted_time == "12 AM"
    assert weather.hourly[0].is_daytime is False
    assert weather.hourly[3].precip_chance == 23
    assert weather.hourly[3].is_daytime is False
    assert weather.hourly[6].is_daytime is True


def test_pirate_nowcast_converts_inches(provider, sample_pirate_response, request_nyc):
    """Test minute data in US units is converted to mm/h."""
    nowcast = provider.normalize(sample_pirate_response, request_nyc).nowcast

    assert nowcast.available is True
    assert nowcast.source == Source.PIRATE
    assert nowcast.interval == 1
    assert len(nowcast.data) == 61
    assert nowcast.start_time == NOON
    assert nowcast.end_time == NOON + 3600
    assert nowcast.description == "Light rain starting in 30 min."
    assert nowcast.data[0].precip_type == PrecipType.NONE
    assert nowcast.data[0].formatted_time == "12:00 PM"
    assert nowcast.data[30].precip_intensity == pytest.approx(0.254)
    assert nowcast.data[30].intensity_label == PrecipIntensity.VERY_LIGHT
    assert nowcast.data[30].precip_type == PrecipType.RAIN


def test_pirate_alerts(provider, sample_pirate_response, request_nyc):
    alerts = provider.normalize(sample_pirate_response, request_nyc).alerts

    assert len(alerts) == 1
    alert = alerts[0]
    assert alert.id.startswith("pirate-alert-")
    assert alert.description == "x" * 100 + "..."
    assert alert.full_text == "x" * 150
    assert alert.urgency == "Unknown"
    assert alert.severity == AlertSeverity.MODERATE
    assert alert.primary_hazard == "flood"


def test_process_minutely_si_and_computed_description():
    minutely = {"data": [{"time": NOON, "precipIntensity": 3.0, "precipProbability": 0.45, "precipType": "snow"}]}

    nowcast = process_minutely(minutely, -14400, units="si")

    assert nowcast.data[0].precip_intensity == 3.0
    assert nowcast.data[0].precip_type == PrecipType.SNOW
    assert nowcast.description == "Precipitation likely (45% chance)"


def test_process_minutely_empty():
    assert process_minutely({"data": []}).available is False


def test_pirate_fetch_url(provider, config, request_nyc):
    with patch('http_util.requests.get') as mock_get:
        mock_get.return_value = Mock(ok=True, status_code=200, json=Mock(return_value={"currently": {}}))
        result = provider.fetch(request_nyc, config)

    assert result.ok
    args, kwargs = mock_get.call_args
    assert args[0] == f"https://api.pirateweather.net/forecast/{API_KEY}/40.7128,-74.0060"
    assert kwargs["params"] == {"units": "us"}


def test_pirate_fetch_excludes_minutely_when_nowcast_disabled(provider, request_nyc):
    config = ResolutionConfig(settings=dataclasses.replace(EngineSettings(), nowcast_enabled=False),
                              api_keys={"pirate": API_KEY})
    with patch('http_util.requests.get') as mock_get:
        mock_get.return_value = Mock(ok=True, status_code=200, json=Mock(return_value={}))
        provider.fetch(request_nyc, config)

    assert mock_get.call_args.kwargs["params"]["exclude"] == "minutely"


@pytest.mark.parametrize("keys", [{}, {"pirate": ""}, {"pirate": "*insert-your-api-key-here*"}])
def test_pirate_requires_key(provider, request_nyc, keys):
    config = ResolutionConfig(settings=EngineSettings(), api_keys=keys)

    with patch('http_util.requests.get') as mock_get:
        result = provider.fetch(request_nyc, config)

    assert result.failure_kind == FailureKind.CONFIGURATION
    mock_get.assert_not_called()


def test_pirate_normalize_is_idempotent(provider, sample_pirate_response, request_nyc):
    first = provider.normalize(sample_pirate_response, request_nyc)
    second = provider.normalize(sample_pirate_response, request_nyc)

    assert first == second
    assert first.alerts[0].id == second.alerts[0].id
