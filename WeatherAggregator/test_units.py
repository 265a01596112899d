"""Tests for unit conversions and precipitation tiers."""
import pytest
from taxonomy import PrecipIntensity, precip_intensity_label
from units import (
    WMO_DEG_C,
    WMO_DEG_F,
    WMO_KM_H,
    WMO_M,
    WMO_M_S,
    WMO_PA,
    celsius_to_fahrenheit,
    inches_to_mm,
    kmh_to_mph,
    meters_to_miles,
    ms_to_mph,
    pa_to_hpa,
    pressure_from_quantity,
    temperature_from_quantity,
    visibility_from_quantity,
    wind_speed_from_quantity,
)


def test_celsius_to_fahrenheit_exact():
    """Test freezing and boiling points convert exactly."""
    assert celsius_to_fahrenheit(0) == 32.0
    assert celsius_to_fahrenheit(100) == 212.0
    assert celsius_to_fahrenheit(-40) == -40.0


def test_speed_conversions():
    assert ms_to_mph(10) == pytest.approx(22.3694)
    assert kmh_to_mph(100) == pytest.approx(62.1371)


def test_pressure_and_distance_conversions():
    assert pa_to_hpa(101325) == pytest.approx(1013.25)
    assert meters_to_miles(16093.44) == pytest.approx(10.0, rel=1e-4)
    assert inches_to_mm(1) == 25.4


def test_quantities_follow_unit_codes():
    """Test NWS quantities convert according to their WMO unit code."""
    assert temperature_from_quantity(20, WMO_DEG_C) == 68.0
    assert temperature_from_quantity(68, WMO_DEG_F) == 68
    assert wind_speed_from_quantity(10, WMO_M_S) == pytest.approx(22.3694)
    assert wind_speed_from_quantity(36, WMO_KM_H) == pytest.approx(22.369356)
    assert wind_speed_from_quantity(12, None) == 12
    assert pressure_from_quantity(101325, WMO_PA) == pytest.approx(1013.25)
    assert pressure_from_quantity(1013.25, "wmoUnit:hPa") == 1013.25
    assert visibility_from_quantity(16093.44, WMO_M) == pytest.approx(10.0, rel=1e-4)


@pytest.mark.parametrize("intensity, label", [
    (0, PrecipIntensity.NONE),
    (-1, PrecipIntensity.NONE),
    (0.3, PrecipIntensity.VERY_LIGHT),
    (0.5, PrecipIntensity.LIGHT),
    (2.5, PrecipIntensity.MODERATE),
    (9.9, PrecipIntensity.MODERATE),
    (10, PrecipIntensity.HEAVY),
    (50, PrecipIntensity.VIOLENT),
])
def test_precip_intensity_label(intensity, label):
    assert precip_intensity_label(intensity) == label
