"""Unit conversions into the canonical units (°F, mph, hPa, miles)."""
from typing import Optional

MS_TO_MPH = 2.23694
KMH_TO_MPH = 0.621371
METERS_TO_MILES = 0.000621371
INCHES_TO_MM = 25.4

# NWS quantitative values carry WMO unit codes
WMO_DEG_C = "wmoUnit:degC"
WMO_DEG_F = "wmoUnit:degF"
WMO_M_S = "wmoUnit:m_s-1"
WMO_KM_H = "wmoUnit:km_h-1"
WMO_PA = "wmoUnit:Pa"
WMO_M = "wmoUnit:m"


def celsius_to_fahrenheit(celsius: float) -> float:
    return celsius * 9 / 5 + 32


def ms_to_mph(speed: float) -> float:
    return speed * MS_TO_MPH


def kmh_to_mph(speed: float) -> float:
    return speed * KMH_TO_MPH


def pa_to_hpa(pressure: float) -> float:
    return pressure / 100


def meters_to_miles(distance: float) -> float:
    return distance * METERS_TO_MILES


def inches_to_mm(depth: float) -> float:
    return depth * INCHES_TO_MM


def temperature_from_quantity(value: float, unit_code: Optional[str]) -> float:
    """Convert an NWS temperature quantity to °F; unknown units pass through."""
    if unit_code == WMO_DEG_C:
        return celsius_to_fahrenheit(value)
    return value


def wind_speed_from_quantity(value: float, unit_code: Optional[str]) -> float:
    """Convert an NWS wind speed quantity to mph; unknown units pass through."""
    if unit_code == WMO_M_S:
        return ms_to_mph(value)
    if unit_code == WMO_KM_H:
        return kmh_to_mph(value)
    return value


def pressure_from_quantity(value: float, unit_code: Optional[str]) -> float:
    """Convert an NWS pressure quantity to hPa; hPa values pass through."""
    if unit_code == WMO_PA:
        return pa_to_hpa(value)
    return value


def visibility_from_quantity(value: float, unit_code: Optional[str]) -> float:
    """Convert an NWS visibility quantity to miles."""
    if unit_code == WMO_M:
        return meters_to_miles(value)
    return value
