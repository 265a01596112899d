"""Canonical enumerations shared by every provider normalizer."""
from enum import Enum


class Source(str, Enum):
    """Identifies the upstream provider that produced a weather object."""
    NWS = "nws"
    OPEN_METEO = "open-meteo"
    OPENWEATHERMAP = "openweathermap"
    PIRATE = "pirate"


class Icon(str, Enum):
    """Canonical icon codes understood by every display."""
    CLEAR_DAY = "clear-day"
    CLEAR_NIGHT = "clear-night"
    RAIN = "rain"
    SNOW = "snow"
    SLEET = "sleet"
    WIND = "wind"
    FOG = "fog"
    CLOUDY = "cloudy"
    PARTLY_CLOUDY_DAY = "partly-cloudy-day"
    PARTLY_CLOUDY_NIGHT = "partly-cloudy-night"
    THUNDERSTORM = "thunderstorm"


class AlertSeverity(str, Enum):
    EXTREME = "extreme"
    SEVERE = "severe"
    MODERATE = "moderate"
    MINOR = "minor"


class Hazard(str, Enum):
    TORNADO = "tornado"
    HAIL = "hail"
    FLOOD = "flood"
    THUNDERSTORM = "thunderstorm"
    SNOW = "snow"
    ICE = "ice"
    WIND = "wind"
    DUST = "dust"
    SMOKE = "smoke"
    FOG = "fog"
    HEAT = "heat"
    COLD = "cold"
    RAIN = "rain"
    HURRICANE = "hurricane"


class PrecipType(str, Enum):
    NONE = "none"
    RAIN = "rain"
    SNOW = "snow"
    SLEET = "sleet"
    MIX = "mix"


class PrecipIntensity(str, Enum):
    """Precipitation intensity tiers, thresholds in mm/h."""
    NONE = "none"
    VERY_LIGHT = "very-light"
    LIGHT = "light"
    MODERATE = "moderate"
    HEAVY = "heavy"
    VIOLENT = "violent"


def precip_intensity_label(intensity_mm_h: float) -> PrecipIntensity:
    """
    Map a precipitation rate to its intensity tier.

    Args:
        intensity_mm_h: Precipitation rate in mm/h

    Returns:
        PrecipIntensity: Tier for the rate
    """
    if intensity_mm_h <= 0:
        return PrecipIntensity.NONE
    if intensity_mm_h < 0.5:
        return PrecipIntensity.VERY_LIGHT
    if intensity_mm_h < 2.5:
        return PrecipIntensity.LIGHT
    if intensity_mm_h < 10:
        return PrecipIntensity.MODERATE
    if intensity_mm_h < 50:
        return PrecipIntensity.HEAVY
    return PrecipIntensity.VIOLENT
