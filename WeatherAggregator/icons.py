"""Provider icon codes to canonical icons.

Each provider has a direct lookup; anything the lookup misses goes through
the shared substring matcher and finally defaults to cloudy.
"""
import logging
from typing import Dict, Optional
from urllib.parse import urlparse

from taxonomy import Icon


def _clear(is_day: bool) -> Icon:
    return Icon.CLEAR_DAY if is_day else Icon.CLEAR_NIGHT


def _partly_cloudy(is_day: bool) -> Icon:
    return Icon.PARTLY_CLOUDY_DAY if is_day else Icon.PARTLY_CLOUDY_NIGHT


def match_icon_pattern(code: str, is_day: bool = True) -> Optional[Icon]:
    """
    Substring fallback shared by every provider.

    Args:
        code: Provider icon code or condition text
        is_day: Whether to pick day or night variants

    Returns:
        Icon or None if nothing matched
    """
    code = code.lower()
    if "thunder" in code or "tsra" in code or "tstm" in code:
        return Icon.THUNDERSTORM
    if "rain" in code or "drizzle" in code or "shower" in code:
        return Icon.RAIN
    if "snow" in code or "blizzard" in code:
        return Icon.SNOW
    if "sleet" in code or "freezing" in code or "fzra" in code:
        return Icon.SLEET
    if "fog" in code or "dust" in code or "smoke" in code or "haze" in code or "mist" in code:
        return Icon.FOG
    if "wind" in code:
        return Icon.WIND
    if "partly" in code or "few" in code or "sct" in code:
        return _partly_cloudy(is_day)
    if "cloud" in code or "ovc" in code or "bkn" in code or "overcast" in code:
        return Icon.CLOUDY
    if "clear" in code or "skc" in code or "sunny" in code:
        return _clear(is_day)
    return None


def map_with_fallback(code: Optional[str], is_day: bool, table: Dict[str, Icon], provider: str) -> Icon:
    """Direct lookup, then pattern match, then cloudy with a logged warning."""
    if not code:
        return Icon.CLOUDY
    if code in table:
        return table[code]
    matched = match_icon_pattern(code, is_day)
    if matched is not None:
        return matched
    logging.warning(f"Unknown {provider} icon code: {code}. Using cloudy as fallback.")
    return Icon.CLOUDY


# --- NWS ---------------------------------------------------------------------

def _nws_table(is_day: bool) -> Dict[str, Icon]:
    return {
        "skc": _clear(is_day),
        "few": _partly_cloudy(is_day),
        "sct": _partly_cloudy(is_day),
        "bkn": _partly_cloudy(is_day),
        "ovc": Icon.CLOUDY,
        "wind_skc": Icon.WIND,
        "wind_few": Icon.WIND,
        "wind_sct": Icon.WIND,
        "wind_bkn": Icon.WIND,
        "wind_ovc": Icon.WIND,
        "snow": Icon.SNOW,
        "rain_snow": Icon.SLEET,
        "rain_sleet": Icon.SLEET,
        "snow_sleet": Icon.SLEET,
        "fzra": Icon.SLEET,
        "rain_fzra": Icon.SLEET,
        "snow_fzra": Icon.SLEET,
        "sleet": Icon.SLEET,
        "rain": Icon.RAIN,
        "rain_showers": Icon.RAIN,
        "rain_showers_hi": Icon.RAIN,
        "tsra": Icon.THUNDERSTORM,
        "tsra_sct": Icon.THUNDERSTORM,
        "tsra_hi": Icon.THUNDERSTORM,
        "tornado": Icon.THUNDERSTORM,
        "hurricane": Icon.THUNDERSTORM,
        "tropical_storm": Icon.RAIN,
        "dust": Icon.FOG,
        "smoke": Icon.FOG,
        "haze": Icon.FOG,
        "hot": _clear(is_day),
        "cold": _clear(is_day),
        "blizzard": Icon.SNOW,
        "fog": Icon.FOG,
    }


def parse_nws_icon_url(icon_url: str):
    """
    Split an NWS icon URL into (time_of_day, code).

    Example: https://api.weather.gov/icons/land/night/tsra,40/ovc?size=medium
    gives ("night", "tsra"). Only the first condition of a split icon is used.
    """
    parts = urlparse(icon_url).path.split("/")
    for i, part in enumerate(parts):
        if part in ("day", "night") and i + 1 < len(parts):
            return part, parts[i + 1].split(",")[0]
    return "day", ""


def map_nws_icon(icon_url: Optional[str]) -> Icon:
    if not icon_url:
        return Icon.CLOUDY
    time_of_day, code = parse_nws_icon_url(icon_url)
    if not code:
        return Icon.CLOUDY

    is_day = time_of_day == "day"
    table = _nws_table(is_day)
    # Legacy night icons carry an "n" prefix (e.g. "nskc")
    if code not in table and code.startswith("n") and code[1:] in table:
        code = code[1:]
    return map_with_fallback(code, is_day, table, "NWS")


# --- WMO codes (Open-Meteo) ---------------------------------------------------

WMO_DESCRIPTIONS = {
    0: "Clear sky",
    1: "Mainly clear",
    2: "Partly cloudy",
    3: "Overcast",
    45: "Fog",
    48: "Depositing rime fog",
    51: "Light drizzle",
    53: "Moderate drizzle",
    55: "Dense drizzle",
    56: "Light freezing drizzle",
    57: "Dense freezing drizzle",
    61: "Slight rain",
    63: "Moderate rain",
    65: "Heavy rain",
    66: "Light freezing rain",
    67: "Heavy freezing rain",
    71: "Slight snow fall",
    73: "Moderate snow fall",
    75: "Heavy snow fall",
    77: "Snow grains",
    80: "Slight rain showers",
    81: "Moderate rain showers",
    82: "Violent rain showers",
    85: "Slight snow showers",
    86: "Heavy snow showers",
    95: "Thunderstorm",
    96: "Thunderstorm with slight hail",
    99: "Thunderstorm with heavy hail",
}


def map_wmo_code(code: Optional[int], is_day: bool = True) -> Icon:
    if code in (0, 1):
        return _clear(is_day)
    if code == 2:
        return _partly_cloudy(is_day)
    if code == 3:
        return Icon.CLOUDY
    if code in (45, 48):
        return Icon.FOG
    if code in (51, 53, 55, 56, 57, 61, 63, 65, 66, 67, 80, 81, 82):
        return Icon.RAIN
    if code in (71, 73, 75, 77, 85, 86):
        return Icon.SNOW
    if code in (95, 96, 99):
        return Icon.THUNDERSTORM
    logging.warning(f"Unknown WMO weather code: {code}. Using cloudy as fallback.")
    return Icon.CLOUDY


def wmo_description(code: Optional[int]) -> str:
    return WMO_DESCRIPTIONS.get(code, "Unknown weather")


# --- OpenWeatherMap condition ids ---------------------------------------------

def map_openweathermap_code(code: Optional[int], is_day: bool = True) -> Icon:
    """Map an OpenWeatherMap condition id (https://openweathermap.org/weather-conditions)."""
    if code is None:
        return Icon.CLOUDY
    if 200 <= code < 300:
        return Icon.THUNDERSTORM
    if 300 <= code < 400:
        return Icon.RAIN
    if code in (511, 611, 612, 613, 615, 616):
        return Icon.SLEET
    if 500 <= code < 600:
        return Icon.RAIN
    if 600 <= code < 700:
        return Icon.SNOW
    if 700 <= code < 800:
        return Icon.FOG
    if code == 800:
        return _clear(is_day)
    if code in (801, 802):
        return _partly_cloudy(is_day)
    if code > 800:
        return Icon.CLOUDY
    logging.warning(f"Unknown OpenWeatherMap condition id: {code}. Using cloudy as fallback.")
    return Icon.CLOUDY


# --- Pirate Weather -----------------------------------------------------------

_PIRATE_EXTRA = {
    "thunderstorm": Icon.THUNDERSTORM,
    "tornado": Icon.THUNDERSTORM,
    "hail": Icon.SLEET,
}


def map_pirate_icon(icon: Optional[str], is_day: bool = True) -> Icon:
    """Pirate Weather icon names are mostly canonical already."""
    table = {member.value: member for member in Icon}
    table.update(_PIRATE_EXTRA)
    return map_with_fallback(icon, is_day, table, "Pirate Weather")
