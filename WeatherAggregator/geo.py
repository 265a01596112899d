"""Location helpers: distances, daylight approximation, display labels."""
import math
from datetime import datetime, timezone
from typing import Optional

EARTH_RADIUS_MILES = 3958.8
US_NAME_SUFFIXES = ("usa", "us", "united states", "united states of america")


def haversine_miles(lat1: float, lon1: float, lat2: float, lon2: float) -> float:
    """Great-circle distance between two points in miles."""
    d_lat = math.radians(lat2 - lat1)
    d_lon = math.radians(lon2 - lon1)
    a = (
        math.sin(d_lat / 2) ** 2
        + math.cos(math.radians(lat1)) * math.cos(math.radians(lat2)) * math.sin(d_lon / 2) ** 2
    )
    return EARTH_RADIUS_MILES * 2 * math.atan2(math.sqrt(a), math.sqrt(1 - a))


def is_daytime(lat: float, lon: float, when: Optional[datetime] = None) -> bool:
    """
    Rough day/night test using local solar time derived from longitude.

    Only used when a provider gives no day/night flag of its own.

    Args:
        lat: Latitude (unused by the approximation, kept for call-site symmetry)
        lon: Longitude in degrees
        when: Moment to test (defaults to now, UTC)

    Returns:
        bool: True between 06:00 and 18:00 local solar time
    """
    when = when or datetime.now(timezone.utc)
    if when.tzinfo is not None:
        when = when.astimezone(timezone.utc)
    solar_hour = (when.hour + when.minute / 60 + lon / 15) % 24
    return 6 <= solar_hour < 18


def coordinate_label(lat: float, lon: float) -> str:
    return f"{float(lat):.4f}, {float(lon):.4f}"


def format_location_name(location_name: Optional[str]) -> Optional[str]:
    """Shorten "City, State, Country" to "City, State"; a bare city stays as-is."""
    if not location_name:
        return None
    parts = [part.strip() for part in location_name.split(",")]
    if len(parts) > 2:
        return f"{parts[0]}, {parts[1]}"
    return parts[0]


def country_code_from_location(location_name: Optional[str]) -> str:
    """
    Classify a free-text location by its last comma-separated part.

    Unknown locations default to "us", so the official provider gets the first
    attempt and falls back on its own if the point is outside its coverage.
    """
    if not location_name:
        return "us"
    last_part = location_name.split(",")[-1].strip().lower()
    if last_part in US_NAME_SUFFIXES:
        return "us"
    return "non-us"
