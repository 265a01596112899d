"""Pick the best recent observation among the stations nearest a point."""
import logging
from dataclasses import dataclass
from datetime import datetime
from typing import Any, Callable, Dict, List, Optional

from geo import haversine_miles
from time_util import age_hours
from weather_provider import StageResult

MAX_STATIONS_TO_PROBE = 5
MAX_OBSERVATION_AGE_HOURS = 2.0


@dataclass
class StationCandidate:
    id: str  # station URL, e.g. https://api.weather.gov/stations/KNYC
    name: str
    identifier: str = ""
    lat: Optional[float] = None
    lon: Optional[float] = None
    distance: Optional[float] = None  # miles

    @property
    def observation_url(self) -> str:
        return f"{self.id}/observations/latest"


@dataclass
class Observation:
    """A station observation plus the station it came from."""
    properties: Dict[str, Any]
    station: StationCandidate
    age_hours: float

    @property
    def description(self) -> str:
        return (self.properties.get("textDescription") or "").strip()


def candidates_from_features(features: List[Dict[str, Any]]) -> List[StationCandidate]:
    """Build station candidates from an NWS station-list feature collection."""
    candidates = []
    for feature in features:
        properties = feature.get("properties") or {}
        coordinates = (feature.get("geometry") or {}).get("coordinates") or []
        lat = lon = None
        if len(coordinates) >= 2 and coordinates[0] is not None and coordinates[1] is not None:
            lon, lat = float(coordinates[0]), float(coordinates[1])
        candidates.append(StationCandidate(
            id=feature.get("id") or properties.get("@id", ""),
            name=properties.get("name") or properties.get("stationIdentifier") or "Weather Station",
            identifier=properties.get("stationIdentifier", ""),
            lat=lat,
            lon=lon,
        ))
    return candidates


def rank_candidates(candidates: List[StationCandidate], lat: float, lon: float) -> List[StationCandidate]:
    """
    Sort candidates nearest first.

    Candidates without coordinates keep their original relative order and
    sort after every candidate with a known distance.
    """
    for candidate in candidates:
        if candidate.lat is not None and candidate.lon is not None:
            candidate.distance = haversine_miles(lat, lon, candidate.lat, candidate.lon)
        else:
            candidate.distance = None
    return sorted(candidates, key=lambda c: (c.distance is None, c.distance or 0.0))


def resolve_best_observation(
    candidates: List[StationCandidate],
    lat: float,
    lon: float,
    fetch_observation: Callable[[str], StageResult],
    now: Optional[datetime] = None,
) -> Optional[Observation]:
    """
    Probe the nearest stations one at a time for a usable observation.

    The first fresh observation with a text description wins immediately.
    Fresh observations without one are remembered, and the youngest of those
    is returned once every probe is spent.

    Args:
        candidates: Stations from the station-list lookup
        lat: Request latitude
        lon: Request longitude
        fetch_observation: Callable taking an observation URL, returning a StageResult
        now: Reference time for observation age (defaults to now, UTC)

    Returns:
        Observation or None when no station had a fresh reading
    """
    best: Optional[Observation] = None

    for candidate in rank_candidates(candidates, lat, lon)[:MAX_STATIONS_TO_PROBE]:
        logging.info(f"Probing station {candidate.identifier or candidate.id} ({candidate.distance} mi)")
        result = fetch_observation(candidate.observation_url)
        if not result.ok:
            logging.info(f"Station {candidate.identifier}: request failed, skipping")
            continue

        properties = (result.value or {}).get("properties") or {}
        if (properties.get("temperature") or {}).get("value") is None:
            logging.info(f"Station {candidate.identifier}: no temperature, skipping")
            continue

        try:
            age = age_hours(properties.get("timestamp") or "", now)
        except (TypeError, ValueError):
            logging.info(f"Station {candidate.identifier}: unparseable timestamp, skipping")
            continue

        if age >= MAX_OBSERVATION_AGE_HOURS:
            logging.info(f"Station {candidate.identifier}: observation {age:.1f}h old, discarding")
            continue

        observation = Observation(properties=properties, station=candidate, age_hours=age)
        if observation.description:
            logging.info(f"Station {candidate.identifier}: fresh observation with description, using it")
            return observation

        if best is None or age < best.age_hours:
            logging.info(f"Station {candidate.identifier}: fresh observation without description, recorded")
            best = observation

    if best is None:
        logging.warning("No station returned a usable observation")
    return best
