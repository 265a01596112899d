"""Timestamp parsing and 12-hour display labels."""
from datetime import date, datetime, timedelta, timezone
from typing import Optional


def parse_iso(timestamp: str) -> datetime:
    """Parse an ISO-8601 timestamp; a trailing "Z" is treated as UTC."""
    if timestamp.endswith("Z"):
        timestamp = timestamp[:-1] + "+00:00"
    return datetime.fromisoformat(timestamp)


def to_unix(moment: datetime) -> int:
    """Unix seconds for an aware datetime (naive values are taken as UTC)."""
    if moment.tzinfo is None:
        moment = moment.replace(tzinfo=timezone.utc)
    return int(moment.timestamp())


def local_naive_to_unix(timestamp: str, utc_offset_seconds: int) -> int:
    """Unix seconds for a naive local timestamp with a known UTC offset."""
    naive = parse_iso(timestamp).replace(tzinfo=None)
    return to_unix(naive.replace(tzinfo=timezone(timedelta(seconds=utc_offset_seconds))))


def local_datetime(unix_seconds: int, utc_offset_seconds: int = 0) -> datetime:
    """Wall-clock datetime at a location with a fixed UTC offset."""
    return datetime.fromtimestamp(unix_seconds, tz=timezone(timedelta(seconds=utc_offset_seconds)))


def local_midnight(day: date, utc_offset_seconds: int = 0) -> int:
    """Unix seconds of midnight on ``day`` at a fixed UTC offset."""
    midnight = datetime(day.year, day.month, day.day, tzinfo=timezone(timedelta(seconds=utc_offset_seconds)))
    return int(midnight.timestamp())


def format_hour(moment: datetime) -> str:
    """Format as "3 PM"."""
    hour12 = moment.hour % 12 or 12
    ampm = "PM" if moment.hour >= 12 else "AM"
    return f"{hour12} {ampm}"


def format_hour_minute(moment: datetime) -> str:
    """Format as "3:05 PM"."""
    hour12 = moment.hour % 12 or 12
    ampm = "PM" if moment.hour >= 12 else "AM"
    return f"{hour12}:{moment.minute:02d} {ampm}"


def age_hours(timestamp: str, now: Optional[datetime] = None) -> float:
    """Hours elapsed since an ISO timestamp."""
    now = now or datetime.now(timezone.utc)
    observed = parse_iso(timestamp)
    if observed.tzinfo is None:
        observed = observed.replace(tzinfo=timezone.utc)
    return (now - observed).total_seconds() / 3600
