"""
Unified time utilities for the garden irrigation engine.

Ensures consistent timestamp handling across:
- RunResult and ZoneOutcome reporting
- ForecastSimulator
"""

from datetime import datetime, timezone

from garden_irrigation.core.enums import SECONDS_IN_MINUTE


def now(utc: bool = False) -> datetime:
    """Return current datetime without microseconds."""
    if utc:
        return datetime.now(timezone.utc).replace(microsecond=0)
    return datetime.now().replace(microsecond=0)


def now_iso(utc: bool = False) -> str:
    """Return current time as ISO8601 string without microseconds."""
    return now(utc=utc).isoformat()


def to_iso(dt: datetime) -> str:
    """Convert datetime to ISO8601 without microseconds."""
    if dt is None:
        return None
    return dt.replace(microsecond=0).isoformat()


def minutes_to_seconds(minutes: float) -> float:
    return minutes * SECONDS_IN_MINUTE


def elapsed_seconds(start: datetime, end: datetime) -> int:
    """
    Calculate elapsed seconds between two datetimes.

    :param start: Start datetime.
    :param end: End datetime.
    :return: Elapsed time in seconds as an integer.
    :raises ValueError: if either start or end is None.
    """
    if start is None or end is None:
        raise ValueError("Both 'start' and 'end' must be valid datetime objects.")
    delta = end - start
    return int(delta.total_seconds())
