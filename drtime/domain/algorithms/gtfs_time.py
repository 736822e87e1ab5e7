from __future__ import annotations

from datetime import datetime, timedelta, timezone


def parse_gtfs_time_to_seconds(raw: str) -> int:
    """Seconds since service-day midnight for a GTFS HH:MM:SS string.

    HH may exceed 24 for trips running past midnight. Raises ValueError for
    anything that is not three colon-separated non-negative integers.
    """

    parts = raw.strip().split(":")
    if len(parts) != 3:
        raise ValueError(f"Invalid GTFS time: {raw!r}")
    hh, mm, ss = (int(p) for p in parts)
    if hh < 0 or not (0 <= mm < 60) or not (0 <= ss < 60):
        raise ValueError(f"Invalid GTFS time: {raw!r}")
    return hh * 3600 + mm * 60 + ss


def to_instant(dt: datetime) -> datetime:
    # Aware datetimes sharing one tzinfo compare by wall clock; UTC compares by instant.
    return dt if dt.tzinfo is None else dt.astimezone(timezone.utc)


def seconds_between(start: datetime, end: datetime) -> float:
    """Elapsed seconds from `start` to `end`, correct across DST transitions."""

    return (to_instant(end) - to_instant(start)).total_seconds()


def shift(dt: datetime, seconds: float) -> datetime:
    """`dt` moved by elapsed seconds, expressed in `dt`'s own timezone."""

    if dt.tzinfo is None:
        return dt + timedelta(seconds=seconds)
    return (to_instant(dt) + timedelta(seconds=seconds)).astimezone(dt.tzinfo)


def service_datetime(raw: str, now: datetime) -> datetime:
    """Resolve a GTFS time against the calendar date of `now`.

    GTFS times count from "noon minus 12h" of the service day, which is local
    midnight except on DST change days. 25:30:00 becomes 01:30 on the day
    after `now`'s date. The result carries `now`'s tzinfo.
    """

    noon = now.replace(hour=12, minute=0, second=0, microsecond=0, fold=0)
    return shift(shift(noon, -12 * 3600), parse_gtfs_time_to_seconds(raw))


def format_clock_12h(dt: datetime) -> str:
    """Locale-independent 12-hour clock, e.g. '1:05 PM'."""

    hour12 = dt.hour % 12 or 12
    suffix = "AM" if dt.hour < 12 else "PM"
    return f"{hour12}:{dt.minute:02d} {suffix}"
