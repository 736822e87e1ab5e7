from __future__ import annotations

import os
from dataclasses import dataclass

DEFAULT_GTFS_STATIC_URL = "https://maps.durham.ca/OpenDataGTFS/GTFS_Durham_TXT.zip"
DEFAULT_TRIP_UPDATES_URL = (
    "https://drtonline.durhamregiontransit.com/gtfsrealtime/TripUpdates"
)
DEFAULT_VEHICLE_POSITIONS_URL = (
    "https://drtonline.durhamregiontransit.com/gtfsrealtime/VehiclePositions"
)


def _env_bool(name: str, default: bool = False) -> bool:
    raw = os.getenv(name)
    if raw is None:
        return default
    return raw.strip().lower() in {"1", "true", "yes", "y", "on"}


def _env_str(name: str, default: str | None = None) -> str | None:
    raw = os.getenv(name)
    if raw is None:
        return default
    # An explicitly empty variable disables the setting.
    return raw.strip() or None


def _env_float(name: str, default: float) -> float:
    raw = (os.getenv(name) or "").strip()
    return float(raw) if raw else default


def _env_int(name: str, default: int) -> int:
    raw = (os.getenv(name) or "").strip()
    return int(raw) if raw else default


def parse_headers(raw: str | None) -> dict[str, str]:
    """Parse 'Key:Value;Key2:Value2' into a header dict, ignoring junk parts."""

    raw = (raw or "").strip()
    if not raw:
        return {}
    headers: dict[str, str] = {}
    for part in raw.split(";"):
        part = part.strip()
        if ":" not in part:
            continue
        k, v = part.split(":", 1)
        k = k.strip()
        if k:
            headers[k] = v.strip()
    return headers


@dataclass(frozen=True, slots=True)
class FeedRuntimeConfig:
    static_url: str | None
    static_path: str | None
    static_ttl_s: float
    static_timeout_s: float
    static_serve_stale: bool

    trip_updates_url: str | None
    vehicle_positions_url: str | None
    realtime_headers: dict[str, str]
    realtime_timeout_s: float
    realtime_ttl_s: float

    timezone: str
    nearby_radius_km: float
    nearby_max_results: int
    nearby_max_concurrency: int

    @staticmethod
    def from_env() -> "FeedRuntimeConfig":
        return FeedRuntimeConfig(
            static_url=_env_str("GTFS_STATIC_URL", DEFAULT_GTFS_STATIC_URL),
            static_path=_env_str("GTFS_PATH"),
            static_ttl_s=_env_float("GTFS_STATIC_TTL_S", 3600.0),
            static_timeout_s=_env_float("GTFS_STATIC_TIMEOUT_S", 20.0),
            static_serve_stale=_env_bool("GTFS_STATIC_SERVE_STALE", True),
            trip_updates_url=_env_str(
                "GTFS_RT_TRIP_UPDATES_URL", DEFAULT_TRIP_UPDATES_URL
            ),
            vehicle_positions_url=_env_str(
                "GTFS_RT_VEHICLE_POSITIONS_URL", DEFAULT_VEHICLE_POSITIONS_URL
            ),
            realtime_headers=parse_headers(os.getenv("GTFS_RT_HEADERS")),
            realtime_timeout_s=_env_float("GTFS_RT_TIMEOUT_S", 20.0),
            realtime_ttl_s=_env_float("GTFS_RT_CACHE_TTL_S", 30.0),
            timezone=_env_str("FEED_TIMEZONE", "America/Toronto") or "UTC",
            nearby_radius_km=_env_float("NEARBY_RADIUS_KM", 10.0),
            nearby_max_results=_env_int("NEARBY_MAX_RESULTS", 60),
            nearby_max_concurrency=_env_int("NEARBY_MAX_CONCURRENCY", 8),
        )


def reveal_errors() -> bool:
    return _env_bool("DRTIME_REVEAL_ERRORS", False)
