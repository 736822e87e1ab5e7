from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from enum import IntEnum

from .stop import Stop


class RouteType(IntEnum):
    """GTFS routes.txt route_type (basic values)."""

    TRAM = 0
    SUBWAY = 1
    RAIL = 2
    BUS = 3
    FERRY = 4
    CABLE_TRAM = 5
    AERIAL_LIFT = 6
    FUNICULAR = 7
    TROLLEYBUS = 11
    MONORAIL = 12


@dataclass(frozen=True, slots=True)
class GtfsRoute:
    route_id: str
    short_name: str | None = None
    long_name: str | None = None
    route_type: int = RouteType.BUS
    color: str | None = None  # hex without '#'
    text_color: str | None = None  # hex without '#'


@dataclass(frozen=True, slots=True)
class GtfsTrip:
    trip_id: str
    route_id: str
    headsign: str | None = None
    direction_id: int | None = None


@dataclass(frozen=True, slots=True)
class StopTime:
    """A scheduled visit of one trip to one stop.

    Times are kept as raw GTFS strings (HH:MM:SS, HH may exceed 24) and resolved
    against a reference date only when needed.
    """

    trip_id: str
    stop_id: str
    arrival_time: str
    departure_time: str
    stop_sequence: int


@dataclass(frozen=True, slots=True)
class StaticFeedSnapshot:
    """Immutable in-memory copy of the GTFS tables needed for arrivals.

    The by-stop and by-trip indexes are derived once at parse time; stop-times
    inside each index entry keep feed order.
    """

    routes_by_id: dict[str, GtfsRoute]
    trips_by_id: dict[str, GtfsTrip]
    stop_times: tuple[StopTime, ...]
    stops_by_id: dict[str, Stop]
    fetched_at: datetime
    stop_times_by_stop: dict[str, tuple[StopTime, ...]] = field(default_factory=dict)
    stop_times_by_trip: dict[str, tuple[StopTime, ...]] = field(default_factory=dict)
    is_stale: bool = False

    @classmethod
    def build(
        cls,
        *,
        routes_by_id: dict[str, GtfsRoute],
        trips_by_id: dict[str, GtfsTrip],
        stop_times: tuple[StopTime, ...],
        stops_by_id: dict[str, Stop],
        fetched_at: datetime,
    ) -> "StaticFeedSnapshot":
        by_stop: dict[str, list[StopTime]] = {}
        by_trip: dict[str, list[StopTime]] = {}
        for st in stop_times:
            by_stop.setdefault(st.stop_id, []).append(st)
            by_trip.setdefault(st.trip_id, []).append(st)

        return cls(
            routes_by_id=routes_by_id,
            trips_by_id=trips_by_id,
            stop_times=stop_times,
            stops_by_id=stops_by_id,
            fetched_at=fetched_at,
            stop_times_by_stop={k: tuple(v) for k, v in by_stop.items()},
            stop_times_by_trip={
                k: tuple(sorted(v, key=lambda s: s.stop_sequence))
                for k, v in by_trip.items()
            },
        )
