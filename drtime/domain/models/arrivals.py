from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime

from .stop import Stop


@dataclass(frozen=True, slots=True)
class ResolvedArrival:
    route_id: str
    route_name: str | None
    headsign: str | None
    trip_id: str
    arrive_at: datetime
    scheduled_arrival: str  # display clock time
    minutes_until_arrival: int
    is_realtime: bool = False
    delay_minutes: int = 0


@dataclass(frozen=True, slots=True)
class StopResult:
    stop: Stop
    distance_km: float
    arrivals: tuple[ResolvedArrival, ...] = field(default_factory=tuple)


@dataclass(frozen=True, slots=True)
class NearbyStopsResult:
    stops: tuple[StopResult, ...]
    is_stale: bool = False
