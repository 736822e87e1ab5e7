from __future__ import annotations

import asyncio
import math
from collections.abc import Callable
from dataclasses import dataclass, field
from datetime import datetime, timedelta
from typing import Any

from drtime.app.ports.output import IStaticFeedStore, ITripUpdateProvider
from drtime.domain.algorithms.geo_utils import distance_km
from drtime.domain.exceptions import InvalidCoordinateError, InvalidQueryError
from drtime.domain.models import (
    NearbyStopsResult,
    StaticFeedSnapshot,
    Stop,
    StopResult,
)

from .arrival_resolver import DEFAULT_LIMIT, DEFAULT_WINDOW, resolve_arrivals


MAX_RADIUS_KM = 100.0
MAX_RESULTS = 500


def parse_coordinate(value: Any, *, name: str, limit: float) -> float:
    """Coerce a query value to a finite coordinate within [-limit, limit]."""

    if value is None or (isinstance(value, str) and not value.strip()):
        raise InvalidCoordinateError(f"{name} is required")
    if isinstance(value, bool):
        raise InvalidCoordinateError(f"{name} must be a number")
    try:
        number = float(value)
    except (TypeError, ValueError) as exc:
        raise InvalidCoordinateError(f"{name} must be a number, got {value!r}") from exc
    if not math.isfinite(number) or abs(number) > limit:
        raise InvalidCoordinateError(f"{name} out of range: {value!r}")
    return number


def parse_query_number(
    value: Any, *, name: str, cast: Callable[[Any], float], upper: float
) -> float | None:
    """Coerce an optional positive query value bounded by `upper`; blank means unset."""

    if value is None or (isinstance(value, str) and not value.strip()):
        return None
    if isinstance(value, bool):
        raise InvalidQueryError(f"{name} must be a number")
    try:
        number = cast(value)
    except (TypeError, ValueError) as exc:
        raise InvalidQueryError(f"{name} must be a number, got {value!r}") from exc
    if not math.isfinite(number) or not 0 < number <= upper:
        raise InvalidQueryError(f"{name} must be in (0, {upper:g}], got {value!r}")
    return number


@dataclass(slots=True)
class NearbyStopsService:
    """Finds stops around a point and attaches their upcoming arrivals."""

    static_store: IStaticFeedStore
    trip_updates: ITripUpdateProvider
    now: Callable[[], datetime] = field(default=lambda: datetime.now().astimezone())

    radius_km: float = 10.0
    max_results: int = 60
    max_concurrency: int = 8
    arrivals_window: timedelta = DEFAULT_WINDOW
    arrivals_limit: int = DEFAULT_LIMIT

    async def find_nearby(
        self,
        lat: Any,
        lon: Any,
        radius_km: Any = None,
        max_results: Any = None,
    ) -> NearbyStopsResult:
        lat_f = parse_coordinate(lat, name="lat", limit=90.0)
        lon_f = parse_coordinate(lon, name="lon", limit=180.0)
        radius = parse_query_number(
            radius_km, name="radius_km", cast=float, upper=MAX_RADIUS_KM
        )
        limit = parse_query_number(max_results, name="limit", cast=int, upper=MAX_RESULTS)
        if radius is None:
            radius = self.radius_km
        cap = self.max_results if limit is None else int(limit)

        snapshot = await self.static_store.get_snapshot()
        candidates = self._candidate_stops(snapshot, lat_f, lon_f, radius, cap)

        now = self.now()
        semaphore = asyncio.Semaphore(max(1, self.max_concurrency))

        async def attach(stop: Stop, dist: float) -> StopResult:
            async with semaphore:
                live = await self.trip_updates.get_updates()
                arrivals = resolve_arrivals(
                    stop.id,
                    snapshot,
                    live,
                    now,
                    window=self.arrivals_window,
                    limit=self.arrivals_limit,
                )
            return StopResult(stop=stop, distance_km=dist, arrivals=tuple(arrivals))

        results = await asyncio.gather(*(attach(s, d) for d, s in candidates))
        return NearbyStopsResult(stops=tuple(results), is_stale=snapshot.is_stale)

    def _candidate_stops(
        self,
        snapshot: StaticFeedSnapshot,
        lat: float,
        lon: float,
        radius_km: float,
        max_count: int,
    ) -> list[tuple[float, Stop]]:
        scored: list[tuple[float, Stop]] = []
        for stop in snapshot.stops_by_id.values():
            d = distance_km(lat, lon, stop.location.lat, stop.location.lon)
            if d <= radius_km:
                scored.append((d, stop))

        scored.sort(key=lambda x: (x[0], x[1].id))
        return scored[:max_count]
