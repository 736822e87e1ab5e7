from __future__ import annotations

import re
from dataclasses import dataclass

from drtime.app.ports.output import IStaticFeedStore
from drtime.domain.exceptions import RouteNotFound
from drtime.domain.models import GtfsRoute, GtfsTrip, Stop, StopTime

_LEADING_NUMBER = re.compile(r"^\s*(\d+)")


@dataclass(frozen=True, slots=True)
class RouteSummary:
    route: GtfsRoute
    trip_count: int
    stop_count: int


@dataclass(frozen=True, slots=True)
class RouteStopVisit:
    stop_id: str
    stop: Stop | None
    arrival_time: str
    departure_time: str
    stop_sequence: int


@dataclass(frozen=True, slots=True)
class RouteDetail:
    route_id: str
    route: GtfsRoute | None
    representative_trip: GtfsTrip
    directions: tuple[str, ...]
    stops: tuple[RouteStopVisit, ...]
    total_trips: int


def _route_sort_key(route: GtfsRoute) -> tuple[int, int, str, str]:
    # Numeric short names first ("2" before "10"), then lexical.
    m = _LEADING_NUMBER.match(route.short_name or "")
    if m:
        return (0, int(m.group(1)), route.short_name or "", route.route_id)
    return (1, 0, route.short_name or route.long_name or "", route.route_id)


@dataclass(slots=True)
class RouteCatalogService:
    """Route and stop listings plus per-route stop sequences from the static feed."""

    static_store: IStaticFeedStore

    async def list_stops(self) -> tuple[Stop, ...]:
        feed = await self.static_store.get_snapshot()
        return tuple(sorted(feed.stops_by_id.values(), key=lambda s: (s.name, s.id)))

    async def list_routes(self) -> tuple[RouteSummary, ...]:
        feed = await self.static_store.get_snapshot()

        trips_by_route: dict[str, list[str]] = {}
        for trip in feed.trips_by_id.values():
            trips_by_route.setdefault(trip.route_id, []).append(trip.trip_id)

        out: list[RouteSummary] = []
        for route in sorted(feed.routes_by_id.values(), key=_route_sort_key):
            trip_ids = trips_by_route.get(route.route_id, [])
            stop_ids: set[str] = set()
            for trip_id in trip_ids:
                stop_ids.update(st.stop_id for st in feed.stop_times_by_trip.get(trip_id, ()))
            out.append(
                RouteSummary(
                    route=route, trip_count=len(trip_ids), stop_count=len(stop_ids)
                )
            )
        return tuple(out)

    async def route_detail(self, route_id: str) -> RouteDetail:
        """Stop sequence of the route's first trip (feed order) plus its directions.

        Raises RouteNotFound when no trip belongs to the route.
        """

        feed = await self.static_store.get_snapshot()

        route_trips = [t for t in feed.trips_by_id.values() if t.route_id == route_id]
        if not route_trips:
            raise RouteNotFound(f"Route {route_id!r} not found")

        representative = route_trips[0]
        stop_times: tuple[StopTime, ...] = feed.stop_times_by_trip.get(
            representative.trip_id, ()
        )

        directions: list[str] = []
        for trip in route_trips:
            if trip.headsign and trip.headsign not in directions:
                directions.append(trip.headsign)

        return RouteDetail(
            route_id=route_id,
            route=feed.routes_by_id.get(route_id),
            representative_trip=representative,
            directions=tuple(directions),
            stops=tuple(
                RouteStopVisit(
                    stop_id=st.stop_id,
                    stop=feed.stops_by_id.get(st.stop_id),
                    arrival_time=st.arrival_time,
                    departure_time=st.departure_time,
                    stop_sequence=st.stop_sequence,
                )
                for st in stop_times
            ),
            total_trips=len(route_trips),
        )
