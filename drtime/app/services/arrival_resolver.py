from __future__ import annotations

import math
from collections.abc import Iterable, Mapping
from datetime import datetime, timedelta

from drtime.domain.algorithms.gtfs_time import (
    format_clock_12h,
    seconds_between,
    service_datetime,
    shift,
    to_instant,
)
from drtime.domain.models import (
    LiveFeedSnapshot,
    ResolvedArrival,
    StaticFeedSnapshot,
    StopRelationship,
    StopTime,
    StopTimeEvent,
    TripRelationship,
    TripUpdate,
)

DEFAULT_WINDOW = timedelta(hours=2)
DEFAULT_LIMIT = 5


def _updates_by_trip(
    live_updates: LiveFeedSnapshot | Iterable[TripUpdate] | None,
) -> Mapping[str, TripUpdate]:
    if live_updates is None:
        return {}
    if isinstance(live_updates, LiveFeedSnapshot):
        return live_updates.by_trip
    return {u.trip_id: u for u in live_updates}


def _live_time(
    event: StopTimeEvent | None, scheduled: datetime, now: datetime
) -> datetime | None:
    if event is None:
        return None
    if event.time is not None:
        return datetime.fromtimestamp(event.time, tz=now.tzinfo)
    if event.delay_s is not None:
        return shift(scheduled, event.delay_s)
    return None


def _resolve_one(
    st: StopTime,
    snapshot: StaticFeedSnapshot,
    updates: Mapping[str, TripUpdate],
    now: datetime,
) -> ResolvedArrival | None:
    trip = snapshot.trips_by_id.get(st.trip_id)
    if trip is None:
        return None
    route = snapshot.routes_by_id.get(trip.route_id)
    if route is None:
        return None

    scheduled_arrival = service_datetime(st.arrival_time, now)
    arrival = scheduled_arrival
    departure = service_datetime(st.departure_time, now)
    is_realtime = False
    delay_minutes = 0

    update = updates.get(st.trip_id)
    if update is not None:
        if update.relationship == TripRelationship.CANCELED:
            return None

        prediction = update.prediction_for(
            stop_id=st.stop_id, stop_sequence=st.stop_sequence
        )
        if prediction is not None:
            if prediction.relationship == StopRelationship.SKIPPED:
                return None
            if prediction.relationship != StopRelationship.NO_DATA:
                live_arrival = _live_time(prediction.arrival, scheduled_arrival, now)
                if live_arrival is not None:
                    arrival = live_arrival
                    delay_minutes = round(
                        seconds_between(scheduled_arrival, live_arrival) / 60.0
                    )
                    is_realtime = True

                live_departure = _live_time(prediction.departure, departure, now)
                if live_departure is not None:
                    departure = live_departure
                    is_realtime = True

    seconds_until = seconds_between(now, arrival)
    return ResolvedArrival(
        route_id=route.route_id,
        route_name=route.short_name,
        headsign=trip.headsign,
        trip_id=trip.trip_id,
        arrive_at=arrival,
        scheduled_arrival=format_clock_12h(arrival),
        minutes_until_arrival=math.ceil(seconds_until / 60.0),
        is_realtime=is_realtime,
        delay_minutes=delay_minutes,
    )


def resolve_arrivals(
    stop_id: str,
    snapshot: StaticFeedSnapshot,
    live_updates: LiveFeedSnapshot | Iterable[TripUpdate] | None,
    now: datetime,
    *,
    window: timedelta = DEFAULT_WINDOW,
    limit: int = DEFAULT_LIMIT,
) -> list[ResolvedArrival]:
    """Upcoming arrivals at a stop, merging schedule and live predictions.

    Stop-times whose trip or route is missing from the snapshot are skipped.
    Only arrivals strictly after `now` and at most `window` ahead are kept,
    soonest first, capped at `limit`.
    """

    updates = _updates_by_trip(live_updates)
    horizon_s = window.total_seconds()

    out: list[ResolvedArrival] = []
    for st in snapshot.stop_times_by_stop.get(stop_id, ()):
        arrival = _resolve_one(st, snapshot, updates, now)
        if arrival is None:
            continue
        if not (0 < seconds_between(now, arrival.arrive_at) <= horizon_s):
            continue
        out.append(arrival)

    out.sort(key=lambda a: (to_instant(a.arrive_at), a.route_name or "", a.trip_id))
    return out[:limit]
