from __future__ import annotations

from collections.abc import Iterator
from datetime import datetime, timezone
from typing import Any

from google.protobuf.message import DecodeError
from google.transit import gtfs_realtime_pb2

from drtime.domain.exceptions import FeedParseError
from drtime.domain.models.realtime import (
    RealtimeVehicle,
    StopRelationship,
    StopTimeEvent,
    StopTimePrediction,
    TripRelationship,
    TripUpdate,
)

_STOP_REL = gtfs_realtime_pb2.TripUpdate.StopTimeUpdate.ScheduleRelationship
_TRIP_REL = gtfs_realtime_pb2.TripDescriptor.ScheduleRelationship


def _parse_feed(content: bytes) -> gtfs_realtime_pb2.FeedMessage:
    if not content:
        raise FeedParseError("Empty GTFS-Realtime payload")

    feed = gtfs_realtime_pb2.FeedMessage()
    try:
        feed.ParseFromString(content)
    except DecodeError as exc:
        raise FeedParseError(f"Invalid GTFS-Realtime payload: {exc}") from exc
    return feed


def _stop_relationship(value: int) -> StopRelationship:
    try:
        return StopRelationship(_STOP_REL.Name(value).lower())
    except ValueError:
        return StopRelationship.SCHEDULED


def _trip_relationship(value: int) -> TripRelationship:
    try:
        return TripRelationship(_TRIP_REL.Name(value).lower())
    except ValueError:
        return TripRelationship.SCHEDULED


def _event(stu, name: str) -> StopTimeEvent | None:
    if not stu.HasField(name):
        return None
    ev = getattr(stu, name)
    time = int(ev.time) if ev.HasField("time") and int(ev.time) > 0 else None
    delay = int(ev.delay) if ev.HasField("delay") else None
    if time is None and delay is None:
        return None
    return StopTimeEvent(time=time, delay_s=delay)


def _entities(content: bytes, kind: str) -> Iterator[Any]:
    """Yield the `kind` message ("trip_update", "vehicle") of each entity carrying one."""

    for ent in _parse_feed(content).entity:
        if ent.HasField(kind):
            yield getattr(ent, kind)


def _optional(msg, name: str, cast=float):
    return cast(getattr(msg, name)) if msg.HasField(name) else None


def _prediction(stu) -> StopTimePrediction:
    return StopTimePrediction(
        stop_id=stu.stop_id or None,
        stop_sequence=_optional(stu, "stop_sequence", int),
        arrival=_event(stu, "arrival"),
        departure=_event(stu, "departure"),
        relationship=_stop_relationship(stu.schedule_relationship),
    )


def decode_trip_updates(content: bytes) -> tuple[TripUpdate, ...]:
    """Decode a GTFS-Realtime TripUpdates payload.

    Entities without a trip update (alerts, vehicle positions) or without a
    trip id produce nothing.
    """

    return tuple(
        TripUpdate(
            trip_id=tu.trip.trip_id,
            route_id=tu.trip.route_id or None,
            relationship=_trip_relationship(tu.trip.schedule_relationship),
            predictions=tuple(_prediction(stu) for stu in tu.stop_time_update),
        )
        for tu in _entities(content, "trip_update")
        if tu.trip.trip_id
    )


def _vehicle(v) -> RealtimeVehicle:
    # Unset sub-messages read as defaults, so empty ids fall through to None.
    seen = int(v.timestamp)
    return RealtimeVehicle(
        vehicle_id=v.vehicle.id or None,
        trip_id=v.trip.trip_id or None,
        route_id=v.trip.route_id or None,
        lat=float(v.position.latitude),
        lon=float(v.position.longitude),
        bearing=_optional(v.position, "bearing"),
        speed_mps=_optional(v.position, "speed"),
        timestamp=datetime.fromtimestamp(seen, tz=timezone.utc) if seen > 0 else None,
        stop_id=v.stop_id or None,
    )


def decode_vehicle_positions(content: bytes) -> tuple[RealtimeVehicle, ...]:
    """Decode a GTFS-Realtime VehiclePositions payload; vehicles without a position are skipped."""

    return tuple(
        _vehicle(v)
        for v in _entities(content, "vehicle")
        if v.HasField("position")
    )
