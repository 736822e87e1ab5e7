from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum


class StopRelationship(str, Enum):
    SCHEDULED = "scheduled"
    SKIPPED = "skipped"
    NO_DATA = "no_data"
    UNSCHEDULED = "unscheduled"


class TripRelationship(str, Enum):
    SCHEDULED = "scheduled"
    ADDED = "added"
    UNSCHEDULED = "unscheduled"
    CANCELED = "canceled"
    REPLACEMENT = "replacement"
    DUPLICATED = "duplicated"
    DELETED = "deleted"


@dataclass(frozen=True, slots=True)
class StopTimeEvent:
    """Predicted arrival or departure.

    `time` is an absolute POSIX timestamp; `delay_s` is relative to the schedule.
    Either may be missing.
    """

    time: int | None = None
    delay_s: int | None = None


@dataclass(frozen=True, slots=True)
class StopTimePrediction:
    stop_id: str | None = None
    stop_sequence: int | None = None
    arrival: StopTimeEvent | None = None
    departure: StopTimeEvent | None = None
    relationship: StopRelationship = StopRelationship.SCHEDULED


@dataclass(frozen=True, slots=True)
class TripUpdate:
    trip_id: str
    route_id: str | None = None
    relationship: TripRelationship = TripRelationship.SCHEDULED
    predictions: tuple[StopTimePrediction, ...] = ()

    def prediction_for(
        self, *, stop_id: str, stop_sequence: int | None = None
    ) -> StopTimePrediction | None:
        """Prediction for one visit of the trip to `stop_id`.

        When both sides carry a stop_sequence it must match, so loop routes
        that visit a stop twice get the right visit; stop_id is checked too
        when the prediction has one.
        """

        for p in self.predictions:
            if stop_sequence is not None and p.stop_sequence is not None:
                if p.stop_sequence == stop_sequence and p.stop_id in (None, stop_id):
                    return p
            elif p.stop_id == stop_id:
                return p
        return None


@dataclass(frozen=True, slots=True)
class LiveFeedSnapshot:
    updates: tuple[TripUpdate, ...]
    fetched_at: datetime
    by_trip: dict[str, TripUpdate] = field(default_factory=dict)

    @classmethod
    def build(
        cls, updates: tuple[TripUpdate, ...], fetched_at: datetime
    ) -> "LiveFeedSnapshot":
        # Later entities win when a feed repeats a trip.
        return cls(
            updates=updates,
            fetched_at=fetched_at,
            by_trip={u.trip_id: u for u in updates},
        )


@dataclass(frozen=True, slots=True)
class RealtimeVehicle:
    vehicle_id: str | None
    trip_id: str | None
    route_id: str | None
    lat: float
    lon: float
    bearing: float | None = None
    speed_mps: float | None = None
    timestamp: datetime | None = None
    stop_id: str | None = None
