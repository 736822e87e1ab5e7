from __future__ import annotations

from datetime import datetime

from drtime.adapters.api.schemas.common import CamelModel


class VehicleSchema(CamelModel):
    vehicle_id: str | None = None
    trip_id: str | None = None
    route_id: str | None = None
    lat: float
    lon: float
    bearing: float | None = None
    speed_mps: float | None = None
    timestamp: datetime | None = None
    stop_id: str | None = None


class VehiclesResponseSchema(CamelModel):
    fetched_at: datetime
    vehicles: list[VehicleSchema]


class StopTimeEventSchema(CamelModel):
    time: datetime | None = None
    delay_seconds: int | None = None


class StopTimeUpdateSchema(CamelModel):
    stop_id: str | None = None
    stop_sequence: int | None = None
    arrival: StopTimeEventSchema | None = None
    departure: StopTimeEventSchema | None = None
    schedule_relationship: str


class TripUpdateSchema(CamelModel):
    trip_id: str
    route_id: str | None = None
    schedule_relationship: str
    stop_time_updates: list[StopTimeUpdateSchema]


class TripUpdatesResponseSchema(CamelModel):
    fetched_at: datetime
    trip_updates: list[TripUpdateSchema]
