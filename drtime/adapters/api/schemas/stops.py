from __future__ import annotations

from drtime.adapters.api.schemas.common import CamelModel


class ArrivalSchema(CamelModel):
    route_id: str
    route_name: str | None = None
    headsign: str | None = None
    scheduled_arrival: str
    minutes_until_arrival: int
    is_realtime: bool = False
    delay_minutes: int = 0


class NearbyStopSchema(CamelModel):
    id: str
    name: str
    latitude: float
    longitude: float
    distance: float  # km
    arrivals: list[ArrivalSchema] = []


class NearbyStopsResponseSchema(CamelModel):
    stops: list[NearbyStopSchema]
    stale: bool = False


class StopSchema(CamelModel):
    id: str
    name: str
    latitude: float
    longitude: float


class StopsResponseSchema(CamelModel):
    stops: list[StopSchema]
