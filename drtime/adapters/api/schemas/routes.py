from __future__ import annotations

from drtime.adapters.api.schemas.common import CamelModel


class RouteSummarySchema(CamelModel):
    route_id: str
    short_name: str | None = None
    long_name: str | None = None
    route_type: int
    color: str | None = None
    text_color: str | None = None
    trip_count: int
    stop_count: int


class RoutesResponseSchema(CamelModel):
    routes: list[RouteSummarySchema]


class RouteStopSchema(CamelModel):
    stop_id: str
    stop_name: str
    latitude: float | None = None
    longitude: float | None = None
    arrival_time: str
    departure_time: str
    stop_sequence: int


class RouteDetailSchema(CamelModel):
    route_id: str
    short_name: str | None = None
    long_name: str | None = None
    directions: list[str]
    stops: list[RouteStopSchema]
    total_trips: int
