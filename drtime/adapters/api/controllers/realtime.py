from __future__ import annotations

from datetime import datetime, timezone

from fastapi import APIRouter, Depends, Query

from drtime.adapters.api.dependencies import get_realtime_view_service
from drtime.adapters.api.schemas.realtime import (
    StopTimeEventSchema,
    StopTimeUpdateSchema,
    TripUpdateSchema,
    TripUpdatesResponseSchema,
    VehicleSchema,
    VehiclesResponseSchema,
)
from drtime.app.services.realtime_view_service import RealtimeViewService
from drtime.domain.models.realtime import StopTimeEvent

router = APIRouter(prefix="/realtime", tags=["realtime"])


@router.get("/vehicles", response_model=VehiclesResponseSchema)
async def list_vehicles(
    route_id: list[str] | None = Query(default=None),
    service: RealtimeViewService = Depends(get_realtime_view_service),
) -> VehiclesResponseSchema:
    route_ids = set(route_id) if route_id else None
    vehicles = await service.list_vehicles(route_ids=route_ids)

    return VehiclesResponseSchema(
        fetched_at=datetime.now(timezone.utc),
        vehicles=[
            VehicleSchema(
                vehicle_id=v.vehicle_id,
                trip_id=v.trip_id,
                route_id=v.route_id,
                lat=v.lat,
                lon=v.lon,
                bearing=v.bearing,
                speed_mps=v.speed_mps,
                timestamp=v.timestamp,
                stop_id=v.stop_id,
            )
            for v in vehicles
        ],
    )


def _event(event: StopTimeEvent | None) -> StopTimeEventSchema | None:
    if event is None:
        return None
    return StopTimeEventSchema(
        time=(
            datetime.fromtimestamp(event.time, tz=timezone.utc)
            if event.time is not None
            else None
        ),
        delay_seconds=event.delay_s,
    )


@router.get("/trip-updates", response_model=TripUpdatesResponseSchema)
async def list_trip_updates(
    route_id: list[str] | None = Query(default=None),
    service: RealtimeViewService = Depends(get_realtime_view_service),
) -> TripUpdatesResponseSchema:
    live = await service.list_trip_updates(route_ids=set(route_id) if route_id else None)

    return TripUpdatesResponseSchema(
        fetched_at=live.fetched_at,
        trip_updates=[
            TripUpdateSchema(
                trip_id=u.trip_id,
                route_id=u.route_id,
                schedule_relationship=u.relationship.value,
                stop_time_updates=[
                    StopTimeUpdateSchema(
                        stop_id=p.stop_id,
                        stop_sequence=p.stop_sequence,
                        arrival=_event(p.arrival),
                        departure=_event(p.departure),
                        schedule_relationship=p.relationship.value,
                    )
                    for p in u.predictions
                ],
            )
            for u in live.updates
        ],
    )
