from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException, Query

from drtime.adapters.api.dependencies import (
    get_nearby_stops_service,
    get_route_catalog_service,
)
from drtime.adapters.api.schemas.stops import (
    ArrivalSchema,
    NearbyStopSchema,
    NearbyStopsResponseSchema,
    StopSchema,
    StopsResponseSchema,
)
from drtime.app.services.nearby_stops_service import NearbyStopsService
from drtime.app.services.route_catalog_service import RouteCatalogService
from drtime.domain.exceptions import QueryError

router = APIRouter(tags=["stops"])


@router.get("/nearby", response_model=NearbyStopsResponseSchema)
async def nearby_stops(
    # Taken as raw strings so a missing or malformed value is a 400, not a 422.
    lat: str | None = Query(default=None),
    lon: str | None = Query(default=None),
    radius_km: str | None = Query(default=None),
    limit: str | None = Query(default=None),
    service: NearbyStopsService = Depends(get_nearby_stops_service),
) -> NearbyStopsResponseSchema:
    try:
        result = await service.find_nearby(lat, lon, radius_km, limit)
    except QueryError as exc:
        raise HTTPException(status_code=400, detail=str(exc)) from exc

    return NearbyStopsResponseSchema(
        stale=result.is_stale,
        stops=[
            NearbyStopSchema(
                id=r.stop.id,
                name=r.stop.name,
                latitude=r.stop.location.lat,
                longitude=r.stop.location.lon,
                distance=r.distance_km,
                arrivals=[
                    ArrivalSchema(
                        route_id=a.route_id,
                        route_name=a.route_name,
                        headsign=a.headsign,
                        scheduled_arrival=a.scheduled_arrival,
                        minutes_until_arrival=a.minutes_until_arrival,
                        is_realtime=a.is_realtime,
                        delay_minutes=a.delay_minutes,
                    )
                    for a in r.arrivals
                ],
            )
            for r in result.stops
        ],
    )


@router.get("/stops", response_model=StopsResponseSchema)
async def list_stops(
    service: RouteCatalogService = Depends(get_route_catalog_service),
) -> StopsResponseSchema:
    return StopsResponseSchema(
        stops=[
            StopSchema(
                id=s.id,
                name=s.name,
                latitude=s.location.lat,
                longitude=s.location.lon,
            )
            for s in await service.list_stops()
        ]
    )
