from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException

from drtime.adapters.api.dependencies import get_route_catalog_service
from drtime.adapters.api.schemas.routes import (
    RouteDetailSchema,
    RoutesResponseSchema,
    RouteStopSchema,
    RouteSummarySchema,
)
from drtime.app.services.route_catalog_service import RouteCatalogService
from drtime.domain.exceptions import RouteNotFound

router = APIRouter(prefix="/routes", tags=["routes"])


@router.get("", response_model=RoutesResponseSchema)
async def list_routes(
    service: RouteCatalogService = Depends(get_route_catalog_service),
) -> RoutesResponseSchema:
    return RoutesResponseSchema(
        routes=[
            RouteSummarySchema(
                route_id=s.route.route_id,
                short_name=s.route.short_name,
                long_name=s.route.long_name,
                route_type=int(s.route.route_type),
                color=s.route.color,
                text_color=s.route.text_color,
                trip_count=s.trip_count,
                stop_count=s.stop_count,
            )
            for s in await service.list_routes()
        ]
    )


@router.get("/{route_id}", response_model=RouteDetailSchema)
async def get_route(
    route_id: str,
    service: RouteCatalogService = Depends(get_route_catalog_service),
) -> RouteDetailSchema:
    try:
        detail = await service.route_detail(route_id)
    except RouteNotFound as exc:
        raise HTTPException(status_code=404, detail="Route not found") from exc

    return RouteDetailSchema(
        route_id=detail.route_id,
        short_name=detail.route.short_name if detail.route else None,
        long_name=detail.route.long_name if detail.route else None,
        directions=list(detail.directions),
        total_trips=detail.total_trips,
        stops=[
            RouteStopSchema(
                stop_id=v.stop_id,
                stop_name=v.stop.name if v.stop else "",
                latitude=v.stop.location.lat if v.stop else None,
                longitude=v.stop.location.lon if v.stop else None,
                arrival_time=v.arrival_time,
                departure_time=v.departure_time,
                stop_sequence=v.stop_sequence,
            )
            for v in detail.stops
        ],
    )
