from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from zoneinfo import ZoneInfo

from fastapi import Request

from drtime.adapters.config import FeedRuntimeConfig
from drtime.adapters.feeds.fetchers import (
    PROTOBUF_ACCEPT,
    FileFeedFetcher,
    HttpFeedFetcher,
)
from drtime.adapters.feeds.realtime_feed_store import (
    GtfsRealtimeTripUpdateProvider,
    GtfsRealtimeVehicleProvider,
)
from drtime.adapters.feeds.static_feed_store import CachedStaticFeedStore
from drtime.app.ports.output import IFeedFetcher, IStaticFeedStore
from drtime.app.services.nearby_stops_service import NearbyStopsService
from drtime.app.services.realtime_view_service import RealtimeViewService
from drtime.app.services.route_catalog_service import RouteCatalogService


@dataclass(frozen=True, slots=True)
class Services:
    """Application services built once at startup and shared by all requests."""

    static_store: IStaticFeedStore
    nearby_stops: NearbyStopsService
    route_catalog: RouteCatalogService
    realtime_view: RealtimeViewService


def _realtime_fetcher(url: str | None, cfg: FeedRuntimeConfig) -> IFeedFetcher | None:
    if not url:
        return None
    return HttpFeedFetcher(
        url=url,
        timeout_s=cfg.realtime_timeout_s,
        headers={**PROTOBUF_ACCEPT, **cfg.realtime_headers},
    )


def build_services(cfg: FeedRuntimeConfig) -> Services:
    static_fetcher: IFeedFetcher
    if cfg.static_path:
        static_fetcher = FileFeedFetcher(path=cfg.static_path)
    elif cfg.static_url:
        static_fetcher = HttpFeedFetcher(url=cfg.static_url, timeout_s=cfg.static_timeout_s)
    else:
        raise RuntimeError("Missing GTFS_STATIC_URL or GTFS_PATH")

    static_store = CachedStaticFeedStore(
        fetcher=static_fetcher,
        ttl_s=cfg.static_ttl_s,
        serve_stale=cfg.static_serve_stale,
    )
    trip_updates = GtfsRealtimeTripUpdateProvider(
        fetcher=_realtime_fetcher(cfg.trip_updates_url, cfg),
        ttl_s=cfg.realtime_ttl_s,
        timeout_s=cfg.realtime_timeout_s,
    )
    vehicles = GtfsRealtimeVehicleProvider(
        fetcher=_realtime_fetcher(cfg.vehicle_positions_url, cfg),
        ttl_s=cfg.realtime_ttl_s,
        timeout_s=cfg.realtime_timeout_s,
    )

    tz = ZoneInfo(cfg.timezone)
    nearby = NearbyStopsService(
        static_store=static_store,
        trip_updates=trip_updates,
        now=lambda: datetime.now(tz),
        radius_km=cfg.nearby_radius_km,
        max_results=cfg.nearby_max_results,
        max_concurrency=cfg.nearby_max_concurrency,
    )

    return Services(
        static_store=static_store,
        nearby_stops=nearby,
        route_catalog=RouteCatalogService(static_store=static_store),
        realtime_view=RealtimeViewService(
            vehicle_provider=vehicles,
            trip_updates=trip_updates,
            static_store=static_store,
        ),
    )


def _services(request: Request) -> Services:
    return request.app.state.services


def get_nearby_stops_service(request: Request) -> NearbyStopsService:
    return _services(request).nearby_stops


def get_route_catalog_service(request: Request) -> RouteCatalogService:
    return _services(request).route_catalog


def get_realtime_view_service(request: Request) -> RealtimeViewService:
    return _services(request).realtime_view
