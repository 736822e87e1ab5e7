from __future__ import annotations

import dataclasses
import logging
from dataclasses import dataclass
from datetime import datetime, timezone

from drtime.app.ports.output import (
    IRealtimeVehicleProvider,
    IStaticFeedStore,
    ITripUpdateProvider,
)
from drtime.domain.exceptions import FeedError
from drtime.domain.models.realtime import LiveFeedSnapshot, RealtimeVehicle

logger = logging.getLogger(__name__)


@dataclass(slots=True)
class RealtimeViewService:
    """Supports the live map view with realtime vehicles and trip updates (if configured)."""

    vehicle_provider: IRealtimeVehicleProvider | None = None
    trip_updates: ITripUpdateProvider | None = None
    static_store: IStaticFeedStore | None = None

    async def list_vehicles(
        self, *, route_ids: set[str] | None = None
    ) -> tuple[RealtimeVehicle, ...]:
        if self.vehicle_provider is None:
            return ()

        vehicles = await self.vehicle_provider.list_vehicles()
        if route_ids:
            vehicles = tuple(
                v for v in vehicles if v.route_id and v.route_id in route_ids
            )
        return vehicles

    async def list_trip_updates(
        self, *, route_ids: set[str] | None = None
    ) -> LiveFeedSnapshot:
        """Current trip updates, optionally limited to some routes.

        Updates whose descriptor omits the route get it from the static feed
        when one is configured, so the route filter still applies to them.
        """

        if self.trip_updates is None:
            return LiveFeedSnapshot.build((), datetime.now(timezone.utc))

        live = await self.trip_updates.get_updates()
        updates = live.updates

        if self.static_store is not None and any(u.route_id is None for u in updates):
            try:
                trips = (await self.static_store.get_snapshot()).trips_by_id
            except FeedError as exc:
                logger.warning("Route lookup for trip updates skipped: %s", exc)
                trips = {}
            updates = tuple(
                dataclasses.replace(u, route_id=trips[u.trip_id].route_id)
                if u.route_id is None and u.trip_id in trips
                else u
                for u in updates
            )

        if route_ids:
            updates = tuple(u for u in updates if u.route_id in route_ids)
        return LiveFeedSnapshot.build(updates, live.fetched_at)
