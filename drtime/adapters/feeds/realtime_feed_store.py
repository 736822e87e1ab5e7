from __future__ import annotations

import asyncio
import logging
import time
from collections.abc import Callable
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, ClassVar

from drtime.adapters.feeds.gtfs_realtime import (
    decode_trip_updates,
    decode_vehicle_positions,
)
from drtime.app.ports.output import (
    IFeedFetcher,
    IRealtimeVehicleProvider,
    ITripUpdateProvider,
)
from drtime.domain.exceptions import FeedError
from drtime.domain.models.realtime import LiveFeedSnapshot, RealtimeVehicle

logger = logging.getLogger(__name__)


@dataclass(slots=True)
class _CachedRealtimeFeed:
    """In-process cache around a GTFS-Realtime feed.

    Notes:
      - If no fetcher is configured, the feed is always empty.
      - A failed, timed out or undecodable fetch yields the empty value, which is
        cached like any other so a dead upstream is hit once per TTL.
      - Concurrent callers that find the cache expired share one fetch.
    """

    fetcher: IFeedFetcher | None
    ttl_s: float = 30.0
    timeout_s: float = 20.0
    clock: Callable[[], float] = time.monotonic

    _lock: asyncio.Lock = field(default_factory=asyncio.Lock, init=False, repr=False)
    _cached: Any = field(default=None, init=False, repr=False)
    _expires_at: float = field(default=0.0, init=False)

    label: ClassVar[str] = "GTFS-Realtime feed"

    def _decode(self, content: bytes, fetched_at: datetime) -> Any:
        raise NotImplementedError

    def _empty(self, fetched_at: datetime) -> Any:
        raise NotImplementedError

    def _fresh(self) -> Any:
        if self._cached is not None and self.clock() < self._expires_at:
            return self._cached
        return None

    async def _get(self) -> Any:
        if self.fetcher is None:
            return self._empty(datetime.now(timezone.utc))

        cached = self._fresh()
        if cached is not None:
            return cached

        async with self._lock:
            cached = self._fresh()
            if cached is not None:
                return cached

            value = await self._refresh(self.fetcher)
            self._cached = value
            self._expires_at = self.clock() + self.ttl_s
            return value

    async def _refresh(self, fetcher: IFeedFetcher) -> Any:
        fetched_at = datetime.now(timezone.utc)
        try:
            content = await asyncio.wait_for(fetcher.fetch(), timeout=self.timeout_s)
            return self._decode(content, fetched_at)
        except asyncio.TimeoutError:
            logger.warning(
                "%s timed out after %.1fs; continuing without live data",
                self.label,
                self.timeout_s,
            )
        except FeedError as exc:
            logger.warning("%s unavailable (%s); continuing without live data", self.label, exc)
        except Exception:
            logger.exception("%s failed unexpectedly; continuing without live data", self.label)
        return self._empty(fetched_at)


@dataclass(slots=True)
class GtfsRealtimeTripUpdateProvider(_CachedRealtimeFeed, ITripUpdateProvider):
    """Live arrival/departure predictions from a GTFS-Realtime TripUpdates feed."""

    label: ClassVar[str] = "GTFS-Realtime TripUpdates"

    def _decode(self, content: bytes, fetched_at: datetime) -> LiveFeedSnapshot:
        updates = decode_trip_updates(content)
        logger.debug("Decoded %d trip updates", len(updates))
        return LiveFeedSnapshot.build(updates, fetched_at)

    def _empty(self, fetched_at: datetime) -> LiveFeedSnapshot:
        return LiveFeedSnapshot.build((), fetched_at)

    async def get_updates(self) -> LiveFeedSnapshot:
        return await self._get()


@dataclass(slots=True)
class GtfsRealtimeVehicleProvider(_CachedRealtimeFeed, IRealtimeVehicleProvider):
    """Vehicle positions from a GTFS-Realtime VehiclePositions feed."""

    label: ClassVar[str] = "GTFS-Realtime VehiclePositions"

    def _decode(
        self, content: bytes, fetched_at: datetime
    ) -> tuple[RealtimeVehicle, ...]:
        return decode_vehicle_positions(content)

    def _empty(self, fetched_at: datetime) -> tuple[RealtimeVehicle, ...]:
        return ()

    async def list_vehicles(self) -> tuple[RealtimeVehicle, ...]:
        return await self._get()
