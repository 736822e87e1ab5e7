from __future__ import annotations

import asyncio
import dataclasses
import logging
import time
from collections.abc import Callable
from dataclasses import dataclass, field
from datetime import datetime, timezone

from drtime.adapters.feeds.gtfs_archive import parse_gtfs_archive
from drtime.app.ports.output import IFeedFetcher, IStaticFeedStore
from drtime.domain.exceptions import FeedError
from drtime.domain.models.gtfs import StaticFeedSnapshot

logger = logging.getLogger(__name__)


@dataclass(slots=True)
class CachedStaticFeedStore(IStaticFeedStore):
    """Static GTFS snapshot cached in-process for `ttl_s` seconds.

    Notes:
      - Refresh is a full download and parse; the new snapshot replaces the old
        one in a single assignment.
      - Concurrent callers that find the cache stale share one refresh.
      - If a refresh fails and `serve_stale` is set, the previous snapshot is
        returned flagged `is_stale` and the refresh is retried after
        `retry_after_s`.
    """

    fetcher: IFeedFetcher
    ttl_s: float = 3600.0
    serve_stale: bool = True
    retry_after_s: float = 60.0
    clock: Callable[[], float] = time.monotonic

    _lock: asyncio.Lock = field(default_factory=asyncio.Lock, init=False, repr=False)
    _snapshot: StaticFeedSnapshot | None = field(default=None, init=False)
    _expires_at: float = field(default=0.0, init=False)

    def _fresh_snapshot(self) -> StaticFeedSnapshot | None:
        if self._snapshot is not None and self.clock() < self._expires_at:
            return self._snapshot
        return None

    async def get_snapshot(self) -> StaticFeedSnapshot:
        cached = self._fresh_snapshot()
        if cached is not None:
            return cached

        async with self._lock:
            # Another caller may have refreshed while we waited.
            cached = self._fresh_snapshot()
            if cached is not None:
                return cached

            previous = self._snapshot
            try:
                snapshot = await self._load()
            except FeedError:
                if previous is None or not self.serve_stale:
                    logger.exception("Static GTFS refresh failed")
                    raise
                logger.warning(
                    "Static GTFS refresh failed; serving snapshot fetched at %s",
                    previous.fetched_at.isoformat(),
                    exc_info=True,
                )
                stale = (
                    previous
                    if previous.is_stale
                    else dataclasses.replace(previous, is_stale=True)
                )
                self._snapshot = stale
                self._expires_at = self.clock() + self.retry_after_s
                return stale

            self._snapshot = snapshot
            self._expires_at = self.clock() + self.ttl_s
            return snapshot

    async def _load(self) -> StaticFeedSnapshot:
        logger.info("Refreshing static GTFS feed")
        started = time.perf_counter()

        content = await self.fetcher.fetch()
        fetched_at = datetime.now(timezone.utc)
        # Parsing a large feed is CPU bound; keep the event loop responsive.
        snapshot = await asyncio.to_thread(
            parse_gtfs_archive, content, fetched_at=fetched_at
        )

        logger.info(
            "Static GTFS feed loaded in %.1fs: %d routes, %d trips, %d stops, %d stop times",
            time.perf_counter() - started,
            len(snapshot.routes_by_id),
            len(snapshot.trips_by_id),
            len(snapshot.stops_by_id),
            len(snapshot.stop_times),
        )
        return snapshot
