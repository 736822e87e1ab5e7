from __future__ import annotations

from abc import ABC, abstractmethod

from drtime.domain.models.gtfs import StaticFeedSnapshot


class IStaticFeedStore(ABC):
    """Port for the cached static GTFS snapshot."""

    @abstractmethod
    async def get_snapshot(self) -> StaticFeedSnapshot:
        raise NotImplementedError
