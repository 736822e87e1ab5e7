from __future__ import annotations

from abc import ABC, abstractmethod

from drtime.domain.models.realtime import LiveFeedSnapshot


class ITripUpdateProvider(ABC):
    """Port for GTFS-Realtime trip updates.

    Implementations never raise: an unavailable feed is an empty snapshot.
    """

    @abstractmethod
    async def get_updates(self) -> LiveFeedSnapshot:
        raise NotImplementedError
