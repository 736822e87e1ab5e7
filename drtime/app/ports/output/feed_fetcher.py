from __future__ import annotations

from abc import ABC, abstractmethod


class IFeedFetcher(ABC):
    """Port for retrieving a raw feed payload (zip archive or protobuf)."""

    @abstractmethod
    async def fetch(self) -> bytes:
        """Return the payload bytes or raise FeedFetchError."""
