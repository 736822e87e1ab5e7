from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, field
from pathlib import Path

import httpx

from drtime.app.ports.output import IFeedFetcher
from drtime.domain.exceptions import FeedFetchError

logger = logging.getLogger(__name__)

PROTOBUF_ACCEPT = {"Accept": "application/x-protobuf"}


@dataclass(slots=True)
class HttpFeedFetcher(IFeedFetcher):
    """Downloads a feed payload as a binary blob over HTTP(S)."""

    url: str
    timeout_s: float = 20.0
    headers: dict[str, str] = field(default_factory=dict)

    async def fetch(self) -> bytes:
        logger.debug("GET %s", self.url)
        try:
            async with httpx.AsyncClient(
                timeout=self.timeout_s, follow_redirects=True
            ) as client:
                resp = await client.get(self.url, headers=self.headers)
                resp.raise_for_status()
                return resp.content
        except httpx.HTTPStatusError as exc:
            raise FeedFetchError(
                f"{self.url} returned HTTP {exc.response.status_code}"
            ) from exc
        except httpx.HTTPError as exc:
            raise FeedFetchError(
                f"Failed to fetch {self.url}: {type(exc).__name__}: {exc}"
            ) from exc


@dataclass(slots=True)
class FileFeedFetcher(IFeedFetcher):
    """Reads a feed payload from local disk (offline/dev mode)."""

    path: str | Path

    async def fetch(self) -> bytes:
        path = Path(self.path)
        try:
            return await asyncio.to_thread(path.read_bytes)
        except OSError as exc:
            raise FeedFetchError(f"Failed to read {path}: {exc}") from exc
