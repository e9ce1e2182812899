"""HTTP snapshot source backed by the consolidated /api/data endpoint."""

import logging
from typing import Optional

import httpx

from matchpulse.etl.base import RATE_LIMITED, FetchResult, SnapshotSource
from matchpulse.models import Snapshot
from matchpulse.utils.cache import SimpleCache

logger = logging.getLogger(__name__)


class HTTPSnapshotSource(SnapshotSource):
    """
    Reads match/standings snapshots over HTTP.

    Non-forced reads are served from a TTL cache. No retries happen here:
    cadence and backoff belong to the poller, so every failure is returned
    as a FetchResult right away.
    """

    def __init__(
        self,
        url: str,
        timeout: float = 15.0,
        cache_ttl: float = 300.0,
        client: Optional[httpx.AsyncClient] = None,
    ):
        self.url = url
        self.client = client or httpx.AsyncClient(timeout=timeout)
        self._cache = SimpleCache(ttl=cache_ttl)

    async def fetch(self, force: bool = False) -> FetchResult:
        if not force:
            hit, snapshot = self._cache.get()
            if hit:
                return FetchResult.ok(snapshot)

        headers = {"Cache-Control": "no-cache"} if force else {}
        try:
            response = await self.client.get(self.url, headers=headers)
        except httpx.TimeoutException as e:
            logger.warning(f"Snapshot fetch timeout: {e}")
            return FetchResult.fail("Timeout")
        except httpx.RequestError as e:
            logger.warning(f"Snapshot request error: {e}")
            return FetchResult.fail(f"Network error: {e.__class__.__name__}")

        if response.status_code == 429:
            logger.warning("Snapshot endpoint rate limited (429)")
            return FetchResult.fail(RATE_LIMITED)

        if not response.is_success:
            logger.error(f"Snapshot endpoint HTTP {response.status_code}")
            return FetchResult.fail(f"HTTP {response.status_code}")

        try:
            payload = response.json()
        except ValueError as e:
            logger.error(f"Snapshot endpoint returned invalid JSON: {e}")
            return FetchResult.fail("Invalid JSON")

        if isinstance(payload, dict) and payload.get("error") and not payload.get("matches"):
            logger.error(f"Snapshot endpoint error body: {payload['error']}")
            return FetchResult.fail(str(payload["error"]))

        snapshot = Snapshot.from_payload(payload)
        self._cache.set(snapshot)
        logger.debug(
            f"Snapshot: {len(snapshot.matches)} matches "
            f"(live={len(snapshot.live)}, upcoming={len(snapshot.upcoming)}, finished={len(snapshot.finished)})"
        )
        return FetchResult.ok(snapshot)

    async def close(self) -> None:
        await self.client.aclose()
