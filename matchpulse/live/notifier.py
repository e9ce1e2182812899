"""
Match-end side channel.

When the tracked match leaves a live-like status for a finished one, the
sync worker is told once per match so it can persist the final result.
Dedupe uses a persisted flag per match id (``match_end_notified_<id>``);
the flag is only written after the worker acknowledged the request.
"""

import asyncio
import json
import logging
from pathlib import Path
from typing import Awaitable, Callable, Dict, Optional

import httpx

from matchpulse.models import FINISHED_STATUSES, LIVE_LIKE_STATUSES, Match
from matchpulse.telemetry import capture_exception, record_match_end_notification

logger = logging.getLogger("matchpulse.live")

FLAG_PREFIX = "match_end_notified_"


# ── Flag stores ──────────────────────────────────────────────────────────────
class MemoryFlagStore:
    """Process-local flags (tests, ephemeral runs)."""

    def __init__(self):
        self._flags: Dict[str, str] = {}

    def is_set(self, key: str) -> bool:
        return key in self._flags

    def set(self, key: str) -> None:
        self._flags[key] = "true"


class JsonFlagStore:
    """Flags persisted to a small JSON file so restarts do not re-notify."""

    def __init__(self, path: str):
        self.path = Path(path)
        self._flags: Optional[Dict[str, str]] = None

    def _load(self) -> Dict[str, str]:
        if self._flags is None:
            try:
                data = json.loads(self.path.read_text(encoding="utf-8"))
                self._flags = data if isinstance(data, dict) else {}
            except FileNotFoundError:
                self._flags = {}
            except (OSError, ValueError) as e:
                logger.warning(f"FlagStore: unreadable {self.path} ({e}), starting empty")
                self._flags = {}
        return self._flags

    def is_set(self, key: str) -> bool:
        return key in self._load()

    def set(self, key: str) -> None:
        flags = self._load()
        flags[key] = "true"
        self.path.parent.mkdir(parents=True, exist_ok=True)
        self.path.write_text(json.dumps(flags, indent=2, sort_keys=True), encoding="utf-8")


# ── Transport ────────────────────────────────────────────────────────────────
class SyncNotifyClient:
    """GET <url>?matchId=<id> against the sync-notify function."""

    def __init__(self, url: str, timeout: float = 10.0, client: Optional[httpx.AsyncClient] = None):
        self.url = url
        self.client = client or httpx.AsyncClient(timeout=timeout)

    async def notify(self, match_id: str) -> bool:
        response = await self.client.get(self.url, params={"matchId": match_id})
        if response.is_success:
            logger.info(f"[MATCH_END] Worker notified for match {match_id}")
            return True
        logger.error(f"[MATCH_END] Worker notification failed with status: {response.status_code}")
        return False

    async def close(self) -> None:
        await self.client.aclose()


# ── Detector ─────────────────────────────────────────────────────────────────
class MatchEndNotifier:
    """
    Detector: live-like -> finished-like triggers one notification per match.

    The request runs as a task on the running loop so detection stays
    synchronous. A second transition for a match whose request is still in
    flight is dropped.
    """

    def __init__(self, flags, send: Callable[[str], Awaitable[bool]]):
        self.flags = flags
        self._send = send
        self._pending: Dict[str, asyncio.Task] = {}

    def __call__(self, old: Optional[Match], new: Optional[Match]) -> None:
        if old is None or new is None:
            return

        if old.status in LIVE_LIKE_STATUSES and new.status in FINISHED_STATUSES:
            logger.info(f"[MATCH_END] Match end detected: {old.status} -> {new.status}")
            self._dispatch(new)

    def _dispatch(self, match: Match) -> None:
        match_id = str(match.id) if match.id is not None else "current"
        key = f"{FLAG_PREFIX}{match_id}"

        if self.flags.is_set(key) or match_id in self._pending:
            logger.debug(f"[MATCH_END] match {match_id} already notified, skipping")
            record_match_end_notification("deduped")
            return

        task = asyncio.get_running_loop().create_task(self._notify(match_id, key))
        self._pending[match_id] = task
        task.add_done_callback(lambda _t: self._pending.pop(match_id, None))

    async def _notify(self, match_id: str, key: str) -> bool:
        try:
            ok = await self._send(match_id)
        except Exception as e:
            logger.error(f"[MATCH_END] Error notifying worker for match {match_id}: {e}")
            record_match_end_notification("failed")
            capture_exception(e, component="match_end_notifier")
            return False

        if not ok:
            record_match_end_notification("failed")
            return False

        self.flags.set(key)
        record_match_end_notification("sent")
        return True

    @property
    def pending_count(self) -> int:
        return len(self._pending)

    async def drain(self) -> None:
        """Wait for in-flight notifications (shutdown, tests)."""
        if self._pending:
            await asyncio.gather(*list(self._pending.values()), return_exceptions=True)
