"""
Adaptive Poller — snapshot polling with activity/state-aware cadence.

Modes (seconds, configurable):
- live      60   app state is live
- active   120   user interacted within the inactivity threshold
- idle     300   no recent interaction
- cooldown 600   after POLL_ERROR_THRESHOLD consecutive failures

Scheduling is a single one-shot APScheduler date job re-armed after each
cycle, never a fixed-rate interval job, so a slow fetch cannot overlap the
next cycle. Timer cycles and activity-triggered cycles share the
``is_polling`` guard.
"""

import asyncio
import logging
import time
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Callable, List, Optional

from apscheduler.job import Job
from apscheduler.jobstores.base import JobLookupError
from apscheduler.schedulers.asyncio import AsyncIOScheduler
from apscheduler.triggers.date import DateTrigger

from matchpulse.config import Settings
from matchpulse.etl.base import FetchResult, SnapshotSource
from matchpulse.models import Match, Snapshot
from matchpulse.state import ERROR, IDLE, LIVE, LOADING, OFFLINE, AppState
from matchpulse.telemetry import (
    capture_exception,
    record_callback_error,
    record_poll,
    record_schedule,
)

logger = logging.getLogger("matchpulse.poller")

MODE_LIVE = "live"
MODE_ACTIVE = "active"
MODE_IDLE = "idle"
MODE_COOLDOWN = "cooldown"

# Interaction signals that count as user activity
ACTIVITY_SIGNALS = frozenset({"pointermove", "mousemove", "keydown", "scroll", "click"})


@dataclass(frozen=True)
class PollingModes:
    """Interval per operating mode, in seconds."""

    live: float = 60.0
    active: float = 120.0
    idle: float = 300.0
    cooldown: float = 600.0

    @classmethod
    def from_settings(cls, settings: Settings) -> "PollingModes":
        return cls(
            live=settings.POLL_INTERVAL_LIVE_SECONDS,
            active=settings.POLL_INTERVAL_ACTIVE_SECONDS,
            idle=settings.POLL_INTERVAL_IDLE_SECONDS,
            cooldown=settings.POLL_INTERVAL_COOLDOWN_SECONDS,
        )

    def interval(self, mode: str) -> float:
        return getattr(self, mode)


class AdaptivePoller:
    """Polls a SnapshotSource and forwards match lists to subscribers."""

    def __init__(
        self,
        source: SnapshotSource,
        state: AppState,
        modes: Optional[PollingModes] = None,
        inactivity_threshold: float = 120.0,
        error_threshold: int = 3,
        clock: Callable[[], float] = time.monotonic,
        scheduler: Optional[AsyncIOScheduler] = None,
    ):
        self.source = source
        self.state = state
        self.modes = modes or PollingModes()
        self.inactivity_threshold = inactivity_threshold
        self.error_threshold = error_threshold
        self._clock = clock

        self.last_activity = clock()
        self.error_count = 0
        self.is_polling = False

        self.next_mode: Optional[str] = None
        self.next_interval: Optional[float] = None
        self.last_snapshot: Optional[Snapshot] = None
        self.last_success_at: Optional[datetime] = None
        self.last_error: Optional[str] = None

        self._subscribers: List[Callable[[List[Match]], None]] = []
        self._scheduler = scheduler or AsyncIOScheduler(timezone=timezone.utc)
        self._owns_scheduler = scheduler is None
        self._job: Optional[Job] = None
        self._tasks: set = set()
        self._running = False

    # ── Lifecycle ────────────────────────────────────────────────────────────
    def start(self) -> None:
        """Run the first cycle now; later cycles are timer-driven."""
        if self._running:
            return
        self._running = True
        if not self._scheduler.running:
            self._scheduler.start()
        logger.info("Poller: started")
        self.poll_now()

    def stop(self) -> None:
        """Cancel the pending timer. An in-flight fetch still completes."""
        self._running = False
        self._cancel_job()
        logger.info("Poller: stopped")

    async def shutdown(self) -> None:
        self.stop()
        if self._tasks:
            await asyncio.gather(*list(self._tasks), return_exceptions=True)
        if self._owns_scheduler and self._scheduler.running:
            self._scheduler.shutdown(wait=False)

    @property
    def running(self) -> bool:
        return self._running

    @property
    def has_pending_timer(self) -> bool:
        if self._job is None:
            return False
        return self._scheduler.get_job(self._job.id) is not None

    # ── Subscriptions ────────────────────────────────────────────────────────
    def subscribe(self, callback: Callable[[List[Match]], None]) -> Callable[[], None]:
        """Register a match-list callback. Returns an unsubscribe function."""
        if callback not in self._subscribers:
            self._subscribers.append(callback)

        def unsubscribe() -> None:
            if callback in self._subscribers:
                self._subscribers.remove(callback)

        return unsubscribe

    def _notify(self, matches: List[Match]) -> None:
        for callback in list(self._subscribers):
            try:
                callback(list(matches))
            except Exception as e:
                logger.error(f"Poller: subscriber {getattr(callback, '__name__', callback)} failed: {e}", exc_info=True)
                record_callback_error("poller")
                capture_exception(e, component="poller")

    # ── Mode selection ───────────────────────────────────────────────────────
    def is_user_active(self) -> bool:
        return (self._clock() - self.last_activity) < self.inactivity_threshold

    def select_mode(self) -> str:
        """Priority: error cooldown > live > user activity."""
        if self.error_count >= self.error_threshold:
            return MODE_COOLDOWN

        if self.state.is_live():
            return MODE_LIVE

        return MODE_ACTIVE if self.is_user_active() else MODE_IDLE

    # ── Cycle ────────────────────────────────────────────────────────────────
    def poll_now(self) -> asyncio.Task:
        """Run an out-of-schedule cycle (subject to the in-flight guard)."""
        task = asyncio.get_running_loop().create_task(self.tick())
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)
        return task

    async def tick(self) -> None:
        """One poll cycle. Never raises."""
        if self.is_polling:
            logger.debug("Poller: cycle skipped, poll already in flight")
            record_poll("skipped")
            return

        self.is_polling = True
        try:
            if self.last_snapshot is None and self.state.get_state() == IDLE:
                self.state.set_state(LOADING)

            start = time.perf_counter()
            try:
                result = await self.source.fetch(force=True)
            except Exception as e:
                logger.error(f"Poller: snapshot source raised: {e}", exc_info=True)
                result = FetchResult.fail(str(e) or e.__class__.__name__)
            latency_ms = (time.perf_counter() - start) * 1000

            if result.success:
                record_poll("ok", latency_ms)
                self._handle_success(result.data)
            else:
                record_poll("rate_limited" if result.is_rate_limited else "error", latency_ms)
                self._handle_error(result)
        except Exception as e:
            # Bookkeeping bug; keep polling on the retry cadence
            logger.error(f"Poller: cycle failed: {e}", exc_info=True)
            capture_exception(e, component="poller")
            self._schedule_next(MODE_ACTIVE)
        finally:
            self.is_polling = False

    def _handle_success(self, snapshot: Snapshot) -> None:
        self.error_count = 0
        self.last_error = None
        self.last_snapshot = snapshot
        self.last_success_at = datetime.now(timezone.utc)

        if self.state.get_state() != OFFLINE:
            self.state.set_state(LIVE if snapshot.live else IDLE)

        self._notify(list(snapshot.matches))
        self._schedule_next(self.select_mode())

    def _handle_error(self, result: FetchResult) -> None:
        error = result.error or "Unknown Error"
        self.last_error = error

        if result.is_rate_limited:
            logger.warning("Poller: rate limit hit, backing off to idle")
            self._schedule_next(MODE_IDLE)
            return

        self.error_count += 1
        logger.error(f"Poller: error ({self.error_count}/{self.error_threshold}): {error}")

        current = self.state.get_state()
        if current != OFFLINE and (self.error_count >= self.error_threshold or current == LOADING):
            self.state.set_state(ERROR)

        if self.error_count >= self.error_threshold:
            if self.error_count == self.error_threshold:
                logger.warning(f"Poller: entering error cooldown ({self.modes.cooldown:.0f}s)")
            self._schedule_next(MODE_COOLDOWN)
        else:
            self._schedule_next(MODE_ACTIVE)  # retry sooner

    def _schedule_next(self, mode: str) -> None:
        interval = self.modes.interval(mode)
        self.next_mode = mode
        self.next_interval = interval
        record_schedule(mode, interval, self.error_count)

        self._cancel_job()
        if not self._running:
            return

        # Fresh job id per cycle: a finishing run never blocks its successor
        run_at = datetime.now(timezone.utc) + timedelta(seconds=interval)
        self._job = self._scheduler.add_job(
            self.tick,
            trigger=DateTrigger(run_date=run_at),
            name=f"Live poll ({mode})",
            misfire_grace_time=None,
        )
        logger.debug(f"Poller: next cycle in {interval:.0f}s (mode={mode})")

    def _cancel_job(self) -> None:
        if self._job is None:
            return
        try:
            self._job.remove()
        except JobLookupError:
            pass  # already fired
        self._job = None

    # ── User activity ────────────────────────────────────────────────────────
    def record_activity(self, signal: str = "click") -> Optional[asyncio.Task]:
        """
        Register a user interaction signal.

        Coming back from inactivity triggers an immediate cycle unless one is
        in flight or the app is live (live cadence is already the fastest).
        Returns the spawned task, if any.
        """
        if signal not in ACTIVITY_SIGNALS:
            logger.debug(f"Poller: ignoring unknown activity signal {signal!r}")
            return None

        now = self._clock()
        was_inactive = (now - self.last_activity) >= self.inactivity_threshold
        self.last_activity = now

        if was_inactive and not self.is_polling and not self.state.is_live():
            logger.info("Poller: user active again, polling now")
            return self.poll_now()
        return None

    def status(self) -> dict:
        return {
            "running": self._running,
            "is_polling": self.is_polling,
            "error_count": self.error_count,
            "next_mode": self.next_mode,
            "next_interval_seconds": self.next_interval,
            "user_active": self.is_user_active(),
            "last_success_at": self.last_success_at.isoformat() if self.last_success_at else None,
            "last_error": self.last_error,
        }
