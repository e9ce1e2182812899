"""
Composition root for the live pipeline.

Builds each long-lived component once and wires them together:

    poller --(match list)--> track_relevant_match --> detector --> bus
                                                                  |-> notifications
                                                                  |-> ambient effects

Collaborators receive the pieces they need from the LiveContext; nothing is
looked up through module globals.
"""

import logging
from dataclasses import dataclass, field
from datetime import datetime
from typing import Callable, List, Optional

from matchpulse.config import Settings
from matchpulse.etl.base import SnapshotSource
from matchpulse.etl.http_source import HTTPSnapshotSource
from matchpulse.events.bus import EventBus
from matchpulse.events.handlers import AmbientEffects, NotificationDispatcher, WebhookSink, log_notification
from matchpulse.live.detector import ChangeDetector, MatchEventDetector
from matchpulse.live.notifier import JsonFlagStore, MatchEndNotifier, SyncNotifyClient
from matchpulse.live.poller import AdaptivePoller, PollingModes
from matchpulse.models import Match, select_relevant_match
from matchpulse.state import AppState

logger = logging.getLogger(__name__)


@dataclass
class LiveContext:
    settings: Settings
    state: AppState
    bus: EventBus
    detector: ChangeDetector
    poller: AdaptivePoller
    source: SnapshotSource
    match_end_notifier: MatchEndNotifier
    notifications: NotificationDispatcher
    ambient: AmbientEffects
    _closers: List[Callable] = field(default_factory=list)

    def start(self) -> None:
        self.poller.start()

    async def close(self) -> None:
        await self.poller.shutdown()
        await self.match_end_notifier.drain()
        for closer in self._closers:
            await closer()


def make_match_tracker(detector: ChangeDetector, now: Callable[[], Optional[datetime]] = lambda: None):
    """Poller subscriber: feed the most relevant match to the detector."""

    def track_relevant_match(matches: List[Match]) -> None:
        match = select_relevant_match(matches, now=now())
        if match is not None:
            detector.process(match)

    return track_relevant_match


def build_live_context(settings: Settings, source: Optional[SnapshotSource] = None) -> LiveContext:
    """Construct and wire all pipeline components. Does not start polling."""
    closers = []

    if source is None:
        source = HTTPSnapshotSource(
            url=settings.DATA_URL,
            timeout=settings.HTTP_TIMEOUT_SECONDS,
            cache_ttl=settings.SNAPSHOT_CACHE_TTL_SECONDS,
        )
        closers.append(source.close)

    state = AppState()
    bus = EventBus(history_size=settings.EVENT_HISTORY_SIZE)

    detector = ChangeDetector()
    detector.register_detector("match_events", MatchEventDetector(bus))

    sync_client = SyncNotifyClient(settings.SYNC_NOTIFY_URL, timeout=settings.HTTP_TIMEOUT_SECONDS)
    closers.append(sync_client.close)
    match_end_notifier = MatchEndNotifier(JsonFlagStore(settings.NOTIFY_FLAGS_PATH), sync_client.notify)
    detector.register_detector("match_status", match_end_notifier)

    if settings.NOTIFY_WEBHOOK_URL:
        sink = WebhookSink(settings.NOTIFY_WEBHOOK_URL, timeout=settings.HTTP_TIMEOUT_SECONDS)
        closers.append(sink.close)
    else:
        sink = log_notification
    notifications = NotificationDispatcher(sink=sink)
    notifications.attach(bus)

    ambient = AmbientEffects(favorite_team_id=settings.FAVORITE_TEAM_ID)
    ambient.attach(bus)

    poller = AdaptivePoller(
        source=source,
        state=state,
        modes=PollingModes.from_settings(settings),
        inactivity_threshold=settings.INACTIVITY_THRESHOLD_SECONDS,
        error_threshold=settings.POLL_ERROR_THRESHOLD,
    )
    poller.subscribe(make_match_tracker(detector))

    logger.info(f"Live context built (data_url={settings.DATA_URL}, detectors={detector.detector_keys})")

    return LiveContext(
        settings=settings,
        state=state,
        bus=bus,
        detector=detector,
        poller=poller,
        source=source,
        match_end_notifier=match_end_notifier,
        notifications=notifications,
        ambient=ambient,
        _closers=closers,
    )
