"""
Change detection over successive TrackedMatch observations.

The detector keeps one previous match, runs every registered detector
function against (previous, current) and then replaces the stored match.
"""

import copy
import logging
from datetime import datetime, timezone
from typing import Callable, Dict, Optional

from matchpulse.events.bus import GOAL, MATCH_END, MATCH_START, EventBus
from matchpulse.models import EVENT_LIVE_STATUSES, FINISHED, SCHEDULED, Match
from matchpulse.telemetry import capture_exception, record_detector_error

logger = logging.getLogger("matchpulse.live")

DetectorFn = Callable[[Match, Match], None]


class ChangeDetector:
    """Diffs consecutive observations of the tracked match."""

    def __init__(self):
        self._previous: Optional[Match] = None
        self._detectors: Dict[str, DetectorFn] = {}

    def register_detector(self, key: str, detector: DetectorFn) -> None:
        """Register (or replace) a detector under ``key``. Order is kept."""
        self._detectors[key] = detector

    def unregister_detector(self, key: str) -> None:
        self._detectors.pop(key, None)

    @property
    def detector_keys(self) -> list[str]:
        return list(self._detectors)

    @property
    def previous(self) -> Optional[Match]:
        return copy.deepcopy(self._previous)

    def reset(self) -> None:
        self._previous = None

    def process(self, current: Optional[Match]) -> None:
        """Compare ``current`` against the stored match, then store it."""
        if current is None:
            return

        if self._previous is None:
            # First observation: nothing to diff against
            self._previous = copy.deepcopy(current)
            return

        self.detect_changes(self._previous, current)
        self._previous = copy.deepcopy(current)

    def detect_changes(self, old: Match, new: Match) -> None:
        for key, detector in list(self._detectors.items()):
            try:
                detector(old, new)
            except Exception as e:
                logger.error(f"[DETECTOR] {key} failed: {e}", exc_info=True)
                record_detector_error(key)
                capture_exception(e, component="detector", detector=key)


class MatchEventDetector:
    """
    Emits MATCH_START, MATCH_END and GOAL on the event bus.

    Only one GOAL is emitted per comparison. When both sides scored between
    two polls, the home side is reported.
    """

    def __init__(self, bus: EventBus, clock: Callable[[], datetime] = None):
        self.bus = bus
        self._clock = clock or (lambda: datetime.now(timezone.utc))

    def __call__(self, old: Optional[Match], new: Optional[Match]) -> None:
        if old is None or new is None:
            return

        if old.status == SCHEDULED and new.status in EVENT_LIVE_STATUSES:
            self.bus.emit(MATCH_START, {"match": new, "timestamp": self._clock().isoformat()})

        if old.status in EVENT_LIVE_STATUSES and new.status == FINISHED:
            self.bus.emit(MATCH_END, {"match": new, "timestamp": self._clock().isoformat()})

        old_home, old_away = old.score.home_goals, old.score.away_goals
        new_home, new_away = new.score.home_goals, new.score.away_goals

        if new_home > old_home or new_away > old_away:
            team = "home" if new_home > old_home else "away"
            self.bus.emit(GOAL, {
                "team": team,
                "score": {"home": new_home, "away": new_away},
                "match": new,
            })
