"""Live refresh pipeline: adaptive polling, change detection, match-end notifier."""

from matchpulse.live.detector import ChangeDetector, MatchEventDetector
from matchpulse.live.notifier import JsonFlagStore, MatchEndNotifier, MemoryFlagStore, SyncNotifyClient
from matchpulse.live.poller import ACTIVITY_SIGNALS, AdaptivePoller, PollingModes

__all__ = [
    "ACTIVITY_SIGNALS",
    "AdaptivePoller",
    "ChangeDetector",
    "JsonFlagStore",
    "MatchEndNotifier",
    "MatchEventDetector",
    "MemoryFlagStore",
    "PollingModes",
    "SyncNotifyClient",
]
