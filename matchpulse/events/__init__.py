"""
In-process event infrastructure for live match events.

Usage:
    from matchpulse.events import EventBus, GOAL

    bus = EventBus()
    bus.on(GOAL, on_goal)
    bus.emit(GOAL, {"team": "home", "score": {"home": 1, "away": 0}, "match": match})
"""

from matchpulse.events.bus import (
    EVENT_TYPES,
    GOAL,
    MATCH_END,
    MATCH_START,
    RED_CARD,
    SUBSTITUTION,
    Event,
    EventBus,
)

__all__ = [
    "EVENT_TYPES",
    "GOAL",
    "MATCH_END",
    "MATCH_START",
    "RED_CARD",
    "SUBSTITUTION",
    "Event",
    "EventBus",
]
