"""
Event Bus — synchronous in-process dispatch for match events.

Design:
- Detectors emit, ambient/notification handlers subscribe
- Delivery is synchronous and ordered within one emit() call
- A bounded history (newest first) is kept for inspection only; late
  subscribers never receive past events
"""

import logging
from collections import deque
from datetime import datetime, timezone
from typing import Any, Callable, Dict, List, Optional

from matchpulse.telemetry import capture_exception, record_callback_error, record_event

logger = logging.getLogger("matchpulse.events")

# ── Event type constants ─────────────────────────────────────────────────────
GOAL = "GOAL"
MATCH_START = "MATCH_START"
MATCH_END = "MATCH_END"
# Reserved: upstream data does not carry cards/substitutions yet
RED_CARD = "RED_CARD"
SUBSTITUTION = "SUBSTITUTION"

EVENT_TYPES = (GOAL, MATCH_START, MATCH_END, RED_CARD, SUBSTITUTION)

DEFAULT_HISTORY_SIZE = 10


# ── Event ────────────────────────────────────────────────────────────────────
class Event:
    """Immutable event record."""

    __slots__ = ("event_type", "payload", "created_at")

    def __init__(self, event_type: str, payload: Dict[str, Any], created_at: Optional[datetime] = None):
        object.__setattr__(self, "event_type", event_type)
        object.__setattr__(self, "payload", payload)
        object.__setattr__(self, "created_at", created_at or datetime.now(timezone.utc))

    def __setattr__(self, name, value):
        raise AttributeError("Event is immutable")

    @property
    def match_id(self) -> Optional[int]:
        match = self.payload.get("match") if isinstance(self.payload, dict) else None
        return getattr(match, "id", None)

    def __repr__(self):
        return f"Event({self.event_type}, match_id={self.match_id})"


# ── EventBus ─────────────────────────────────────────────────────────────────
class EventBus:
    """
    Named-event publish/subscribe registry.

    Callbacks receive the event payload and run in subscription order.
    Registering the same callback twice for a type is a no-op. A callback
    that raises is logged and skipped; the remaining callbacks still run.
    """

    def __init__(self, history_size: int = DEFAULT_HISTORY_SIZE):
        self._handlers: Dict[str, List[Callable]] = {}
        self._history: deque = deque(maxlen=history_size)

    def on(self, event_type: str, handler: Callable[[Dict[str, Any]], None]) -> None:
        """Register a handler for an event type."""
        handlers = self._handlers.setdefault(event_type, [])
        if handler in handlers:
            return
        handlers.append(handler)
        logger.info(f"EventBus: subscribed {getattr(handler, '__name__', handler)} to {event_type}")

    def off(self, event_type: str, handler: Callable) -> None:
        handlers = self._handlers.get(event_type, [])
        if handler in handlers:
            handlers.remove(handler)

    def emit(self, event_type: str, payload: Dict[str, Any]) -> Event:
        """Record the event and deliver it to every handler for its type."""
        event = Event(event_type, payload)
        self._history.appendleft(event)
        record_event(event_type)
        logger.info(f"EventBus: emitted {event}")

        for handler in list(self._handlers.get(event_type, [])):
            try:
                handler(payload)
            except Exception as e:
                logger.error(
                    f"EventBus: handler {getattr(handler, '__name__', handler)} failed for {event}: {e}",
                    exc_info=True,
                )
                record_callback_error("event_bus")
                capture_exception(e, component="event_bus", event_type=event_type)
        return event

    @property
    def history(self) -> List[Event]:
        """Most recent events, newest first."""
        return list(self._history)

    def listener_count(self, event_type: str) -> int:
        return len(self._handlers.get(event_type, []))
