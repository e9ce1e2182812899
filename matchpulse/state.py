"""Observable application state for the live client.

One ``AppState`` is built by the composition root and handed to the poller
and the service layer; there is no module-level instance.
"""

import logging
from typing import Callable

from matchpulse.telemetry import capture_exception, record_callback_error, record_state_transition

logger = logging.getLogger("matchpulse.state")

IDLE = "idle"
LOADING = "loading"
LIVE = "live"
ERROR = "error"
OFFLINE = "offline"

VALID_STATES = (IDLE, LOADING, LIVE, ERROR, OFFLINE)


class AppState:
    """
    Finite-state value over idle/loading/live/error/offline.

    Subscribers are called synchronously in registration order after every
    real transition. Setting the current value again notifies nobody.
    """

    def __init__(self, online: bool = True):
        self._state = IDLE if online else OFFLINE
        self._listeners: list[Callable[[str], None]] = []

    def get_state(self) -> str:
        return self._state

    @property
    def state(self) -> str:
        return self._state

    def is_live(self) -> bool:
        return self._state == LIVE

    def set_state(self, new_state: str) -> bool:
        """Transition to ``new_state``. Returns True if subscribers were notified."""
        if self._state == new_state:
            return False

        if new_state not in VALID_STATES:
            logger.warning(f"AppState: invalid state attempted: {new_state!r}")
            return False

        old_state = self._state
        self._state = new_state
        logger.info(f"AppState: {old_state} -> {new_state}")
        record_state_transition(new_state)
        self._notify()
        return True

    def subscribe(self, callback: Callable[[str], None]) -> Callable[[], None]:
        """
        Register a listener and call it once with the current state.

        Returns an unsubscribe function.
        """
        if callback not in self._listeners:
            self._listeners.append(callback)
        self._call(callback)

        def unsubscribe() -> None:
            if callback in self._listeners:
                self._listeners.remove(callback)

        return unsubscribe

    def set_online(self, online: bool) -> None:
        """Feed a connectivity signal from the environment."""
        if not online:
            self.set_state(OFFLINE)
        elif self._state == OFFLINE:
            # The next poll cycle decides whether we are live again
            self.set_state(IDLE)

    def _notify(self) -> None:
        for callback in list(self._listeners):
            self._call(callback)

    def _call(self, callback: Callable[[str], None]) -> None:
        try:
            callback(self._state)
        except Exception as e:
            logger.error(f"AppState: subscriber {getattr(callback, '__name__', callback)} failed: {e}", exc_info=True)
            record_callback_error("app_state")
            capture_exception(e, component="app_state")
