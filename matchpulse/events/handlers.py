"""
Event consumers: user notifications and ambient effects.

Both are plain objects wired onto the bus by the composition root:

    dispatcher = NotificationDispatcher(sink=log_notification)
    dispatcher.attach(bus)

    ambient = AmbientEffects(favorite_team_id=81)
    ambient.attach(bus)
"""

import asyncio
import logging
import time
from dataclasses import dataclass
from typing import Any, Callable, Dict, Optional

import httpx

from matchpulse.events.bus import GOAL, MATCH_END, MATCH_START, RED_CARD, EventBus

logger = logging.getLogger("matchpulse.events")


# ═══════════════════════════════════════════════════════════════════
# Notifications
# ═══════════════════════════════════════════════════════════════════


@dataclass(frozen=True)
class Notification:
    title: str
    body: str
    event_type: str
    match_id: Optional[int] = None


def log_notification(notification: Notification) -> None:
    """Default sink: write the notification to the log."""
    logger.info(f"[NOTIFY] {notification.title} | {notification.body}")


class WebhookSink:
    """POSTs notifications as JSON to a webhook. Fire-and-forget."""

    def __init__(self, url: str, timeout: float = 10.0, client: Optional[httpx.AsyncClient] = None):
        self.url = url
        self.client = client or httpx.AsyncClient(timeout=timeout)
        self._tasks: set = set()

    def __call__(self, notification: Notification) -> None:
        task = asyncio.get_running_loop().create_task(self._post(notification))
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)

    async def _post(self, notification: Notification) -> None:
        try:
            response = await self.client.post(self.url, json={
                "title": notification.title,
                "body": notification.body,
                "event_type": notification.event_type,
                "match_id": notification.match_id,
            })
            response.raise_for_status()
        except httpx.HTTPError as e:
            logger.warning(f"[NOTIFY] Webhook delivery failed: {e}")

    async def close(self) -> None:
        if self._tasks:
            await asyncio.gather(*list(self._tasks), return_exceptions=True)
        await self.client.aclose()


def _score_str(home: Any, away: Any) -> str:
    return f"{home if home is not None else 0} - {away if away is not None else 0}"


class NotificationDispatcher:
    """Turns GOAL / MATCH_START / MATCH_END payloads into user notifications."""

    def __init__(self, sink: Callable[[Notification], None] = log_notification):
        self.sink = sink

    def attach(self, bus: EventBus) -> None:
        bus.on(GOAL, self.on_goal)
        bus.on(MATCH_START, self.on_match_start)
        bus.on(MATCH_END, self.on_match_end)

    def on_goal(self, payload: Dict[str, Any]) -> None:
        match = payload["match"]
        team = match.home_team if payload.get("team") == "home" else match.away_team
        score = payload.get("score") or {}
        self.sink(Notification(
            title="GOAL!",
            body=f"{team.short_name} scores! Score: {_score_str(score.get('home'), score.get('away'))}",
            event_type=GOAL,
            match_id=match.id,
        ))

    def on_match_start(self, payload: Dict[str, Any]) -> None:
        match = payload["match"]
        self.sink(Notification(
            title="Kick-off",
            body=f"{match.home_team.short_name} vs {match.away_team.short_name}",
            event_type=MATCH_START,
            match_id=match.id,
        ))

    def on_match_end(self, payload: Dict[str, Any]) -> None:
        match = payload["match"]
        self.sink(Notification(
            title="Full time",
            body=f"Final score: {_score_str(match.score.home, match.score.away)}",
            event_type=MATCH_END,
            match_id=match.id,
        ))


# ═══════════════════════════════════════════════════════════════════
# Ambient effects
# ═══════════════════════════════════════════════════════════════════

AMBIENT_COLORS = {
    "default": "#1a1a2e",
    "favorite_goal": "#00D9FF",
    "opponent_goal": "#FF4444",
    "red_card": "#CC0000",
    "live_pulse": "#FFD700",
}


class AmbientEffects:
    """
    Background-colour effect driven by match events.

    Effects expire lazily: reading ``current_effect`` after the duration has
    passed yields ``default``. No timers are kept.
    """

    def __init__(self, favorite_team_id: Optional[int] = None, clock: Callable[[], float] = time.monotonic):
        self.favorite_team_id = favorite_team_id
        self._clock = clock
        self._effect = "default"
        self._expires_at: Optional[float] = None

    def attach(self, bus: EventBus) -> None:
        bus.on(GOAL, self.on_goal)
        bus.on(MATCH_START, self.on_match_start)
        bus.on(MATCH_END, self.on_match_end)
        bus.on(RED_CARD, self.on_red_card)

    def on_goal(self, payload: Dict[str, Any]) -> None:
        match = payload.get("match")
        team = payload.get("team")
        is_favorite = False
        if match is not None:
            scorer = match.home_team if team == "home" else match.away_team
            is_favorite = scorer.id is not None and scorer.id == self.favorite_team_id
        self.set_effect("favorite_goal" if is_favorite else "opponent_goal", 8.0)

    def on_match_start(self, payload: Dict[str, Any]) -> None:
        self.set_effect("live_pulse", 5.0)

    def on_match_end(self, payload: Dict[str, Any]) -> None:
        self.reset()

    def on_red_card(self, payload: Dict[str, Any]) -> None:
        self.set_effect("red_card", 10.0)

    def set_effect(self, effect: str, duration: float = 5.0) -> None:
        if effect not in AMBIENT_COLORS:
            effect = "default"
        self._effect = effect
        self._expires_at = None if effect == "default" else self._clock() + duration

    def reset(self) -> None:
        self._effect = "default"
        self._expires_at = None

    @property
    def current_effect(self) -> str:
        if self._expires_at is not None and self._clock() >= self._expires_at:
            self.reset()
        return self._effect

    @property
    def color(self) -> str:
        return AMBIENT_COLORS[self.current_effect]
