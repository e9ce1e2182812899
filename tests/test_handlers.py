"""Tests for notification and ambient-effect event consumers."""

import pytest

from matchpulse.events import GOAL, MATCH_END, MATCH_START, RED_CARD, EventBus
from matchpulse.events.handlers import AMBIENT_COLORS, AmbientEffects, NotificationDispatcher


@pytest.fixture
def bus():
    return EventBus()


class TestNotificationDispatcher:
    """Event payload -> user-facing notification."""

    @pytest.fixture
    def sent(self, bus):
        sent = []
        NotificationDispatcher(sink=sent.append).attach(bus)
        return sent

    def test_goal_names_scoring_team(self, bus, sent, make_match):
        bus.emit(GOAL, {"team": "away", "score": {"home": 1, "away": 2}, "match": make_match(status="IN_PLAY")})

        assert len(sent) == 1
        assert sent[0].event_type == GOAL
        assert sent[0].body == "Real Madrid scores! Score: 1 - 2"
        assert sent[0].match_id == 1001

    def test_match_start(self, bus, sent, make_match):
        bus.emit(MATCH_START, {"match": make_match(status="IN_PLAY"), "timestamp": "t"})
        assert sent[0].body == "Barça vs Real Madrid"

    def test_match_end_with_missing_score(self, bus, sent, make_match):
        bus.emit(MATCH_END, {"match": make_match(status="FINISHED", home=2, away=None), "timestamp": "t"})
        assert sent[0].body == "Final score: 2 - 0"


class TestAmbientEffects:
    """Effect selection and lazy expiry."""

    @pytest.fixture
    def ambient(self, bus, clock):
        ambient = AmbientEffects(favorite_team_id=81, clock=clock)
        ambient.attach(bus)
        return ambient

    def test_default(self, ambient):
        assert ambient.current_effect == "default"
        assert ambient.color == AMBIENT_COLORS["default"]

    def test_favorite_goal(self, bus, ambient, make_match):
        bus.emit(GOAL, {"team": "home", "score": {"home": 1, "away": 0}, "match": make_match(home_id=81)})
        assert ambient.current_effect == "favorite_goal"

    def test_opponent_goal(self, bus, ambient, make_match):
        bus.emit(GOAL, {"team": "away", "score": {"home": 0, "away": 1}, "match": make_match(home_id=81)})
        assert ambient.current_effect == "opponent_goal"

    def test_favorite_playing_away(self, bus, ambient, make_match):
        bus.emit(GOAL, {"team": "away", "score": {"home": 0, "away": 1}, "match": make_match(home_id=86, away_id=81)})
        assert ambient.current_effect == "favorite_goal"

    def test_effect_expires(self, bus, ambient, clock, make_match):
        bus.emit(MATCH_START, {"match": make_match(), "timestamp": "t"})
        assert ambient.current_effect == "live_pulse"
        clock.advance(5.0)
        assert ambient.current_effect == "default"

    def test_red_card_reserved_event(self, bus, ambient, clock):
        bus.emit(RED_CARD, {})
        assert ambient.current_effect == "red_card"
        clock.advance(9.9)
        assert ambient.current_effect == "red_card"

    def test_match_end_resets_immediately(self, bus, ambient, make_match):
        bus.emit(GOAL, {"team": "home", "score": {"home": 1, "away": 0}, "match": make_match()})
        bus.emit(MATCH_END, {"match": make_match(status="FINISHED"), "timestamp": "t"})
        assert ambient.current_effect == "default"

    def test_unknown_effect_falls_back_to_default(self, ambient):
        ambient.set_effect("confetti", 3.0)
        assert ambient.current_effect == "default"
