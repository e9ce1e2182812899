"""
End-to-end pipeline tests: poller -> relevant match -> detector -> bus.

Uses the real composition root with a scripted snapshot source. The
match-end detector is swapped for one with a mocked transport.
"""

from datetime import datetime, timedelta, timezone
from unittest.mock import AsyncMock

import pytest

from matchpulse.config import Settings
from matchpulse.etl.base import FetchResult
from matchpulse.events import GOAL, MATCH_END, MATCH_START
from matchpulse.live.notifier import MatchEndNotifier, MemoryFlagStore
from matchpulse.runtime import build_live_context, make_match_tracker
from matchpulse.live.detector import ChangeDetector
from matchpulse.state import IDLE, LIVE

pytestmark = pytest.mark.anyio


@pytest.fixture
def settings(tmp_path):
    return Settings(
        DATA_URL="https://example.test/api/data",
        SYNC_NOTIFY_URL="https://example.test/api/sync-notify",
        NOTIFY_FLAGS_PATH=str(tmp_path / "flags.json"),
        NOTIFY_WEBHOOK_URL="",
        _env_file=None,
    )


def _tonight(make_match, **kwargs):
    kickoff = datetime.now(timezone.utc) - timedelta(minutes=20)
    return make_match(kickoff=kickoff, **kwargs)


def _old(make_match, **kwargs):
    kickoff = datetime.now(timezone.utc) - timedelta(days=7)
    return make_match(kickoff=kickoff, match_id=999, **kwargs)


class TestFullMatch:
    """A whole match observed through successive polls."""

    async def test_match_lifecycle_events(self, settings, fake_source_cls, ok_result, make_match):
        old = _old(make_match, status="FINISHED", home=2, away=2)
        source = fake_source_cls([
            ok_result(old, _tonight(make_match, status="SCHEDULED")),
            ok_result(old, _tonight(make_match, status="IN_PLAY")),
            ok_result(old, _tonight(make_match, status="IN_PLAY", home=1)),
            ok_result(old, _tonight(make_match, status="PAUSED", home=1)),
            ok_result(old, _tonight(make_match, status="FINISHED", home=1)),
        ])
        ctx = build_live_context(settings, source=source)

        send = AsyncMock(return_value=True)
        notifier = MatchEndNotifier(MemoryFlagStore(), send)
        ctx.detector.unregister_detector("match_status")
        ctx.detector.register_detector("match_status", notifier)

        states = []
        ctx.state.subscribe(states.append)

        for _ in range(5):
            await ctx.poller.tick()
        await notifier.drain()

        types = [e.event_type for e in reversed(ctx.bus.history)]
        assert types == [MATCH_START, GOAL, MATCH_END]
        goal = ctx.bus.history[1].payload
        assert goal["team"] == "home"
        assert goal["score"] == {"home": 1, "away": 0}

        send.assert_awaited_once_with("1001")
        assert LIVE in states
        assert ctx.state.get_state() == IDLE
        assert ctx.ambient.current_effect == "default"

        await ctx.close()

    async def test_failed_poll_keeps_previous_for_next_diff(self, settings, fake_source_cls, ok_result, make_match):
        source = fake_source_cls([
            ok_result(_tonight(make_match, status="IN_PLAY")),
            FetchResult.fail("HTTP 503"),
            ok_result(_tonight(make_match, status="IN_PLAY", away=1)),
        ])
        ctx = build_live_context(settings, source=source)
        ctx.detector.unregister_detector("match_status")

        for _ in range(3):
            await ctx.poller.tick()

        assert [e.event_type for e in ctx.bus.history] == [GOAL]
        assert ctx.bus.history[0].payload["team"] == "away"
        assert ctx.poller.error_count == 0
        await ctx.close()

    async def test_context_wiring(self, settings, fake_source_cls):
        ctx = build_live_context(settings, source=fake_source_cls())
        assert ctx.detector.detector_keys == ["match_events", "match_status"]
        assert ctx.bus.listener_count(GOAL) == 2
        assert ctx.poller.modes.live == settings.POLL_INTERVAL_LIVE_SECONDS
        await ctx.close()


class TestMatchTracker:
    """Poller subscriber that feeds the detector."""

    def test_tracks_closest_match(self, make_match):
        now = datetime(2026, 3, 14, 20, 30, tzinfo=timezone.utc)
        detector = ChangeDetector()
        track = make_match_tracker(detector, now=lambda: now)

        track([
            make_match(match_id=1, kickoff=now - timedelta(days=7)),
            make_match(match_id=2, kickoff=now - timedelta(minutes=30)),
        ])
        assert detector.previous.id == 2

    def test_empty_list_ignored(self):
        detector = ChangeDetector()
        make_match_tracker(detector)([])
        assert detector.previous is None
