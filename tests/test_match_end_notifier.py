"""
Tests for the match-end notifier detector.

Per ops rule: no real network calls (MockTransport / AsyncMock only).
"""

import json
from unittest.mock import AsyncMock

import httpx
import pytest

from matchpulse.live.detector import ChangeDetector
from matchpulse.live.notifier import JsonFlagStore, MatchEndNotifier, MemoryFlagStore, SyncNotifyClient

pytestmark = pytest.mark.anyio


@pytest.fixture
def flags():
    return MemoryFlagStore()


@pytest.fixture
def send():
    return AsyncMock(return_value=True)


@pytest.fixture
def notifier(flags, send):
    return MatchEndNotifier(flags, send)


class TestTransitions:
    """Which status transitions trigger a notification."""

    @pytest.mark.parametrize("old_status,new_status", [
        ("IN_PLAY", "FINISHED"),
        ("2H", "FT"),
        ("ET", "AET"),
        ("P", "FT"),
        ("HT", "FINISHED"),
    ])
    async def test_live_like_to_finished_like_notifies(self, notifier, send, make_match, old_status, new_status):
        notifier(make_match(status=old_status), make_match(status=new_status))
        await notifier.drain()
        send.assert_awaited_once_with("1001")

    @pytest.mark.parametrize("old_status,new_status", [
        ("SCHEDULED", "FINISHED"),
        ("FINISHED", "FINISHED"),
        ("IN_PLAY", "IN_PLAY"),
        ("IN_PLAY", "POSTPONED"),
    ])
    async def test_other_transitions_ignored(self, notifier, send, make_match, old_status, new_status):
        notifier(make_match(status=old_status), make_match(status=new_status))
        await notifier.drain()
        send.assert_not_awaited()

    async def test_none_arguments_ignored(self, notifier, send, make_match):
        notifier(None, make_match(status="FT"))
        notifier(make_match(status="LIVE"), None)
        await notifier.drain()
        send.assert_not_awaited()


class TestDedupe:
    """At most one successful notification per match id."""

    async def test_notifies_once_across_many_polls(self, flags, notifier, send, make_match):
        detector = ChangeDetector()
        detector.register_detector("match_status", notifier)

        detector.process(make_match(status="IN_PLAY"))
        detector.process(make_match(status="FINISHED"))
        await notifier.drain()
        for _ in range(5):
            detector.process(make_match(status="FINISHED"))
        # Upstream flapping back to live and finishing again
        detector.process(make_match(status="IN_PLAY"))
        detector.process(make_match(status="FT"))
        await notifier.drain()

        assert send.await_count == 1
        assert flags.is_set("match_end_notified_1001")

    async def test_in_flight_duplicate_dropped(self, notifier, send, make_match):
        notifier(make_match(status="IN_PLAY"), make_match(status="FINISHED"))
        notifier(make_match(status="IN_PLAY"), make_match(status="FINISHED"))
        assert notifier.pending_count == 1
        await notifier.drain()
        assert send.await_count == 1

    async def test_distinct_matches_each_notified(self, notifier, send, make_match):
        notifier(make_match(status="IN_PLAY", match_id=1), make_match(status="FT", match_id=1))
        notifier(make_match(status="IN_PLAY", match_id=2), make_match(status="FT", match_id=2))
        await notifier.drain()
        assert sorted(call.args[0] for call in send.await_args_list) == ["1", "2"]

    async def test_failed_send_leaves_flag_unset(self, flags, make_match):
        send = AsyncMock(return_value=False)
        notifier = MatchEndNotifier(flags, send)

        notifier(make_match(status="IN_PLAY"), make_match(status="FINISHED"))
        await notifier.drain()
        assert not flags.is_set("match_end_notified_1001")

        notifier(make_match(status="IN_PLAY"), make_match(status="FINISHED"))
        await notifier.drain()
        assert send.await_count == 2

    async def test_send_exception_is_contained(self, flags, make_match):
        send = AsyncMock(side_effect=httpx.ConnectError("refused"))
        notifier = MatchEndNotifier(flags, send)

        notifier(make_match(status="IN_PLAY"), make_match(status="FINISHED"))
        await notifier.drain()

        assert not flags.is_set("match_end_notified_1001")
        assert notifier.pending_count == 0

    async def test_missing_id_uses_current_key(self, flags, notifier, send, make_match):
        notifier(make_match(status="LIVE", match_id=None), make_match(status="FT", match_id=None))
        await notifier.drain()
        send.assert_awaited_once_with("current")
        assert flags.is_set("match_end_notified_current")

    async def test_preset_flag_skips_send(self, flags, notifier, send, make_match):
        flags.set("match_end_notified_1001")
        notifier(make_match(status="IN_PLAY"), make_match(status="FINISHED"))
        await notifier.drain()
        send.assert_not_awaited()


class TestJsonFlagStore:
    """Flags survive process restarts."""

    def test_persists_between_instances(self, tmp_path):
        path = tmp_path / "state" / "flags.json"
        JsonFlagStore(str(path)).set("match_end_notified_7")

        reloaded = JsonFlagStore(str(path))
        assert reloaded.is_set("match_end_notified_7")
        assert not reloaded.is_set("match_end_notified_8")
        assert json.loads(path.read_text()) == {"match_end_notified_7": "true"}

    def test_missing_file_is_empty(self, tmp_path):
        assert not JsonFlagStore(str(tmp_path / "nope.json")).is_set("x")

    def test_corrupt_file_is_empty(self, tmp_path):
        path = tmp_path / "flags.json"
        path.write_text("{not json")
        store = JsonFlagStore(str(path))
        assert not store.is_set("x")
        store.set("x")
        assert JsonFlagStore(str(path)).is_set("x")


class TestSyncNotifyClient:
    """GET ?matchId=<id>; 2xx means acknowledged."""

    async def test_success(self):
        seen = []

        def handler(request):
            seen.append(request)
            return httpx.Response(200, json={"ok": True})

        client = SyncNotifyClient(
            "https://example.test/api/sync-notify",
            client=httpx.AsyncClient(transport=httpx.MockTransport(handler)),
        )
        assert await client.notify("1001") is True
        assert seen[0].url.params["matchId"] == "1001"
        await client.close()

    async def test_server_error(self):
        client = SyncNotifyClient(
            "https://example.test/api/sync-notify",
            client=httpx.AsyncClient(transport=httpx.MockTransport(lambda r: httpx.Response(503))),
        )
        assert await client.notify("1001") is False
        await client.close()
