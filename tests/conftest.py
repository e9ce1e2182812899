"""Shared fixtures for the live pipeline tests."""

from datetime import datetime, timedelta, timezone
from typing import Optional

import pytest

from matchpulse.etl.base import FetchResult, SnapshotSource
from matchpulse.models import Competition, Match, Score, Snapshot, TeamRef

KICKOFF = datetime(2026, 3, 14, 20, 0, tzinfo=timezone.utc)


@pytest.fixture
def anyio_backend():
    return "asyncio"


def build_match(
    status: str = "SCHEDULED",
    home: Optional[int] = 0,
    away: Optional[int] = 0,
    match_id: Optional[int] = 1001,
    kickoff: Optional[datetime] = KICKOFF,
    home_id: int = 81,
    away_id: int = 86,
) -> Match:
    return Match(
        id=match_id,
        status=status,
        kickoff=kickoff,
        home_team=TeamRef(id=home_id, short_name="Barça", name="FC Barcelona"),
        away_team=TeamRef(id=away_id, short_name="Real Madrid", name="Real Madrid CF"),
        score=Score(home=home, away=away),
        competition=Competition(id=2014, name="Primera Division"),
    )


@pytest.fixture
def make_match():
    return build_match


class FakeSource(SnapshotSource):
    """Scripted snapshot source. Items may be FetchResults or exceptions."""

    def __init__(self, results=(), default: Optional[FetchResult] = None):
        self.results = list(results)
        self.default = default
        self.calls = []

    async def fetch(self, force: bool = False) -> FetchResult:
        self.calls.append(force)
        if self.results:
            result = self.results.pop(0)
        elif self.default is not None:
            result = self.default
        else:
            result = FetchResult.fail("no scripted result")
        if isinstance(result, Exception):
            raise result
        return result

    async def close(self) -> None:
        pass


def ok(*matches: Match) -> FetchResult:
    return FetchResult.ok(Snapshot.from_matches(matches))


@pytest.fixture
def fake_source_cls():
    return FakeSource


@pytest.fixture
def ok_result():
    return ok


class FakeClock:
    """Monotonic clock under test control."""

    def __init__(self, start: float = 1000.0):
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def now_near_kickoff():
    return KICKOFF + timedelta(minutes=10)
