"""Match and snapshot value objects for the live pipeline.

Payloads come from the data endpoint in football-data.org shape
(``utcDate``, ``homeTeam.shortName``, ``score.fullTime.home``). Rows proxied
from the hosted store may use snake_case keys instead; both are accepted.
"""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Iterable, Optional


# ── Status vocabulary ────────────────────────────────────────────────────────
SCHEDULED = "SCHEDULED"
FINISHED = "FINISHED"

# Statuses that open/close a match for MATCH_START / MATCH_END
EVENT_LIVE_STATUSES = frozenset({"LIVE", "IN_PLAY", "PAUSED"})

# Broader set covering provider short codes (1H, HT, ET, P...)
LIVE_LIKE_STATUSES = EVENT_LIVE_STATUSES | frozenset(
    {"1H", "2H", "HT", "ET", "P", "EXTRA_TIME", "PENALTY_SHOOTOUT"}
)
FINISHED_STATUSES = frozenset({"FT", "FINISHED", "AET"})


def _parse_int(value: Any) -> Optional[int]:
    if isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value
    if isinstance(value, str) and value.strip().lstrip("-").isdigit():
        return int(value.strip())
    return None


def _parse_datetime(value: Any) -> Optional[datetime]:
    """Parse an ISO timestamp into an aware UTC datetime (None if unusable)."""
    if isinstance(value, datetime):
        dt = value
    elif isinstance(value, str) and value:
        try:
            dt = datetime.fromisoformat(value.replace("Z", "+00:00"))
        except ValueError:
            return None
    else:
        return None
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    return dt.astimezone(timezone.utc)


def _pick(raw: dict, *keys: str) -> Any:
    for key in keys:
        if key in raw and raw[key] is not None:
            return raw[key]
    return None


@dataclass(frozen=True)
class TeamRef:
    """Home/away team descriptor."""

    id: Optional[int]
    short_name: str
    name: Optional[str] = None

    @classmethod
    def from_dict(cls, raw: Any) -> "TeamRef":
        if not isinstance(raw, dict):
            return cls(id=None, short_name="")
        name = _pick(raw, "name")
        short_name = _pick(raw, "shortName", "short_name", "tla") or name or ""
        return cls(id=_parse_int(raw.get("id")), short_name=str(short_name), name=name)


@dataclass(frozen=True)
class Score:
    """Full-time score. Components stay None when the provider omits them."""

    home: Optional[int] = None
    away: Optional[int] = None

    @property
    def home_goals(self) -> int:
        return self.home or 0

    @property
    def away_goals(self) -> int:
        return self.away or 0

    @classmethod
    def from_dict(cls, raw: Any) -> "Score":
        if not isinstance(raw, dict):
            return cls()
        full_time = _pick(raw, "fullTime", "full_time")
        if not isinstance(full_time, dict):
            return cls()
        return cls(home=_parse_int(full_time.get("home")), away=_parse_int(full_time.get("away")))


@dataclass(frozen=True)
class Competition:
    id: Optional[int]
    name: Optional[str] = None

    @classmethod
    def from_dict(cls, raw: Any) -> Optional["Competition"]:
        if not isinstance(raw, dict):
            return None
        return cls(id=_parse_int(raw.get("id")), name=raw.get("name"))


@dataclass(frozen=True)
class Match:
    """A single fixture as seen in one snapshot. Immutable."""

    id: Optional[int]
    status: str
    kickoff: Optional[datetime]
    home_team: TeamRef
    away_team: TeamRef
    score: Score = field(default_factory=Score)
    competition: Optional[Competition] = None

    @property
    def is_scheduled(self) -> bool:
        return self.status == SCHEDULED

    @property
    def is_live(self) -> bool:
        return self.status in LIVE_LIKE_STATUSES

    @property
    def is_finished(self) -> bool:
        return self.status in FINISHED_STATUSES

    @classmethod
    def from_dict(cls, raw: dict) -> "Match":
        status = _pick(raw, "status") or ""
        return cls(
            id=_parse_int(raw.get("id")),
            status=str(status).upper(),
            kickoff=_parse_datetime(_pick(raw, "utcDate", "utc_date", "kickoff")),
            home_team=TeamRef.from_dict(_pick(raw, "homeTeam", "home_team")),
            away_team=TeamRef.from_dict(_pick(raw, "awayTeam", "away_team")),
            score=Score.from_dict(raw.get("score")),
            competition=Competition.from_dict(raw.get("competition")),
        )

    def to_dict(self) -> dict:
        """Serialize back to the endpoint's camelCase shape."""
        return {
            "id": self.id,
            "status": self.status,
            "utcDate": self.kickoff.isoformat() if self.kickoff else None,
            "homeTeam": {"id": self.home_team.id, "shortName": self.home_team.short_name, "name": self.home_team.name},
            "awayTeam": {"id": self.away_team.id, "shortName": self.away_team.short_name, "name": self.away_team.name},
            "score": {"fullTime": {"home": self.score.home, "away": self.score.away}},
            "competition": (
                {"id": self.competition.id, "name": self.competition.name} if self.competition else None
            ),
        }


@dataclass(frozen=True)
class Snapshot:
    """Point-in-time categorized view of matches and standings."""

    matches: tuple
    live: tuple
    upcoming: tuple
    finished: tuple
    standings: tuple = ()
    fetched_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))

    @classmethod
    def from_matches(cls, matches: Iterable[Match], standings: Iterable[dict] = ()) -> "Snapshot":
        matches = tuple(matches)
        return cls(
            matches=matches,
            live=tuple(m for m in matches if m.is_live),
            finished=tuple(m for m in matches if m.is_finished),
            upcoming=tuple(m for m in matches if not m.is_live and not m.is_finished),
            standings=tuple(standings),
        )

    @classmethod
    def from_payload(cls, payload: Any) -> "Snapshot":
        """
        Build a snapshot from the endpoint JSON.

        The fallback upstream API wraps its body in a one-element list, so a
        list payload is unwrapped first. Unparseable match rows are skipped.
        """
        if isinstance(payload, list):
            payload = payload[0] if payload else {}
        if not isinstance(payload, dict):
            payload = {}

        rows = payload.get("matches")
        matches = [Match.from_dict(r) for r in rows if isinstance(r, dict)] if isinstance(rows, list) else []

        standings = payload.get("standings")
        if not isinstance(standings, list):
            standings = []
        return cls.from_matches(matches, [s for s in standings if isinstance(s, dict)])


def select_relevant_match(matches: Iterable[Match], now: Optional[datetime] = None) -> Optional[Match]:
    """
    Pick the match closest in time to ``now`` (past or future).

    Ties keep input order. Matches without a kickoff time sort last.
    """
    now = now or datetime.now(timezone.utc)

    def distance(match: Match) -> float:
        if match.kickoff is None:
            return float("inf")
        return abs((now - match.kickoff).total_seconds())

    candidates = list(matches)
    if not candidates:
        return None
    return min(candidates, key=distance)
