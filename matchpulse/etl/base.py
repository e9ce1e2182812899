"""Snapshot source contract."""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Optional

from matchpulse.models import Snapshot

# Error string reserved for rate-limit responses; the poller backs off on it
# without counting a failure.
RATE_LIMITED = "Rate limit"


@dataclass(frozen=True)
class FetchResult:
    """Tagged result of a snapshot request: data on success, error otherwise."""

    success: bool
    data: Optional[Snapshot] = None
    error: Optional[str] = None

    @classmethod
    def ok(cls, snapshot: Snapshot) -> "FetchResult":
        return cls(success=True, data=snapshot)

    @classmethod
    def fail(cls, error: str) -> "FetchResult":
        return cls(success=False, error=error or "Unknown Error")

    @property
    def is_rate_limited(self) -> bool:
        return not self.success and self.error == RATE_LIMITED


class SnapshotSource(ABC):
    """Abstract base class for snapshot providers."""

    @abstractmethod
    async def fetch(self, force: bool = False) -> FetchResult:
        """
        Fetch the current categorized snapshot.

        Args:
            force: Skip any local cache and go to the endpoint.

        Returns:
            FetchResult. Implementations report failures as values and do
            not raise for expected network/HTTP errors.
        """
        pass

    @abstractmethod
    async def close(self) -> None:
        """Close any open connections."""
        pass
