"""Snapshot sources."""

from matchpulse.etl.base import RATE_LIMITED, FetchResult, SnapshotSource
from matchpulse.etl.http_source import HTTPSnapshotSource

__all__ = ["RATE_LIMITED", "FetchResult", "SnapshotSource", "HTTPSnapshotSource"]
