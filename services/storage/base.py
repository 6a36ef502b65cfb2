"""Records and protocols for snapshot and search history storage."""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING, Protocol, runtime_checkable

if TYPE_CHECKING:
    from datetime import datetime

    from services.vendors.base import Listing


@dataclass(frozen=True, slots=True)
class Snapshot:
    """
    A listing captured for a normalized query.

    Snapshots are append-only; a changed price is a new snapshot.

    Attributes:
        query: Normalized query the listing was fetched for.
        listing: The captured listing.
        captured_at: When the snapshot was taken (UTC).
    """

    query: str
    listing: Listing
    captured_at: datetime


@dataclass(frozen=True, slots=True)
class HistoryRecord:
    """
    One search as seen by the aggregation service.

    Attributes:
        query: Query as typed (trimmed).
        query_normalized: Lowercase, trimmed query.
        result_count: Number of listings returned.
        searched_at: When the search ran (UTC).
    """

    query: str
    query_normalized: str
    result_count: int
    searched_at: datetime


@runtime_checkable
class SnapshotStore(Protocol):
    """Append-only store of snapshots keyed by normalized query."""

    async def find_recent(self, normalized_query: str, since: datetime) -> list[Snapshot]:
        """
        Return snapshots for the query captured at or after ``since``.

        Snapshots are returned oldest first.
        """
        ...

    async def append(self, snapshot: Snapshot) -> None:
        """Persist one snapshot."""
        ...


@runtime_checkable
class HistoryLog(Protocol):
    """Append-only log of searches."""

    async def record(self, record: HistoryRecord) -> None:
        """Persist one history record."""
        ...
