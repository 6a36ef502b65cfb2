"""In-process snapshot and history storage."""

from __future__ import annotations

from collections import defaultdict
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from datetime import datetime

    from services.storage.base import HistoryRecord, Snapshot


class InMemorySnapshotStore:
    """SnapshotStore keeping every snapshot in a per-query list."""

    def __init__(self) -> None:
        """Initialize an empty store."""
        self._snapshots: dict[str, list[Snapshot]] = defaultdict(list)

    async def find_recent(self, normalized_query: str, since: datetime) -> list[Snapshot]:
        """Return snapshots captured at or after ``since``, oldest first."""
        rows = self._snapshots.get(normalized_query, [])
        recent = [snapshot for snapshot in rows if snapshot.captured_at >= since]
        return sorted(recent, key=lambda snapshot: snapshot.captured_at)

    async def append(self, snapshot: Snapshot) -> None:
        """Store one snapshot."""
        self._snapshots[snapshot.query].append(snapshot)

    def all(self) -> list[Snapshot]:
        """Return every stored snapshot."""
        return [snapshot for rows in self._snapshots.values() for snapshot in rows]

    def __len__(self) -> int:
        """Return the number of stored snapshots."""
        return sum(len(rows) for rows in self._snapshots.values())


class InMemoryHistoryLog:
    """HistoryLog keeping records in insertion order."""

    def __init__(self) -> None:
        """Initialize an empty log."""
        self.records: list[HistoryRecord] = []

    async def record(self, record: HistoryRecord) -> None:
        """Append one record."""
        self.records.append(record)
