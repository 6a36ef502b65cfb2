"""Snapshot and search history storage package."""

from services.storage.base import HistoryLog, HistoryRecord, Snapshot, SnapshotStore
from services.storage.memory import InMemoryHistoryLog, InMemorySnapshotStore

__all__ = [
    "HistoryLog",
    "HistoryRecord",
    "InMemoryHistoryLog",
    "InMemorySnapshotStore",
    "Snapshot",
    "SnapshotStore",
]
