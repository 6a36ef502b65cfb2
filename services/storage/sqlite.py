"""SQLite-backed snapshot and history storage."""

from __future__ import annotations

import asyncio
import sqlite3
import threading
from datetime import UTC, datetime
from decimal import Decimal
from pathlib import Path
from typing import TYPE_CHECKING, Any

from core.logging import get_logger
from services.pricing.errors import PersistenceError
from services.storage.base import HistoryRecord, Snapshot
from services.vendors.base import Listing

if TYPE_CHECKING:
    from collections.abc import Callable

logger = get_logger(__name__)

_SCHEMA = """\
CREATE TABLE IF NOT EXISTS price_snapshot (
    id               INTEGER PRIMARY KEY AUTOINCREMENT,
    query_normalized TEXT    NOT NULL,
    vendor           TEXT    NOT NULL,
    price            TEXT,
    url              TEXT    NOT NULL,
    title            TEXT    NOT NULL,
    in_stock         INTEGER NOT NULL,
    image_url        TEXT,
    rating           REAL,
    enrichment       TEXT,
    observed_at      TEXT,
    captured_at      TEXT    NOT NULL
);

CREATE INDEX IF NOT EXISTS idx_snapshot_query_captured
    ON price_snapshot(query_normalized, captured_at);

CREATE TABLE IF NOT EXISTS search_history (
    id               INTEGER PRIMARY KEY AUTOINCREMENT,
    query            TEXT    NOT NULL,
    query_normalized TEXT    NOT NULL,
    results_count    INTEGER NOT NULL,
    searched_at      TEXT    NOT NULL
);

CREATE INDEX IF NOT EXISTS idx_search_query_norm
    ON search_history(query_normalized);
CREATE INDEX IF NOT EXISTS idx_search_searched_at
    ON search_history(searched_at);
"""

# Fixed-width UTC timestamps so text comparison matches time order
_TS_FORMAT = "%Y-%m-%dT%H:%M:%S.%f"


def to_db_timestamp(value: datetime) -> str:
    """Format a datetime as a fixed-width UTC string."""
    return value.astimezone(UTC).strftime(_TS_FORMAT)


def from_db_timestamp(value: str) -> datetime:
    """Parse a stored timestamp back into an aware UTC datetime."""
    return datetime.strptime(value, _TS_FORMAT).replace(tzinfo=UTC)


class SqliteDatabase:
    """
    One SQLite connection shared by the snapshot store and history log.

    Calls run in a worker thread so the event loop never blocks on disk;
    a lock serializes access to the connection.
    """

    def __init__(self, path: Path | str = ":memory:") -> None:
        """
        Open (and create if needed) the database.

        Args:
            path: Database file, or ``:memory:``.
        """
        if str(path) != ":memory:":
            Path(path).parent.mkdir(parents=True, exist_ok=True)
        self._conn = sqlite3.connect(str(path), check_same_thread=False)
        self._lock = threading.Lock()
        if str(path) != ":memory:":
            self._conn.execute("PRAGMA journal_mode=WAL")
        self._conn.executescript(_SCHEMA)
        logger.debug("SQLite storage opened", path=str(path))

    def close(self) -> None:
        """Close the connection."""
        with self._lock:
            self._conn.close()

    def _call(self, func: Callable[[sqlite3.Connection], Any]) -> Any:
        with self._lock:
            try:
                result = func(self._conn)
                self._conn.commit()
            except sqlite3.Error as e:
                self._conn.rollback()
                raise PersistenceError("SQLite operation failed", details=str(e)) from e
            return result

    async def run(self, func: Callable[[sqlite3.Connection], Any]) -> Any:
        """
        Run a function against the connection in a worker thread.

        Raises:
            PersistenceError: If SQLite reports an error.
        """
        return await asyncio.to_thread(self._call, func)


class SqliteSnapshotStore:
    """SnapshotStore backed by the ``price_snapshot`` table."""

    def __init__(self, db: SqliteDatabase) -> None:
        """Initialize with a shared database."""
        self._db = db

    async def find_recent(self, normalized_query: str, since: datetime) -> list[Snapshot]:
        """Return snapshots captured at or after ``since``, oldest first."""
        rows = await self._db.run(
            lambda conn: conn.execute(
                "SELECT query_normalized, vendor, price, url, title, in_stock, "
                "       image_url, rating, enrichment, observed_at, captured_at "
                "FROM price_snapshot "
                "WHERE query_normalized = ? AND captured_at >= ? "
                "ORDER BY captured_at ASC, id ASC",
                (normalized_query, to_db_timestamp(since)),
            ).fetchall()
        )
        return [self._to_snapshot(row) for row in rows]

    async def append(self, snapshot: Snapshot) -> None:
        """Insert one snapshot row."""
        listing = snapshot.listing
        params = (
            snapshot.query,
            listing.vendor,
            str(listing.price) if listing.price is not None else None,
            listing.url,
            listing.title,
            int(listing.in_stock),
            listing.image_url,
            listing.rating,
            listing.enrichment,
            to_db_timestamp(listing.observed_at) if listing.observed_at else None,
            to_db_timestamp(snapshot.captured_at),
        )
        await self._db.run(
            lambda conn: conn.execute(
                "INSERT INTO price_snapshot "
                "(query_normalized, vendor, price, url, title, in_stock, "
                " image_url, rating, enrichment, observed_at, captured_at) "
                "VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)",
                params,
            )
        )

    @staticmethod
    def _to_snapshot(row: tuple[Any, ...]) -> Snapshot:
        (query, vendor, price, url, title, in_stock, image_url, rating, enrichment,
         observed_at, captured_at) = row
        listing = Listing(
            vendor=vendor,
            price=Decimal(price) if price is not None else None,
            url=url,
            title=title,
            in_stock=bool(in_stock),
            image_url=image_url,
            rating=rating,
            enrichment=enrichment,
            observed_at=from_db_timestamp(observed_at) if observed_at else None,
        )
        return Snapshot(query=query, listing=listing, captured_at=from_db_timestamp(captured_at))


class SqliteHistoryLog:
    """HistoryLog backed by the ``search_history`` table."""

    def __init__(self, db: SqliteDatabase) -> None:
        """Initialize with a shared database."""
        self._db = db

    async def record(self, record: HistoryRecord) -> None:
        """Insert one history row."""
        params = (
            record.query,
            record.query_normalized,
            record.result_count,
            to_db_timestamp(record.searched_at),
        )
        await self._db.run(
            lambda conn: conn.execute(
                "INSERT INTO search_history "
                "(query, query_normalized, results_count, searched_at) "
                "VALUES (?, ?, ?, ?)",
                params,
            )
        )
