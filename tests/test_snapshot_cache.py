"""Tests for the snapshot cache."""

from __future__ import annotations

from datetime import timedelta
from decimal import Decimal
from unittest.mock import AsyncMock

import pytest
from fakes import FIXED_NOW, build_listing

from services.pricing.cache import DEFAULT_FRESHNESS_WINDOW, SnapshotCache
from services.pricing.pool import WorkerPool
from services.pricing.types import AggregationResult, ResultSource, SearchQuery
from services.storage.base import Snapshot
from services.storage.memory import InMemorySnapshotStore


def live_result(*listings) -> AggregationResult:
    """Build a live result for 'iphone 15'."""
    return AggregationResult(
        query="iphone 15",
        listings=tuple(listings),
        source=ResultSource.LIVE,
        vendors_requested=3,
        vendors_responded=len(listings),
    )


def iphone_result() -> AggregationResult:
    """Build the two-vendor live result used across tests."""
    return live_result(build_listing("croma", "73999"), build_listing("amazon", "74999"))


@pytest.fixture()
def store() -> InMemorySnapshotStore:
    """Create an empty snapshot store."""
    return InMemorySnapshotStore()


@pytest.fixture()
def cache(store: InMemorySnapshotStore) -> SnapshotCache:
    """Create a cache whose pool runs jobs inline."""
    return SnapshotCache(store, WorkerPool(min_workers=1, max_workers=1), clock=lambda: FIXED_NOW)


class TestSnapshotCacheLookup:
    """Tests for the read path."""

    def test_default_window_is_three_hours(self) -> None:
        """Snapshots stay fresh for three hours by default."""
        assert DEFAULT_FRESHNESS_WINDOW == timedelta(hours=3)

    @pytest.mark.asyncio
    async def test_miss_when_empty(self, cache: SnapshotCache) -> None:
        """No snapshots means a miss."""
        assert await cache.lookup("iPhone 15") is None

    @pytest.mark.asyncio
    async def test_hit_uses_latest_snapshot_per_vendor(
        self,
        cache: SnapshotCache,
        store: InMemorySnapshotStore,
    ) -> None:
        """A hit rebuilds one listing per vendor, sorted by price."""
        await store.append(
            Snapshot("iphone 15", build_listing("amazon", "76999"), FIXED_NOW - timedelta(hours=2))
        )
        await store.append(
            Snapshot("iphone 15", build_listing("amazon", "74999"), FIXED_NOW - timedelta(hours=1))
        )
        await store.append(
            Snapshot("iphone 15", build_listing("croma", "73999"), FIXED_NOW - timedelta(hours=1))
        )

        result = await cache.lookup(SearchQuery.parse("IPHONE 15"))

        assert result is not None
        assert result.source == ResultSource.CACHE
        assert result.query == "iphone 15"
        assert [(listing.vendor, listing.price) for listing in result] == [
            ("croma", Decimal("73999")),
            ("amazon", Decimal("74999")),
        ]

    @pytest.mark.asyncio
    async def test_stale_snapshots_are_a_miss(
        self,
        cache: SnapshotCache,
        store: InMemorySnapshotStore,
    ) -> None:
        """Snapshots older than the window do not count."""
        await store.append(
            Snapshot("iphone 15", build_listing("amazon", "1"), FIXED_NOW - timedelta(hours=4))
        )

        assert await cache.lookup("iphone 15") is None
        assert await cache.lookup("iphone 15", freshness_window=timedelta(hours=5)) is not None

    @pytest.mark.asyncio
    async def test_priceless_snapshots_kept(
        self,
        cache: SnapshotCache,
        store: InMemorySnapshotStore,
    ) -> None:
        """Stored listings without price are kept at the tail."""
        await store.append(Snapshot("iphone 15", build_listing("flipkart", None), FIXED_NOW))
        await store.append(Snapshot("iphone 15", build_listing("amazon", "5"), FIXED_NOW))

        result = await cache.lookup("iphone 15")

        assert [listing.vendor for listing in result] == ["amazon", "flipkart"]

    @pytest.mark.asyncio
    async def test_hit_keeps_single_enrichment(
        self,
        cache: SnapshotCache,
        store: InMemorySnapshotStore,
    ) -> None:
        """Rows from different fetches still yield one enriched listing, the cheapest."""
        await store.append(
            Snapshot(
                "iphone 15",
                build_listing("amazon", "100", enrichment="A16 Bionic chip"),
                FIXED_NOW - timedelta(hours=2),
            )
        )
        await store.append(
            Snapshot(
                "iphone 15",
                build_listing("croma", "90", enrichment="A16 Bionic chip"),
                FIXED_NOW - timedelta(hours=1),
            )
        )

        result = await cache.lookup("iphone 15")

        assert [(listing.vendor, listing.enrichment) for listing in result] == [
            ("croma", "A16 Bionic chip"),
            ("amazon", None),
        ]

    @pytest.mark.asyncio
    async def test_hit_moves_enrichment_to_cheapest(
        self,
        cache: SnapshotCache,
        store: InMemorySnapshotStore,
    ) -> None:
        """A summary stored on a pricier row moves to the cheapest one."""
        await store.append(
            Snapshot("iphone 15", build_listing("amazon", "100", enrichment="8 GB RAM"), FIXED_NOW)
        )
        await store.append(Snapshot("iphone 15", build_listing("croma", "90"), FIXED_NOW))

        result = await cache.lookup("iphone 15")

        assert [(listing.vendor, listing.enrichment) for listing in result] == [
            ("croma", "8 GB RAM"),
            ("amazon", None),
        ]

    @pytest.mark.asyncio
    async def test_newest_summary_wins(
        self,
        cache: SnapshotCache,
        store: InMemorySnapshotStore,
    ) -> None:
        """When stored summaries differ, the most recent one is used."""
        await store.append(
            Snapshot(
                "iphone 15",
                build_listing("croma", "90", enrichment="old summary"),
                FIXED_NOW - timedelta(hours=2),
            )
        )
        await store.append(
            Snapshot(
                "iphone 15",
                build_listing("amazon", "100", enrichment="new summary"),
                FIXED_NOW - timedelta(minutes=5),
            )
        )

        result = await cache.lookup("iphone 15")

        assert result[0].vendor == "croma"
        assert result[0].enrichment == "new summary"
        assert result[1].enrichment is None

    @pytest.mark.asyncio
    async def test_store_failure_is_a_miss(self) -> None:
        """A failing store read is treated as a miss."""
        store = AsyncMock()
        store.find_recent.side_effect = RuntimeError("database locked")
        cache = SnapshotCache(store, WorkerPool(min_workers=1, max_workers=1))

        assert await cache.lookup("iphone 15") is None


class TestSnapshotCacheGetOrFetch:
    """Tests for get_or_fetch."""

    @pytest.mark.asyncio
    async def test_miss_fetches_and_persists(
        self,
        cache: SnapshotCache,
        store: InMemorySnapshotStore,
    ) -> None:
        """A miss calls the fetch function and stores its listings."""
        fetch = AsyncMock(return_value=iphone_result())

        result = await cache.get_or_fetch("iPhone 15", fetch)

        fetch.assert_awaited_once_with(SearchQuery("iPhone 15"))
        assert result.source == ResultSource.LIVE
        assert len(store) == 2
        assert {s.query for s in store.all()} == {"iphone 15"}
        assert {s.captured_at for s in store.all()} == {FIXED_NOW}

    @pytest.mark.asyncio
    async def test_hit_skips_fetch_and_write(
        self,
        cache: SnapshotCache,
        store: InMemorySnapshotStore,
    ) -> None:
        """A hit neither fetches nor writes."""
        await store.append(Snapshot("iphone 15", build_listing("amazon", "74999"), FIXED_NOW))
        fetch = AsyncMock()

        result = await cache.get_or_fetch("iphone 15", fetch)

        fetch.assert_not_awaited()
        assert result.source == ResultSource.CACHE
        assert len(store) == 1

    @pytest.mark.asyncio
    async def test_repeat_within_window_is_idempotent(self, cache: SnapshotCache) -> None:
        """A second call inside the window returns the same listings from cache."""
        fetch = AsyncMock(return_value=iphone_result())

        first = await cache.get_or_fetch("iPhone 15", fetch)
        second = await cache.get_or_fetch("iphone 15", fetch)

        assert fetch.await_count == 1
        assert second.source == ResultSource.CACHE
        assert second.listings == first.listings


class TestSnapshotCachePersist:
    """Tests for persist."""

    @pytest.mark.asyncio
    async def test_fallback_result_not_persisted(
        self,
        cache: SnapshotCache,
        store: InMemorySnapshotStore,
    ) -> None:
        """Fallback results are never stored."""
        result = AggregationResult(
            query="iphone 15",
            listings=(build_listing("amazon", None, is_fallback=True, observed_at=None),),
            source=ResultSource.FALLBACK,
        )

        assert await cache.persist("iphone 15", result) is False
        assert len(store) == 0

    @pytest.mark.asyncio
    async def test_fallback_listings_filtered(
        self,
        cache: SnapshotCache,
        store: InMemorySnapshotStore,
    ) -> None:
        """Placeholder listings inside a live result are skipped."""
        result = live_result(
            build_listing("amazon", "5"),
            build_listing("croma", None, is_fallback=True, observed_at=None),
        )

        assert await cache.persist("iphone 15", result) is True
        assert [s.listing.vendor for s in store.all()] == ["amazon"]

    @pytest.mark.asyncio
    async def test_live_result_of_placeholders_not_persisted(
        self,
        cache: SnapshotCache,
        store: InMemorySnapshotStore,
    ) -> None:
        """A live result holding only placeholders stores nothing."""
        result = live_result(build_listing("amazon", None, is_fallback=True, observed_at=None))

        assert await cache.persist("iphone 15", result) is False
        assert len(store) == 0

    @pytest.mark.asyncio
    async def test_empty_live_result_not_persisted(self, cache: SnapshotCache) -> None:
        """Nothing to store means nothing submitted."""
        assert await cache.persist("iphone 15", live_result()) is False

    @pytest.mark.asyncio
    async def test_writes_go_through_pool(self, store: InMemorySnapshotStore) -> None:
        """Each snapshot write is submitted to the worker pool."""
        pool = WorkerPool(min_workers=1, max_workers=1)
        pool.submit = AsyncMock(return_value=True)  # type: ignore[method-assign]
        cache = SnapshotCache(store, pool, clock=lambda: FIXED_NOW)

        await cache.persist(
            "iphone 15",
            live_result(build_listing("croma", "1"), build_listing("amazon", "2")),
        )

        assert pool.submit.await_count == 2
        assert pool.submit.await_args_list[0].kwargs["name"] == "snapshot:croma"
        assert len(store) == 0
