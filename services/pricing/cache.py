"""Time-windowed cache over the snapshot store."""

from __future__ import annotations

from datetime import timedelta
from functools import partial
from typing import TYPE_CHECKING

from core.logging import get_logger
from services.pricing.merger import MergeMode, ResultMerger
from services.pricing.types import AggregationResult, ResultSource, SearchQuery
from services.storage.base import Snapshot
from services.vendors.base import utcnow

if TYPE_CHECKING:
    from collections.abc import Awaitable, Callable
    from datetime import datetime

    from services.pricing.pool import WorkerPool
    from services.storage.base import SnapshotStore

logger = get_logger(__name__)

DEFAULT_FRESHNESS_WINDOW = timedelta(hours=3)

type FetchFn = Callable[[SearchQuery], Awaitable[AggregationResult]]


class SnapshotCache:
    """
    Serves recent snapshots before falling through to a live fetch.

    A hit is any snapshot for the normalized query captured within the
    freshness window. Hits are rebuilt from the latest snapshot of each
    vendor and never write or fetch. Misses call the supplied fetch
    function and hand the new listings to the worker pool for storage.

    Example:
        >>> cache = SnapshotCache(store, pool)
        >>> result = await cache.get_or_fetch(query, live_fetch)
        >>> result.source
        <ResultSource.CACHE: 'cache'>
    """

    def __init__(
        self,
        store: SnapshotStore,
        pool: WorkerPool,
        merger: ResultMerger | None = None,
        freshness_window: timedelta = DEFAULT_FRESHNESS_WINDOW,
        clock: Callable[[], datetime] = utcnow,
    ) -> None:
        """
        Initialize the cache.

        Args:
            store: Snapshot store to read from and append to.
            pool: Worker pool running the append jobs.
            merger: Merger used to order cached listings.
            freshness_window: How old a snapshot may be and still count.
            clock: Source of the current time (UTC).
        """
        self._store = store
        self._pool = pool
        self._merger = merger or ResultMerger()
        self._freshness_window = freshness_window
        self._clock = clock

    async def lookup(
        self,
        query: SearchQuery | str,
        freshness_window: timedelta | None = None,
    ) -> AggregationResult | None:
        """
        Return the cached result for a query, or None on a miss.

        A failing store read is logged and reported as a miss.
        """
        query = self._coerce(query)
        window = freshness_window if freshness_window is not None else self._freshness_window
        since = self._clock() - window

        try:
            snapshots = await self._store.find_recent(query.normalized, since)
        except Exception as e:
            logger.warning(
                "Snapshot lookup failed, treating as miss",
                query=query.normalized,
                error=str(e),
                error_type=type(e).__name__,
            )
            return None

        if not snapshots:
            return None

        latest: dict[str, Snapshot] = {}
        for snapshot in snapshots:
            latest[snapshot.listing.vendor] = snapshot

        # Rows may come from different fetches; the newest summary wins.
        newest_first = sorted(latest.values(), key=lambda s: s.captured_at, reverse=True)
        enrichment = next(
            (s.listing.enrichment for s in newest_first if s.listing.enrichment),
            None,
        )

        listings = self._merger.merge(
            (snapshot.listing for snapshot in latest.values()),
            enrichment=enrichment,
            mode=MergeMode.LENIENT,
        )
        logger.info("Cache hit", query=query.normalized, listings=len(listings))
        return AggregationResult(
            query=query.normalized,
            listings=listings,
            source=ResultSource.CACHE,
            vendors_requested=len(latest),
            vendors_responded=len(latest),
        )

    async def get_or_fetch(
        self,
        query: SearchQuery | str,
        fetch_fn: FetchFn,
        freshness_window: timedelta | None = None,
    ) -> AggregationResult:
        """
        Return a cached result, or fetch, persist and return a live one.

        Args:
            query: Query to resolve.
            fetch_fn: Coroutine function producing the live result.
            freshness_window: Override of the default freshness window.

        Returns:
            The cached or freshly fetched result.
        """
        query = self._coerce(query)

        cached = await self.lookup(query, freshness_window)
        if cached is not None:
            return cached

        logger.debug("Cache miss", query=query.normalized)
        result = await fetch_fn(query)
        await self.persist(query.normalized, result)
        return result

    async def persist(self, normalized_query: str, result: AggregationResult) -> bool:
        """
        Submit one append job per observed listing.

        Fallback results and fallback listings are never stored; neither
        are cached results, which already are.

        Returns:
            True if at least one snapshot was submitted.
        """
        if result.source is not ResultSource.LIVE or result.is_fallback_only:
            return False

        listings = [listing for listing in result if not listing.is_fallback]
        if not listings:
            return False

        captured_at = self._clock()
        for listing in listings:
            snapshot = Snapshot(query=normalized_query, listing=listing, captured_at=captured_at)
            await self._pool.submit(
                partial(self._store.append, snapshot),
                name=f"snapshot:{listing.vendor}",
            )
        logger.debug("Snapshots submitted", query=normalized_query, count=len(listings))
        return True

    @staticmethod
    def _coerce(query: SearchQuery | str) -> SearchQuery:
        if isinstance(query, SearchQuery):
            return query
        return SearchQuery.parse(query)
