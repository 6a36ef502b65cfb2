"""Aggregation service: the single entry point for price lookups."""

from __future__ import annotations

from functools import partial
from typing import TYPE_CHECKING, Self

from core.logging import bound_context, get_logger
from services.pricing.enrichment import DEFAULT_SPECS_TIMEOUT, resolve_enrichment
from services.pricing.merger import MergeMode
from services.pricing.types import AggregationResult, ResultSource, SearchQuery
from services.storage.base import HistoryRecord
from services.vendors.base import utcnow

if TYPE_CHECKING:
    from collections.abc import Callable, Iterable
    from datetime import datetime
    from types import TracebackType

    from services.pricing.cache import SnapshotCache
    from services.pricing.coordinator import FetchCoordinator
    from services.pricing.enrichment import SpecsProvider
    from services.pricing.fallback import FallbackGenerator
    from services.pricing.merger import ResultMerger
    from services.pricing.pool import WorkerPool
    from services.storage.base import HistoryLog
    from services.vendors.registry import VendorRegistry

logger = get_logger(__name__)


class AggregationService:
    """
    Resolves a query into price-ordered listings across vendors.

    Flow for one call: validate the query, serve from the snapshot cache
    when fresh, otherwise fetch every vendor in parallel under the
    overall deadline, merge and enrich, fall back to search links when
    nothing priced came back, and queue snapshot and history writes
    without waiting for them.

    Only an invalid query raises. Vendor failures, timeouts and storage
    errors are logged and reflected in the result instead.

    Example:
        >>> async with build_service(settings) as service:
        ...     result = await service.fetch_pricing("iPhone 15")
        >>> [(listing.vendor, listing.price) for listing in result]
        [('croma', Decimal('73999')), ('amazon', Decimal('74999'))]
    """

    def __init__(
        self,
        registry: VendorRegistry,
        coordinator: FetchCoordinator,
        merger: ResultMerger,
        cache: SnapshotCache,
        fallback: FallbackGenerator,
        history: HistoryLog,
        pool: WorkerPool,
        *,
        fallback_enabled: bool = True,
        specs_provider: SpecsProvider | None = None,
        specs_timeout: float | None = DEFAULT_SPECS_TIMEOUT,
        clock: Callable[[], datetime] = utcnow,
        on_close: Iterable[Callable[[], None]] = (),
    ) -> None:
        """
        Initialize the service with its collaborators.

        Args:
            registry: Vendor clients to query.
            coordinator: Parallel fetch coordinator.
            merger: Result merger.
            cache: Snapshot cache.
            fallback: Fallback link generator.
            history: Search history log.
            pool: Worker pool for background writes.
            fallback_enabled: Serve search links when nothing is priced.
            specs_provider: Optional source of specs summaries.
            specs_timeout: Seconds allowed for the specs lookup.
            clock: Source of history timestamps.
            on_close: Callbacks run after the pool and clients are closed.
        """
        self._registry = registry
        self._coordinator = coordinator
        self._merger = merger
        self._cache = cache
        self._fallback = fallback
        self._history = history
        self._pool = pool
        self._fallback_enabled = fallback_enabled
        self._specs_provider = specs_provider
        self._specs_timeout = specs_timeout
        self._clock = clock
        self._on_close = list(on_close)

    async def start(self) -> None:
        """Start the worker pool."""
        await self._pool.start()

    async def close(self) -> None:
        """Finish queued writes, stop the pool and close vendor clients."""
        await self._pool.shutdown()
        await self._registry.close()
        for callback in self._on_close:
            callback()

    async def __aenter__(self) -> Self:
        """Start the service."""
        await self.start()
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        """Close the service."""
        await self.close()

    async def fetch_pricing(self, raw_query: str | None) -> AggregationResult:
        """
        Return price-ordered listings for a query.

        Args:
            raw_query: Query as typed by the user.

        Returns:
            Listings sorted by price ascending, from the cache, a live
            fetch or fallback links.

        Raises:
            InvalidQueryError: If the query is missing or blank.
        """
        query = SearchQuery.parse(raw_query)

        with bound_context(query=query.normalized):
            result = await self._cache.get_or_fetch(query, self._live_fetch)

            if result.source is ResultSource.LIVE:
                await self._record_history(query, result)

            logger.info(
                "Pricing resolved",
                source=result.source.value,
                listings=len(result),
                requested=result.vendors_requested,
                responded=result.vendors_responded,
            )
            return result

    async def _live_fetch(self, query: SearchQuery) -> AggregationResult:
        """Fetch every vendor, merge, and fall back when nothing is priced."""
        clients = self._registry.clients()
        outcomes = await self._coordinator.gather(query.text, clients)
        responded = sum(1 for outcome in outcomes.values() if outcome.responded)

        enrichment = await resolve_enrichment(
            query.normalized,
            [outcome.listing for outcome in outcomes.values()],
            self._specs_provider,
            timeout=self._specs_timeout,
        )
        listings = self._merger.merge_outcomes(outcomes, enrichment=enrichment)

        if not listings and self._fallback_enabled:
            placeholders = self._fallback.generate(
                query.text,
                [client.vendor_code for client in clients],
            )
            logger.info("No priced listings, serving search links", vendors=len(placeholders))
            return AggregationResult(
                query=query.normalized,
                listings=self._merger.merge(placeholders, mode=MergeMode.LENIENT),
                source=ResultSource.FALLBACK,
                vendors_requested=len(outcomes),
                vendors_responded=responded,
            )

        return AggregationResult(
            query=query.normalized,
            listings=listings,
            source=ResultSource.LIVE,
            vendors_requested=len(outcomes),
            vendors_responded=responded,
        )

    async def _record_history(self, query: SearchQuery, result: AggregationResult) -> None:
        record = HistoryRecord(
            query=query.text,
            query_normalized=query.normalized,
            result_count=len(result),
            searched_at=self._clock(),
        )
        await self._pool.submit(partial(self._history.record, record), name="history")
