"""Wiring of the aggregation service from settings."""

from __future__ import annotations

from typing import TYPE_CHECKING

from core.config import get_settings
from core.logging import get_logger
from services.pricing.cache import SnapshotCache
from services.pricing.coordinator import FetchCoordinator
from services.pricing.fallback import FallbackGenerator
from services.pricing.merger import ResultMerger
from services.pricing.pool import WorkerPool
from services.pricing.service import AggregationService
from services.storage.memory import InMemoryHistoryLog, InMemorySnapshotStore
from services.storage.sqlite import SqliteDatabase, SqliteHistoryLog, SqliteSnapshotStore
from services.vendors.profiles import DEFAULT_PROFILES
from services.vendors.registry import VendorRegistry
from services.vendors.scraping import HtmlVendorClient

if TYPE_CHECKING:
    from collections.abc import Callable

    from core.config import Settings
    from services.pricing.enrichment import SpecsProvider
    from services.storage.base import HistoryLog, SnapshotStore

logger = get_logger(__name__)


def build_registry(settings: Settings) -> VendorRegistry:
    """
    Register one HTML client per configured vendor, in configured order.

    Vendor codes without a known profile are skipped with a warning.
    """
    registry = VendorRegistry()
    for code in settings.aggregation.vendors:
        profile = DEFAULT_PROFILES.get(code)
        if profile is None:
            logger.warning("Unknown vendor in configuration", vendor=code)
            continue
        if code in registry:
            continue
        registry.register(
            HtmlVendorClient(
                profile,
                timeout=settings.scraper.request_timeout,
                user_agent=settings.scraper.user_agent,
                referrer=settings.scraper.referrer,
            )
        )
    return registry


def build_storage(
    settings: Settings,
) -> tuple[SnapshotStore, HistoryLog, Callable[[], None] | None]:
    """
    Create the configured snapshot store and history log.

    Returns:
        Store, history log and an optional close callback.
    """
    if settings.storage.backend == "sqlite":
        db = SqliteDatabase(settings.storage.sqlite_path)
        return SqliteSnapshotStore(db), SqliteHistoryLog(db), db.close
    return InMemorySnapshotStore(), InMemoryHistoryLog(), None


def build_service(
    settings: Settings | None = None,
    *,
    registry: VendorRegistry | None = None,
    store: SnapshotStore | None = None,
    history: HistoryLog | None = None,
    specs_provider: SpecsProvider | None = None,
) -> AggregationService:
    """
    Build a ready-to-start aggregation service.

    Args:
        settings: Settings to use (defaults to ``get_settings()``).
        registry: Vendor registry (defaults to one built from settings).
        store: Snapshot store (defaults to the configured backend).
        history: History log (defaults to the configured backend).
        specs_provider: Optional source of specs summaries.

    Returns:
        The service; call ``start()`` or use ``async with`` before use.
    """
    settings = settings or get_settings()
    aggregation = settings.aggregation

    on_close: list[Callable[[], None]] = []
    if store is None or history is None:
        default_store, default_history, closer = build_storage(settings)
        store = store or default_store
        history = history or default_history
        if closer is not None:
            on_close.append(closer)

    registry = registry if registry is not None else build_registry(settings)
    pool = WorkerPool.from_settings(settings.pool)
    merger = ResultMerger()

    logger.info(
        "Aggregation service built",
        vendors=registry.codes,
        storage=settings.storage.backend,
        overall_deadline=aggregation.overall_deadline,
    )

    return AggregationService(
        registry=registry,
        coordinator=FetchCoordinator(
            pool,
            overall_deadline=aggregation.overall_deadline,
            per_vendor_budget=aggregation.per_vendor_budget,
        ),
        merger=merger,
        cache=SnapshotCache(
            store,
            pool,
            merger,
            freshness_window=aggregation.freshness_window,
        ),
        fallback=FallbackGenerator(registry),
        history=history,
        pool=pool,
        fallback_enabled=aggregation.fallback_enabled,
        specs_provider=specs_provider,
        specs_timeout=aggregation.specs_timeout,
        on_close=on_close,
    )
