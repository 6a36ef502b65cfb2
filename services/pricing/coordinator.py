"""Parallel fan-out to vendor clients under a single deadline."""

from __future__ import annotations

import asyncio
import time
from typing import TYPE_CHECKING

from core.logging import get_logger
from core.result import Failure, Success
from services.pricing.types import OutcomeStatus, VendorOutcome
from services.vendors.errors import TimeoutFailure, UnexpectedFailure

if TYPE_CHECKING:
    from collections.abc import Sequence

    from services.pricing.pool import WorkerPool
    from services.vendors.base import VendorClient

logger = get_logger(__name__)

DEFAULT_DEADLINE = 15.0


class FetchCoordinator:
    """
    Runs every vendor client concurrently and collects what finishes in time.

    Each vendor runs in its own task; a failure, exception or timeout in
    one task never affects the others. A single overall deadline bounds
    the whole gather: tasks still running when it expires are cancelled
    and reported as timed out, and anything they produce afterwards is
    discarded.
    """

    def __init__(
        self,
        pool: WorkerPool,
        overall_deadline: float = DEFAULT_DEADLINE,
        per_vendor_budget: float | None = None,
    ) -> None:
        """
        Initialize the coordinator.

        Args:
            pool: Worker pool providing the bounded fetch slots.
            overall_deadline: Default deadline in seconds for a gather.
            per_vendor_budget: Default timeout for a single vendor call.
        """
        self._pool = pool
        self._overall_deadline = overall_deadline
        self._per_vendor_budget = per_vendor_budget

    async def gather(
        self,
        query: str,
        clients: Sequence[VendorClient],
        overall_deadline: float | None = None,
        per_vendor_budget: float | None = None,
    ) -> dict[str, VendorOutcome]:
        """
        Fetch a listing from every client concurrently.

        Args:
            query: Search text passed to each client.
            clients: Vendor clients, in dispatch order.
            overall_deadline: Deadline for the whole gather (seconds).
            per_vendor_budget: Timeout for each single vendor call.

        Returns:
            Mapping of vendor code to outcome, in client order. Never
            raises for individual vendor failures.
        """
        deadline = overall_deadline if overall_deadline is not None else self._overall_deadline
        budget = per_vendor_budget if per_vendor_budget is not None else self._per_vendor_budget

        if not clients:
            return {}

        started = time.monotonic()
        tasks: dict[str, asyncio.Task[VendorOutcome]] = {}
        for client in clients:
            code = client.vendor_code
            tasks[code] = asyncio.create_task(
                self._fetch_one(client, query, budget),
                name=f"vendor-fetch-{code}",
            )

        done, pending = await asyncio.wait(tasks.values(), timeout=deadline)

        for task in pending:
            task.cancel()

        outcomes: dict[str, VendorOutcome] = {}
        for code, task in tasks.items():
            if task in done:
                outcome = task.result()
            else:
                outcome = VendorOutcome(
                    vendor=code,
                    status=OutcomeStatus.TIMED_OUT,
                    error=TimeoutFailure(code, message="Overall deadline exceeded"),
                    elapsed=time.monotonic() - started,
                )
                logger.warning(
                    "Vendor abandoned at deadline",
                    vendor=code,
                    deadline=deadline,
                )
            outcomes[code] = outcome

        responded = sum(1 for outcome in outcomes.values() if outcome.responded)
        if responded < len(outcomes):
            logger.warning(
                "partial_results",
                query=query,
                requested=len(outcomes),
                responded=responded,
                missing=[code for code, o in outcomes.items() if not o.responded],
            )

        return outcomes

    async def _fetch_one(
        self,
        client: VendorClient,
        query: str,
        budget: float | None,
    ) -> VendorOutcome:
        """Fetch from one vendor, converting every failure into an outcome."""
        code = client.vendor_code
        started = time.monotonic()

        try:
            async with self._pool.slot():
                result = await asyncio.wait_for(client.fetch(query), timeout=budget)
        except TimeoutError:
            elapsed = time.monotonic() - started
            logger.warning("Vendor fetch timed out", vendor=code, timeout=budget)
            return VendorOutcome(
                vendor=code,
                status=OutcomeStatus.TIMED_OUT,
                error=TimeoutFailure(code),
                elapsed=elapsed,
            )
        except Exception as e:
            elapsed = time.monotonic() - started
            logger.error(
                "Vendor fetch raised",
                vendor=code,
                error=str(e),
                error_type=type(e).__name__,
            )
            return VendorOutcome(
                vendor=code,
                status=OutcomeStatus.FAILED,
                error=UnexpectedFailure(code, e),
                elapsed=elapsed,
            )

        elapsed = time.monotonic() - started
        match result:
            case Success(None):
                logger.info("Vendor had no match", vendor=code, elapsed=round(elapsed, 3))
                return VendorOutcome(vendor=code, status=OutcomeStatus.EMPTY, elapsed=elapsed)
            case Success(listing):
                logger.info(
                    "Vendor fetch succeeded",
                    vendor=code,
                    price=str(listing.price) if listing.price is not None else None,
                    elapsed=round(elapsed, 3),
                )
                return VendorOutcome(
                    vendor=code,
                    status=OutcomeStatus.SUCCESS,
                    listing=listing,
                    elapsed=elapsed,
                )
            case Failure(error):
                logger.warning(
                    "Vendor fetch failed",
                    vendor=code,
                    code=error.code.value,
                    error=error.message,
                    elapsed=round(elapsed, 3),
                )
                return VendorOutcome(
                    vendor=code,
                    status=OutcomeStatus.FAILED,
                    error=error,
                    elapsed=elapsed,
                )
            case _:
                logger.error("Vendor returned a non-Result value", vendor=code)
                return VendorOutcome(
                    vendor=code,
                    status=OutcomeStatus.FAILED,
                    error=UnexpectedFailure(code, TypeError(f"unexpected {type(result).__name__}")),
                    elapsed=elapsed,
                )
