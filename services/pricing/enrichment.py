"""Specs summaries attached to the cheapest listing."""

from __future__ import annotations

import asyncio
from typing import TYPE_CHECKING, Protocol, runtime_checkable

from core.logging import get_logger

if TYPE_CHECKING:
    from collections.abc import Iterable, Mapping

    from services.vendors.base import Listing

logger = get_logger(__name__)

DEFAULT_SPECS_TIMEOUT = 1.0


@runtime_checkable
class SpecsProvider(Protocol):
    """Source of a short specs summary for a normalized query."""

    async def lookup(self, normalized_query: str) -> str | None:
        """Return the specs summary, or None if unknown."""
        ...


class StaticSpecsProvider:
    """SpecsProvider backed by a fixed mapping of normalized query to summary."""

    def __init__(self, specs: Mapping[str, str]) -> None:
        """Initialize with a mapping; keys are normalized on the way in."""
        self._specs = {key.strip().lower(): value for key, value in specs.items()}

    async def lookup(self, normalized_query: str) -> str | None:
        """Return the stored summary for the query."""
        return self._specs.get(normalized_query)


async def resolve_enrichment(
    normalized_query: str,
    listings: Iterable[Listing | None],
    provider: SpecsProvider | None = None,
    timeout: float | None = DEFAULT_SPECS_TIMEOUT,
) -> str | None:
    """
    Pick the enrichment string for a live result.

    The provider wins when it knows the query; otherwise the first
    vendor-supplied specs summary is reused. A failing provider is
    logged and treated as unknown, and so is one slower than ``timeout``.

    Args:
        normalized_query: Normalized query.
        listings: Live listings in vendor order.
        provider: Optional specs provider.
        timeout: Seconds to wait for the provider; None waits indefinitely.

    Returns:
        The enrichment string or None.
    """
    if provider is not None:
        try:
            summary = await asyncio.wait_for(provider.lookup(normalized_query), timeout)
        except TimeoutError:
            logger.warning("Specs lookup timed out", query=normalized_query, timeout=timeout)
        except Exception as e:
            logger.warning("Specs lookup failed", query=normalized_query, error=str(e))
        else:
            if summary:
                return summary

    for listing in listings:
        if listing is not None and listing.enrichment:
            return listing.enrichment
    return None
