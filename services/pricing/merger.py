"""Filtering, ordering and enrichment of vendor listings."""

from __future__ import annotations

from dataclasses import replace
from decimal import Decimal
from enum import Enum
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from collections.abc import Iterable, Mapping

    from services.pricing.types import VendorOutcome
    from services.vendors.base import Listing


class MergeMode(str, Enum):
    """How priceless listings are treated."""

    STRICT = "strict"  # drop them
    LENIENT = "lenient"  # keep them after every priced listing


def price_key(listing: Listing) -> tuple[bool, Decimal]:
    """Sort key: priced listings by price ascending, priceless last."""
    if listing.price is None:
        return (True, Decimal(0))
    return (False, listing.price)


class ResultMerger:
    """
    Turns raw vendor listings into the ordered result set.

    Pure: no I/O and inputs are never mutated. Ordering is a stable
    sort, so equally priced listings keep the order they were given in
    (vendor dispatch order).
    """

    def merge(
        self,
        candidates: Iterable[Listing | None],
        *,
        enrichment: str | None = None,
        mode: MergeMode = MergeMode.STRICT,
    ) -> tuple[Listing, ...]:
        """
        Filter and order listings.

        Args:
            candidates: Listings in vendor order; None marks an absent
                vendor and is always dropped.
            enrichment: Specs summary to attach to the cheapest listing.
            mode: STRICT drops priceless listings, LENIENT keeps them last.

        Returns:
            Listings ordered by price ascending.
        """
        present = [listing for listing in candidates if listing is not None]
        if mode is MergeMode.STRICT:
            present = [listing for listing in present if listing.has_price]

        ordered = sorted(present, key=price_key)

        if enrichment:
            ordered = self._attach_enrichment(ordered, enrichment)

        return tuple(ordered)

    def merge_outcomes(
        self,
        outcomes: Mapping[str, VendorOutcome],
        *,
        enrichment: str | None = None,
        mode: MergeMode = MergeMode.STRICT,
    ) -> tuple[Listing, ...]:
        """Merge the listings of a gather's outcomes."""
        return self.merge(
            (outcome.listing for outcome in outcomes.values()),
            enrichment=enrichment,
            mode=mode,
        )

    def _attach_enrichment(self, ordered: list[Listing], enrichment: str) -> list[Listing]:
        """
        Give the enrichment to the cheapest priced listing only.

        Every other listing loses any enrichment it carried, so at most
        one listing in the result is enriched. Without a priced listing
        the input is returned unchanged.
        """
        cheapest = next(
            (i for i, listing in enumerate(ordered) if listing.has_price),
            None,
        )
        if cheapest is None:
            return ordered

        enriched: list[Listing] = []
        for i, listing in enumerate(ordered):
            if i == cheapest:
                enriched.append(replace(listing, enrichment=enrichment))
            elif listing.enrichment is not None:
                enriched.append(replace(listing, enrichment=None))
            else:
                enriched.append(listing)
        return enriched
