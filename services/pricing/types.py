"""Types for price aggregation."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import TYPE_CHECKING, overload

from services.pricing.errors import InvalidQueryError

if TYPE_CHECKING:
    from collections.abc import Iterator

    from services.vendors.base import Listing
    from services.vendors.errors import VendorFailure


@dataclass(frozen=True, slots=True)
class SearchQuery:
    """
    A validated user query.

    Attributes:
        text: The query as typed, trimmed.
    """

    text: str

    def __post_init__(self) -> None:
        """Reject blank queries."""
        if not self.text or self.text != self.text.strip():
            msg = "query must be non-blank and trimmed"
            raise InvalidQueryError(msg)

    @classmethod
    def parse(cls, raw: str | None) -> SearchQuery:
        """
        Build a query from raw user input.

        Raises:
            InvalidQueryError: If the input is None, empty or blank.
        """
        text = (raw or "").strip()
        if not text:
            raise InvalidQueryError(
                "query parameter is required and cannot be empty",
                details=repr(raw),
            )
        return cls(text)

    @property
    def normalized(self) -> str:
        """Lowercase, trimmed form used as cache and history key."""
        return self.text.lower()


class OutcomeStatus(str, Enum):
    """What happened when one vendor was asked."""

    SUCCESS = "success"
    EMPTY = "empty"
    FAILED = "failed"
    TIMED_OUT = "timed_out"


@dataclass(frozen=True, slots=True)
class VendorOutcome:
    """
    Outcome of one vendor fetch within a gather.

    Attributes:
        vendor: Vendor code.
        status: Outcome status.
        listing: The listing on SUCCESS, otherwise None.
        error: The failure on FAILED/TIMED_OUT, otherwise None.
        elapsed: Seconds spent before the outcome was known.
    """

    vendor: str
    status: OutcomeStatus
    listing: Listing | None = None
    error: VendorFailure | None = None
    elapsed: float = 0.0

    @property
    def responded(self) -> bool:
        """Return True if the vendor answered (with or without a match)."""
        return self.status in (OutcomeStatus.SUCCESS, OutcomeStatus.EMPTY)


class ResultSource(str, Enum):
    """Where an aggregation result came from."""

    LIVE = "live"
    CACHE = "cache"
    FALLBACK = "fallback"


@dataclass(frozen=True, slots=True)
class AggregationResult:
    """
    Merged, price-ordered listings for one query.

    Behaves as an immutable sequence of Listing.

    Attributes:
        query: Normalized query.
        listings: Listings, price ascending with priceless entries last.
        source: Whether the listings are live, cached or fallbacks.
        vendors_requested: Vendors asked during the live fetch.
        vendors_responded: Vendors that answered before the deadline.
    """

    query: str
    listings: tuple[Listing, ...] = ()
    source: ResultSource = ResultSource.LIVE
    vendors_requested: int = 0
    vendors_responded: int = 0

    def __len__(self) -> int:
        """Return the number of listings."""
        return len(self.listings)

    def __iter__(self) -> Iterator[Listing]:
        """Iterate over listings in order."""
        return iter(self.listings)

    @overload
    def __getitem__(self, index: int) -> Listing: ...

    @overload
    def __getitem__(self, index: slice) -> tuple[Listing, ...]: ...

    def __getitem__(self, index: int | slice) -> Listing | tuple[Listing, ...]:
        """Return a listing or slice of listings."""
        return self.listings[index]

    @property
    def is_empty(self) -> bool:
        """Return True if there are no listings."""
        return not self.listings

    @property
    def is_partial(self) -> bool:
        """Return True if some vendors did not answer the live fetch."""
        return self.vendors_responded < self.vendors_requested

    @property
    def is_fallback_only(self) -> bool:
        """Return True if every listing is a synthetic placeholder."""
        return bool(self.listings) and all(listing.is_fallback for listing in self.listings)

    @property
    def cheapest(self) -> Listing | None:
        """Return the cheapest priced listing, if any."""
        for listing in self.listings:
            if listing.has_price:
                return listing
        return None
