"""Base types and protocols for vendor clients."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import UTC, datetime
from typing import TYPE_CHECKING, Protocol, runtime_checkable

if TYPE_CHECKING:
    from decimal import Decimal

    from core.result import Result
    from services.vendors.errors import VendorFailure

MAX_RATING = 5.0


def utcnow() -> datetime:
    """Return the current time as an aware UTC datetime."""
    return datetime.now(UTC)


@dataclass(frozen=True, slots=True)
class Listing:
    """
    One vendor's offer for a query at a point in time.

    Attributes:
        vendor: Code of the vendor (e.g., 'amazon', 'flipkart').
        price: Listed price, or None when the vendor exposes no price.
        url: Product page URL (or search deep link for fallbacks).
        title: Product title as displayed by the vendor.
        in_stock: Whether the product is currently purchasable.
        image_url: Product image or placeholder URL.
        rating: Product star rating in [0, 5].
        enrichment: Short specs summary (RAM, storage, ...).
        observed_at: When the data was captured; None for synthetic listings.
        is_fallback: True for search-link placeholders that are not
            real observations.
    """

    vendor: str
    price: Decimal | None
    url: str
    title: str
    in_stock: bool = True
    image_url: str | None = None
    rating: float | None = None
    enrichment: str | None = None
    observed_at: datetime | None = None
    is_fallback: bool = False

    def __post_init__(self) -> None:
        """Validate listing fields."""
        if not self.vendor:
            msg = "vendor cannot be empty"
            raise ValueError(msg)
        if self.price is not None:
            if not self.price.is_finite():
                msg = "price must be a finite number"
                raise ValueError(msg)
            if self.price < 0:
                msg = "price cannot be negative"
                raise ValueError(msg)
        if self.rating is not None and not 0 <= self.rating <= MAX_RATING:
            msg = f"rating must be between 0 and {MAX_RATING:g}"
            raise ValueError(msg)

    @property
    def has_price(self) -> bool:
        """Return True if the listing carries a price."""
        return self.price is not None


@runtime_checkable
class VendorClient(Protocol):
    """
    Protocol every marketplace client conforms to.

    ``fetch`` must not raise for expected failures (network, parse,
    blocking); those are returned as ``Failure(VendorFailure)``. A
    ``Success(None)`` means the vendor answered but had no match.
    """

    @property
    def vendor_code(self) -> str:
        """Return the unique code for this vendor."""
        ...

    @property
    def vendor_name(self) -> str:
        """Return the display name for this vendor."""
        ...

    def search_url(self, query: str) -> str:
        """Return the vendor's search page URL for a query."""
        ...

    async def fetch(self, query: str) -> Result[Listing | None, VendorFailure]:
        """
        Fetch the single best-match listing for a query.

        Args:
            query: Search text as typed by the user (trimmed).

        Returns:
            Result containing the listing (or None for no match) on
            success, or VendorFailure on failure.
        """
        ...

    async def close(self) -> None:
        """Release any network resources held by the client."""
        ...
