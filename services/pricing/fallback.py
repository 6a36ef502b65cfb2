"""Search-link placeholders for when no vendor answered."""

from __future__ import annotations

from typing import TYPE_CHECKING
from urllib.parse import quote_plus

from core.logging import get_logger
from core.result import Failure
from services.vendors.base import Listing

if TYPE_CHECKING:
    from collections.abc import Iterable

    from services.vendors.registry import VendorRegistry

logger = get_logger(__name__)

PLACEHOLDER_IMAGE_URL = "https://via.placeholder.com/300.png?text={text}"


def placeholder_image(vendor_name: str, query: str) -> str:
    """Return a placeholder image URL labelled with vendor and query."""
    return PLACEHOLDER_IMAGE_URL.format(text=quote_plus(f"{vendor_name} {query}"))


class FallbackGenerator:
    """
    Builds one priceless "open search" listing per vendor.

    Output depends only on the query and the vendor codes: no clock, no
    randomness. The listings are flagged ``is_fallback`` and carry no
    ``observed_at`` so they are never mistaken for observations.
    """

    def __init__(self, registry: VendorRegistry) -> None:
        """
        Initialize the generator.

        Args:
            registry: Registry supplying each vendor's name and search URL.
        """
        self._registry = registry

    def generate(self, query: str, vendor_codes: Iterable[str]) -> tuple[Listing, ...]:
        """
        Generate placeholder listings.

        Args:
            query: Search text as typed (trimmed).
            vendor_codes: Vendors to link to, in order. Unknown codes are
                skipped.

        Returns:
            One listing per known vendor code.
        """
        listings: list[Listing] = []
        for code in vendor_codes:
            result = self._registry.get(code)
            if isinstance(result, Failure):
                logger.warning("No fallback target for vendor", vendor=code)
                continue

            client = result.value
            listings.append(
                Listing(
                    vendor=code,
                    price=None,
                    url=client.search_url(query),
                    title=f"Open {client.vendor_name} search for {query}",
                    in_stock=True,
                    image_url=placeholder_image(client.vendor_name, query),
                    is_fallback=True,
                )
            )
        return tuple(listings)
