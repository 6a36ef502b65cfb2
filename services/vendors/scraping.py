"""HTML vendor client driven by a VendorProfile."""

from __future__ import annotations

import re
from decimal import Decimal, InvalidOperation
from typing import TYPE_CHECKING

import httpx
from bs4 import BeautifulSoup

from core.config import DEFAULT_USER_AGENT
from core.logging import get_logger
from core.result import Failure, Result, failure, success
from services.vendors.base import MAX_RATING, Listing, utcnow
from services.vendors.errors import (
    BlockedFailure,
    NetworkFailure,
    ParseFailure,
    RateLimitFailure,
    TimeoutFailure,
    VendorFailure,
)

if TYPE_CHECKING:
    from collections.abc import Callable, Iterable
    from datetime import datetime

    from bs4 import Tag

    from services.vendors.profiles import PageSelectors, VendorProfile

logger = get_logger(__name__)

DEFAULT_TIMEOUT = 10.0
DEFAULT_REFERRER = "https://www.google.com"

OUT_OF_STOCK_MARKERS = ("out of stock", "currently unavailable", "sold out", "coming soon")
BLOCKED_MARKERS = ("captcha", "robot check", "verify you are human", "unusual traffic")

# Spec bullets worth surfacing in the one-line summary
SPEC_KEYWORDS = (
    "ram",
    "rom",
    "storage",
    "display",
    "camera",
    "battery",
    "processor",
    "bionic",
    "snapdragon",
    "dimensity",
    "chip",
)
SPEC_SEPARATOR = " · "
MAX_SPEC_ITEMS = 4

_PRICE_RE = re.compile(r"\d[\d,]*(?:\.\d+)?")
_RATING_RE = re.compile(r"\d+(?:\.\d+)?")


def parse_price(text: str | None) -> Decimal | None:
    """
    Parse a displayed price such as ``₹ 73,999`` or ``Rs. 73,999.00``.

    Args:
        text: Raw price text.

    Returns:
        The price as Decimal, or None if no number is present.
    """
    if not text:
        return None
    match = _PRICE_RE.search(text)
    if match is None:
        return None
    try:
        return Decimal(match.group().replace(",", ""))
    except InvalidOperation:
        return None


def parse_rating(text: str | None) -> float | None:
    """Parse a star rating such as ``4.5 out of 5 stars``."""
    if not text:
        return None
    match = _RATING_RE.search(text)
    if match is None:
        return None
    rating = float(match.group())
    return rating if 0 <= rating <= MAX_RATING else None


def summarize_specs(items: Iterable[str]) -> str | None:
    """
    Condense spec bullets into a short one-line summary.

    Only bullets mentioning a key hardware term are kept, up to
    MAX_SPEC_ITEMS, in page order.
    """
    picked: list[str] = []
    for item in items:
        text = " ".join(item.split())
        if not text or text in picked:
            continue
        lower = text.lower()
        if any(keyword in lower for keyword in SPEC_KEYWORDS):
            picked.append(text)
        if len(picked) == MAX_SPEC_ITEMS:
            break
    return SPEC_SEPARATOR.join(picked) or None


def _select_first(node: Tag | BeautifulSoup, selectors: tuple[str, ...]) -> Tag | None:
    """Return the first element matched by any selector, in order."""
    for selector in selectors:
        element = node.select_one(selector)
        if element is not None:
            return element
    return None


def _select_text(node: Tag | BeautifulSoup, selectors: tuple[str, ...]) -> str | None:
    """Return the stripped text of the first matching element."""
    element = _select_first(node, selectors)
    if element is None:
        return None
    text = element.get_text(" ", strip=True)
    return text or None


def _select_all_text(node: Tag | BeautifulSoup, selectors: tuple[str, ...]) -> list[str]:
    """Return texts of every element matched by the first productive selector."""
    for selector in selectors:
        texts = [el.get_text(" ", strip=True) for el in node.select(selector)]
        if texts:
            return texts
    return []


def _select_image(node: Tag | BeautifulSoup, selectors: tuple[str, ...]) -> str | None:
    """Return the image source of the first matching element."""
    element = _select_first(node, selectors)
    if element is None:
        return None
    src = element.get("src") or element.get("data-src")
    return str(src) if src else None


def _is_out_of_stock(text: str | None) -> bool:
    """Check stock text for an out-of-stock marker."""
    if not text:
        return False
    lower = text.lower()
    return any(marker in lower for marker in OUT_OF_STOCK_MARKERS)


def _looks_blocked(doc: BeautifulSoup) -> bool:
    """Detect captcha and bot-wall pages."""
    title = doc.title.get_text(" ", strip=True).lower() if doc.title else ""
    if any(marker in title for marker in BLOCKED_MARKERS):
        return True
    return doc.select_one("form[action*='captcha' i]") is not None


class HtmlVendorClient:
    """
    Vendor client that scrapes a marketplace's HTML search results.

    Implements the VendorClient protocol. The first result tile on the
    search page supplies link, price and title; when the profile defines
    product-page selectors the product page is fetched too and its
    values take precedence, with the tile values as fallback.

    Attributes:
        profile: Scraping profile for the marketplace.
        timeout: Per-request timeout in seconds.
    """

    def __init__(
        self,
        profile: VendorProfile,
        *,
        timeout: float = DEFAULT_TIMEOUT,
        user_agent: str = DEFAULT_USER_AGENT,
        referrer: str = DEFAULT_REFERRER,
        clock: Callable[[], datetime] = utcnow,
    ) -> None:
        """
        Initialize the client.

        Args:
            profile: Scraping profile for the marketplace.
            timeout: Per-request timeout in seconds.
            user_agent: User-Agent header sent with every request.
            referrer: Referer header for the search page request.
            clock: Source of capture timestamps.
        """
        self.profile = profile
        self.timeout = timeout
        self._user_agent = user_agent
        self._referrer = referrer
        self._clock = clock
        self._client: httpx.AsyncClient | None = None

    @property
    def vendor_code(self) -> str:
        """Return the vendor code."""
        return self.profile.code

    @property
    def vendor_name(self) -> str:
        """Return the vendor display name."""
        return self.profile.name

    def search_url(self, query: str) -> str:
        """Return the vendor search URL for a query."""
        return self.profile.search_url(query)

    async def _get_client(self) -> httpx.AsyncClient:
        """Get or create the HTTP client."""
        if self._client is None or self._client.is_closed:
            self._client = httpx.AsyncClient(
                timeout=self.timeout,
                follow_redirects=True,
                headers={
                    "User-Agent": self._user_agent,
                    "Accept": "text/html,application/xhtml+xml,application/xml;q=0.9,*/*;q=0.8",
                    "Accept-Language": "en-IN,en;q=0.9",
                },
            )
        return self._client

    async def close(self) -> None:
        """Close the HTTP client."""
        if self._client is not None and not self._client.is_closed:
            await self._client.aclose()
            self._client = None

    async def _get_page(self, url: str, referrer: str) -> Result[BeautifulSoup, VendorFailure]:
        """
        Download and parse one HTML page.

        Args:
            url: Page URL.
            referrer: Referer header value.

        Returns:
            Result containing the parsed document or VendorFailure.
        """
        client = await self._get_client()
        vendor = self.vendor_code

        try:
            response = await client.get(url, headers={"Referer": referrer})
        except httpx.TimeoutException:
            logger.warning("Vendor request timeout", vendor=vendor, url=url)
            return failure(TimeoutFailure(vendor, details=url))
        except httpx.RequestError as e:
            logger.warning("Vendor request error", vendor=vendor, url=url, error=str(e))
            return failure(NetworkFailure(vendor, message="Request failed", details=str(e)))

        if response.status_code == 429:
            logger.warning("Rate limited by vendor", vendor=vendor, url=url)
            return failure(RateLimitFailure(vendor, details=url))

        if response.status_code in (403, 503):
            logger.warning(
                "Vendor refused request",
                vendor=vendor,
                url=url,
                status_code=response.status_code,
            )
            return failure(
                BlockedFailure(vendor, details=f"status {response.status_code}")
            )

        if response.status_code >= 400:
            logger.warning(
                "Vendor returned error status",
                vendor=vendor,
                url=url,
                status_code=response.status_code,
            )
            return failure(
                NetworkFailure(
                    vendor,
                    message=f"Vendor returned status {response.status_code}",
                    details=url,
                )
            )

        doc = BeautifulSoup(response.text, "html.parser")
        if _looks_blocked(doc):
            logger.warning("Vendor served a bot check", vendor=vendor, url=url)
            return failure(BlockedFailure(vendor, message="Bot check page", details=url))

        return success(doc)

    async def fetch(self, query: str) -> Result[Listing | None, VendorFailure]:
        """
        Fetch the best-match listing for a query.

        Args:
            query: Search text.

        Returns:
            Result containing the listing, None when no priced product
            was found, or VendorFailure.
        """
        vendor = self.vendor_code
        search_url = self.search_url(query)
        logger.info("Searching vendor", vendor=vendor, url=search_url)

        page = await self._get_page(search_url, referrer=self._referrer)
        if isinstance(page, Failure):
            return page

        tile = _select_first(page.value, self.profile.tile)
        if tile is None:
            logger.info("No product tile found", vendor=vendor, query=query)
            return success(None)

        link = _select_first(tile, self.profile.link)
        href = link.get("href") if link is not None else None
        product_url = self.profile.absolute_url(str(href)) if href else search_url

        fields = self._extract(tile, self.profile.listing)

        if self.profile.product is not None and href:
            product_page = await self._get_page(product_url, referrer=search_url)
            if isinstance(product_page, Failure):
                logger.info(
                    "Product page unavailable, using search tile",
                    vendor=vendor,
                    error=str(product_page.error),
                )
            else:
                detail = self._extract(product_page.value, self.profile.product)
                fields = {key: detail.get(key) or value for key, value in fields.items()}

        price_text = fields["price"]
        if price_text is None:
            logger.info("Price not found", vendor=vendor, url=product_url)
            return success(None)

        price = parse_price(price_text)
        if price is None:
            logger.warning("Unparseable price", vendor=vendor, price_text=price_text)
            return failure(ParseFailure(vendor, message="Unparseable price", details=price_text))

        try:
            listing = Listing(
                vendor=vendor,
                price=price,
                url=product_url,
                title=fields["title"] or query,
                in_stock=not _is_out_of_stock(fields["stock"]),
                image_url=fields["image"],
                rating=parse_rating(fields["rating"]),
                enrichment=fields["specs"],
                observed_at=self._clock(),
            )
        except ValueError as e:
            return failure(ParseFailure(vendor, message="Invalid listing data", details=str(e)))

        return success(listing)

    def _extract(
        self, node: Tag | BeautifulSoup, selectors: PageSelectors
    ) -> dict[str, str | None]:
        """Extract raw listing fields from a tile or product page."""
        return {
            "price": _select_text(node, selectors.price),
            "title": _select_text(node, selectors.title),
            "image": _select_image(node, selectors.image),
            "rating": _select_text(node, selectors.rating),
            "stock": _select_text(node, selectors.stock),
            "specs": summarize_specs(_select_all_text(node, selectors.specs)),
        }
