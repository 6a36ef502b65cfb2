"""Per-marketplace scraping profiles."""

from __future__ import annotations

from dataclasses import dataclass, field
from urllib.parse import quote_plus, urljoin


@dataclass(frozen=True, slots=True)
class PageSelectors:
    """
    CSS selectors for one kind of page.

    Each field is an ordered tuple of alternatives; the first selector
    that matches wins. Marketplaces reshuffle class names often, so
    older layouts stay listed after the current one.
    """

    price: tuple[str, ...] = ()
    title: tuple[str, ...] = ()
    image: tuple[str, ...] = ()
    rating: tuple[str, ...] = ()
    stock: tuple[str, ...] = ()
    specs: tuple[str, ...] = ()


@dataclass(frozen=True, slots=True)
class VendorProfile:
    """
    Everything the HTML client needs to know about one marketplace.

    Attributes:
        code: Vendor code used as identity throughout the system.
        name: Display name.
        base_url: Scheme and host, used to absolutize relative links.
        search_path: Search path template containing ``{query}``.
        tile: Selectors for the first result tile on the search page.
        link: Selectors for the product link inside a tile.
        listing: Selectors applied to the search tile.
        product: Selectors applied to the product page; None skips the
            product page request.
    """

    code: str
    name: str
    base_url: str
    search_path: str
    tile: tuple[str, ...]
    link: tuple[str, ...]
    listing: PageSelectors = field(default_factory=PageSelectors)
    product: PageSelectors | None = None

    def search_url(self, query: str) -> str:
        """Build the search page URL for a query."""
        return self.base_url + self.search_path.format(query=quote_plus(query))

    def absolute_url(self, href: str) -> str:
        """Resolve a possibly relative link against the vendor host."""
        return urljoin(self.base_url + "/", href)


AMAZON = VendorProfile(
    code="amazon",
    name="Amazon",
    base_url="https://www.amazon.in",
    search_path="/s?k={query}",
    tile=("div[data-component-type='s-search-result']", "div[data-index]", "div.s-result-item"),
    link=("h2 a.a-link-normal", "a.a-link-normal.s-no-outline", "a.a-link-normal"),
    listing=PageSelectors(
        price=(".a-price .a-offscreen", ".a-price-whole"),
        title=("h2 a.a-link-normal span", "h2 span"),
        image=("img.s-image",),
        rating=("span.a-icon-alt",),
    ),
    product=PageSelectors(
        price=(
            "#priceblock_dealprice",
            "#priceblock_ourprice",
            ".a-price .a-offscreen",
            "span.offer-price",
        ),
        title=("#productTitle",),
        image=("#landingImage",),
        stock=("#availability", ".a-size-medium.a-color-success"),
        specs=("#feature-bullets li",),
    ),
)

FLIPKART = VendorProfile(
    code="flipkart",
    name="Flipkart",
    base_url="https://www.flipkart.com",
    search_path="/search?q={query}",
    tile=("div[data-id]", "div._1AtVbE", "div._2kHMtA"),
    link=("a.CGtC98", "a._1fQZEK", "a.s1Q9rs", "a._2rpwqI", "a[href]"),
    listing=PageSelectors(
        price=("div.Nx9bqj", "div._30jeq3"),
        title=("div.KzDlHZ", "div._4rR01T", "a.s1Q9rs"),
        image=("img.DByuf4", "img._396cs4", "img"),
        rating=("div.XQDdHH", "div._3LWZlK"),
        specs=("ul.G4BRas li", "ul._1xgFaf li"),
    ),
    product=PageSelectors(
        price=("div.Nx9bqj.CxhGGd", "div._30jeq3._16Jk6d", "div._30jeq3"),
        title=("span.VU-ZEz", "span.B_NuCI", "h1"),
        stock=("div.Z8JjpR", "div._16FRp0"),
        specs=("li._7eSDEz", "li.L5SqY1"),
    ),
)

CROMA = VendorProfile(
    code="croma",
    name="Croma",
    base_url="https://www.croma.com",
    search_path="/search/?text={query}",
    tile=("li.product-item", "div.product-block", "div.item"),
    link=("h3 a", "a[href]"),
    listing=PageSelectors(
        price=("span.amount", ".product-price", ".price"),
        title=("h3.product-title", "h3"),
        image=("img",),
    ),
    product=PageSelectors(
        price=("span[itemprop=price]", ".pdp-price .amount", ".pdPrice", ".product-price"),
        title=("h1.pd-title", "h1.product-title", "h1"),
        stock=(".availability", ".out-of-stock"),
    ),
)

DEFAULT_PROFILES: dict[str, VendorProfile] = {
    profile.code: profile for profile in (FLIPKART, AMAZON, CROMA)
}
