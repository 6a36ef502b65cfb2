"""Tests for fallback generation and enrichment resolution."""

from __future__ import annotations

import asyncio
import time
from unittest.mock import AsyncMock

import pytest
from fakes import FakeVendorClient, build_listing

from services.pricing.enrichment import SpecsProvider, StaticSpecsProvider, resolve_enrichment
from services.pricing.fallback import FallbackGenerator, placeholder_image
from services.vendors.registry import VendorRegistry


@pytest.fixture()
def registry() -> VendorRegistry:
    """Create a registry with two vendors."""
    registry = VendorRegistry()
    registry.register(FakeVendorClient("amazon", "Amazon"))
    registry.register(FakeVendorClient("flipkart", "Flipkart"))
    return registry


class TestPlaceholderImage:
    """Tests for placeholder_image."""

    def test_label_is_encoded(self) -> None:
        """Vendor and query are URL-encoded into the label."""
        assert (
            placeholder_image("Amazon", "iPhone 15")
            == "https://via.placeholder.com/300.png?text=Amazon+iPhone+15"
        )


class TestFallbackGenerator:
    """Tests for FallbackGenerator."""

    def test_one_listing_per_vendor(self, registry: VendorRegistry) -> None:
        """Each vendor gets a priceless search-link listing."""
        listings = FallbackGenerator(registry).generate("iPhone 15", ["amazon", "flipkart"])

        assert [listing.vendor for listing in listings] == ["amazon", "flipkart"]
        amazon = listings[0]
        assert amazon.price is None
        assert amazon.in_stock is True
        assert amazon.is_fallback is True
        assert amazon.observed_at is None
        assert amazon.url == "https://amazon.example/search?q=iPhone+15"
        assert amazon.title == "Open Amazon search for iPhone 15"
        assert amazon.image_url == "https://via.placeholder.com/300.png?text=Amazon+iPhone+15"

    def test_deterministic(self, registry: VendorRegistry) -> None:
        """The same input always gives the same output."""
        generator = FallbackGenerator(registry)

        first = generator.generate("pixel 8", ["amazon"])

        assert generator.generate("pixel 8", ["amazon"]) == first

    def test_unknown_vendor_skipped(self, registry: VendorRegistry) -> None:
        """Codes without a registered client are skipped."""
        listings = FallbackGenerator(registry).generate("q", ["snapdeal", "flipkart"])

        assert [listing.vendor for listing in listings] == ["flipkart"]


class TestStaticSpecsProvider:
    """Tests for StaticSpecsProvider."""

    @pytest.mark.asyncio
    async def test_keys_are_normalized(self) -> None:
        """Lookups use the normalized query."""
        provider = StaticSpecsProvider({" iPhone 15 ": "6.1-inch display · A16 Bionic chip"})

        assert isinstance(provider, SpecsProvider)
        assert await provider.lookup("iphone 15") == "6.1-inch display · A16 Bionic chip"
        assert await provider.lookup("pixel 8") is None


class TestResolveEnrichment:
    """Tests for resolve_enrichment."""

    @pytest.mark.asyncio
    async def test_provider_wins(self) -> None:
        """A known provider summary is preferred over vendor specs."""
        provider = StaticSpecsProvider({"iphone 15": "from provider"})
        listings = [build_listing("amazon", "1", enrichment="from vendor")]

        assert await resolve_enrichment("iphone 15", listings, provider) == "from provider"

    @pytest.mark.asyncio
    async def test_first_vendor_summary_used(self) -> None:
        """Without a provider the first vendor-supplied summary is used."""
        listings = [
            None,
            build_listing("amazon", "1"),
            build_listing("flipkart", "2", enrichment="8 GB RAM"),
        ]

        assert await resolve_enrichment("q", listings) == "8 GB RAM"

    @pytest.mark.asyncio
    async def test_provider_failure_falls_back(self) -> None:
        """A failing provider is treated as unknown."""
        provider = AsyncMock()
        provider.lookup.side_effect = RuntimeError("specs db down")
        listings = [build_listing("amazon", "1", enrichment="vendor specs")]

        assert await resolve_enrichment("q", listings, provider) == "vendor specs"

    @pytest.mark.asyncio
    async def test_slow_provider_times_out(self) -> None:
        """A provider slower than the timeout is treated as unknown."""

        async def slow_lookup(normalized_query: str) -> str:
            await asyncio.sleep(5)
            return "too late"

        provider = AsyncMock()
        provider.lookup.side_effect = slow_lookup
        listings = [build_listing("amazon", "1", enrichment="vendor specs")]

        started = time.monotonic()
        summary = await resolve_enrichment("q", listings, provider, timeout=0.05)

        assert summary == "vendor specs"
        assert time.monotonic() - started < 1.0

    @pytest.mark.asyncio
    async def test_nothing_known(self) -> None:
        """No source gives None."""
        assert await resolve_enrichment("q", [build_listing("amazon", "1")]) is None
