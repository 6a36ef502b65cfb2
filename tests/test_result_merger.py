"""Tests for the result merger."""

from __future__ import annotations

from decimal import Decimal

from fakes import build_listing

from services.pricing.merger import MergeMode, ResultMerger, price_key
from services.pricing.types import OutcomeStatus, VendorOutcome


def prices(listings) -> list[tuple[str, Decimal | None]]:
    """Return (vendor, price) pairs."""
    return [(listing.vendor, listing.price) for listing in listings]


class TestPriceKey:
    """Tests for price_key."""

    def test_priceless_sorts_last(self) -> None:
        """Priceless listings sort after any priced listing."""
        cheap = build_listing("a", "1")
        dear = build_listing("b", "999999")
        none = build_listing("c", None)

        assert sorted([none, dear, cheap], key=price_key) == [cheap, dear, none]


class TestResultMergerStrict:
    """Tests for strict merging."""

    def test_sorts_by_price_and_drops_absent(self) -> None:
        """Listings come back cheapest first; None entries are dropped."""
        merged = ResultMerger().merge(
            [build_listing("amazon", "74999"), None, build_listing("croma", "73999")]
        )

        assert prices(merged) == [("croma", Decimal("73999")), ("amazon", Decimal("74999"))]

    def test_drops_priceless(self) -> None:
        """Strict mode removes listings without a price."""
        merged = ResultMerger().merge([build_listing("amazon", None), build_listing("croma", "5")])

        assert prices(merged) == [("croma", Decimal("5"))]

    def test_ties_keep_input_order(self) -> None:
        """Equal prices keep dispatch order."""
        merged = ResultMerger().merge(
            [build_listing("flipkart", "100"), build_listing("amazon", "100")]
        )

        assert [listing.vendor for listing in merged] == ["flipkart", "amazon"]

    def test_empty_input(self) -> None:
        """Nothing in, nothing out."""
        assert ResultMerger().merge([]) == ()
        assert ResultMerger().merge([None, None]) == ()

    def test_inputs_not_mutated(self) -> None:
        """The candidate list is left untouched."""
        candidates = [build_listing("amazon", "2", enrichment="x"), build_listing("croma", "1")]
        snapshot = list(candidates)

        ResultMerger().merge(candidates, enrichment="8 GB RAM")

        assert candidates == snapshot
        assert candidates[0].enrichment == "x"


class TestResultMergerLenient:
    """Tests for lenient merging."""

    def test_keeps_priceless_at_tail(self) -> None:
        """Lenient mode keeps priceless entries after priced ones."""
        merged = ResultMerger().merge(
            [build_listing("flipkart", None), build_listing("amazon", "10"), None],
            mode=MergeMode.LENIENT,
        )

        assert prices(merged) == [("amazon", Decimal("10")), ("flipkart", None)]


class TestEnrichment:
    """Tests for enrichment attachment."""

    def test_only_cheapest_is_enriched(self) -> None:
        """The cheapest priced listing carries the enrichment; others are cleared."""
        merged = ResultMerger().merge(
            [
                build_listing("amazon", "74999", enrichment="A16 Bionic chip"),
                build_listing("croma", "73999"),
            ],
            enrichment="6.1-inch display · A16 Bionic chip",
        )

        assert merged[0].vendor == "croma"
        assert merged[0].enrichment == "6.1-inch display · A16 Bionic chip"
        assert merged[1].enrichment is None

    def test_no_priced_listing_unchanged(self) -> None:
        """Without a priced listing nothing is enriched."""
        merged = ResultMerger().merge(
            [build_listing("amazon", None)],
            enrichment="specs",
            mode=MergeMode.LENIENT,
        )

        assert merged[0].enrichment is None

    def test_without_enrichment_listings_untouched(self) -> None:
        """No enrichment string leaves listings as given."""
        listing = build_listing("amazon", "1", enrichment="own specs")

        merged = ResultMerger().merge([listing])

        assert merged[0] is listing


class TestMergeOutcomes:
    """Tests for merge_outcomes."""

    def test_merges_successful_outcomes(self) -> None:
        """Only outcomes with listings contribute."""
        outcomes = {
            "amazon": VendorOutcome(
                "amazon", OutcomeStatus.SUCCESS, listing=build_listing("amazon", "74999")
            ),
            "flipkart": VendorOutcome("flipkart", OutcomeStatus.TIMED_OUT),
            "croma": VendorOutcome(
                "croma", OutcomeStatus.SUCCESS, listing=build_listing("croma", "73999")
            ),
        }

        merged = ResultMerger().merge_outcomes(outcomes)

        assert prices(merged) == [("croma", Decimal("73999")), ("amazon", Decimal("74999"))]
