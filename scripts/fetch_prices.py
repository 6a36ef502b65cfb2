#!/usr/bin/env python
"""
Price lookup script.

Fetches the current price of a product from every configured vendor and
prints the listings cheapest first.

Usage:
    cd /path/to/pricehawk
    python scripts/fetch_prices.py "iPhone 15" [--json] [--no-fallback] [--deadline 10]
"""

import argparse
import asyncio
import json
import sys
from pathlib import Path

# Add project root to path
project_root = Path(__file__).resolve().parent.parent
sys.path.insert(0, str(project_root))

from core.config import get_settings  # noqa: E402
from core.logging import configure_from_settings  # noqa: E402
from services.pricing.bootstrap import build_service  # noqa: E402
from services.pricing.errors import InvalidQueryError  # noqa: E402
from services.pricing.types import AggregationResult  # noqa: E402

EXIT_INVALID_QUERY = 2


def result_to_dict(result: AggregationResult) -> dict:
    """Convert a result into JSON-serializable data."""
    return {
        "query": result.query,
        "source": result.source.value,
        "vendors_requested": result.vendors_requested,
        "vendors_responded": result.vendors_responded,
        "listings": [
            {
                "vendor": listing.vendor,
                "price": str(listing.price) if listing.price is not None else None,
                "title": listing.title,
                "url": listing.url,
                "in_stock": listing.in_stock,
                "image_url": listing.image_url,
                "rating": listing.rating,
                "enrichment": listing.enrichment,
                "is_fallback": listing.is_fallback,
            }
            for listing in result
        ],
    }


def format_result(result: AggregationResult) -> str:
    """Render a result as a plain text table."""
    lines = [
        f"{result.query} ({result.source.value}, "
        f"{result.vendors_responded}/{result.vendors_requested} vendors)"
    ]
    if result.is_empty:
        lines.append("  no listings found")
    for listing in result:
        price = f"{listing.price:,}" if listing.price is not None else "-"
        stock = "" if listing.in_stock else " [out of stock]"
        lines.append(f"  {listing.vendor:<10} {price:>12}  {listing.title}{stock}")
        lines.append(f"  {'':<10} {'':>12}  {listing.url}")
        if listing.enrichment:
            lines.append(f"  {'':<10} {'':>12}  {listing.enrichment}")
    return "\n".join(lines)


async def run(query: str, *, as_json: bool, fallback: bool, deadline: float | None) -> int:
    """Run one lookup and print it."""
    settings = get_settings()
    update: dict = {"fallback_enabled": fallback}
    if deadline is not None:
        update["overall_deadline"] = deadline
    settings = settings.model_copy(
        update={"aggregation": settings.aggregation.model_copy(update=update)}
    )
    configure_from_settings(settings)

    async with build_service(settings) as service:
        try:
            result = await service.fetch_pricing(query)
        except InvalidQueryError as e:
            print(f"ERROR: {e.message}", file=sys.stderr)
            return EXIT_INVALID_QUERY

    if as_json:
        print(json.dumps(result_to_dict(result), indent=2))
    else:
        print(format_result(result))
    return 0


def main() -> None:
    """Main entry point."""
    parser = argparse.ArgumentParser(description="Compare product prices across vendors")
    parser.add_argument("query", help="Product to search for, e.g. 'iPhone 15'")
    parser.add_argument("--json", action="store_true", help="Print the result as JSON")
    parser.add_argument(
        "--no-fallback",
        action="store_true",
        help="Do not print vendor search links when nothing is priced",
    )
    parser.add_argument(
        "--deadline",
        type=float,
        default=None,
        help="Overall deadline in seconds for the vendor fetch",
    )
    args = parser.parse_args()

    sys.exit(
        asyncio.run(
            run(
                args.query,
                as_json=args.json,
                fallback=not args.no_fallback,
                deadline=args.deadline,
            )
        )
    )


if __name__ == "__main__":
    main()
