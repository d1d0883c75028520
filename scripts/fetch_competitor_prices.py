"""
Fetch competitor prices for one product from the CLI.
"""

from __future__ import annotations

import argparse
import json

from db.session import get_session_factory
from price_aggregator.scraping.config import get_price_aggregation_settings
from price_aggregator.scraping.errors import ResolverError
from price_aggregator.scraping.logging_utils import configure_logging
from price_aggregator.services import build_competitor_price_components


def main() -> int:
    parser = argparse.ArgumentParser(description="Fetch and cache competitor prices for a product.")
    parser.add_argument("product_id", help="Catalog product identifier.")
    parser.add_argument("--brand", required=True, help="Product brand, e.g. ScubaPro.")
    parser.add_argument("--model", required=True, help="Product model, e.g. 'MK19 EVO'.")
    parser.add_argument(
        "--cached",
        action="store_true",
        help="Print the last persisted prices without fetching.",
    )
    args = parser.parse_args()

    configure_logging()

    components = build_competitor_price_components(
        settings=get_price_aggregation_settings(),
        session_factory=get_session_factory(),
    )
    try:
        if args.cached:
            results = components.aggregator.get_last_fetched_prices(args.product_id)
        else:
            results = components.aggregator.fetch_competitor_prices(
                args.product_id,
                args.model,
                args.brand,
            )
    except ResolverError as exc:
        print(json.dumps({"error": str(exc), "product_id": args.product_id}, indent=2))
        return 1
    finally:
        components.http_session.close()

    payload = {
        "product_id": args.product_id,
        "prices": {name: price.to_record() for name, price in results.items()},
    }
    print(json.dumps(payload, indent=2))
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
