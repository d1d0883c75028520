"""
Lazada product page strategy.
"""

from __future__ import annotations

import re

from price_aggregator.scraping.strategies.configurable_strategy import ConfigurableExtractionStrategy

# e.g. /products/shearwater-peregrine-i2834363533-s19538607194.html
LAZADA_IDS_REGEX = re.compile(r"-i(\d+)-s(\d+)")


class LazadaExtractionStrategy(ConfigurableExtractionStrategy):
    """
    Lazada renders most of the product page client-side; the server HTML
    usually still carries the pdp state blob in an inline script, so the
    script-state probe only looks at scripts holding that blob.
    """

    DEFAULT_SELECTORS = (
        ".pdp-price",
        ".pdp-product-price",
        ".pdp-price_type_normal",
        ".pdp-price_size_xl",
        "[data-pdp-price]",
        "[data-price]",
    )
    DEFAULT_JSON_PRICE_KEYS = ("salePrice", "displayPrice", "price", "originPrice")
    SCRIPT_MARKERS = ("__INITIAL_STATE__", "pdpData", "__moduleData__")

    @staticmethod
    def item_ids(url: str) -> tuple[str, str] | None:
        """
        Return ``(item_id, sku_id)`` parsed from a Lazada product URL.
        """

        match = LAZADA_IDS_REGEX.search(url)
        if match is None:
            return None
        return match.group(1), match.group(2)

    def known_price_for(self, url: str) -> tuple[str, str] | None:
        ids = self.item_ids(url)
        if ids is not None:
            for item_or_sku in ids:
                price_text = self.config.known_prices.get(item_or_sku)
                if price_text is not None:
                    return price_text, item_or_sku
        return super().known_price_for(url)
