"""
ScubaWarehouse (WooCommerce) product page strategy.
"""

from __future__ import annotations

from price_aggregator.scraping.strategies.configurable_strategy import ConfigurableExtractionStrategy


class ScubaWarehouseExtractionStrategy(ConfigurableExtractionStrategy):
    """
    WooCommerce markup; sale prices sit in ``ins`` next to the struck-out
    regular price, so those selectors come first.
    """

    DEFAULT_SELECTORS = (
        ".summary p.price ins .woocommerce-Price-amount",
        ".summary .price ins",
        ".summary .price",
        "p.price",
        "span.woocommerce-Price-amount",
        ".woocommerce-Price-amount",
        ".price",
        "[itemprop='price']",
    )
