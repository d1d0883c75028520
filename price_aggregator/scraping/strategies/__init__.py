"""
Extraction strategy exports.
"""

from price_aggregator.scraping.strategies.configurable_strategy import ConfigurableExtractionStrategy
from price_aggregator.scraping.strategies.lazada import LazadaExtractionStrategy
from price_aggregator.scraping.strategies.scuba_warehouse import ScubaWarehouseExtractionStrategy
from price_aggregator.scraping.strategies.shopee import ShopeeExtractionStrategy

__all__ = [
    "ConfigurableExtractionStrategy",
    "LazadaExtractionStrategy",
    "ScubaWarehouseExtractionStrategy",
    "ShopeeExtractionStrategy",
]
