"""
Config helpers for competitor price scraping.
"""

from price_aggregator.scraping.config.loader import (
    get_price_aggregation_settings,
    load_platform_configs,
    load_url_table,
)
from price_aggregator.scraping.config.models import (
    PlatformConfig,
    PriceAggregationSettings,
    RefreshTarget,
    UrlTable,
)

__all__ = [
    "PlatformConfig",
    "PriceAggregationSettings",
    "RefreshTarget",
    "UrlTable",
    "get_price_aggregation_settings",
    "load_platform_configs",
    "load_url_table",
]
