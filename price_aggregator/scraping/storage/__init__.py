"""
Price cache exports.
"""

from price_aggregator.scraping.storage.base import PriceCache, merge_price_results
from price_aggregator.scraping.storage.sqlalchemy_storage import SQLAlchemyPriceCache

__all__ = ["PriceCache", "SQLAlchemyPriceCache", "merge_price_results"]
