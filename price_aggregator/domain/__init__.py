"""
Domain model exports.
"""

from price_aggregator.domain.competitor_price import CompetitorPrice, PriceResultSet

__all__ = ["CompetitorPrice", "PriceResultSet"]
