"""
Service layer exports.
"""

from price_aggregator.services.competitor_price_service import (
    CompetitorPriceComponents,
    build_competitor_price_components,
)

__all__ = ["CompetitorPriceComponents", "build_competitor_price_components"]
