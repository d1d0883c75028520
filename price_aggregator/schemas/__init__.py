"""
API schema exports.
"""

from price_aggregator.schemas.competitor_prices import (
    CompetitorPriceResponse,
    CompetitorPricesResponse,
    CompetitorUrlsRequest,
    CompetitorUrlsResponse,
    FetchCompetitorPricesRequest,
)

__all__ = [
    "CompetitorPriceResponse",
    "CompetitorPricesResponse",
    "CompetitorUrlsRequest",
    "CompetitorUrlsResponse",
    "FetchCompetitorPricesRequest",
]
