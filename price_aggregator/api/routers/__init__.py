"""
price_aggregator/api/routers package marker.
"""

from price_aggregator.api.routers.competitor_prices import router as competitor_prices_router

__all__ = ["competitor_prices_router"]
