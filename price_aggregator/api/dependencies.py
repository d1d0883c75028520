"""
price_aggregator/api/dependencies.py

FastAPI dependencies exposing the components built at startup.
"""

from __future__ import annotations

from fastapi import HTTPException, Request, status

from price_aggregator.scraping.engine import CompetitorPriceAggregator
from price_aggregator.scraping.resolvers import SQLAlchemyUrlResolver


def get_aggregator(request: Request) -> CompetitorPriceAggregator:
    aggregator = getattr(request.app.state, "aggregator", None)
    if aggregator is None:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Price aggregator is not initialised.",
        )
    return aggregator


def get_url_store(request: Request) -> SQLAlchemyUrlResolver:
    url_store = getattr(request.app.state, "url_store", None)
    if url_store is None:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Competitor URL store is not initialised.",
        )
    return url_store
