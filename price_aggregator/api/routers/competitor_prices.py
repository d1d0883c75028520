"""
price_aggregator/api/routers/competitor_prices.py

Competitor price aggregation endpoints.
"""

from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.exc import SQLAlchemyError

from price_aggregator.api.dependencies import get_aggregator, get_url_store
from price_aggregator.schemas.competitor_prices import (
    CompetitorPricesResponse,
    CompetitorUrlsRequest,
    CompetitorUrlsResponse,
    FetchCompetitorPricesRequest,
)
from price_aggregator.scraping.engine import CompetitorPriceAggregator
from price_aggregator.scraping.errors import ResolverError
from price_aggregator.scraping.resolvers import SQLAlchemyUrlResolver

router = APIRouter(prefix="/products", tags=["competitor-prices"])


@router.post("/{product_id}/competitor-prices", response_model=CompetitorPricesResponse)
def fetch_competitor_prices(
    product_id: str,
    payload: FetchCompetitorPricesRequest,
    aggregator: CompetitorPriceAggregator = Depends(get_aggregator),
) -> CompetitorPricesResponse:
    """
    Fetch live competitor prices, falling back to cached values per competitor.
    """

    try:
        results = aggregator.fetch_competitor_prices(product_id, payload.model, payload.brand)
    except ResolverError as exc:
        raise HTTPException(
            status_code=status.HTTP_502_BAD_GATEWAY,
            detail=str(exc),
        ) from exc
    return CompetitorPricesResponse.from_result_set(product_id, results)


@router.get("/{product_id}/competitor-prices", response_model=CompetitorPricesResponse)
def get_last_fetched_prices(
    product_id: str,
    aggregator: CompetitorPriceAggregator = Depends(get_aggregator),
) -> CompetitorPricesResponse:
    """
    Return the last persisted competitor prices without fetching.
    """

    return CompetitorPricesResponse.from_result_set(
        product_id,
        aggregator.get_last_fetched_prices(product_id),
    )


@router.put("/{product_id}/competitor-urls", response_model=CompetitorUrlsResponse)
def save_competitor_urls(
    product_id: str,
    payload: CompetitorUrlsRequest,
    url_store: SQLAlchemyUrlResolver = Depends(get_url_store),
) -> CompetitorUrlsResponse:
    """
    Replace the saved competitor URLs for a product.
    """

    try:
        url_store.save_urls(product_id, payload.urls)
    except SQLAlchemyError as exc:
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to save competitor URLs.",
        ) from exc
    return CompetitorUrlsResponse(product_id=product_id, urls=payload.urls)
