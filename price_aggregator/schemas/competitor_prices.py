"""
price_aggregator/schemas/competitor_prices.py

Request/response schemas for competitor price endpoints.
"""

from __future__ import annotations

from datetime import datetime
from decimal import Decimal

from pydantic import BaseModel, ConfigDict, Field, field_validator

from price_aggregator.domain.competitor_price import CompetitorPrice, PriceResultSet


class FetchCompetitorPricesRequest(BaseModel):
    model_config = ConfigDict(extra="forbid")

    brand: str = Field(..., min_length=1, max_length=120)
    model: str = Field(..., min_length=1, max_length=120)


class CompetitorPriceResponse(BaseModel):
    """
    One competitor price as returned to API callers.
    """

    competitor: str
    price: Decimal = Field(..., ge=0)
    source_url: str
    last_updated: datetime
    is_live: bool

    @classmethod
    def from_domain(cls, price: CompetitorPrice) -> "CompetitorPriceResponse":
        return cls(
            competitor=price.competitor,
            price=price.price,
            source_url=price.source_url,
            last_updated=price.last_updated,
            is_live=price.is_live,
        )


class CompetitorPricesResponse(BaseModel):
    product_id: str
    prices: list[CompetitorPriceResponse] = Field(default_factory=list)

    @classmethod
    def from_result_set(cls, product_id: str, results: PriceResultSet) -> "CompetitorPricesResponse":
        return cls(
            product_id=product_id,
            prices=[CompetitorPriceResponse.from_domain(price) for price in results.values()],
        )


class CompetitorUrlsRequest(BaseModel):
    model_config = ConfigDict(extra="forbid")

    urls: dict[str, str] = Field(default_factory=dict)

    @field_validator("urls")
    @classmethod
    def _validate_urls(cls, value: dict[str, str]) -> dict[str, str]:
        cleaned: dict[str, str] = {}
        for competitor, url in value.items():
            name = competitor.strip()
            target = url.strip()
            if not name:
                raise ValueError("Competitor names must be non-empty.")
            if not target.startswith(("http://", "https://")):
                raise ValueError(f"URL for '{name}' must be http(s).")
            cleaned[name] = target
        return cleaned


class CompetitorUrlsResponse(BaseModel):
    product_id: str
    urls: dict[str, str]
