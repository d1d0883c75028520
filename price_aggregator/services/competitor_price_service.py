"""
price_aggregator/services/competitor_price_service.py

Explicit construction of the long-lived aggregation components.

Build once at process start and pass the result to consumers; nothing here
is cached at module level.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import timedelta

import requests
from sqlalchemy.orm import sessionmaker

from price_aggregator.scraping.config import (
    PriceAggregationSettings,
    load_platform_configs,
    load_url_table,
)
from price_aggregator.scraping.engine import CompetitorPriceAggregator
from price_aggregator.scraping.normalization import PriceNormalizer
from price_aggregator.scraping.rate_limiter import DomainRateLimiter
from price_aggregator.scraping.registry import build_strategy_registry
from price_aggregator.scraping.resolvers import SQLAlchemyUrlResolver, StaticUrlResolver
from price_aggregator.scraping.storage import SQLAlchemyPriceCache


@dataclass(frozen=True)
class CompetitorPriceComponents:
    """
    Wired aggregation components sharing one HTTP session and DB session factory.
    """

    aggregator: CompetitorPriceAggregator
    url_store: SQLAlchemyUrlResolver
    cache: SQLAlchemyPriceCache
    http_session: requests.Session


def build_competitor_price_components(
    *,
    settings: PriceAggregationSettings,
    session_factory: sessionmaker,
    http_session: requests.Session | None = None,
) -> CompetitorPriceComponents:
    http = http_session or requests.Session()
    rate_limiter = DomainRateLimiter(default_rate_limit_per_second=settings.rate_limit_per_second)
    registry = build_strategy_registry(
        platform_configs=load_platform_configs(config_path=settings.platform_config_path),
        settings=settings,
        session=http,
        rate_limiter=rate_limiter,
    )
    url_store = SQLAlchemyUrlResolver(
        session_factory=session_factory,
        fallback=StaticUrlResolver.from_table(load_url_table(table_path=settings.url_table_path)),
    )
    cache = SQLAlchemyPriceCache(
        session_factory=session_factory,
        staleness_window=timedelta(hours=settings.staleness_hours),
    )
    aggregator = CompetitorPriceAggregator(
        url_resolver=url_store,
        registry=registry,
        cache=cache,
        normalizer=PriceNormalizer(),
        max_workers=settings.max_workers,
        call_timeout_seconds=settings.call_timeout_seconds,
    )
    return CompetitorPriceComponents(
        aggregator=aggregator,
        url_store=url_store,
        cache=cache,
        http_session=http,
    )
