"""
Competitor price aggregation engine.
"""

from __future__ import annotations

import logging
import time
from collections.abc import Callable
from concurrent.futures import FIRST_COMPLETED, Future, ThreadPoolExecutor, wait
from datetime import datetime, timezone

from price_aggregator.domain.competitor_price import CompetitorPrice, PriceResultSet
from price_aggregator.scraping.errors import (
    ExtractionError,
    NoStrategyFound,
    ParseError,
    PriceCacheWriteError,
    ResolverError,
)
from price_aggregator.scraping.logging_utils import log_event
from price_aggregator.scraping.normalization import PriceNormalizer
from price_aggregator.scraping.registry import StrategyRegistry
from price_aggregator.scraping.resolvers import UrlResolver
from price_aggregator.scraping.storage import PriceCache
from price_aggregator.scraping.types import CompetitorFetchOutcome

logger = logging.getLogger(__name__)


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)


class CompetitorPriceAggregator:
    """
    Resolves competitor URLs for a product, fetches and normalizes each
    price concurrently, and merges the outcome with the price cache.

    Only URL resolution can fail a call. Every per-competitor failure
    becomes a cache fallback: the competitor's previous price is kept with
    ``is_live=False``, or it is left out when nothing was cached.
    """

    def __init__(
        self,
        *,
        url_resolver: UrlResolver,
        registry: StrategyRegistry,
        cache: PriceCache,
        normalizer: PriceNormalizer | None = None,
        max_workers: int = 4,
        call_timeout_seconds: float = 30.0,
        clock: Callable[[], datetime] = _utc_now,
    ) -> None:
        self._url_resolver = url_resolver
        self._registry = registry
        self._cache = cache
        self._normalizer = normalizer or PriceNormalizer()
        self._max_workers = max(1, max_workers)
        self._call_timeout_seconds = call_timeout_seconds
        self._clock = clock

    def fetch_competitor_prices(self, product_id: str, model: str, brand: str) -> PriceResultSet:
        started = time.perf_counter()
        cached = self._cache.read(product_id)
        log_event(
            logger,
            logging.INFO,
            "competitor_prices_fetch_started",
            product_id=product_id,
            brand=brand,
            model=model,
            cached_competitors=sorted(cached),
        )

        try:
            urls = self._url_resolver.resolve(product_id, brand, model)
        except ResolverError:
            log_event(logger, logging.ERROR, "competitor_urls_unresolved", product_id=product_id)
            raise
        except Exception as exc:
            log_event(
                logger,
                logging.ERROR,
                "competitor_urls_unresolved",
                product_id=product_id,
                error=str(exc),
            )
            raise ResolverError(product_id, str(exc)) from exc

        fetched_at = self._clock()
        outcomes = self._collect(urls, fetched_at) if urls else []

        successes: dict[str, CompetitorPrice] = {}
        failures: list[str] = []
        for outcome in outcomes:
            if outcome.succeeded:
                successes[outcome.competitor] = outcome.price
            else:
                failures.append(outcome.competitor)

        try:
            merged = self._cache.merge(product_id, successes, failures, now=fetched_at)
        except PriceCacheWriteError as exc:
            log_event(
                logger,
                logging.ERROR,
                "price_cache_write_failed",
                product_id=product_id,
                error=exc.detail,
            )
            merged = exc.merged

        log_event(
            logger,
            logging.INFO,
            "competitor_prices_fetch_completed",
            product_id=product_id,
            live=sorted(successes),
            failed=sorted(failures),
            total=len(merged),
            elapsed_seconds=round(time.perf_counter() - started, 3),
        )
        return merged

    def get_last_fetched_prices(self, product_id: str) -> PriceResultSet:
        return self._cache.read(product_id)

    def _collect(
        self,
        urls: dict[str, str],
        fetched_at: datetime,
    ) -> list[CompetitorFetchOutcome]:
        """
        Run every competitor pipeline with bounded concurrency under one
        overall deadline. Pipelines still running at the deadline are
        abandoned and reported as timeouts; siblings are unaffected.
        """

        outcomes: list[CompetitorFetchOutcome] = []
        executor = ThreadPoolExecutor(
            max_workers=min(self._max_workers, len(urls)),
            thread_name_prefix="competitor-price",
        )
        pending: dict[Future[CompetitorFetchOutcome], tuple[str, str]] = {
            executor.submit(self._fetch_one, competitor, url, fetched_at): (competitor, url)
            for competitor, url in urls.items()
        }
        deadline = time.monotonic() + self._call_timeout_seconds
        try:
            while pending:
                remaining = deadline - time.monotonic()
                if remaining <= 0:
                    break
                done, _ = wait(pending, timeout=remaining, return_when=FIRST_COMPLETED)
                for future in done:
                    competitor, url = pending.pop(future)
                    outcomes.append(self._outcome_of(future, competitor, url))
        finally:
            for future, (competitor, url) in pending.items():
                future.cancel()
                log_event(
                    logger,
                    logging.WARNING,
                    "competitor_price_failed",
                    competitor=competitor,
                    url=url,
                    error_kind="timeout",
                    error=f"abandoned after {self._call_timeout_seconds}s call deadline",
                )
                outcomes.append(
                    CompetitorFetchOutcome(
                        competitor=competitor,
                        url=url,
                        error_kind="timeout",
                        error="call deadline exceeded",
                    )
                )
            executor.shutdown(wait=False, cancel_futures=True)
        return outcomes

    @staticmethod
    def _outcome_of(
        future: Future[CompetitorFetchOutcome],
        competitor: str,
        url: str,
    ) -> CompetitorFetchOutcome:
        try:
            return future.result()
        except Exception as exc:  # noqa: BLE001
            logger.exception("Unexpected failure fetching price for %s", competitor)
            return CompetitorFetchOutcome(
                competitor=competitor,
                url=url,
                error_kind="unexpected",
                error=str(exc),
            )

    def _fetch_one(self, competitor: str, url: str, fetched_at: datetime) -> CompetitorFetchOutcome:
        try:
            strategy = self._registry.resolve(url)
            extracted = strategy.extract(url)
            price = self._normalizer.parse(extracted.raw_text)
        except NoStrategyFound as exc:
            return self._failed(competitor, url, "no_strategy", exc)
        except ExtractionError as exc:
            return self._failed(competitor, url, exc.reason, exc)
        except ParseError as exc:
            return self._failed(competitor, url, "price_parse", exc)

        competitor_price = CompetitorPrice(
            competitor=competitor,
            price=price,
            source_url=url,
            last_updated=fetched_at,
            is_live=True,
        )
        log_event(
            logger,
            logging.INFO,
            "competitor_price_fetched",
            competitor=competitor,
            platform=strategy.platform_name(),
            url=url,
            price=price,
        )
        return CompetitorFetchOutcome(competitor=competitor, url=url, price=competitor_price)

    @staticmethod
    def _failed(
        competitor: str,
        url: str,
        error_kind: str,
        exc: Exception,
    ) -> CompetitorFetchOutcome:
        log_event(
            logger,
            logging.WARNING,
            "competitor_price_failed",
            competitor=competitor,
            url=url,
            error_kind=error_kind,
            error=str(exc),
        )
        return CompetitorFetchOutcome(
            competitor=competitor,
            url=url,
            error_kind=error_kind,
            error=str(exc),
        )
