"""
Price cache interface and merge policy.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from collections.abc import Iterable, Mapping
from datetime import datetime

from price_aggregator.domain.competitor_price import CompetitorPrice, PriceResultSet


def merge_price_results(
    prior: Mapping[str, CompetitorPrice],
    fresh: Mapping[str, CompetitorPrice],
) -> PriceResultSet:
    """
    Fresh prices win and are live; every prior competitor without a fresh
    price is kept as-is but marked not live. Never drops a competitor.

    The result depends only on the two mappings, not on the order fresh
    prices were collected in. Prior competitors keep their position and
    new ones are appended.
    """

    merged: PriceResultSet = {name: price.as_stale() for name, price in prior.items()}
    for name, price in fresh.items():
        merged[name] = price.as_live()
    return merged


class PriceCache(ABC):
    """
    Persisted product id -> price result set store.
    """

    @abstractmethod
    def read(self, product_id: str) -> PriceResultSet:
        """
        Return the last persisted result set, or an empty mapping. Never raises.
        """

    @abstractmethod
    def merge(
        self,
        product_id: str,
        fresh: Mapping[str, CompetitorPrice],
        failed: Iterable[str] = (),
        *,
        now: datetime | None = None,
    ) -> PriceResultSet:
        """
        Merge fresh prices into the stored set, persist atomically and return it.

        Raises PriceCacheWriteError when the merged set could not be stored.
        """

    @abstractmethod
    def replace(self, product_id: str, results: Mapping[str, CompetitorPrice]) -> PriceResultSet:
        """
        Overwrite the stored set wholesale. Not part of the default flow.
        """
