"""
Ordered extraction strategy registry and its config-driven builder.
"""

from __future__ import annotations

import importlib
import logging
from collections.abc import Iterable, Mapping

import requests

from price_aggregator.scraping.base import ExtractionStrategy
from price_aggregator.scraping.config.models import PlatformConfig, PriceAggregationSettings
from price_aggregator.scraping.errors import NoStrategyFound
from price_aggregator.scraping.logging_utils import log_event
from price_aggregator.scraping.rate_limiter import DomainRateLimiter
from price_aggregator.scraping.strategies import (
    ConfigurableExtractionStrategy,
    LazadaExtractionStrategy,
    ScubaWarehouseExtractionStrategy,
    ShopeeExtractionStrategy,
)

logger = logging.getLogger(__name__)

BUILTIN_STRATEGY_TYPES: dict[str, type[ExtractionStrategy]] = {
    "configurable": ConfigurableExtractionStrategy,
    "lazada": LazadaExtractionStrategy,
    "shopee": ShopeeExtractionStrategy,
    "scubawarehouse": ScubaWarehouseExtractionStrategy,
}


class StrategyRegistry:
    """
    Ordered list of extraction strategies.

    Resolution is first match wins in registration order. Duplicate
    platform names are accepted; the earlier registration stays
    authoritative for any URL both claim.
    """

    def __init__(self, strategies: Iterable[ExtractionStrategy] = ()) -> None:
        self._strategies: list[ExtractionStrategy] = []
        for strategy in strategies:
            self.register(strategy)

    def register(self, strategy: ExtractionStrategy) -> None:
        self._strategies.append(strategy)

    def resolve(self, url: str) -> ExtractionStrategy:
        for strategy in self._strategies:
            if strategy.can_handle(url):
                return strategy
        raise NoStrategyFound(url)

    def strategies(self) -> list[ExtractionStrategy]:
        return list(self._strategies)

    def __len__(self) -> int:
        return len(self._strategies)


def build_strategy_registry(
    *,
    platform_configs: Iterable[PlatformConfig],
    settings: PriceAggregationSettings,
    session: requests.Session,
    rate_limiter: DomainRateLimiter,
    strategy_types: Mapping[str, type[ExtractionStrategy]] | None = None,
) -> StrategyRegistry:
    """
    Build a registry from platform configs, preserving config file order.
    """

    available = dict(BUILTIN_STRATEGY_TYPES)
    if strategy_types:
        available.update({key.strip().lower(): value for key, value in strategy_types.items()})

    registry = StrategyRegistry()
    for config in platform_configs:
        if not config.enabled:
            continue
        strategy_class = _resolve_strategy_class(config, available)
        registry.register(
            strategy_class(
                config=config,
                settings=settings,
                session=session,
                rate_limiter=rate_limiter,
            )
        )
        log_event(
            logger,
            logging.DEBUG,
            "strategy_registered",
            platform=config.name,
            strategy=strategy_class.__name__,
            host_patterns=list(config.host_patterns),
        )
    return registry


def _resolve_strategy_class(
    config: PlatformConfig,
    available: Mapping[str, type[ExtractionStrategy]],
) -> type[ExtractionStrategy]:
    if config.strategy_class:
        return _load_dynamic_class(config.strategy_class)

    resolved = available.get(config.strategy_type)
    if resolved is None:
        allowed = ", ".join(sorted(available.keys()))
        raise ValueError(
            f"Unknown strategy_type='{config.strategy_type}' for platform='{config.name}'. "
            f"Allowed types: {allowed}."
        )
    return resolved


def _load_dynamic_class(path: str) -> type[ExtractionStrategy]:
    if ":" not in path:
        raise ValueError(f"Invalid strategy_class '{path}'. Use 'module.path:ClassName'.")

    module_path, class_name = path.split(":", 1)
    module = importlib.import_module(module_path)
    loaded = getattr(module, class_name, None)
    if loaded is None:
        raise ValueError(f"Unable to resolve strategy class '{path}'.")
    if not isinstance(loaded, type) or not issubclass(loaded, ExtractionStrategy):
        raise ValueError(f"Class '{path}' must inherit from ExtractionStrategy.")
    return loaded
