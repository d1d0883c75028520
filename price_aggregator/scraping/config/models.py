"""
Price scraping configuration models.
"""

from __future__ import annotations

from dataclasses import dataclass, field

DEFAULT_USER_AGENT = (
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 "
    "(KHTML, like Gecko) Chrome/124.0.0.0 Safari/537.36"
)


@dataclass(frozen=True)
class PlatformConfig:
    """
    One retail platform's extraction configuration.
    """

    name: str
    strategy_type: str
    host_patterns: tuple[str, ...]
    selectors: tuple[str, ...] = ()
    json_price_keys: tuple[str, ...] = ()
    known_prices: dict[str, str] = field(default_factory=dict)
    headers: dict[str, str] = field(default_factory=dict)
    rate_limit_per_second: float | None = None
    enabled: bool = True
    strategy_class: str | None = None


@dataclass(frozen=True)
class UrlTable:
    """
    Static product -> competitor URL table plus derived URL templates.

    Templates may use ``{brand}``, ``{model}``, ``{brand_slug}`` and
    ``{model_slug}``.
    """

    products: dict[str, dict[str, str]] = field(default_factory=dict)
    derived_templates: dict[str, str] = field(default_factory=dict)


@dataclass(frozen=True)
class RefreshTarget:
    """
    Product scheduled for periodic competitor price refresh.
    """

    product_id: str
    brand: str
    model: str


@dataclass(frozen=True)
class PriceAggregationSettings:
    """
    Runtime settings for competitor price aggregation.
    """

    platform_config_path: str
    url_table_path: str
    user_agent: str = DEFAULT_USER_AGENT
    timeout_seconds: float = 10.0
    max_retries: int = 1
    backoff_initial_seconds: float = 0.5
    backoff_multiplier: float = 2.0
    rate_limit_per_second: float = 1.0
    max_workers: int = 4
    call_timeout_seconds: float = 30.0
    staleness_hours: float = 24.0
    enable_known_price_fallback: bool = True
    refresh_targets: tuple[RefreshTarget, ...] = ()
    refresh_interval_minutes: int = 360
