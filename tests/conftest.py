"""
Shared fixtures for competitor price aggregation tests.

HTTP is replaced by ``FakeHttpSession`` (routes keyed by URL fragment) and
the database is a throwaway SQLite file per test.
"""

from __future__ import annotations

import threading
from collections.abc import Callable, Iterator
from pathlib import Path
from typing import Any

import pytest
import requests
from sqlalchemy.engine import Engine
from sqlalchemy.orm import sessionmaker

import db.models  # noqa: F401  registers all ORM models on Base.metadata
from db.base import Base
from db.session import build_session_factory, create_db_engine
from price_aggregator.scraping.config import PlatformConfig, PriceAggregationSettings, load_platform_configs
from price_aggregator.scraping.rate_limiter import DomainRateLimiter
from price_aggregator.scraping.registry import StrategyRegistry, build_strategy_registry
from price_aggregator.scraping.storage import SQLAlchemyPriceCache

CONFIG_DIR = Path(__file__).resolve().parents[1] / "price_aggregator" / "scraping" / "config"

LAZADA_URL = (
    "https://www.lazada.sg/products/scubapro-mk19-evo-bt-g260-carbon-bt-diving-regulator"
    "-i3015598924-s20850107955.html"
)
SHOPEE_URL = "https://shopee.sg/ScubaPro-MK19-EVO-BT-G260-Carbon-BT-Diving-Regulator-i.554890954.12345678901"
SCUBA_WAREHOUSE_URL = "https://scubawarehouse.com.sg/product/scubapro-mk19-evo-bt-g260-carbon-bt/"


# ---------------------------------------------------------------------------
# HTTP doubles
# ---------------------------------------------------------------------------


class FakeResponse:
    def __init__(self, text: str = "", status_code: int = 200) -> None:
        self.text = text
        self.status_code = status_code

    def raise_for_status(self) -> None:
        if self.status_code >= 400:
            raise requests.HTTPError(f"status={self.status_code}", response=self)


class FakeHttpSession:
    """
    Minimal ``requests.Session`` stand-in.

    Route values may be a response, an HTML string, an exception to raise,
    a callable taking the URL, or a list consumed one item per request.
    Unrouted URLs get a 404.
    """

    def __init__(self, routes: dict[str, Any] | None = None) -> None:
        self.routes: dict[str, Any] = dict(routes or {})
        self.calls: list[tuple[str, dict[str, Any]]] = []
        self._lock = threading.Lock()

    def get(self, url: str, **kwargs: Any) -> FakeResponse:
        with self._lock:
            self.calls.append((url, kwargs))
            outcome = self._route(url)
        if callable(outcome) and not isinstance(outcome, FakeResponse):
            outcome = outcome(url)
        if isinstance(outcome, BaseException):
            raise outcome
        if isinstance(outcome, str):
            return FakeResponse(outcome)
        return outcome

    def urls_requested(self) -> list[str]:
        return [url for url, _ in self.calls]

    def close(self) -> None:
        return None

    def _route(self, url: str) -> Any:
        for fragment, outcome in self.routes.items():
            if fragment not in url:
                continue
            if isinstance(outcome, list):
                return outcome.pop(0) if len(outcome) > 1 else outcome[0]
            return outcome
        return FakeResponse("", 404)


# ---------------------------------------------------------------------------
# Settings and scraping fixtures
# ---------------------------------------------------------------------------


@pytest.fixture()
def settings() -> PriceAggregationSettings:
    return PriceAggregationSettings(
        platform_config_path=str(CONFIG_DIR / "platforms.json"),
        url_table_path=str(CONFIG_DIR / "competitor_urls.json"),
        max_retries=0,
        backoff_initial_seconds=0.0,
        rate_limit_per_second=1000.0,
        call_timeout_seconds=5.0,
    )


@pytest.fixture()
def platform_configs(settings: PriceAggregationSettings) -> list[PlatformConfig]:
    return load_platform_configs(config_path=settings.platform_config_path)


@pytest.fixture()
def fake_http() -> FakeHttpSession:
    return FakeHttpSession()


@pytest.fixture()
def rate_limiter() -> DomainRateLimiter:
    return DomainRateLimiter(default_rate_limit_per_second=1000.0)


@pytest.fixture()
def registry(
    platform_configs: list[PlatformConfig],
    settings: PriceAggregationSettings,
    fake_http: FakeHttpSession,
    rate_limiter: DomainRateLimiter,
) -> StrategyRegistry:
    return build_strategy_registry(
        platform_configs=platform_configs,
        settings=settings,
        session=fake_http,
        rate_limiter=rate_limiter,
    )


@pytest.fixture()
def platform_config_factory() -> Callable[..., PlatformConfig]:
    def _make(**overrides: Any) -> PlatformConfig:
        fields: dict[str, Any] = {
            "name": "Example",
            "strategy_type": "configurable",
            "host_patterns": ("example.com",),
        }
        fields.update(overrides)
        return PlatformConfig(**fields)

    return _make


# ---------------------------------------------------------------------------
# Database fixtures
# ---------------------------------------------------------------------------


@pytest.fixture()
def db_engine(tmp_path: Path) -> Iterator[Engine]:
    engine = create_db_engine(f"sqlite:///{tmp_path / 'prices.db'}")
    Base.metadata.create_all(engine)
    try:
        yield engine
    finally:
        engine.dispose()


@pytest.fixture()
def session_factory(db_engine: Engine) -> sessionmaker:
    return build_session_factory(db_engine)


@pytest.fixture()
def unmigrated_session_factory(tmp_path: Path) -> Iterator[sessionmaker]:
    """Session factory over a database with no tables."""
    engine = create_db_engine(f"sqlite:///{tmp_path / 'empty.db'}")
    try:
        yield build_session_factory(engine)
    finally:
        engine.dispose()


@pytest.fixture()
def price_cache(session_factory: sessionmaker) -> SQLAlchemyPriceCache:
    return SQLAlchemyPriceCache(session_factory=session_factory)
