"""
Environment + JSON config loader for competitor price scraping.
"""

from __future__ import annotations

import json
import logging
import os
from functools import lru_cache
from pathlib import Path

from db.config import load_env_files

from price_aggregator.scraping.config.models import (
    DEFAULT_USER_AGENT,
    PlatformConfig,
    PriceAggregationSettings,
    RefreshTarget,
    UrlTable,
)

logger = logging.getLogger(__name__)


def _get_bool_env(name: str, default: bool) -> bool:
    raw = os.getenv(name)
    if raw is None:
        return default
    return raw.strip().lower() in {"1", "true", "yes", "on"}


def _get_int_env(name: str, default: int) -> int:
    raw = os.getenv(name)
    if raw is None:
        return default
    try:
        return int(raw)
    except ValueError:
        return default


def _get_float_env(name: str, default: float) -> float:
    raw = os.getenv(name)
    if raw is None:
        return default
    try:
        return float(raw)
    except ValueError:
        return default


def _get_str_env(name: str, default: str) -> str:
    raw = os.getenv(name)
    if raw is None:
        return default
    stripped = raw.strip()
    return stripped if stripped else default


def _project_root() -> Path:
    return Path(__file__).resolve().parents[3]


def _resolve_config_path(raw_path: str) -> Path:
    candidate = Path(raw_path)
    if candidate.is_absolute():
        return candidate
    return (_project_root() / candidate).resolve()


@lru_cache(maxsize=1)
def get_price_aggregation_settings() -> PriceAggregationSettings:
    """
    Return cached aggregation settings from environment variables.
    """

    load_env_files()
    return PriceAggregationSettings(
        platform_config_path=str(
            _resolve_config_path(
                _get_str_env(
                    "PRICE_PLATFORM_CONFIG_PATH",
                    "price_aggregator/scraping/config/platforms.json",
                )
            )
        ),
        url_table_path=str(
            _resolve_config_path(
                _get_str_env(
                    "PRICE_URL_TABLE_PATH",
                    "price_aggregator/scraping/config/competitor_urls.json",
                )
            )
        ),
        user_agent=_get_str_env("PRICE_SCRAPE_USER_AGENT", DEFAULT_USER_AGENT),
        timeout_seconds=max(1.0, _get_float_env("PRICE_SCRAPE_TIMEOUT_SECONDS", 10.0)),
        max_retries=max(0, _get_int_env("PRICE_SCRAPE_MAX_RETRIES", 1)),
        backoff_initial_seconds=max(
            0.0,
            _get_float_env("PRICE_SCRAPE_BACKOFF_INITIAL_SECONDS", 0.5),
        ),
        backoff_multiplier=max(1.0, _get_float_env("PRICE_SCRAPE_BACKOFF_MULTIPLIER", 2.0)),
        rate_limit_per_second=max(
            0.1,
            _get_float_env("PRICE_SCRAPE_RATE_LIMIT_PER_SECOND", 1.0),
        ),
        max_workers=max(1, _get_int_env("PRICE_SCRAPE_MAX_WORKERS", 4)),
        call_timeout_seconds=max(1.0, _get_float_env("PRICE_SCRAPE_CALL_TIMEOUT_SECONDS", 30.0)),
        staleness_hours=max(0.0, _get_float_env("PRICE_CACHE_STALENESS_HOURS", 24.0)),
        enable_known_price_fallback=_get_bool_env(
            "PRICE_SCRAPE_ENABLE_KNOWN_PRICE_FALLBACK",
            True,
        ),
        refresh_targets=parse_refresh_targets(os.getenv("PRICE_REFRESH_PRODUCTS", "")),
        refresh_interval_minutes=max(1, _get_int_env("PRICE_REFRESH_INTERVAL_MINUTES", 360)),
    )


def parse_refresh_targets(raw: str) -> tuple[RefreshTarget, ...]:
    """
    Parse ``id:brand:model,id:brand:model`` into refresh targets.
    Malformed tokens are skipped with a WARNING log.
    """

    targets: list[RefreshTarget] = []
    for token in raw.split(","):
        token = token.strip()
        if not token:
            continue
        parts = [part.strip() for part in token.split(":", 2)]
        if len(parts) != 3 or not all(parts):
            logger.warning("PRICE_REFRESH_PRODUCTS: skipping malformed token %r", token)
            continue
        targets.append(RefreshTarget(product_id=parts[0], brand=parts[1], model=parts[2]))
    return tuple(targets)


def load_platform_configs(*, config_path: str) -> list[PlatformConfig]:
    """
    Load retail platform configurations from a JSON file, in file order.
    """

    path = _resolve_config_path(config_path)
    if not path.exists():
        raise FileNotFoundError(f"Platform config file not found: {path}")

    raw_data = json.loads(path.read_text(encoding="utf-8"))
    platforms = raw_data.get("platforms", [])
    if not isinstance(platforms, list):
        raise ValueError("Invalid platform config: 'platforms' must be a list.")

    parsed: list[PlatformConfig] = []
    for entry in platforms:
        if not isinstance(entry, dict):
            continue

        name = str(entry.get("name", "")).strip()
        host_patterns = _normalize_str_list(entry.get("host_patterns", []), lower=True)
        if not name or not host_patterns:
            continue

        parsed.append(
            PlatformConfig(
                name=name,
                strategy_type=str(entry.get("strategy_type", "configurable")).strip().lower(),
                host_patterns=host_patterns,
                selectors=_normalize_str_list(entry.get("selectors", [])),
                json_price_keys=_normalize_str_list(entry.get("json_price_keys", [])),
                known_prices=_normalize_str_map(entry.get("known_prices", {})),
                headers=_normalize_str_map(entry.get("headers", {})),
                rate_limit_per_second=_optional_float(entry.get("rate_limit_per_second")),
                enabled=_optional_bool(entry.get("enabled"), True),
                strategy_class=_optional_str(entry.get("strategy_class")),
            )
        )

    return parsed


def load_url_table(*, table_path: str) -> UrlTable:
    """
    Load the static competitor URL table. A missing file yields an empty table.
    """

    path = _resolve_config_path(table_path)
    if not path.exists():
        logger.warning("Competitor URL table not found: %s", path)
        return UrlTable()

    raw_data = json.loads(path.read_text(encoding="utf-8"))
    if not isinstance(raw_data, dict):
        raise ValueError("Invalid competitor URL table: top level must be an object.")

    products: dict[str, dict[str, str]] = {}
    raw_products = raw_data.get("products", {})
    if isinstance(raw_products, dict):
        for product_id, urls in raw_products.items():
            normalized = _normalize_str_map(urls)
            if normalized:
                products[str(product_id).strip()] = normalized

    return UrlTable(
        products=products,
        derived_templates=_normalize_str_map(raw_data.get("derived_templates", {})),
    )


def _normalize_str_list(values: object, *, lower: bool = False) -> tuple[str, ...]:
    if isinstance(values, str):
        values = [values]
    if not isinstance(values, list):
        return ()

    normalized: list[str] = []
    for item in values:
        if not isinstance(item, str) or not item.strip():
            continue
        normalized.append(item.strip().lower() if lower else item.strip())
    return tuple(normalized)


def _normalize_str_map(values: object) -> dict[str, str]:
    if not isinstance(values, dict):
        return {}

    normalized: dict[str, str] = {}
    for key, value in values.items():
        if not isinstance(key, str) or not isinstance(value, str):
            continue
        if key.strip() and value.strip():
            normalized[key.strip()] = value.strip()
    return normalized


def _optional_str(value: object) -> str | None:
    if value is None:
        return None
    if not isinstance(value, str):
        return None
    stripped = value.strip()
    return stripped or None


def _optional_float(value: object) -> float | None:
    if value is None:
        return None
    try:
        return float(value)
    except (TypeError, ValueError):
        return None


def _optional_bool(value: object, default: bool) -> bool:
    if value is None:
        return default
    if isinstance(value, bool):
        return value
    if isinstance(value, str):
        normalized = value.strip().lower()
        if normalized in {"1", "true", "yes", "on"}:
            return True
        if normalized in {"0", "false", "no", "off"}:
            return False
    return default
