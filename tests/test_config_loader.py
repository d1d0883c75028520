from __future__ import annotations

import json
from collections.abc import Iterator
from pathlib import Path

import pytest

from price_aggregator.scraping.config import (
    RefreshTarget,
    get_price_aggregation_settings,
    load_platform_configs,
    load_url_table,
)
from price_aggregator.scraping.config.loader import parse_refresh_targets


def _write_json(path: Path, payload: object) -> str:
    path.write_text(json.dumps(payload), encoding="utf-8")
    return str(path)


@pytest.fixture()
def fresh_settings() -> Iterator[None]:
    get_price_aggregation_settings.cache_clear()
    yield
    get_price_aggregation_settings.cache_clear()


# ---------------------------------------------------------------------------
# Platform configs
# ---------------------------------------------------------------------------


class TestLoadPlatformConfigs:
    def test_shipped_config_lists_three_platforms(self, platform_configs) -> None:
        assert [config.name for config in platform_configs] == ["Lazada", "Shopee", "ScubaWarehouse"]
        assert platform_configs[0].known_prices["scubapro"] == "$1,428.90"

    def test_parses_and_normalizes_entries(self, tmp_path: Path) -> None:
        path = _write_json(
            tmp_path / "platforms.json",
            {
                "platforms": [
                    {
                        "name": " DiveShop ",
                        "host_patterns": ["DiveShop.Example", ""],
                        "selectors": [".price", 7],
                        "headers": {"Referer": "https://diveshop.example/"},
                        "rate_limit_per_second": "0.5",
                        "enabled": "no",
                    }
                ]
            },
        )

        [config] = load_platform_configs(config_path=path)

        assert config.name == "DiveShop"
        assert config.strategy_type == "configurable"
        assert config.host_patterns == ("diveshop.example",)
        assert config.selectors == (".price",)
        assert config.headers == {"Referer": "https://diveshop.example/"}
        assert config.rate_limit_per_second == 0.5
        assert config.enabled is False
        assert config.strategy_class is None

    def test_skips_entries_without_name_or_hosts(self, tmp_path: Path) -> None:
        path = _write_json(
            tmp_path / "platforms.json",
            {
                "platforms": [
                    "not-an-object",
                    {"name": "", "host_patterns": ["a.example"]},
                    {"name": "NoHosts", "host_patterns": []},
                    {"name": "Kept", "host_patterns": "kept.example"},
                ]
            },
        )

        configs = load_platform_configs(config_path=path)

        assert [config.name for config in configs] == ["Kept"]
        assert configs[0].host_patterns == ("kept.example",)

    def test_missing_file_raises(self, tmp_path: Path) -> None:
        with pytest.raises(FileNotFoundError):
            load_platform_configs(config_path=str(tmp_path / "missing.json"))

    def test_platforms_must_be_a_list(self, tmp_path: Path) -> None:
        path = _write_json(tmp_path / "platforms.json", {"platforms": {"name": "Lazada"}})
        with pytest.raises(ValueError):
            load_platform_configs(config_path=path)


# ---------------------------------------------------------------------------
# URL table
# ---------------------------------------------------------------------------


class TestLoadUrlTable:
    def test_loads_products_and_templates(self, tmp_path: Path) -> None:
        path = _write_json(
            tmp_path / "urls.json",
            {
                "products": {
                    "1": {"Lazada": "https://www.lazada.sg/p1.html", "Broken": 3},
                    "2": {},
                },
                "derived_templates": {"Shopee": "https://shopee.sg/search?keyword={model_slug}"},
            },
        )

        table = load_url_table(table_path=path)

        assert table.products == {"1": {"Lazada": "https://www.lazada.sg/p1.html"}}
        assert table.derived_templates == {"Shopee": "https://shopee.sg/search?keyword={model_slug}"}

    def test_missing_file_is_an_empty_table(self, tmp_path: Path) -> None:
        table = load_url_table(table_path=str(tmp_path / "missing.json"))
        assert table.products == {}
        assert table.derived_templates == {}

    def test_top_level_must_be_an_object(self, tmp_path: Path) -> None:
        path = _write_json(tmp_path / "urls.json", ["not", "an", "object"])
        with pytest.raises(ValueError):
            load_url_table(table_path=path)


# ---------------------------------------------------------------------------
# Environment settings
# ---------------------------------------------------------------------------


class TestSettings:
    def test_defaults(self, fresh_settings: None, monkeypatch: pytest.MonkeyPatch) -> None:
        for name in (
            "PRICE_SCRAPE_TIMEOUT_SECONDS",
            "PRICE_SCRAPE_MAX_WORKERS",
            "PRICE_CACHE_STALENESS_HOURS",
            "PRICE_SCRAPE_ENABLE_KNOWN_PRICE_FALLBACK",
            "PRICE_REFRESH_PRODUCTS",
            "PRICE_PLATFORM_CONFIG_PATH",
        ):
            monkeypatch.delenv(name, raising=False)

        settings = get_price_aggregation_settings()

        assert settings.timeout_seconds == 10.0
        assert settings.max_workers == 4
        assert settings.staleness_hours == 24.0
        assert settings.enable_known_price_fallback is True
        assert settings.refresh_targets == ()
        assert Path(settings.platform_config_path).name == "platforms.json"
        assert Path(settings.platform_config_path).exists()

    def test_environment_overrides(self, fresh_settings: None, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("PRICE_SCRAPE_TIMEOUT_SECONDS", "3.5")
        monkeypatch.setenv("PRICE_SCRAPE_MAX_WORKERS", "0")
        monkeypatch.setenv("PRICE_SCRAPE_MAX_RETRIES", "not-a-number")
        monkeypatch.setenv("PRICE_SCRAPE_ENABLE_KNOWN_PRICE_FALLBACK", "false")
        monkeypatch.setenv("PRICE_REFRESH_PRODUCTS", "1:ScubaPro:MK19 EVO")

        settings = get_price_aggregation_settings()

        assert settings.timeout_seconds == 3.5
        assert settings.max_workers == 1
        assert settings.max_retries == 1
        assert settings.enable_known_price_fallback is False
        assert settings.refresh_targets == (RefreshTarget(product_id="1", brand="ScubaPro", model="MK19 EVO"),)

    def test_settings_are_cached(self, fresh_settings: None) -> None:
        assert get_price_aggregation_settings() is get_price_aggregation_settings()


class TestParseRefreshTargets:
    def test_parses_triples_and_skips_malformed(self) -> None:
        targets = parse_refresh_targets(" 1:ScubaPro:MK19 EVO , bad-token, 2::Bio Octopus, 3:Apollo:Bio: Octopus ,")

        assert targets == (
            RefreshTarget(product_id="1", brand="ScubaPro", model="MK19 EVO"),
            RefreshTarget(product_id="3", brand="Apollo", model="Bio: Octopus"),
        )

    def test_empty_string(self) -> None:
        assert parse_refresh_targets("") == ()
