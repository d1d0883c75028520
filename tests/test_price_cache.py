"""
tests/test_price_cache.py

CompetitorPrice records, the merge policy and the SQLAlchemy price cache
(SQLite file per test).

Coverage
--------
- CompetitorPrice validation and persisted record layout
- merge_price_results: live/stale marking, order independence, idempotence
- SQLAlchemyPriceCache: read, merge, replace, invalid rows, write failures,
  first-insert conflicts
- Same-product merges from many threads lose no competitor
"""

from __future__ import annotations

import logging
import threading
from datetime import datetime, timedelta, timezone
from decimal import Decimal

import pytest

from db.models import CompetitorPriceCacheEntry
from price_aggregator.domain.competitor_price import CompetitorPrice
from price_aggregator.scraping.errors import PriceCacheWriteError
from price_aggregator.scraping.storage import SQLAlchemyPriceCache, merge_price_results

NOW = datetime(2026, 10, 16, 8, 0, tzinfo=timezone.utc)


def _price(competitor: str, amount: str, *, at: datetime = NOW, live: bool = True) -> CompetitorPrice:
    return CompetitorPrice(
        competitor=competitor,
        price=Decimal(amount),
        source_url=f"https://{competitor.lower()}.example/p/1",
        last_updated=at,
        is_live=live,
    )


# ---------------------------------------------------------------------------
# CompetitorPrice
# ---------------------------------------------------------------------------


class TestCompetitorPrice:
    def test_rejects_negative_price(self) -> None:
        with pytest.raises(ValueError):
            _price("Lazada", "-0.01")

    def test_rejects_non_decimal_price(self) -> None:
        with pytest.raises(TypeError):
            CompetitorPrice(
                competitor="Lazada",
                price=1428.9,  # type: ignore[arg-type]
                source_url="https://lazada.example",
                last_updated=NOW,
                is_live=True,
            )

    def test_rejects_empty_competitor(self) -> None:
        with pytest.raises(ValueError):
            _price("", "1.00")

    def test_naive_timestamp_is_treated_as_utc(self) -> None:
        price = _price("Lazada", "1.00", at=datetime(2026, 10, 16, 8, 0))
        assert price.last_updated == NOW

    def test_record_layout(self) -> None:
        assert _price("Lazada", "1428.90").to_record() == {
            "price": 1428.9,
            "sourceUrl": "https://lazada.example/p/1",
            "lastUpdated": "2026-10-16T08:00:00+00:00",
            "isLive": True,
        }

    def test_from_record_accepts_zulu_suffix(self) -> None:
        price = CompetitorPrice.from_record(
            "Shopee",
            {"price": 1234.05, "sourceUrl": "https://shopee.sg/x", "lastUpdated": "2026-10-16T08:00:00Z", "isLive": False},
        )

        assert price.price == Decimal("1234.05")
        assert price.last_updated == NOW
        assert price.is_live is False

    @pytest.mark.parametrize(
        "record",
        [
            {"sourceUrl": "https://x", "lastUpdated": "2026-10-16T08:00:00Z"},
            {"price": "abc", "lastUpdated": "2026-10-16T08:00:00Z"},
            {"price": 1.0},
            {"price": 1.0, "lastUpdated": "yesterday"},
            {"price": -3.0, "lastUpdated": "2026-10-16T08:00:00Z"},
        ],
    )
    def test_from_record_rejects_malformed(self, record: dict) -> None:
        with pytest.raises(ValueError):
            CompetitorPrice.from_record("Lazada", record)


# ---------------------------------------------------------------------------
# Merge policy
# ---------------------------------------------------------------------------


class TestMergePolicy:
    def test_fresh_is_live_and_prior_only_is_stale(self) -> None:
        prior = {"Lazada": _price("Lazada", "1400.00"), "ScubaWarehouse": _price("ScubaWarehouse", "1363.95")}
        fresh = {"Lazada": _price("Lazada", "1428.90")}

        merged = merge_price_results(prior, fresh)

        assert merged["Lazada"].price == Decimal("1428.90")
        assert merged["Lazada"].is_live is True
        assert merged["ScubaWarehouse"].price == Decimal("1363.95")
        assert merged["ScubaWarehouse"].is_live is False
        assert merged["ScubaWarehouse"].last_updated == NOW

    def test_never_drops_a_prior_competitor(self) -> None:
        prior = {name: _price(name, "10.00") for name in ("A", "B", "C")}

        merged = merge_price_results(prior, {"D": _price("D", "1.00")})

        assert set(merged) == {"A", "B", "C", "D"}

    def test_independent_of_arrival_order(self) -> None:
        prior = {"C": _price("C", "3.00")}
        first = {"A": _price("A", "1.00"), "B": _price("B", "2.00")}
        second = {"B": _price("B", "2.00"), "A": _price("A", "1.00")}

        assert merge_price_results(prior, first) == merge_price_results(prior, second)

    def test_idempotent(self) -> None:
        prior = {"C": _price("C", "3.00")}
        fresh = {"A": _price("A", "1.00")}

        once = merge_price_results(prior, fresh)
        assert merge_price_results(once, fresh) == once

    def test_does_not_mutate_inputs(self) -> None:
        prior = {"C": _price("C", "3.00")}
        merge_price_results(prior, {})
        assert prior["C"].is_live is True


# ---------------------------------------------------------------------------
# SQLAlchemyPriceCache
# ---------------------------------------------------------------------------


class TestSQLAlchemyPriceCache:
    def test_read_of_unknown_product_is_empty(self, price_cache: SQLAlchemyPriceCache) -> None:
        assert price_cache.read("missing") == {}

    def test_first_merge_creates_entry(self, price_cache: SQLAlchemyPriceCache) -> None:
        fresh = {"Lazada": _price("Lazada", "1428.90"), "Shopee": _price("Shopee", "1234.05")}

        merged = price_cache.merge("1", fresh, now=NOW)

        assert merged == fresh
        assert price_cache.read("1") == merged

    def test_failed_competitor_keeps_prior_value_and_timestamp(self, price_cache: SQLAlchemyPriceCache) -> None:
        earlier = NOW - timedelta(hours=30)
        price_cache.merge("1", {"ScubaWarehouse": _price("ScubaWarehouse", "1363.95", at=earlier)}, now=earlier)

        merged = price_cache.merge(
            "1",
            {"Lazada": _price("Lazada", "1428.90")},
            ["ScubaWarehouse"],
            now=NOW,
        )

        assert merged["Lazada"].is_live is True
        retained = merged["ScubaWarehouse"]
        assert retained.is_live is False
        assert retained.price == Decimal("1363.95")
        assert retained.last_updated == earlier
        assert price_cache.read("1") == merged

    def test_merge_never_reduces_competitors(self, price_cache: SQLAlchemyPriceCache) -> None:
        price_cache.merge("1", {name: _price(name, "5.00") for name in ("A", "B", "C")}, now=NOW)

        merged = price_cache.merge("1", {}, ["A", "B", "C"], now=NOW)

        assert set(merged) == {"A", "B", "C"}
        assert not any(price.is_live for price in merged.values())

    def test_empty_merge_without_prior_writes_nothing(
        self,
        price_cache: SQLAlchemyPriceCache,
        session_factory,
    ) -> None:
        assert price_cache.merge("1", {}, ["Lazada"], now=NOW) == {}

        with session_factory() as session:
            assert session.get(CompetitorPriceCacheEntry, "1") is None

    def test_merge_records_write_time(self, price_cache: SQLAlchemyPriceCache, session_factory) -> None:
        price_cache.merge("1", {"Lazada": _price("Lazada", "1.00")}, now=NOW)

        with session_factory() as session:
            entry = session.get(CompetitorPriceCacheEntry, "1")
            assert entry is not None
            assert entry.updated_at == NOW

    def test_replace_overwrites_wholesale(self, price_cache: SQLAlchemyPriceCache) -> None:
        price_cache.merge("1", {name: _price(name, "5.00") for name in ("A", "B")}, now=NOW)

        price_cache.replace("1", {"C": _price("C", "7.00")})

        assert set(price_cache.read("1")) == {"C"}

    def test_products_are_isolated(self, price_cache: SQLAlchemyPriceCache) -> None:
        price_cache.merge("1", {"A": _price("A", "1.00")}, now=NOW)
        price_cache.merge("2", {"B": _price("B", "2.00")}, now=NOW)

        assert set(price_cache.read("1")) == {"A"}
        assert set(price_cache.read("2")) == {"B"}

    def test_invalid_rows_are_skipped(self, price_cache: SQLAlchemyPriceCache, session_factory) -> None:
        with session_factory() as session:
            session.add(
                CompetitorPriceCacheEntry(
                    product_id="1",
                    prices={
                        "Lazada": _price("Lazada", "1428.90").to_record(),
                        "Shopee": {"price": "oops"},
                        "Junk": "not-a-record",
                    },
                    updated_at=NOW,
                )
            )
            session.commit()

        assert set(price_cache.read("1")) == {"Lazada"}

    def test_read_failure_returns_empty(self, unmigrated_session_factory) -> None:
        cache = SQLAlchemyPriceCache(session_factory=unmigrated_session_factory)
        assert cache.read("1") == {}

    def test_write_failure_carries_merged_result(self, unmigrated_session_factory) -> None:
        cache = SQLAlchemyPriceCache(session_factory=unmigrated_session_factory)
        fresh = {"Lazada": _price("Lazada", "1428.90")}

        with pytest.raises(PriceCacheWriteError) as ctx:
            cache.merge("1", fresh, now=NOW)
        assert ctx.value.merged == fresh

    def test_logs_fallback_beyond_staleness_window(
        self,
        session_factory,
        caplog: pytest.LogCaptureFixture,
    ) -> None:
        cache = SQLAlchemyPriceCache(session_factory=session_factory, staleness_window=timedelta(hours=24))
        earlier = NOW - timedelta(hours=48)
        cache.merge("1", {"ScubaWarehouse": _price("ScubaWarehouse", "1363.95", at=earlier)}, now=earlier)

        with caplog.at_level(logging.INFO, logger="price_aggregator.scraping.storage.sqlalchemy_storage"):
            cache.merge("1", {}, ["ScubaWarehouse", "Shopee"], now=NOW)

        messages = [record.getMessage() for record in caplog.records]
        assert any('"event": "price_cache_fallback"' in m and '"beyond_staleness_window": true' in m for m in messages)
        assert any('"event": "price_cache_no_fallback"' in m and '"competitor": "Shopee"' in m for m in messages)

    def test_first_insert_race_merges_into_winning_row(
        self,
        price_cache: SQLAlchemyPriceCache,
        session_factory,
        monkeypatch: pytest.MonkeyPatch,
    ) -> None:
        load_for_update = SQLAlchemyPriceCache._load_for_update
        lookups: list[str] = []

        def _row_inserted_elsewhere(session, product_id: str):
            lookups.append(product_id)
            if len(lookups) == 1:
                # A second process commits the first row after our lookup.
                with session_factory() as other:
                    other.add(
                        CompetitorPriceCacheEntry(
                            product_id=product_id,
                            prices={"Shopee": _price("Shopee", "1234.05").to_record()},
                            updated_at=NOW,
                        )
                    )
                    other.commit()
                return None
            return load_for_update(session, product_id)

        monkeypatch.setattr(price_cache, "_load_for_update", _row_inserted_elsewhere)

        merged = price_cache.merge("1", {"Lazada": _price("Lazada", "1428.90")}, now=NOW)

        assert len(lookups) == 2
        assert set(merged) == {"Lazada", "Shopee"}
        assert merged["Lazada"].is_live is True
        assert merged["Shopee"].is_live is False
        assert price_cache.read("1") == merged

    def test_concurrent_merges_keep_every_competitor(self, price_cache: SQLAlchemyPriceCache) -> None:
        names = [f"Competitor{index}" for index in range(8)]
        barrier = threading.Barrier(len(names))
        errors: list[BaseException] = []

        def _merge(name: str) -> None:
            try:
                barrier.wait()
                price_cache.merge("1", {name: _price(name, "1.00")}, now=NOW)
            except BaseException as exc:  # noqa: BLE001
                errors.append(exc)

        threads = [threading.Thread(target=_merge, args=(name,)) for name in names]
        for thread in threads:
            thread.start()
        for thread in threads:
            thread.join()

        assert errors == []
        assert set(price_cache.read("1")) == set(names)
