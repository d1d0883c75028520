"""
SQLAlchemy-backed price cache.
"""

from __future__ import annotations

import logging
import threading
from collections.abc import Iterable, Iterator, Mapping
from contextlib import contextmanager
from datetime import datetime, timedelta, timezone
from typing import Any

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session, sessionmaker

from db.models.competitor_price_cache import CompetitorPriceCacheEntry
from price_aggregator.domain.competitor_price import CompetitorPrice, PriceResultSet
from price_aggregator.scraping.errors import PriceCacheWriteError
from price_aggregator.scraping.logging_utils import log_event
from price_aggregator.scraping.storage.base import PriceCache, merge_price_results

logger = logging.getLogger(__name__)


class _ProductLocks:
    """
    One lock per product id; locks are dropped once nobody holds or waits.
    """

    def __init__(self) -> None:
        self._guard = threading.Lock()
        self._locks: dict[str, tuple[threading.Lock, int]] = {}

    @contextmanager
    def hold(self, product_id: str) -> Iterator[None]:
        with self._guard:
            lock, users = self._locks.get(product_id, (threading.Lock(), 0))
            self._locks[product_id] = (lock, users + 1)
        try:
            with lock:
                yield
        finally:
            with self._guard:
                lock, users = self._locks[product_id]
                if users <= 1:
                    del self._locks[product_id]
                else:
                    self._locks[product_id] = (lock, users - 1)


class SQLAlchemyPriceCache(PriceCache):
    """
    One row per product holding the whole serialized result set.

    Merges for the same product are serialized in-process by a per-product
    lock and across processes by a row lock (``SELECT ... FOR UPDATE`` on
    PostgreSQL). The first insert for a product has no row to lock, so a
    primary key conflict there is retried once against the winning row.
    Every write is a single transaction.
    """

    def __init__(
        self,
        *,
        session_factory: sessionmaker,
        staleness_window: timedelta = timedelta(hours=24),
    ) -> None:
        self._session_factory = session_factory
        self._staleness_window = staleness_window
        self._locks = _ProductLocks()

    def read(self, product_id: str) -> PriceResultSet:
        try:
            with self._session_factory() as session:
                entry = session.get(CompetitorPriceCacheEntry, product_id)
                payload = dict(entry.prices) if entry is not None else {}
        except SQLAlchemyError as exc:
            log_event(
                logger,
                logging.ERROR,
                "price_cache_read_failed",
                product_id=product_id,
                error=str(exc),
            )
            return {}
        return self._decode(product_id, payload)

    def merge(
        self,
        product_id: str,
        fresh: Mapping[str, CompetitorPrice],
        failed: Iterable[str] = (),
        *,
        now: datetime | None = None,
    ) -> PriceResultSet:
        written_at = now or datetime.now(timezone.utc)
        failed_names = set(failed)

        with self._locks.hold(product_id):
            try:
                merged = self._merge_once(product_id, fresh, failed_names, written_at)
            except IntegrityError:
                # Another process inserted the first row for this product
                # after our lookup; merge again against that row.
                log_event(
                    logger,
                    logging.INFO,
                    "price_cache_insert_conflict",
                    product_id=product_id,
                )
                try:
                    merged = self._merge_once(product_id, fresh, failed_names, written_at)
                except SQLAlchemyError as exc:
                    fallback = {name: price.as_live() for name, price in fresh.items()}
                    raise PriceCacheWriteError(product_id, fallback, str(exc)) from exc

        log_event(
            logger,
            logging.INFO,
            "price_cache_merged",
            product_id=product_id,
            live=sorted(fresh),
            retained=sorted(set(merged) - set(fresh)),
            total=len(merged),
        )
        return merged

    def _merge_once(
        self,
        product_id: str,
        fresh: Mapping[str, CompetitorPrice],
        failed: set[str],
        written_at: datetime,
    ) -> PriceResultSet:
        """
        One locked read-merge-write transaction.

        ``IntegrityError`` from a lost first-insert race propagates so the
        caller can retry against the committed row; other database errors
        become ``PriceCacheWriteError``.
        """

        merged: PriceResultSet = {name: price.as_live() for name, price in fresh.items()}
        with self._session_factory() as session:
            try:
                entry = self._load_for_update(session, product_id)
                prior = self._decode(product_id, entry.prices if entry is not None else {})
                merged = merge_price_results(prior, fresh)

                if entry is None and not merged:
                    session.rollback()
                    self._log_fallbacks(product_id, prior, fresh, failed, written_at)
                    return merged

                payload = self._encode(merged)
                if entry is None:
                    session.add(
                        CompetitorPriceCacheEntry(
                            product_id=product_id,
                            prices=payload,
                            updated_at=written_at,
                        )
                    )
                else:
                    entry.prices = payload
                    entry.updated_at = written_at
                session.commit()
            except IntegrityError:
                session.rollback()
                raise
            except SQLAlchemyError as exc:
                session.rollback()
                raise PriceCacheWriteError(product_id, merged, str(exc)) from exc

        self._log_fallbacks(product_id, prior, fresh, failed, written_at)
        return merged

    def replace(self, product_id: str, results: Mapping[str, CompetitorPrice]) -> PriceResultSet:
        replacement: PriceResultSet = dict(results)
        with self._locks.hold(product_id):
            with self._session_factory() as session:
                try:
                    entry = self._load_for_update(session, product_id)
                    payload = self._encode(replacement)
                    written_at = datetime.now(timezone.utc)
                    if entry is None:
                        session.add(
                            CompetitorPriceCacheEntry(
                                product_id=product_id,
                                prices=payload,
                                updated_at=written_at,
                            )
                        )
                    else:
                        entry.prices = payload
                        entry.updated_at = written_at
                    session.commit()
                except SQLAlchemyError as exc:
                    session.rollback()
                    raise PriceCacheWriteError(product_id, replacement, str(exc)) from exc

        log_event(
            logger,
            logging.INFO,
            "price_cache_replaced",
            product_id=product_id,
            total=len(replacement),
        )
        return replacement

    @staticmethod
    def _load_for_update(session: Session, product_id: str) -> CompetitorPriceCacheEntry | None:
        return session.scalars(
            select(CompetitorPriceCacheEntry)
            .where(CompetitorPriceCacheEntry.product_id == product_id)
            .with_for_update()
        ).one_or_none()

    @staticmethod
    def _encode(results: Mapping[str, CompetitorPrice]) -> dict[str, Any]:
        return {name: price.to_record() for name, price in results.items()}

    @staticmethod
    def _decode(product_id: str, payload: Mapping[str, Any]) -> PriceResultSet:
        decoded: PriceResultSet = {}
        for competitor, record in payload.items():
            if not isinstance(record, dict):
                continue
            try:
                decoded[competitor] = CompetitorPrice.from_record(competitor, record)
            except (ValueError, TypeError) as exc:
                log_event(
                    logger,
                    logging.WARNING,
                    "price_cache_record_invalid",
                    product_id=product_id,
                    competitor=competitor,
                    error=str(exc),
                )
        return decoded

    def _log_fallbacks(
        self,
        product_id: str,
        prior: Mapping[str, CompetitorPrice],
        fresh: Mapping[str, CompetitorPrice],
        failed: set[str],
        now: datetime,
    ) -> None:
        for competitor in sorted(failed - set(fresh)):
            retained = prior.get(competitor)
            if retained is None:
                log_event(
                    logger,
                    logging.WARNING,
                    "price_cache_no_fallback",
                    product_id=product_id,
                    competitor=competitor,
                )
                continue
            age = now - retained.last_updated
            log_event(
                logger,
                logging.WARNING if age > self._staleness_window else logging.INFO,
                "price_cache_fallback",
                product_id=product_id,
                competitor=competitor,
                last_updated=retained.last_updated,
                age_hours=round(age.total_seconds() / 3600, 2),
                beyond_staleness_window=age > self._staleness_window,
            )
