"""
SQLAlchemy-backed persisted competitor URL mapping store.
"""

from __future__ import annotations

import logging
from collections.abc import Mapping

from sqlalchemy import delete, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import sessionmaker

from db.models.competitor_url_mapping import CompetitorUrlMapping
from price_aggregator.scraping.errors import ResolverError
from price_aggregator.scraping.logging_utils import log_event
from price_aggregator.scraping.resolvers.base import UrlResolver

logger = logging.getLogger(__name__)


class SQLAlchemyUrlResolver(UrlResolver):
    """
    Saved mappings take priority; products without saved rows go to the
    fallback resolver (if any).
    """

    def __init__(
        self,
        *,
        session_factory: sessionmaker,
        fallback: UrlResolver | None = None,
    ) -> None:
        self._session_factory = session_factory
        self._fallback = fallback

    def resolve(self, product_id: str, brand: str, model: str) -> dict[str, str]:
        try:
            with self._session_factory() as session:
                rows = session.scalars(
                    select(CompetitorUrlMapping)
                    .where(CompetitorUrlMapping.product_id == product_id)
                    .order_by(CompetitorUrlMapping.created_at, CompetitorUrlMapping.competitor)
                ).all()
                saved = {row.competitor: row.url for row in rows}
        except SQLAlchemyError as exc:
            raise ResolverError(product_id, str(exc)) from exc

        if saved:
            return saved
        if self._fallback is None:
            return {}
        return self._fallback.resolve(product_id, brand, model)

    def save_urls(self, product_id: str, urls: Mapping[str, str]) -> None:
        """
        Replace every saved mapping for ``product_id`` in one transaction.
        """

        with self._session_factory() as session:
            try:
                session.execute(
                    delete(CompetitorUrlMapping).where(CompetitorUrlMapping.product_id == product_id)
                )
                for competitor, url in urls.items():
                    session.add(
                        CompetitorUrlMapping(product_id=product_id, competitor=competitor, url=url)
                    )
                session.commit()
            except SQLAlchemyError:
                session.rollback()
                raise
        log_event(
            logger,
            logging.INFO,
            "competitor_urls_saved",
            product_id=product_id,
            competitors=sorted(urls),
        )

    def add_url(
        self,
        product_id: str,
        competitor: str,
        url: str,
        *,
        brand: str = "",
        model: str = "",
    ) -> None:
        """
        Insert or update one competitor URL for ``product_id``.

        A product with no saved rows is first seeded from the fallback
        resolver so the new URL extends, rather than hides, the known set.
        """

        with self._session_factory() as session:
            try:
                has_rows = session.scalars(
                    select(CompetitorUrlMapping.id)
                    .where(CompetitorUrlMapping.product_id == product_id)
                    .limit(1)
                ).first() is not None
                if not has_rows and self._fallback is not None:
                    seeded = self._fallback.resolve(product_id, brand, model)
                    for seeded_competitor, seeded_url in seeded.items():
                        if seeded_competitor == competitor:
                            continue
                        session.add(
                            CompetitorUrlMapping(
                                product_id=product_id,
                                competitor=seeded_competitor,
                                url=seeded_url,
                            )
                        )
                    session.flush()
                existing = session.scalars(
                    select(CompetitorUrlMapping).where(
                        CompetitorUrlMapping.product_id == product_id,
                        CompetitorUrlMapping.competitor == competitor,
                    )
                ).one_or_none()
                if existing is None:
                    session.add(
                        CompetitorUrlMapping(product_id=product_id, competitor=competitor, url=url)
                    )
                else:
                    existing.url = url
                session.commit()
            except SQLAlchemyError:
                session.rollback()
                raise
        log_event(
            logger,
            logging.INFO,
            "competitor_url_added",
            product_id=product_id,
            competitor=competitor,
        )
