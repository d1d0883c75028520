"""
price_aggregator/scheduler/jobs.py

APScheduler-based refresh of competitor prices for configured products.

Targets
-------
Products are read from ``PRICE_REFRESH_PRODUCTS`` as comma-separated
``product_id:brand:model`` triples, e.g. ``1:ScubaPro:MK19 EVO``.
The job runs every ``PRICE_REFRESH_INTERVAL_MINUTES`` (default 360).

Lifecycle
----------
Call ``build_scheduler()`` once to get a configured ``BackgroundScheduler``.
Start it on app boot; shut it down gracefully on app shutdown.
The scheduler is wired into FastAPI via the ``lifespan`` context in main.py.
"""

from __future__ import annotations

import logging
from collections.abc import Sequence

from apscheduler.schedulers.background import BackgroundScheduler

from price_aggregator.scraping.config import PriceAggregationSettings, RefreshTarget
from price_aggregator.scraping.engine import CompetitorPriceAggregator
from price_aggregator.scraping.errors import ResolverError

logger = logging.getLogger(__name__)

REFRESH_JOB_ID = "competitor_price_refresh"


# ---------------------------------------------------------------------------
# Job: competitor price refresh
# ---------------------------------------------------------------------------


def refresh_competitor_prices(
    aggregator: CompetitorPriceAggregator,
    targets: Sequence[RefreshTarget],
) -> dict[str, int]:
    """
    Fetch prices for every target. Returns competitor counts keyed by product.

    A resolver failure for one product is logged and does not stop the others.
    """
    logger.info("Scheduler: competitor_price_refresh starting targets=%d", len(targets))
    counts: dict[str, int] = {}
    for target in targets:
        try:
            results = aggregator.fetch_competitor_prices(target.product_id, target.model, target.brand)
        except ResolverError as exc:
            logger.warning(
                "Scheduler: competitor_price_refresh failed product=%r: %s",
                target.product_id,
                exc,
            )
            continue
        counts[target.product_id] = len(results)
        logger.info(
            "Scheduler: competitor_price_refresh product=%r competitors=%d live=%d",
            target.product_id,
            len(results),
            sum(1 for price in results.values() if price.is_live),
        )

    logger.info("Scheduler: competitor_price_refresh complete")
    return counts


# ---------------------------------------------------------------------------
# Scheduler factory
# ---------------------------------------------------------------------------


def build_scheduler(
    aggregator: CompetitorPriceAggregator,
    settings: PriceAggregationSettings,
) -> BackgroundScheduler:
    """
    Returns a configured but *not yet started* ``BackgroundScheduler``.
    The caller must call ``.start()`` and ``.shutdown(wait=True)`` at the
    appropriate lifecycle points.
    """
    scheduler = BackgroundScheduler(timezone="UTC")
    if not settings.refresh_targets:
        return scheduler

    scheduler.add_job(
        refresh_competitor_prices,
        trigger="interval",
        minutes=settings.refresh_interval_minutes,
        args=(aggregator, settings.refresh_targets),
        id=REFRESH_JOB_ID,
        name="Competitor price refresh",
        replace_existing=True,
        max_instances=1,
        coalesce=True,
        misfire_grace_time=600,
    )
    return scheduler
