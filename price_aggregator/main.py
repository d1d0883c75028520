from __future__ import annotations

import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

from fastapi import FastAPI
from sqlalchemy.engine import Engine

from price_aggregator.scraping.logging_utils import configure_logging
from price_aggregator.services import CompetitorPriceComponents


def _check_db(engine: Engine) -> None:
    """Run SELECT 1. Raises RuntimeError if the DB is unreachable."""
    from sqlalchemy import text
    from sqlalchemy.exc import SQLAlchemyError

    try:
        with engine.connect() as connection:
            connection.execute(text("SELECT 1"))
    except SQLAlchemyError as exc:
        raise RuntimeError("Database unavailable.") from exc


def _check_schema(engine: Engine) -> None:
    """
    Every table registered on Base.metadata must exist in the database.
    Missing tables abort startup; run 'alembic upgrade head' first.

    Does NOT auto-migrate.
    """
    from sqlalchemy import inspect as sa_inspect

    import db.models  # noqa: F401  registers all ORM models on Base.metadata
    from db.base import Base

    actual: set[str] = set(sa_inspect(engine).get_table_names())
    expected: set[str] = set(Base.metadata.tables.keys())
    missing = expected - actual

    if missing:
        logging.getLogger(__name__).critical(
            "Schema mismatch: %d table(s) defined in ORM metadata are absent from "
            "the database: %s. Run 'alembic upgrade head' and restart.",
            len(missing),
            ", ".join(sorted(missing)),
        )
        raise RuntimeError(
            f"Schema mismatch: {len(missing)} table(s) missing from the database "
            f"({', '.join(sorted(missing))}). Run migrations and restart."
        )


def _install_components(application: FastAPI, components: CompetitorPriceComponents) -> None:
    application.state.components = components
    application.state.aggregator = components.aggregator
    application.state.url_store = components.url_store


def _build_lifespan(components: CompetitorPriceComponents | None):
    @asynccontextmanager
    async def _lifespan(application: FastAPI) -> AsyncIterator[None]:
        """Wire components and start the refresh scheduler on boot; release them on exit."""
        log = logging.getLogger(__name__)

        if components is not None:
            _install_components(application, components)
            yield
            return

        from db.session import build_session_factory, create_db_engine
        from price_aggregator.scheduler.jobs import build_scheduler
        from price_aggregator.scraping.config import get_price_aggregation_settings
        from price_aggregator.services import build_competitor_price_components

        engine = create_db_engine()
        _check_db(engine)
        log.info("Database connectivity confirmed")
        _check_schema(engine)
        log.info("Database schema validated")

        settings = get_price_aggregation_settings()
        built = build_competitor_price_components(
            settings=settings,
            session_factory=build_session_factory(engine),
        )
        _install_components(application, built)

        scheduler = build_scheduler(built.aggregator, settings)
        scheduler.start()
        log.info("Scheduler started with %d jobs", len(scheduler.get_jobs()))
        try:
            yield
        finally:
            scheduler.shutdown(wait=True)
            log.info("Scheduler shut down")
            built.http_session.close()
            engine.dispose()

    return _lifespan


def create_app(*, components: CompetitorPriceComponents | None = None) -> FastAPI:
    """
    Create and configure the FastAPI application.

    Pass ``components`` to serve pre-built collaborators; database checks and
    the scheduler are skipped in that case.
    """

    configure_logging()

    application = FastAPI(
        title="Competitor Price Aggregator",
        version="1.0.0",
        lifespan=_build_lifespan(components),
    )

    from price_aggregator.api.routers import competitor_prices_router

    application.include_router(competitor_prices_router)

    @application.get("/health")
    def healthcheck() -> dict[str, str]:
        return {"status": "ok"}

    return application


app = create_app()
