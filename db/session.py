"""
db/session.py

SQLAlchemy engine and session factory for the price cache and URL store.

Long-lived processes (API, scheduler, CLI) build one engine and pass its
session factory into the aggregation components explicitly; the lazily
created module-level pair below only backs ad-hoc scripts.
"""

from __future__ import annotations

from sqlalchemy import create_engine
from sqlalchemy.engine import Engine
from sqlalchemy.orm import Session, sessionmaker

from db.config import DatabaseConfig, load_database_config


def create_db_engine(database_url: str | None = None) -> Engine:
    config: DatabaseConfig = load_database_config(database_url)

    if config.is_sqlite:
        # Fetch workers and API threads share one SQLite database.
        return create_engine(
            config.url,
            echo=config.echo,
            connect_args={"check_same_thread": False},
        )

    if not config.url.startswith("postgresql"):
        raise RuntimeError("Only PostgreSQL or SQLite URLs are supported.")

    return create_engine(
        config.url,
        echo=config.echo,
        pool_pre_ping=True,
        pool_recycle=config.pool_recycle_seconds,
        pool_size=config.pool_size,
        max_overflow=config.max_overflow,
    )


def build_session_factory(engine: Engine) -> sessionmaker:
    return sessionmaker(
        bind=engine,
        class_=Session,
        autocommit=False,
        autoflush=False,
        expire_on_commit=False,
    )


_engine: Engine | None = None
_session_factory: sessionmaker | None = None


def get_engine() -> Engine:
    """Return the shared engine, creating it on first call."""
    global _engine
    if _engine is None:
        _engine = create_db_engine()
    return _engine


def get_session_factory() -> sessionmaker:
    global _session_factory
    if _session_factory is None:
        _session_factory = build_session_factory(get_engine())
    return _session_factory
