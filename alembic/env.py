"""
Alembic environment for the competitor price cache and URL mapping tables.

The target database comes from, in order: ``-x db_url=...``,
ALEMBIC_DATABASE_URL, ``sqlalchemy.url`` in alembic.ini, then the same
environment lookup the service uses (see ``db.config``).
"""

from __future__ import annotations

import os
from logging.config import fileConfig
from typing import Any

from alembic import context
from sqlalchemy import create_engine, pool

from db.base import Base
from db.config import DatabaseConfig, load_database_config, load_env_files
from db.models import CompetitorPriceCacheEntry, CompetitorUrlMapping  # noqa: F401

if context.config.config_file_name is not None:
    fileConfig(context.config.config_file_name)


def _candidate_urls() -> list[str | None]:
    load_env_files()
    return [
        context.get_x_argument(as_dictionary=True).get("db_url"),
        os.getenv("ALEMBIC_DATABASE_URL"),
        context.config.get_main_option("sqlalchemy.url"),
    ]


def _migration_target() -> DatabaseConfig:
    explicit = next((url.strip() for url in _candidate_urls() if url and url.strip()), None)
    target = load_database_config(explicit)
    if not (target.is_sqlite or target.url.startswith("postgresql")):
        raise RuntimeError(f"Unsupported migration target: {target.url.split(':', 1)[0]}")
    return target


def _configure(target: DatabaseConfig, **options: Any) -> None:
    context.configure(
        target_metadata=Base.metadata,
        compare_type=True,
        compare_server_default=True,
        # SQLite cannot ALTER most constraints in place.
        render_as_batch=target.is_sqlite,
        **options,
    )


def run_migrations_offline() -> None:
    target = _migration_target()
    _configure(target, url=target.url, literal_binds=True, dialect_opts={"paramstyle": "named"})
    with context.begin_transaction():
        context.run_migrations()


def run_migrations_online() -> None:
    target = _migration_target()
    engine = create_engine(target.url, poolclass=pool.NullPool)
    try:
        with engine.connect() as connection:
            _configure(target, connection=connection)
            with context.begin_transaction():
                context.run_migrations()
    finally:
        engine.dispose()


if context.is_offline_mode():
    run_migrations_offline()
else:
    run_migrations_online()
