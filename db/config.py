"""
Environment-driven database configuration for the price aggregation service.
"""

from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path

ENV_FILES = (".env", ".env.local")
CLOUD_LIKE_ENVIRONMENTS = frozenset({"prod", "production", "staging", "cloud"})
TRUTHY = frozenset({"1", "true", "yes", "on"})


@dataclass(frozen=True)
class DatabaseConfig:
    """
    Resolved connection settings for the price cache and URL mapping store.
    """

    url: str
    echo: bool = False
    pool_size: int = 5
    max_overflow: int = 10
    pool_recycle_seconds: int = 1800

    @property
    def is_sqlite(self) -> bool:
        return is_sqlite_url(self.url)


def _read_env_file(path: Path) -> dict[str, str]:
    values: dict[str, str] = {}
    for raw_line in path.read_text(encoding="utf-8").splitlines():
        line = raw_line.strip()
        if not line or line.startswith("#") or "=" not in line:
            continue
        key, value = line.split("=", 1)
        key = key.strip()
        if key:
            values[key] = value.strip().strip('"').strip("'")
    return values


def load_env_files() -> None:
    """
    Load KEY=VALUE pairs from `.env` then `.env.local` at the project root.
    Variables already present in the process environment win.
    """

    project_root = Path(__file__).resolve().parents[1]
    for filename in ENV_FILES:
        env_path = project_root / filename
        if env_path.exists():
            for key, value in _read_env_file(env_path).items():
                os.environ.setdefault(key, value)


def normalize_database_url(url: str) -> str:
    """
    Point postgres URLs at the psycopg driver; other dialects pass through.
    """

    for prefix in ("postgres://", "postgresql://"):
        if url.startswith(prefix):
            return "postgresql+psycopg://" + url[len(prefix):]
    return url


def is_sqlite_url(url: str) -> bool:
    return url.startswith("sqlite")


def resolve_database_url() -> str:
    """
    Resolve the database URL.

    Priority:
    1) PRICE_DATABASE_URL (service-specific override)
    2) DATABASE_URL
    3) CLOUD_DATABASE_URL when ENVIRONMENT is cloud-like
    4) LOCAL_DATABASE_URL
    """

    load_env_files()

    environment = os.getenv("ENVIRONMENT", "local").strip().lower()
    candidates = [os.getenv("PRICE_DATABASE_URL"), os.getenv("DATABASE_URL")]
    if environment in CLOUD_LIKE_ENVIRONMENTS:
        candidates.append(os.getenv("CLOUD_DATABASE_URL"))
    candidates.append(os.getenv("LOCAL_DATABASE_URL"))

    for candidate in candidates:
        if candidate and candidate.strip():
            return normalize_database_url(candidate.strip())

    raise RuntimeError(
        "No database URL configured. Set PRICE_DATABASE_URL or DATABASE_URL, "
        "or configure LOCAL_DATABASE_URL / CLOUD_DATABASE_URL. "
        "SQLite URLs (sqlite:///competitor_prices.db) are accepted for local runs."
    )


def _int_env(name: str, default: int) -> int:
    try:
        return int(os.getenv(name, ""))
    except ValueError:
        return default


def load_database_config(database_url: str | None = None) -> DatabaseConfig:
    """
    Build connection settings; an explicit ``database_url`` skips env resolution.
    """

    url = normalize_database_url(database_url) if database_url else resolve_database_url()
    return DatabaseConfig(
        url=url,
        echo=os.getenv("SQL_ECHO", "").strip().lower() in TRUTHY,
        pool_size=_int_env("DB_POOL_SIZE", 5),
        max_overflow=_int_env("DB_MAX_OVERFLOW", 10),
        pool_recycle_seconds=_int_env("DB_POOL_RECYCLE", 1800),
    )
