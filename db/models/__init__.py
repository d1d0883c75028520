"""
Model package exports.

Import all SQLAlchemy models here so metadata registration and Alembic
autogeneration work without extra imports.
"""

from db.models.competitor_price_cache import CompetitorPriceCacheEntry
from db.models.competitor_url_mapping import CompetitorUrlMapping

__all__ = [
    "CompetitorPriceCacheEntry",
    "CompetitorUrlMapping",
]
