"""
URL resolver exports.
"""

from price_aggregator.scraping.resolvers.base import UrlResolver
from price_aggregator.scraping.resolvers.sqlalchemy_resolver import SQLAlchemyUrlResolver
from price_aggregator.scraping.resolvers.static_resolver import StaticUrlResolver

__all__ = ["SQLAlchemyUrlResolver", "StaticUrlResolver", "UrlResolver"]
