"""
Normalization exports.
"""

from price_aggregator.scraping.normalization.price_normalizer import PriceNormalizer

__all__ = ["PriceNormalizer"]
