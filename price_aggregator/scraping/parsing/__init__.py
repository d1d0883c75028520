"""
Parsing layer exports.
"""

from price_aggregator.scraping.parsing.html_parsers import PriceParsingLayer

__all__ = ["PriceParsingLayer"]
