"""
Shopee product page strategy.
"""

from __future__ import annotations

import logging
import re

from bs4 import BeautifulSoup

from price_aggregator.scraping.logging_utils import log_event
from price_aggregator.scraping.strategies.configurable_strategy import ConfigurableExtractionStrategy

logger = logging.getLogger(__name__)

# e.g. https://shopee.sg/Product-Name-i.554890954.10579061915
SHOPEE_IDS_REGEX = re.compile(r"i\.(\d+)\.(\d+)")


class ShopeeExtractionStrategy(ConfigurableExtractionStrategy):
    """
    Shopee pages are a JS shell; prices show up in server HTML only through
    meta tags or preloaded state, and the placeholder table is keyed by
    item id as well as URL fragment.
    """

    DEFAULT_SELECTORS = (
        "[class*='pqTWkA']",
        "[class*='product-price']",
        ".page-product__price",
        "[data-testid='price']",
    )
    DEFAULT_JSON_PRICE_KEYS = ("price", "price_min", "priceMin")

    @staticmethod
    def shop_and_item_ids(url: str) -> tuple[str, str] | None:
        """
        Return ``(shop_id, item_id)`` parsed from a Shopee product URL.
        """

        match = SHOPEE_IDS_REGEX.search(url)
        if match is None:
            return None
        return match.group(1), match.group(2)

    def extract_embedded(self, *, url: str, soup: BeautifulSoup) -> str | None:
        ids = self.shop_and_item_ids(url)
        if ids is not None:
            log_event(
                logger,
                logging.DEBUG,
                "shopee_ids_parsed",
                url=url,
                shop_id=ids[0],
                item_id=ids[1],
            )
        return super().extract_embedded(url=url, soup=soup)

    def known_price_for(self, url: str) -> tuple[str, str] | None:
        ids = self.shop_and_item_ids(url)
        if ids is not None:
            item_id = ids[1]
            price_text = self.config.known_prices.get(item_id)
            if price_text is not None:
                return price_text, item_id
        return super().known_price_for(url)
