"""
BeautifulSoup-based price extraction heuristics for product pages.
"""

from __future__ import annotations

import json
import re
from collections.abc import Iterable, Sequence
from typing import Any

from bs4 import BeautifulSoup

CURRENCY_PRICE_REGEX = re.compile(r"(?:S\$|US\$|\$)\s?\d[\d,]*\.\d{2}(?!\d)")
BARE_AMOUNT_REGEX = re.compile(r"^\d[\d,]*(?:\.\d{1,2})?$")
META_PRICE_PROPERTIES = (
    "product:price:amount",
    "og:price:amount",
)
MAX_SELECTOR_MATCHES = 50


class PriceParsingLayer:
    """
    Deterministic price probes over a parsed HTML document.

    Every probe returns the raw price text it found, or None.
    """

    @classmethod
    def extract_embedded(
        cls,
        *,
        soup: BeautifulSoup,
        json_price_keys: Sequence[str],
        script_markers: Sequence[str] = (),
    ) -> str | None:
        """
        Structured metadata: JSON-LD offers, microdata, price meta tags and
        price fields inside inline script state.
        """

        for script in soup.find_all("script", attrs={"type": "application/ld+json"}):
            payload = cls._load_json(script.string or script.get_text())
            if payload is None:
                continue
            found = cls._find_offer_price(payload)
            if found is not None:
                return found

        for node in soup.select("[itemprop='price']"):
            content = node.get("content")
            if isinstance(content, str) and BARE_AMOUNT_REGEX.match(content.strip()):
                return content.strip()

        for prop in META_PRICE_PROPERTIES:
            meta = soup.find("meta", attrs={"property": prop})
            if meta is None:
                continue
            content = meta.get("content")
            if isinstance(content, str) and BARE_AMOUNT_REGEX.match(content.strip()):
                return content.strip()

        if not json_price_keys:
            return None
        key_pattern = cls._json_key_pattern(json_price_keys)
        for script in soup.find_all("script"):
            content = script.string or script.get_text()
            if not content:
                continue
            if script_markers and not any(marker in content for marker in script_markers):
                continue
            match = key_pattern.search(content)
            if match is not None:
                return match.group(1)
        return None

    @classmethod
    def extract_by_selectors(
        cls,
        *,
        soup: BeautifulSoup,
        selectors: Sequence[str],
    ) -> tuple[str, str] | None:
        """
        First currency-prefixed price found under the selectors, in order.

        Returns ``(price_text, selector)``.
        """

        for selector in selectors:
            for node in soup.select(selector)[:MAX_SELECTOR_MATCHES]:
                text = cls._clean_text(node.get_text(" ", strip=True))
                match = CURRENCY_PRICE_REGEX.search(text)
                if match is not None:
                    return match.group(0), selector
                for attribute in ("content", "data-price"):
                    value = node.get(attribute)
                    if isinstance(value, str) and BARE_AMOUNT_REGEX.match(value.strip()):
                        return value.strip(), selector
        return None

    @staticmethod
    def extract_by_regex(html: str) -> str | None:
        """
        First currency-prefixed decimal anywhere in the raw document.
        """

        match = CURRENCY_PRICE_REGEX.search(html)
        if match is None:
            return None
        return match.group(0)

    @classmethod
    def _find_offer_price(cls, payload: Any) -> str | None:
        for node in cls._walk_json(payload):
            offers = node.get("offers")
            if offers is None:
                continue
            for offer in offers if isinstance(offers, list) else [offers]:
                if not isinstance(offer, dict):
                    continue
                for key in ("price", "lowPrice"):
                    value = offer.get(key)
                    if isinstance(value, bool) or value is None:
                        continue
                    text = str(value).strip()
                    if text:
                        return text
        return None

    @classmethod
    def _walk_json(cls, payload: Any) -> Iterable[dict[str, Any]]:
        if isinstance(payload, dict):
            yield payload
            for value in payload.values():
                yield from cls._walk_json(value)
        elif isinstance(payload, list):
            for item in payload:
                yield from cls._walk_json(item)

    @staticmethod
    def _load_json(raw: str | None) -> Any:
        if not raw:
            return None
        try:
            return json.loads(raw)
        except ValueError:
            return None

    @staticmethod
    def _json_key_pattern(keys: Sequence[str]) -> re.Pattern[str]:
        alternatives = "|".join(re.escape(key) for key in keys)
        return re.compile(
            rf"(?<![\w])[\"']?(?:{alternatives})[\"']?\s*:\s*[\"']?((?:S\$|\$)?\d[\d,]*\.\d{{1,2}})(?!\d)"
        )

    @staticmethod
    def _clean_text(value: str) -> str:
        return re.sub(r"\s+", " ", value).strip()
