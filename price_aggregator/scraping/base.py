"""
Base extraction strategy for competitor product pages.
"""

from __future__ import annotations

import logging
import time
from abc import ABC, abstractmethod
from collections.abc import Sequence

import requests
from bs4 import BeautifulSoup

from price_aggregator.scraping.config.models import PlatformConfig, PriceAggregationSettings
from price_aggregator.scraping.errors import ExtractionError
from price_aggregator.scraping.logging_utils import log_event
from price_aggregator.scraping.parsing import PriceParsingLayer
from price_aggregator.scraping.rate_limiter import DomainRateLimiter
from price_aggregator.scraping.types import (
    HEURISTIC_EMBEDDED,
    HEURISTIC_KNOWN_PRICE,
    HEURISTIC_REGEX,
    HEURISTIC_SELECTOR,
    ExtractedPrice,
)

logger = logging.getLogger(__name__)

RETRYABLE_STATUS_CODES = {429, 500, 502, 503, 504}
DEFAULT_ACCEPT_HEADERS = {
    "Accept": "text/html,application/xhtml+xml,application/xml;q=0.9,image/avif,image/webp,*/*;q=0.8",
    "Accept-Language": "en-SG,en;q=0.9",
    "Cache-Control": "no-cache",
    "Pragma": "no-cache",
}


class ExtractionStrategy(ABC):
    """
    Platform-specific price extraction over one product page.

    ``extract`` performs a single GET (retried on transient failures) and
    walks an ordered chain of heuristics:

    1. embedded metadata (JSON-LD, microdata, inline script state)
    2. platform selector probes
    3. whole-document currency regex
    4. known-price table keyed by URL fragment

    Tier 4 is a placeholder for pages that only render prices client-side.
    It never replaces a failed fetch and can be switched off through
    ``PRICE_SCRAPE_ENABLE_KNOWN_PRICE_FALLBACK``.
    """

    DEFAULT_SELECTORS: tuple[str, ...] = ()
    DEFAULT_JSON_PRICE_KEYS: tuple[str, ...] = ("price", "salePrice", "displayPrice")
    SCRIPT_MARKERS: tuple[str, ...] = ()

    def __init__(
        self,
        *,
        config: PlatformConfig,
        settings: PriceAggregationSettings,
        session: requests.Session,
        rate_limiter: DomainRateLimiter,
    ) -> None:
        self.config = config
        self.settings = settings
        self.session = session
        self.rate_limiter = rate_limiter
        self.request_headers = {
            "User-Agent": settings.user_agent,
            **DEFAULT_ACCEPT_HEADERS,
            **config.headers,
        }

    def platform_name(self) -> str:
        return self.config.name

    def can_handle(self, url: str) -> bool:
        lowered = url.strip().lower()
        return any(pattern in lowered for pattern in self.config.host_patterns)

    def extract(self, url: str) -> ExtractedPrice:
        """
        Fetch ``url`` and return the first raw price text the chain finds.

        Raises ExtractionError with reason ``network``, ``parse`` or
        ``not_found``.
        """

        response = self._request_with_retry(url)
        html = response.text or ""
        try:
            soup = BeautifulSoup(html, "html.parser")
        except Exception as exc:
            raise ExtractionError("parse", url, str(exc)) from exc

        extracted = self.extract_from_document(url=url, html=html, soup=soup)
        if extracted is None:
            extracted = self._known_price(url)
        if extracted is None:
            raise ExtractionError("not_found", url, "no heuristic produced a price")

        log_event(
            logger,
            logging.WARNING if extracted.is_placeholder else logging.INFO,
            "price_extracted",
            platform=self.platform_name(),
            url=url,
            heuristic=extracted.heuristic,
            raw_text=extracted.raw_text,
            placeholder=extracted.is_placeholder,
        )
        return extracted

    def extract_from_document(
        self,
        *,
        url: str,
        html: str,
        soup: BeautifulSoup,
    ) -> ExtractedPrice | None:
        """
        Heuristic tiers 1-3 over an already fetched document.
        """

        embedded = self.extract_embedded(url=url, soup=soup)
        if embedded is not None:
            return ExtractedPrice(raw_text=embedded, heuristic=HEURISTIC_EMBEDDED, url=url)

        by_selector = PriceParsingLayer.extract_by_selectors(soup=soup, selectors=self.selectors())
        if by_selector is not None:
            raw_text, selector = by_selector
            return ExtractedPrice(
                raw_text=raw_text,
                heuristic=HEURISTIC_SELECTOR,
                url=url,
                detail=selector,
            )

        by_regex = PriceParsingLayer.extract_by_regex(html)
        if by_regex is not None:
            return ExtractedPrice(raw_text=by_regex, heuristic=HEURISTIC_REGEX, url=url)
        return None

    def extract_embedded(self, *, url: str, soup: BeautifulSoup) -> str | None:
        return PriceParsingLayer.extract_embedded(
            soup=soup,
            json_price_keys=self.json_price_keys(),
            script_markers=self.SCRIPT_MARKERS,
        )

    @abstractmethod
    def selectors(self) -> Sequence[str]:
        """
        Ordered selector probes for tier 2.
        """

    def json_price_keys(self) -> Sequence[str]:
        return self.config.json_price_keys or self.DEFAULT_JSON_PRICE_KEYS

    def known_price_for(self, url: str) -> tuple[str, str] | None:
        """
        Look up the placeholder table; returns ``(price_text, fragment)``.
        """

        for fragment, price_text in self.config.known_prices.items():
            if fragment in url:
                return price_text, fragment
        return None

    def _known_price(self, url: str) -> ExtractedPrice | None:
        if not self.settings.enable_known_price_fallback:
            return None
        found = self.known_price_for(url)
        if found is None:
            return None
        price_text, fragment = found
        return ExtractedPrice(
            raw_text=price_text,
            heuristic=HEURISTIC_KNOWN_PRICE,
            url=url,
            detail=fragment,
        )

    def _request_with_retry(self, url: str) -> requests.Response:
        last_error: Exception | None = None

        for attempt in range(self.settings.max_retries + 1):
            self.rate_limiter.wait(
                url=url,
                rate_limit_per_second=self.config.rate_limit_per_second,
            )
            try:
                response = self.session.get(
                    url,
                    headers=self.request_headers,
                    timeout=self.settings.timeout_seconds,
                    allow_redirects=True,
                )
                if response.status_code in RETRYABLE_STATUS_CODES:
                    raise requests.HTTPError(
                        f"Retryable status={response.status_code}",
                        response=response,
                    )
                response.raise_for_status()
                return response
            except (requests.Timeout, requests.ConnectionError, requests.HTTPError) as exc:
                last_error = exc
                if isinstance(exc, requests.HTTPError):
                    status_code = exc.response.status_code if exc.response is not None else None
                    if status_code not in RETRYABLE_STATUS_CODES:
                        raise ExtractionError("network", url, f"status={status_code}") from exc
            except requests.RequestException as exc:
                raise ExtractionError("network", url, str(exc)) from exc

            if attempt >= self.settings.max_retries:
                break

            backoff_seconds = self.settings.backoff_initial_seconds * (
                self.settings.backoff_multiplier**attempt
            )
            log_event(
                logger,
                logging.INFO,
                "price_fetch_retry",
                platform=self.platform_name(),
                url=url,
                attempt=attempt + 1,
                backoff_seconds=backoff_seconds,
                error=str(last_error),
            )
            time.sleep(backoff_seconds)

        raise ExtractionError("network", url, f"failed after retries: {last_error}")
