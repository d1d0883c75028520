"""
Shared scraping runtime data models.
"""

from __future__ import annotations

from dataclasses import dataclass

from price_aggregator.domain.competitor_price import CompetitorPrice

HEURISTIC_EMBEDDED = "embedded_metadata"
HEURISTIC_SELECTOR = "selector"
HEURISTIC_REGEX = "document_regex"
HEURISTIC_KNOWN_PRICE = "known_price_fallback"


@dataclass(frozen=True)
class ExtractedPrice:
    """
    Raw price text plus the heuristic tier that produced it.
    """

    raw_text: str
    heuristic: str
    url: str
    detail: str = ""

    @property
    def is_placeholder(self) -> bool:
        return self.heuristic == HEURISTIC_KNOWN_PRICE


@dataclass(frozen=True)
class CompetitorFetchOutcome:
    """
    Result of one competitor's fetch, extract and parse pipeline.
    """

    competitor: str
    url: str
    price: CompetitorPrice | None = None
    error_kind: str | None = None
    error: str | None = None

    @property
    def succeeded(self) -> bool:
        return self.price is not None
