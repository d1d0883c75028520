"""
Error taxonomy for competitor price aggregation.

Everything except ResolverError is scoped to one competitor and is turned
into a cache fallback by the aggregator.
"""

from __future__ import annotations

EXTRACTION_REASONS = frozenset({"network", "parse", "not_found"})


class PriceAggregationError(Exception):
    """Base exception for price aggregation failures."""


class NoStrategyFound(PriceAggregationError):
    """Raised when no registered strategy claims a URL."""

    def __init__(self, url: str) -> None:
        super().__init__(f"No extraction strategy registered for url={url}")
        self.url = url


class ExtractionError(PriceAggregationError):
    """Raised when a strategy cannot produce raw price text for a URL."""

    def __init__(self, reason: str, url: str, detail: str = "") -> None:
        if reason not in EXTRACTION_REASONS:
            raise ValueError(f"Unknown extraction failure reason '{reason}'.")
        message = f"Extraction failed ({reason}) for url={url}"
        if detail:
            message = f"{message}: {detail}"
        super().__init__(message)
        self.reason = reason
        self.url = url
        self.detail = detail


class ParseError(PriceAggregationError):
    """Raised when price text cannot be normalized to a decimal amount."""

    def __init__(self, raw: object, detail: str) -> None:
        super().__init__(f"Cannot parse price text {raw!r}: {detail}")
        self.raw = raw
        self.detail = detail


class PriceCacheWriteError(PriceAggregationError):
    """Raised when a merged result set could not be persisted."""

    def __init__(self, product_id: str, merged: dict, detail: str) -> None:
        super().__init__(f"Price cache write failed for product_id={product_id}: {detail}")
        self.product_id = product_id
        self.merged = merged
        self.detail = detail


class ResolverError(PriceAggregationError):
    """Raised when competitor URLs for a product cannot be resolved."""

    def __init__(self, product_id: str, detail: str) -> None:
        super().__init__(f"URL resolution failed for product_id={product_id}: {detail}")
        self.product_id = product_id
        self.detail = detail
