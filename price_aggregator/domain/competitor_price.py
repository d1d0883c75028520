"""
price_aggregator/domain/competitor_price.py

Competitor price value record and its persisted representation.
"""

from __future__ import annotations

from dataclasses import dataclass, replace
from datetime import datetime, timezone
from decimal import Decimal, InvalidOperation
from typing import Any

CENTS = Decimal("0.01")


@dataclass(frozen=True)
class CompetitorPrice:
    """
    One competitor's price for a product.

    ``is_live`` is true only when the value came from a fetch performed
    during the aggregation call that produced it.
    """

    competitor: str
    price: Decimal
    source_url: str
    last_updated: datetime
    is_live: bool

    def __post_init__(self) -> None:
        if not self.competitor:
            raise ValueError("competitor must be a non-empty name.")
        if not isinstance(self.price, Decimal):
            raise TypeError("price must be a Decimal.")
        if not self.price.is_finite() or self.price < 0:
            raise ValueError(f"price must be a non-negative amount, got {self.price}.")
        if self.last_updated.tzinfo is None:
            object.__setattr__(self, "last_updated", self.last_updated.replace(tzinfo=timezone.utc))

    def as_stale(self) -> "CompetitorPrice":
        return replace(self, is_live=False)

    def as_live(self) -> "CompetitorPrice":
        return replace(self, is_live=True)

    def to_record(self) -> dict[str, Any]:
        """
        Serialize into the persisted cache layout.
        """

        return {
            "price": float(self.price),
            "sourceUrl": self.source_url,
            "lastUpdated": self.last_updated.isoformat(),
            "isLive": self.is_live,
        }

    @classmethod
    def from_record(cls, competitor: str, record: dict[str, Any]) -> "CompetitorPrice":
        """
        Rebuild a price from its persisted layout.

        Raises ValueError when the record is malformed.
        """

        try:
            price = Decimal(str(record["price"])).quantize(CENTS)
        except (KeyError, InvalidOperation) as exc:
            raise ValueError(f"Invalid cached price for competitor='{competitor}'.") from exc

        raw_timestamp = record.get("lastUpdated")
        if not isinstance(raw_timestamp, str) or not raw_timestamp:
            raise ValueError(f"Missing lastUpdated for competitor='{competitor}'.")
        normalized = raw_timestamp[:-1] + "+00:00" if raw_timestamp.endswith("Z") else raw_timestamp
        last_updated = datetime.fromisoformat(normalized)

        return cls(
            competitor=competitor,
            price=price,
            source_url=str(record.get("sourceUrl") or ""),
            last_updated=last_updated,
            is_live=bool(record.get("isLive", False)),
        )


PriceResultSet = dict[str, CompetitorPrice]
