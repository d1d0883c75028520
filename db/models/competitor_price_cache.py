"""
db/models/competitor_price_cache.py

Persisted competitor price result sets, one row per product.
"""

from __future__ import annotations

from datetime import datetime
from typing import Any

from sqlalchemy import String, func
from sqlalchemy.orm import Mapped, mapped_column

from db.base import Base, JSONDocument, UTCDateTime


class CompetitorPriceCacheEntry(Base):
    """
    Last merged price result set for one product.

    ``prices`` holds the serialized mapping, e.g.::

        {
            "Lazada": {
                "price": 1428.9,
                "sourceUrl": "https://www.lazada.sg/products/...",
                "lastUpdated": "2026-10-16T08:00:00+00:00",
                "isLive": true
            }
        }

    The row is replaced as a whole on every merge so readers never observe
    a partially written result set.
    """

    __tablename__ = "competitor_price_cache"

    product_id: Mapped[str] = mapped_column(
        String(128),
        primary_key=True,
        comment="Catalog product identifier",
    )
    prices: Mapped[dict[str, Any]] = mapped_column(
        JSONDocument,
        nullable=False,
        default=dict,
        comment="Competitor name -> serialized CompetitorPrice",
    )
    updated_at: Mapped[datetime] = mapped_column(
        UTCDateTime,
        nullable=False,
        server_default=func.now(),
        comment="Time of the last write to this row (UTC)",
    )
