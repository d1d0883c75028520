"""
db/models/competitor_url_mapping.py

Persisted product -> competitor URL mappings consumed by the URL resolver.
"""

from __future__ import annotations

import uuid

from sqlalchemy import Index, String, UniqueConstraint, Uuid
from sqlalchemy.orm import Mapped, mapped_column

from db.base import Base, TimestampMixin


class CompetitorUrlMapping(Base, TimestampMixin):
    __tablename__ = "competitor_url_mappings"

    id: Mapped[uuid.UUID] = mapped_column(
        Uuid(as_uuid=True),
        primary_key=True,
        default=uuid.uuid4,
    )
    product_id: Mapped[str] = mapped_column(
        String(128),
        nullable=False,
        comment="Catalog product identifier",
    )
    competitor: Mapped[str] = mapped_column(
        String(120),
        nullable=False,
        comment="Competitor display name, unique per product",
    )
    url: Mapped[str] = mapped_column(
        String(2048),
        nullable=False,
        comment="Competitor product page URL",
    )

    __table_args__ = (
        UniqueConstraint("product_id", "competitor", name="uq_competitor_url_mappings_product_competitor"),
        Index("ix_competitor_url_mappings_product_id", "product_id"),
    )
