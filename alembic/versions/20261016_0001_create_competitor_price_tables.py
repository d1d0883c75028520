"""create competitor price tables

Revision ID: 20261016_0001
Revises:
Create Date: 2026-10-16 09:00:00
"""

from __future__ import annotations

from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql

# revision identifiers, used by Alembic.
revision = "20261016_0001"
down_revision = None
branch_labels = None
depends_on = None

JSON_DOCUMENT = sa.JSON().with_variant(postgresql.JSONB(astext_type=sa.Text()), "postgresql")


def upgrade() -> None:
    op.create_table(
        "competitor_price_cache",
        sa.Column("product_id", sa.String(length=128), nullable=False, comment="Catalog product identifier"),
        sa.Column("prices", JSON_DOCUMENT, nullable=False, comment="Competitor name -> serialized CompetitorPrice"),
        sa.Column(
            "updated_at",
            sa.DateTime(timezone=True),
            server_default=sa.func.now(),
            nullable=False,
            comment="Time of the last write to this row (UTC)",
        ),
        sa.PrimaryKeyConstraint("product_id"),
    )

    op.create_table(
        "competitor_url_mappings",
        sa.Column("id", sa.Uuid(as_uuid=True), nullable=False),
        sa.Column("product_id", sa.String(length=128), nullable=False, comment="Catalog product identifier"),
        sa.Column("competitor", sa.String(length=120), nullable=False, comment="Competitor display name, unique per product"),
        sa.Column("url", sa.String(length=2048), nullable=False, comment="Competitor product page URL"),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("product_id", "competitor", name="uq_competitor_url_mappings_product_competitor"),
    )
    op.create_index(
        "ix_competitor_url_mappings_product_id",
        "competitor_url_mappings",
        ["product_id"],
        unique=False,
    )


def downgrade() -> None:
    op.drop_index("ix_competitor_url_mappings_product_id", table_name="competitor_url_mappings")
    op.drop_table("competitor_url_mappings")
    op.drop_table("competitor_price_cache")
