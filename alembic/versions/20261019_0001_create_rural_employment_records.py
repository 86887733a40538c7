"""create rural_employment_records table

Revision ID: 20261019_0001
Revises:
Create Date: 2026-10-19 09:00:00
"""

from __future__ import annotations

from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql

# revision identifiers, used by Alembic.
revision = "20261019_0001"
down_revision = None
branch_labels = None
depends_on = None


def upgrade() -> None:
    op.create_table(
        "rural_employment_records",
        sa.Column("id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column("region", sa.String(length=120), nullable=False, comment="State name as published by the source"),
        sa.Column(
            "sub_region",
            sa.String(length=160),
            nullable=False,
            comment="District name as published by the source",
        ),
        sa.Column("fiscal_year", sa.String(length=16), nullable=False),
        sa.Column("period", sa.String(length=32), nullable=False),
        sa.Column(
            "metrics",
            postgresql.JSONB(astext_type=sa.Text()),
            nullable=False,
            comment="Fixed numeric metric set",
        ),
        sa.Column(
            "extended_fields",
            postgresql.JSONB(astext_type=sa.Text()),
            nullable=False,
            comment="Source fields not mapped to metrics, kept verbatim",
        ),
        sa.Column("source_tag", sa.String(length=32), nullable=False, comment="external-api, file-import"),
        sa.Column(
            "last_updated",
            sa.DateTime(timezone=True),
            nullable=False,
            comment="Time of the last write that changed this record",
        ),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.text("now()"), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.text("now()"), nullable=False),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint(
            "region",
            "sub_region",
            "fiscal_year",
            "period",
            name="uq_rural_employment_records_natural_key",
        ),
    )
    op.create_index(
        "ix_rural_employment_records_region_sub_region",
        "rural_employment_records",
        ["region", "sub_region"],
        unique=False,
    )
    op.create_index(
        "ix_rural_employment_records_fiscal_year",
        "rural_employment_records",
        ["fiscal_year"],
        unique=False,
    )


def downgrade() -> None:
    op.drop_index("ix_rural_employment_records_fiscal_year", table_name="rural_employment_records")
    op.drop_index("ix_rural_employment_records_region_sub_region", table_name="rural_employment_records")
    op.drop_table("rural_employment_records")
