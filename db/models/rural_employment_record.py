"""
db/models/rural_employment_record.py

Canonical rural-employment observation, one row per natural key.
"""

from __future__ import annotations

import uuid
from datetime import datetime
from typing import Any

from sqlalchemy import DateTime, Index, String, UniqueConstraint, Uuid
from sqlalchemy.orm import Mapped, mapped_column

from db.base import Base, JSONDocument, TimestampMixin

NATURAL_KEY_CONSTRAINT = "uq_rural_employment_records_natural_key"


class RecordSourceTag:
    EXTERNAL_API = "external-api"
    FILE_IMPORT = "file-import"


class RuralEmploymentRecord(Base, TimestampMixin):
    __tablename__ = "rural_employment_records"

    id: Mapped[uuid.UUID] = mapped_column(
        Uuid(as_uuid=True),
        primary_key=True,
        default=uuid.uuid4,
    )
    region: Mapped[str] = mapped_column(
        String(120),
        nullable=False,
        comment="State name as published by the source",
    )
    sub_region: Mapped[str] = mapped_column(
        String(160),
        nullable=False,
        comment="District name as published by the source",
    )
    fiscal_year: Mapped[str] = mapped_column(String(16), nullable=False)
    period: Mapped[str] = mapped_column(String(32), nullable=False)
    metrics: Mapped[dict[str, Any]] = mapped_column(
        JSONDocument,
        nullable=False,
        comment="Fixed numeric metric set",
    )
    extended_fields: Mapped[dict[str, Any]] = mapped_column(
        JSONDocument,
        nullable=False,
        default=dict,
        comment="Source fields not mapped to metrics, kept verbatim",
    )
    source_tag: Mapped[str] = mapped_column(
        String(32),
        nullable=False,
        comment="external-api, file-import",
    )
    last_updated: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        comment="Time of the last write that changed this record",
    )

    __table_args__ = (
        UniqueConstraint(
            "region",
            "sub_region",
            "fiscal_year",
            "period",
            name=NATURAL_KEY_CONSTRAINT,
        ),
        Index("ix_rural_employment_records_region_sub_region", "region", "sub_region"),
        Index("ix_rural_employment_records_fiscal_year", "fiscal_year"),
    )
