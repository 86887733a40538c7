"""
etl/domain/records.py

Canonical record shapes shared by the normalizer, upsert and cache layers.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, NamedTuple

PRIMARY_VOLUME_METRIC = "person_days_generated"

METRIC_FIELDS: tuple[str, ...] = (
    PRIMARY_VOLUME_METRIC,
    "works_completed",
    "works_in_progress",
    "payments_made",
    "amount_spent",
)

NATURAL_KEY_FIELDS: tuple[str, ...] = ("region", "sub_region", "fiscal_year", "period")


class VolumePath:
    """
    How the primary volume metric was obtained for one record.
    """

    DIRECT = "direct"
    DERIVED = "derived"
    ABSENT = "absent"


class UpsertOutcome:
    INSERTED = "inserted"
    UPDATED = "updated"
    UNCHANGED = "unchanged"


class NaturalKey(NamedTuple):
    region: str
    sub_region: str
    fiscal_year: str
    period: str

    def as_filter(self) -> dict[str, str]:
        return dict(self._asdict())


class EntityKey(NamedTuple):
    """
    The (region, sub_region) pair that cached views are keyed by.
    """

    region: str
    sub_region: str


@dataclass(frozen=True)
class CanonicalRecord:
    """
    One normalized observation ready for persistence.
    """

    region: str
    sub_region: str
    fiscal_year: str
    period: str
    metrics: dict[str, float]
    extended_fields: dict[str, Any]
    source_tag: str
    volume_path: str = VolumePath.DIRECT
    last_updated: datetime | None = None

    @property
    def natural_key(self) -> NaturalKey:
        return NaturalKey(self.region, self.sub_region, self.fiscal_year, self.period)

    @property
    def entity(self) -> EntityKey:
        return EntityKey(self.region, self.sub_region)

    def to_document(self) -> dict[str, Any]:
        """
        JSON-safe representation used for snapshots.
        """

        return {
            "region": self.region,
            "sub_region": self.sub_region,
            "fiscal_year": self.fiscal_year,
            "period": self.period,
            "metrics": dict(self.metrics),
            "extended_fields": dict(self.extended_fields),
            "source_tag": self.source_tag,
            "volume_path": self.volume_path,
        }


@dataclass(frozen=True)
class StoredRecord:
    """
    The persisted state of one natural key, as read back from the store.
    """

    key: NaturalKey
    metrics: dict[str, Any]
    extended_fields: dict[str, Any]
    source_tag: str
    last_updated: datetime | None = None


@dataclass(frozen=True)
class MissingEssentialFields:
    """
    Marker returned when a raw record lacks one of the natural-key fields.
    """

    missing: tuple[str, ...]
    source_keys: tuple[str, ...] = field(default_factory=tuple)

