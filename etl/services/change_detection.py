"""
etl/services/change_detection.py

Insert / update / no-op decision for canonical records against the store.

A stored record is overwritten only when its metrics or extended fields
differ from the incoming record, so an unchanged re-ingestion performs no
write and never marks its entity for cache invalidation.
"""

from __future__ import annotations

import logging
from collections.abc import Callable, Mapping
from datetime import datetime, timezone
from typing import Any

from etl.domain.records import METRIC_FIELDS, CanonicalRecord, StoredRecord, UpsertOutcome
from etl.repositories.errors import RecordConflictError
from etl.repositories.rural_employment_repository import RecordStore

logger = logging.getLogger(__name__)


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def metrics_differ(stored: Mapping[str, Any], incoming: Mapping[str, Any]) -> bool:
    """
    Field-by-field comparison over the fixed metric set; absent means 0.
    """

    for field in METRIC_FIELDS:
        if stored.get(field, 0) != incoming.get(field, 0):
            return True
    return False


def extended_fields_differ(stored: Mapping[str, Any], incoming: Mapping[str, Any]) -> bool:
    """
    Deep, key-order-independent comparison of the auxiliary field mapping.
    """

    return dict(stored) != dict(incoming)


def record_changed(stored: StoredRecord, incoming: CanonicalRecord) -> bool:
    return metrics_differ(stored.metrics, incoming.metrics) or extended_fields_differ(
        stored.extended_fields,
        incoming.extended_fields,
    )


class RecordUpserter:
    """
    Write a canonical record only when it carries new information.
    """

    def __init__(
        self,
        store: RecordStore,
        *,
        clock: Callable[[], datetime] = _utcnow,
    ) -> None:
        self._store = store
        self._clock = clock

    def upsert(self, record: CanonicalRecord) -> str:
        """
        Return ``inserted``, ``updated`` or ``unchanged``.

        Store failures propagate to the caller.
        """

        existing = self._store.find_one(record.natural_key)
        if existing is None:
            try:
                self._store.insert(record, written_at=self._clock())
                return UpsertOutcome.INSERTED
            except RecordConflictError:
                logger.info(
                    "Record appeared concurrently, retrying as update key=%s",
                    record.natural_key,
                )
                existing = self._store.find_one(record.natural_key)
                if existing is None:
                    raise

        if not record_changed(existing, record):
            return UpsertOutcome.UNCHANGED

        self._store.update_by_key(
            record.natural_key,
            {
                "metrics": dict(record.metrics),
                "extended_fields": dict(record.extended_fields),
                "source_tag": record.source_tag,
                "last_updated": self._clock(),
            },
        )
        return UpsertOutcome.UPDATED
