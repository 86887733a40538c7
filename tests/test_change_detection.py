"""
tests/test_change_detection.py

Pytest unit tests for the insert / update / unchanged decision.
"""

from __future__ import annotations

import pytest

from etl.domain.records import CanonicalRecord, NaturalKey, UpsertOutcome
from etl.normalization.normalizer import RecordNormalizer
from etl.repositories.errors import RecordConflictError, RecordStoreError
from etl.services.change_detection import (
    RecordUpserter,
    extended_fields_differ,
    metrics_differ,
)


def _record(**overrides) -> CanonicalRecord:
    values = {
        "region": "Gujarat",
        "sub_region": "Surat",
        "fiscal_year": "2023-24",
        "period": "Apr",
        "metrics": {
            "person_days_generated": 150.0,
            "works_completed": 0.0,
            "works_in_progress": 0.0,
            "payments_made": 0.0,
            "amount_spent": 0.0,
        },
        "extended_fields": {"SC_persondays": "100", "ST_persondays": "50"},
        "source_tag": "external-api",
    }
    values.update(overrides)
    return CanonicalRecord(**values)


class TestComparison:
    def test_metrics_equal_when_absent_means_zero(self) -> None:
        assert not metrics_differ({"person_days_generated": 5.0}, {"person_days_generated": 5.0, "amount_spent": 0})

    def test_single_metric_difference_is_detected(self) -> None:
        assert metrics_differ({"works_completed": 3.0}, {"works_completed": 4.0})

    def test_extended_fields_ignore_key_order(self) -> None:
        stored = {"a": 1, "nested": {"x": [1, 2], "y": "z"}}
        incoming = {"nested": {"y": "z", "x": [1, 2]}, "a": 1}
        assert not extended_fields_differ(stored, incoming)

    def test_extended_fields_detect_nested_change(self) -> None:
        assert extended_fields_differ({"nested": {"x": [1, 2]}}, {"nested": {"x": [2, 1]}})

    def test_extended_fields_detect_added_key(self) -> None:
        assert extended_fields_differ({"a": 1}, {"a": 1, "b": None})


class TestRecordUpserter:
    def test_first_sighting_inserts(self, store, clock) -> None:
        outcome = RecordUpserter(store, clock=clock).upsert(_record())

        assert outcome == UpsertOutcome.INSERTED
        assert store.inserts == 1
        stored = store.rows[NaturalKey("Gujarat", "Surat", "2023-24", "Apr")]
        assert stored.last_updated is not None

    def test_identical_record_performs_no_write(self, store, clock) -> None:
        upserter = RecordUpserter(store, clock=clock)
        upserter.upsert(_record())
        first_written = store.rows[_record().natural_key].last_updated

        outcome = upserter.upsert(_record())

        assert outcome == UpsertOutcome.UNCHANGED
        assert store.writes == 1
        assert store.rows[_record().natural_key].last_updated == first_written

    def test_source_tag_alone_does_not_trigger_update(self, store, clock) -> None:
        upserter = RecordUpserter(store, clock=clock)
        upserter.upsert(_record())
        assert upserter.upsert(_record(source_tag="file-import")) == UpsertOutcome.UNCHANGED

    def test_changed_metric_overwrites_and_refreshes_timestamp(self, store, clock) -> None:
        upserter = RecordUpserter(store, clock=clock)
        upserter.upsert(_record())
        before = store.rows[_record().natural_key].last_updated

        changed = _record(
            metrics={**_record().metrics, "person_days_generated": 180.0},
            source_tag="file-import",
        )
        outcome = upserter.upsert(changed)

        stored = store.rows[changed.natural_key]
        assert outcome == UpsertOutcome.UPDATED
        assert stored.metrics["person_days_generated"] == 180.0
        assert stored.source_tag == "file-import"
        assert stored.last_updated > before

    def test_insert_conflict_retries_as_update(self, store, clock) -> None:
        class RacingStore(type(store)):
            def __init__(self) -> None:
                super().__init__()
                self.raced = False

            def find_one(self, key):
                if not self.raced:
                    self.raced = True
                    # Another writer inserts between our lookup and insert.
                    super().insert(_record(extended_fields={}), written_at=clock())
                    return None
                return super().find_one(key)

        racing = RacingStore()
        outcome = RecordUpserter(racing, clock=clock).upsert(_record())

        assert outcome == UpsertOutcome.UPDATED
        assert len(racing.rows) == 1
        assert racing.rows[_record().natural_key].extended_fields == _record().extended_fields

    def test_conflict_without_visible_row_propagates(self, store, clock) -> None:
        class GhostConflictStore(type(store)):
            def insert(self, record, *, written_at):
                raise RecordConflictError("conflict")

        with pytest.raises(RecordConflictError):
            RecordUpserter(GhostConflictStore(), clock=clock).upsert(_record())

    def test_store_errors_propagate(self, store, clock) -> None:
        store.fail_keys.add(_record().natural_key)
        with pytest.raises(RecordStoreError):
            RecordUpserter(store, clock=clock).upsert(_record())


def test_gujarat_surat_scenario_insert_unchanged_update(store, clock) -> None:
    normalizer = RecordNormalizer()
    upserter = RecordUpserter(store, clock=clock)
    raw = {
        "state_name": "Gujarat",
        "district_name": "Surat",
        "fin_year": "2023-24",
        "month": "Apr",
        "SC_persondays": "100",
        "ST_persondays": "50",
    }

    first = upserter.upsert(normalizer.normalize(raw, source_tag="external-api"))
    second = upserter.upsert(normalizer.normalize(dict(raw), source_tag="external-api"))
    third_record = normalizer.normalize({**raw, "ST_persondays": "80"}, source_tag="external-api")
    third = upserter.upsert(third_record)

    assert (first, second, third) == (
        UpsertOutcome.INSERTED,
        UpsertOutcome.UNCHANGED,
        UpsertOutcome.UPDATED,
    )
    assert store.rows[third_record.natural_key].metrics["person_days_generated"] == 180.0
    assert len(store.rows) == 1
