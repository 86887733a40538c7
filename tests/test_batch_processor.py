"""
tests/test_batch_processor.py

Pytest unit tests for BatchProcessor.

Coverage
--------
- Idempotence across identical batches
- Skip-not-abort for records missing a natural-key field
- Change-gated entity collection
- Chunking, per-chunk commit and inter-chunk pause
- Record limit and early stop
- Per-record store failures versus run-level connection loss
"""

from __future__ import annotations

import pytest

from etl.config import get_etl_settings
from etl.domain.records import EntityKey
from etl.repositories.errors import StoreConnectionError
from etl.services.batch_processor import BatchProcessor, iter_chunks


class SleepRecorder:
    def __init__(self) -> None:
        self.calls: list[float] = []

    def __call__(self, seconds: float) -> None:
        self.calls.append(seconds)


def _processor(store, **kwargs) -> BatchProcessor:
    kwargs.setdefault("sleep", SleepRecorder())
    return BatchProcessor(store=store, source_tag="external-api", **kwargs)


def _batch(raw_record_factory, count: int) -> list[dict]:
    return [raw_record_factory(f"District {index}", Total_Exp=str(index * 10)) for index in range(count)]


class TestIterChunks:
    def test_splits_into_consecutive_slices(self) -> None:
        assert [list(chunk) for chunk in iter_chunks([1, 2, 3, 4, 5], 2)] == [[1, 2], [3, 4], [5]]

    @pytest.mark.parametrize("size", [None, 0, -3])
    def test_non_positive_size_yields_single_chunk(self, size) -> None:
        assert [list(chunk) for chunk in iter_chunks([1, 2, 3], size)] == [[1, 2, 3]]

    def test_empty_input_yields_nothing(self) -> None:
        assert list(iter_chunks([], 10)) == []


class TestIdempotence:
    def test_second_identical_run_changes_nothing(self, store, raw_record_factory) -> None:
        batch = _batch(raw_record_factory, 12)

        first = _processor(store).run(batch, chunk_size=5)
        writes_after_first = store.writes
        second = _processor(store).run(batch, chunk_size=5)

        assert first.total_changed == 12
        assert first.inserted == 12
        assert second.total_processed == 12
        assert second.total_changed == 0
        assert second.unchanged == 12
        assert second.changed_entities == set()
        assert store.writes == writes_after_first


class TestSkipNotAbort:
    def test_one_missing_region_among_ten(self, store, raw_record_factory) -> None:
        batch = _batch(raw_record_factory, 9)
        broken = raw_record_factory("Broken")
        del broken["state_name"]
        batch.insert(4, broken)

        summary = _processor(store).run(batch)

        assert summary.total_received == 10
        assert summary.total_processed == 9
        assert summary.skipped == 1
        assert summary.failed == 0
        assert len(store.rows) == 9

    def test_non_mapping_items_are_skipped(self, store, raw_record_factory) -> None:
        summary = _processor(store).run([None, "garbage", raw_record_factory()])
        assert summary.skipped == 2
        assert summary.total_processed == 1


class TestChangeGatedEntities:
    def test_only_changed_entities_are_collected(self, store, raw_record_factory) -> None:
        _processor(store).run(
            [
                raw_record_factory("Surat", Total_Exp="100"),
                raw_record_factory("Rajkot", Total_Exp="200"),
            ]
        )

        summary = _processor(store).run(
            [
                raw_record_factory("Surat", Total_Exp="100"),
                raw_record_factory("Rajkot", Total_Exp="250"),
            ]
        )

        assert summary.updated == 1
        assert summary.unchanged == 1
        assert summary.changed_entities == {EntityKey("Gujarat", "Rajkot")}

    def test_entities_are_deduplicated_across_periods(self, store, raw_record_factory) -> None:
        summary = _processor(store).run(
            [
                raw_record_factory("Surat", month="Apr"),
                raw_record_factory("Surat", month="May"),
            ]
        )
        assert summary.total_changed == 2
        assert summary.changed_entities == {EntityKey("Gujarat", "Surat")}


class TestChunking:
    def test_commit_per_chunk_and_pause_between_chunks(self, store, raw_record_factory) -> None:
        sleep = SleepRecorder()
        summary = _processor(store, sleep=sleep, chunk_pause_seconds=0.1).run(
            _batch(raw_record_factory, 7),
            chunk_size=3,
        )

        assert summary.chunks == 3
        assert store.commits == 3
        assert sleep.calls == [0.1, 0.1]

    def test_default_chunk_size_is_used(self, store, raw_record_factory) -> None:
        summary = _processor(store, default_chunk_size=4).run(_batch(raw_record_factory, 8))
        assert summary.chunks == 2

    def test_zero_batch_size_setting_processes_one_chunk(self, store, raw_record_factory, monkeypatch) -> None:
        monkeypatch.setenv("ETL_BATCH_SIZE", "0")
        get_etl_settings.cache_clear()
        try:
            settings = get_etl_settings()
        finally:
            get_etl_settings.cache_clear()
        sleep = SleepRecorder()

        summary = _processor(store, sleep=sleep, default_chunk_size=settings.batch_size).run(
            _batch(raw_record_factory, 5)
        )

        assert summary.chunks == 1
        assert store.commits == 1
        assert sleep.calls == []

    def test_empty_batch_returns_zero_summary(self, store) -> None:
        summary = _processor(store).run([])
        assert summary.total_received == 0
        assert summary.total_processed == 0
        assert summary.chunks == 0
        assert store.commits == 0


class TestRecordLimit:
    def test_stops_once_limit_reached(self, store, raw_record_factory) -> None:
        sleep = SleepRecorder()
        summary = _processor(store, record_limit=5, sleep=sleep).run(
            _batch(raw_record_factory, 10),
            chunk_size=3,
        )

        assert summary.total_processed == 5
        assert summary.stopped_early is True
        assert len(store.rows) == 5
        assert store.commits == summary.chunks == 2
        assert sleep.calls == [0.1]

    def test_limit_equal_to_batch_is_not_an_early_stop(self, store, raw_record_factory) -> None:
        summary = _processor(store, record_limit=4).run(_batch(raw_record_factory, 4))
        assert summary.total_processed == 4
        assert summary.stopped_early is False


class TestFailures:
    def test_per_record_store_failure_is_counted(self, store, raw_record_factory) -> None:
        batch = _batch(raw_record_factory, 3)
        store.fail_keys.add(("Gujarat", "District 1", "2023-24", "Apr"))

        summary = _processor(store).run(batch)

        assert summary.failed == 1
        assert summary.total_processed == 2
        assert EntityKey("Gujarat", "District 1") not in summary.changed_entities

    def test_connection_loss_propagates(self, disconnecting_store, raw_record_factory) -> None:
        with pytest.raises(StoreConnectionError):
            _processor(disconnecting_store).run(_batch(raw_record_factory, 3))


class TestSample:
    def test_sample_keeps_first_processed_records(self, store, raw_record_factory) -> None:
        summary = _processor(store, sample_size=2).run(_batch(raw_record_factory, 5))
        assert [record.sub_region for record in summary.sample_records] == ["District 0", "District 1"]

    def test_derived_volume_is_counted(self, store, raw_record_factory) -> None:
        summary = _processor(store).run(
            [
                raw_record_factory("Surat", SC_persondays="10"),
                raw_record_factory("Rajkot", person_days_generated="20"),
            ]
        )
        assert summary.derived_volume_count == 1
