"""
etl/services/batch_processor.py

Drives normalize + upsert over a raw record collection in bounded chunks.

Chunking bounds peak store load, not ordering: records are processed in
input order and the store is committed once per chunk. A short pause between
chunks keeps write pressure on the store low.
"""

from __future__ import annotations

import logging
import time
from collections.abc import Callable, Iterator, Sequence
from typing import Any

from etl.domain.records import CanonicalRecord, MissingEssentialFields, UpsertOutcome, VolumePath
from etl.domain.run import RunSummary
from etl.normalization.normalizer import RecordNormalizer
from etl.repositories.errors import RecordStoreError
from etl.repositories.rural_employment_repository import RecordStore
from etl.services.change_detection import RecordUpserter

logger = logging.getLogger(__name__)

_MAX_LOGGED_SKIPS = 5
_PROGRESS_LOG_EVERY = 1000


def iter_chunks(items: Sequence[Any], chunk_size: int | None) -> Iterator[Sequence[Any]]:
    """
    Yield consecutive slices of at most ``chunk_size`` items.

    ``None`` or a non-positive size yields the whole input as one chunk.
    """

    if not items:
        return
    size = chunk_size if chunk_size and chunk_size > 0 else len(items)
    for start in range(0, len(items), size):
        yield items[start : start + size]


class BatchProcessor:
    """
    Normalize and upsert raw records, collecting run counters.
    """

    def __init__(
        self,
        *,
        store: RecordStore,
        source_tag: str,
        normalizer: RecordNormalizer | None = None,
        upserter: RecordUpserter | None = None,
        default_chunk_size: int | None = None,
        chunk_pause_seconds: float = 0.1,
        record_limit: int | None = None,
        sample_size: int = 100,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        self._store = store
        self._source_tag = source_tag
        self._normalizer = normalizer or RecordNormalizer()
        self._upserter = upserter or RecordUpserter(store)
        self._default_chunk_size = default_chunk_size
        self._chunk_pause_seconds = max(0.0, chunk_pause_seconds)
        self._record_limit = record_limit if record_limit and record_limit > 0 else None
        self._sample_size = max(0, sample_size)
        self._sleep = sleep

    def run(
        self,
        raw_records: Sequence[Any],
        chunk_size: int | None = None,
    ) -> RunSummary:
        """
        Process every raw record; per-record failures are counted, not raised.

        ``StoreConnectionError`` is the only store failure that escapes.
        """

        summary = RunSummary(total_received=len(raw_records))
        chunks = list(iter_chunks(raw_records, chunk_size or self._default_chunk_size))
        consumed = 0

        for chunk_index, chunk in enumerate(chunks):
            logger.info(
                "Processing chunk %s/%s records=%s source_tag=%s",
                chunk_index + 1,
                len(chunks),
                len(chunk),
                self._source_tag,
            )
            for raw in chunk:
                if self._limit_reached(summary):
                    break
                self._process_record(raw, summary)
                consumed += 1

            self._store.commit()
            summary.chunks += 1

            if self._limit_reached(summary):
                summary.stopped_early = consumed < summary.total_received
                logger.warning(
                    "Record limit reached processed=%s limit=%s, stopping",
                    summary.total_processed,
                    self._record_limit,
                )
                break

            if chunk_index < len(chunks) - 1 and self._chunk_pause_seconds > 0:
                self._sleep(self._chunk_pause_seconds)

        logger.info(
            "Batch processing finished received=%s processed=%s changed=%s skipped=%s failed=%s",
            summary.total_received,
            summary.total_processed,
            summary.total_changed,
            summary.skipped,
            summary.failed,
        )
        return summary

    def _process_record(self, raw: Any, summary: RunSummary) -> None:
        normalized = self._normalizer.normalize(raw, source_tag=self._source_tag)
        if isinstance(normalized, MissingEssentialFields):
            summary.skipped += 1
            if summary.skipped <= _MAX_LOGGED_SKIPS:
                logger.warning(
                    "Skipping record with missing fields missing=%s keys=%s",
                    list(normalized.missing),
                    list(normalized.source_keys),
                )
            return

        try:
            outcome = self._upserter.upsert(normalized)
        except RecordStoreError as exc:
            summary.failed += 1
            logger.error(
                "Failed to upsert record key=%s error=%s",
                normalized.natural_key,
                exc,
            )
            return

        self._record_outcome(normalized, outcome, summary)

    def _record_outcome(
        self,
        record: CanonicalRecord,
        outcome: str,
        summary: RunSummary,
    ) -> None:
        summary.total_processed += 1
        if record.volume_path == VolumePath.DERIVED:
            summary.derived_volume_count += 1

        if outcome == UpsertOutcome.INSERTED:
            summary.inserted += 1
        elif outcome == UpsertOutcome.UPDATED:
            summary.updated += 1
        else:
            summary.unchanged += 1

        if outcome != UpsertOutcome.UNCHANGED:
            summary.total_changed += 1
            summary.changed_entities.add(record.entity)

        if len(summary.sample_records) < self._sample_size:
            summary.sample_records.append(record)

        if summary.total_processed % _PROGRESS_LOG_EVERY == 0:
            logger.info(
                "Progress processed=%s/%s changed=%s",
                summary.total_processed,
                summary.total_received,
                summary.total_changed,
            )

    def _limit_reached(self, summary: RunSummary) -> bool:
        return self._record_limit is not None and summary.total_processed >= self._record_limit
