"""
etl/domain/run.py

Run-level summaries produced by batch processing and the pipeline.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any

from etl.domain.records import CanonicalRecord, EntityKey


@dataclass
class RunSummary:
    """
    Counters for one pass over a raw record collection.
    """

    total_received: int = 0
    total_processed: int = 0
    total_changed: int = 0
    inserted: int = 0
    updated: int = 0
    unchanged: int = 0
    skipped: int = 0
    failed: int = 0
    derived_volume_count: int = 0
    chunks: int = 0
    stopped_early: bool = False
    changed_entities: set[EntityKey] = field(default_factory=set)
    sample_records: list[CanonicalRecord] = field(default_factory=list)

    def as_log_fields(self) -> dict[str, Any]:
        return {
            "total_received": self.total_received,
            "total_processed": self.total_processed,
            "total_changed": self.total_changed,
            "inserted": self.inserted,
            "updated": self.updated,
            "unchanged": self.unchanged,
            "skipped": self.skipped,
            "failed": self.failed,
            "derived_volume_count": self.derived_volume_count,
            "chunks": self.chunks,
            "stopped_early": self.stopped_early,
            "distinct_entities_changed": len(self.changed_entities),
        }


@dataclass(frozen=True)
class InvalidationResult:
    keys_deleted: int = 0
    keys_failed: int = 0


class PipelineRunStatus:
    SUCCEEDED = "succeeded"
    FAILED = "failed"


@dataclass(frozen=True)
class PipelineRunResult:
    """
    Outcome of one fetch -> process -> snapshot -> invalidate run.
    """

    status: str
    started_at: datetime
    finished_at: datetime
    summary: RunSummary | None = None
    snapshot_written: bool = False
    invalidation: InvalidationResult = field(default_factory=InvalidationResult)
    error: str | None = None

    @property
    def succeeded(self) -> bool:
        return self.status == PipelineRunStatus.SUCCEEDED

    @property
    def duration_seconds(self) -> float:
        return (self.finished_at - self.started_at).total_seconds()
