"""
etl/services/snapshot_writer.py

Best-effort JSON audit snapshot, one new file per run.
"""

from __future__ import annotations

import json
import logging
from collections.abc import Callable, Sequence
from datetime import datetime, timezone
from pathlib import Path
from typing import Any

from etl.domain.records import CanonicalRecord
from etl.domain.run import RunSummary

logger = logging.getLogger(__name__)

_MAX_SUFFIX_ATTEMPTS = 1000


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class SnapshotWriter:
    """
    Write ``snapshot-{run_date}.json`` files; existing files are never replaced.
    """

    def __init__(
        self,
        directory: Path,
        *,
        sample_size: int = 100,
        clock: Callable[[], datetime] = _utcnow,
    ) -> None:
        self._directory = Path(directory)
        self._sample_size = max(0, sample_size)
        self._clock = clock

    def write(
        self,
        run_date: str,
        summary: RunSummary,
        sample: Sequence[CanonicalRecord],
        *,
        source_tag: str | None = None,
    ) -> Path | None:
        """
        Return the written path, or None when the snapshot could not be saved.
        """

        payload = self.build_payload(run_date, summary, sample, source_tag=source_tag)
        try:
            self._directory.mkdir(parents=True, exist_ok=True)
            path = self._write_new_file(run_date, payload)
        except (OSError, TypeError, ValueError) as exc:
            logger.error("Failed to write snapshot run_date=%s error=%s", run_date, exc)
            return None

        logger.info("Snapshot saved path=%s sample_records=%s", path, len(payload["sample_records"]))
        return path

    def build_payload(
        self,
        run_date: str,
        summary: RunSummary,
        sample: Sequence[CanonicalRecord],
        *,
        source_tag: str | None = None,
    ) -> dict[str, Any]:
        return {
            "run_date": run_date,
            "generated_at": self._clock().isoformat(),
            "source_tag": source_tag,
            "total_records": summary.total_processed,
            "total_processed": summary.total_processed,
            "total_changed": summary.total_changed,
            "distinct_entities_changed": len(summary.changed_entities),
            "counters": {
                "total_received": summary.total_received,
                "inserted": summary.inserted,
                "updated": summary.updated,
                "unchanged": summary.unchanged,
                "skipped": summary.skipped,
                "failed": summary.failed,
                "derived_volume_count": summary.derived_volume_count,
                "stopped_early": summary.stopped_early,
            },
            "sample_records": [record.to_document() for record in list(sample)[: self._sample_size]],
        }

    def _write_new_file(self, run_date: str, payload: dict[str, Any]) -> Path:
        body = json.dumps(payload, indent=2, ensure_ascii=False)
        for attempt in range(1, _MAX_SUFFIX_ATTEMPTS + 1):
            suffix = "" if attempt == 1 else f"-{attempt}"
            path = self._directory / f"snapshot-{run_date}{suffix}.json"
            try:
                with path.open("x", encoding="utf-8") as handle:
                    handle.write(body)
                return path
            except FileExistsError:
                continue
        raise OSError(f"No free snapshot filename for run_date={run_date}")
