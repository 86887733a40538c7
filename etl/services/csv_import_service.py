"""
etl/services/csv_import_service.py

Bulk import of a delimited file through the same normalize/upsert/invalidate
path as the scheduled pipeline. Fetch, snapshot and the run coordinator are
not involved.
"""

from __future__ import annotations

import csv
import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Any

from db.models.rural_employment_record import RecordSourceTag
from etl.cache.client import build_cache_client
from etl.cache.invalidator import CacheInvalidator
from etl.config import ETLSettings, get_cache_settings, get_etl_settings
from etl.domain.run import InvalidationResult, RunSummary
from etl.normalization.normalizer import RecordNormalizer
from etl.services.batch_processor import BatchProcessor
from etl.services.pipeline import StoreScope, repository_scope

logger = logging.getLogger(__name__)


class CSVImportError(ValueError):
    """
    Raised when the file cannot be read as a header-first UTF-8 CSV with rows.
    """


@dataclass(frozen=True)
class CSVImportResult:
    path: Path
    rows_read: int
    summary: RunSummary
    invalidation: InvalidationResult


def _clean_row(row: dict[str | None, Any]) -> dict[str, Any]:
    cleaned: dict[str, Any] = {}
    for key, value in row.items():
        # DictReader collects overflow cells under a None key.
        if key is None:
            continue
        name = key.strip()
        if not name:
            continue
        cleaned[name] = value.strip() if isinstance(value, str) else value
    return cleaned


def read_csv_rows(path: Path, *, delimiter: str = ",") -> list[dict[str, Any]]:
    """
    Parse ``path`` into trimmed row mappings, dropping rows with no values.
    """

    try:
        with Path(path).open("r", encoding="utf-8-sig", newline="") as handle:
            reader = csv.DictReader(handle, delimiter=delimiter)
            if not reader.fieldnames:
                raise CSVImportError(f"CSV header row is missing: {path}")
            rows = [_clean_row(row) for row in reader]
    except UnicodeDecodeError as exc:
        raise CSVImportError("CSV must be UTF-8 encoded.") from exc
    except csv.Error as exc:
        raise CSVImportError(f"Invalid CSV format: {exc}") from exc

    return [row for row in rows if any(value not in (None, "") for value in row.values())]


class CSVImportService:
    """
    Feeds file rows to the batch processor with ``source_tag="file-import"``.
    """

    def __init__(
        self,
        *,
        store_scope: StoreScope,
        cache_invalidator: CacheInvalidator,
        settings: ETLSettings,
        normalizer: RecordNormalizer | None = None,
    ) -> None:
        self._store_scope = store_scope
        self._cache_invalidator = cache_invalidator
        self._settings = settings
        self._normalizer = normalizer or RecordNormalizer()

    def import_file(self, path: Path | str, *, delimiter: str = ",") -> CSVImportResult:
        file_path = Path(path)
        logger.info("CSV import starting path=%s", file_path)

        rows = read_csv_rows(file_path, delimiter=delimiter)
        if not rows:
            raise CSVImportError(f"No records found in CSV: {file_path}")
        logger.info("Parsed CSV rows=%s columns=%s", len(rows), list(rows[0])[:10])

        with self._store_scope() as store:
            processor = BatchProcessor(
                store=store,
                source_tag=RecordSourceTag.FILE_IMPORT,
                normalizer=self._normalizer,
                default_chunk_size=self._settings.batch_size,
                chunk_pause_seconds=0.0,
                sample_size=0,
            )
            summary = processor.run(rows)

        invalidation = self._cache_invalidator.invalidate(summary.changed_entities)
        logger.info(
            "CSV import finished path=%s processed=%s changed=%s skipped=%s failed=%s entities=%s",
            file_path,
            summary.total_processed,
            summary.total_changed,
            summary.skipped,
            summary.failed,
            len(summary.changed_entities),
        )
        return CSVImportResult(
            path=file_path,
            rows_read=len(rows),
            summary=summary,
            invalidation=invalidation,
        )


def get_csv_import_service() -> CSVImportService:
    cache_settings = get_cache_settings()
    return CSVImportService(
        store_scope=repository_scope,
        cache_invalidator=CacheInvalidator(
            build_cache_client(cache_settings),
            history_windows=cache_settings.history_windows,
        ),
        settings=get_etl_settings(),
    )
