"""
etl/services/pipeline.py

One end-to-end ingestion run: fetch -> normalize/upsert in chunks ->
snapshot -> cache invalidation.

Only a failed fetch or a lost store connection fails the run. Snapshot and
cache problems are logged and reported as counters on the result.
"""

from __future__ import annotations

import logging
import time
from collections.abc import Callable, Iterator
from contextlib import AbstractContextManager, contextmanager
from datetime import datetime, timezone
from functools import lru_cache

from db.models.rural_employment_record import RecordSourceTag
from db.session import session_scope
from etl.cache.client import build_cache_client
from etl.cache.invalidator import CacheInvalidator
from etl.config import (
    ETLSettings,
    get_cache_settings,
    get_etl_settings,
    get_http_settings,
    get_source_api_settings,
)
from etl.connectors.base import BaseConnector, ConnectorRequestError
from etl.connectors.data_gov_connector import DataGovConnector
from etl.domain.run import PipelineRunResult, PipelineRunStatus
from etl.logging_utils import log_event
from etl.normalization.normalizer import RecordNormalizer
from etl.repositories.errors import StoreConnectionError
from etl.repositories.rural_employment_repository import RecordStore, RuralEmploymentRepository
from etl.services.batch_processor import BatchProcessor
from etl.services.snapshot_writer import SnapshotWriter

logger = logging.getLogger(__name__)

StoreScope = Callable[[], AbstractContextManager[RecordStore]]


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


@contextmanager
def repository_scope() -> Iterator[RuralEmploymentRepository]:
    """Yield a repository bound to a fresh session, closed on exit."""
    with session_scope() as session:
        yield RuralEmploymentRepository(session)


class ETLPipeline:
    """
    Coordinates the source connector, batch processing and side effects.
    """

    def __init__(
        self,
        *,
        connector: BaseConnector,
        store_scope: StoreScope,
        snapshot_writer: SnapshotWriter,
        cache_invalidator: CacheInvalidator,
        settings: ETLSettings,
        normalizer: RecordNormalizer | None = None,
        clock: Callable[[], datetime] = _utcnow,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        self._connector = connector
        self._store_scope = store_scope
        self._snapshot_writer = snapshot_writer
        self._cache_invalidator = cache_invalidator
        self._settings = settings
        self._normalizer = normalizer or RecordNormalizer()
        self._clock = clock
        self._sleep = sleep

    def run(self) -> PipelineRunResult:
        started_at = self._clock()
        logger.info("ETL run starting source=%s", self._connector.source)

        try:
            raw_records = self._connector.fetch_raw_records()
            with self._store_scope() as store:
                processor = BatchProcessor(
                    store=store,
                    source_tag=RecordSourceTag.EXTERNAL_API,
                    normalizer=self._normalizer,
                    default_chunk_size=self._settings.batch_size,
                    chunk_pause_seconds=self._settings.chunk_pause_seconds,
                    record_limit=self._settings.record_limit,
                    sample_size=self._settings.snapshot_sample_size,
                    sleep=self._sleep,
                )
                summary = processor.run(raw_records)
        except (ConnectorRequestError, StoreConnectionError) as exc:
            finished_at = self._clock()
            logger.error("ETL run failed source=%s error=%s", self._connector.source, exc)
            return PipelineRunResult(
                status=PipelineRunStatus.FAILED,
                started_at=started_at,
                finished_at=finished_at,
                error=str(exc),
            )

        run_date = started_at.date().isoformat()
        snapshot_path = self._snapshot_writer.write(
            run_date,
            summary,
            summary.sample_records,
            source_tag=RecordSourceTag.EXTERNAL_API,
        )
        invalidation = self._cache_invalidator.invalidate(summary.changed_entities)

        result = PipelineRunResult(
            status=PipelineRunStatus.SUCCEEDED,
            started_at=started_at,
            finished_at=self._clock(),
            summary=summary,
            snapshot_written=snapshot_path is not None,
            invalidation=invalidation,
        )
        log_event(
            logger,
            logging.INFO,
            "etl_run_completed",
            source=self._connector.source,
            duration_seconds=round(result.duration_seconds, 2),
            snapshot_written=result.snapshot_written,
            cache_keys_deleted=invalidation.keys_deleted,
            cache_keys_failed=invalidation.keys_failed,
            **summary.as_log_fields(),
        )
        return result


@lru_cache(maxsize=1)
def get_etl_pipeline() -> ETLPipeline:
    """
    Build and cache the production pipeline from environment settings.
    """

    etl_settings = get_etl_settings()
    cache_settings = get_cache_settings()
    return ETLPipeline(
        connector=DataGovConnector(
            settings=get_source_api_settings(),
            http_settings=get_http_settings(),
        ),
        store_scope=repository_scope,
        snapshot_writer=SnapshotWriter(
            etl_settings.snapshot_dir,
            sample_size=etl_settings.snapshot_sample_size,
        ),
        cache_invalidator=CacheInvalidator(
            build_cache_client(cache_settings),
            history_windows=cache_settings.history_windows,
        ),
        settings=etl_settings,
    )


def run_pipeline() -> PipelineRunResult:
    """
    Shared entry point for every trigger source.
    """

    return get_etl_pipeline().run()
