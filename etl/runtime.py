"""
etl/runtime.py

Host-process wiring: run coordinator, cron scheduler, work queue and its
consumer. Used by the API lifespan and by ``scripts/run_worker.py``.
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from dataclasses import dataclass

from apscheduler.schedulers.background import BackgroundScheduler

from etl.config import QueueSettings, SchedulerSettings, get_queue_settings, get_scheduler_settings
from etl.domain.run import PipelineRunResult
from etl.queue.backend import QueueBackend, QueueMessage, build_queue_backend
from etl.queue.worker import QueueWorker
from etl.scheduler.coordinator import RunCoordinator, RunState
from etl.scheduler.jobs import build_scheduler

logger = logging.getLogger(__name__)


class QueueDisabledError(RuntimeError):
    """
    Raised when a queued run is requested but the work queue is disabled.
    """


@dataclass(frozen=True)
class ScheduledJobInfo:
    job_id: str
    name: str
    next_run_time: str | None


class ETLRuntime:
    """
    Owns the background components; ``start()`` and ``shutdown()`` are idempotent.
    """

    def __init__(
        self,
        *,
        runner: Callable[[], PipelineRunResult] | None = None,
        coordinator: RunCoordinator | None = None,
        scheduler_settings: SchedulerSettings | None = None,
        queue_settings: QueueSettings | None = None,
        queue_backend: QueueBackend | None = None,
    ) -> None:
        if coordinator is None:
            if runner is None:
                from etl.services.pipeline import run_pipeline

                runner = run_pipeline
            coordinator = RunCoordinator(runner)
        self.coordinator = coordinator
        self._scheduler_settings = scheduler_settings or get_scheduler_settings()
        self._queue_settings = queue_settings or get_queue_settings()
        self._queue_backend = queue_backend
        self._scheduler: BackgroundScheduler | None = None
        self._worker: QueueWorker | None = None

    @property
    def started(self) -> bool:
        return self._scheduler is not None

    @property
    def queue_backend(self) -> QueueBackend | None:
        return self._queue_backend

    def start(self) -> None:
        if self.started:
            logger.info("ETL runtime already started")
            return

        if self._queue_settings.enabled:
            if self._queue_backend is None:
                self._queue_backend = build_queue_backend(self._queue_settings)
            self._worker = QueueWorker(
                backend=self._queue_backend,
                coordinator=self.coordinator,
                job_name=self._queue_settings.job_name,
                poll_timeout_seconds=self._queue_settings.poll_timeout_seconds,
            )
            self._worker.start()
        else:
            logger.info("ETL work queue disabled via ETL_QUEUE_ENABLED")

        self._scheduler = build_scheduler(
            self.coordinator,
            self._scheduler_settings,
            queue_backend=self._queue_backend if self._queue_settings.enabled else None,
            queue_settings=self._queue_settings if self._queue_settings.enabled else None,
        )
        self._scheduler.start()
        logger.info("Scheduler started with %d jobs", len(self._scheduler.get_jobs()))

    def shutdown(self) -> None:
        """
        Stop the consumer and the scheduler; an in-flight run is allowed to finish.
        """

        if self._worker is not None:
            self._worker.stop()
            self._worker = None
        if self._scheduler is not None:
            self._scheduler.shutdown(wait=True)
            self._scheduler = None
            logger.info("Scheduler shut down")

    def request_run(self, *, source: str = "api") -> QueueMessage:
        if not self._queue_settings.enabled or self._queue_backend is None:
            raise QueueDisabledError("ETL work queue is disabled; set ETL_QUEUE_ENABLED=true.")
        return self._queue_backend.enqueue(job_name=self._queue_settings.job_name, payload={"source": source})

    def run_state(self) -> RunState:
        return self.coordinator.status()

    def scheduled_jobs(self) -> list[ScheduledJobInfo]:
        if self._scheduler is None:
            return []
        jobs: list[ScheduledJobInfo] = []
        for job in self._scheduler.get_jobs():
            next_run = getattr(job, "next_run_time", None)
            jobs.append(
                ScheduledJobInfo(
                    job_id=job.id,
                    name=job.name,
                    next_run_time=next_run.isoformat() if next_run is not None else None,
                )
            )
        return jobs

    def queue_pending(self) -> int | None:
        if self._queue_backend is None:
            return None
        return self._queue_backend.pending_count()
