"""
etl/scheduler/jobs.py

APScheduler wiring for the recurring ingestion run.

Schedule
--------
Both jobs share ``ETL_CRON_SCHEDULE`` (default ``0 2 1 * *``, 02:00 on the
first day of every month) in ``ETL_TIMEZONE`` (default ``Asia/Kolkata``):

  monthly_etl        cron trigger calling the run coordinator directly
  monthly_etl_queue  enqueues the named recurring job on the work queue

Lifecycle
---------
Call ``build_scheduler()`` once; the caller owns ``.start()`` and
``.shutdown()``.
"""

from __future__ import annotations

import logging

from apscheduler.schedulers.background import BackgroundScheduler
from apscheduler.triggers.cron import CronTrigger

from etl.config import QueueSettings, SchedulerSettings
from etl.queue.backend import QueueBackend
from etl.scheduler.coordinator import RunCoordinator

logger = logging.getLogger(__name__)

CRON_JOB_ID = "monthly_etl"
QUEUE_JOB_ID = "monthly_etl_queue"


def build_cron_trigger(settings: SchedulerSettings) -> CronTrigger:
    return CronTrigger.from_crontab(settings.cron_expression, timezone=settings.timezone)


def run_scheduled_etl(coordinator: RunCoordinator) -> None:
    """
    Cron entry point; outcome is logged by the coordinator.
    """

    logger.info("Scheduler: monthly_etl firing")
    coordinator.trigger("cron")


def enqueue_recurring_job(backend: QueueBackend, job_name: str) -> None:
    logger.info("Scheduler: enqueueing recurring queue job job=%s", job_name)
    backend.enqueue(job_name=job_name, payload={"source": "recurring"})


def register_recurring_queue_job(
    scheduler: BackgroundScheduler,
    *,
    backend: QueueBackend,
    queue_settings: QueueSettings,
    scheduler_settings: SchedulerSettings,
) -> None:
    """
    Register the named recurring queue job once; re-registration replaces it.
    """

    scheduler.add_job(
        enqueue_recurring_job,
        trigger=build_cron_trigger(scheduler_settings),
        args=[backend, queue_settings.job_name],
        id=QUEUE_JOB_ID,
        name=f"Recurring {queue_settings.job_name} on {queue_settings.queue_name}",
        replace_existing=True,
        max_instances=1,
        coalesce=True,
        misfire_grace_time=scheduler_settings.misfire_grace_seconds,
    )
    logger.info(
        "Registered recurring queue job queue=%s job=%s cron=%r",
        queue_settings.queue_name,
        queue_settings.job_name,
        scheduler_settings.cron_expression,
    )


def build_scheduler(
    coordinator: RunCoordinator,
    settings: SchedulerSettings,
    *,
    queue_backend: QueueBackend | None = None,
    queue_settings: QueueSettings | None = None,
) -> BackgroundScheduler:
    """
    Build a configured but not yet started ``BackgroundScheduler``.

    The cron job is registered when ``settings.enabled``; the recurring queue
    job when both a backend and queue settings are supplied.
    """

    scheduler = BackgroundScheduler(timezone=settings.timezone)

    if settings.enabled:
        scheduler.add_job(
            run_scheduled_etl,
            trigger=build_cron_trigger(settings),
            args=[coordinator],
            id=CRON_JOB_ID,
            name="Monthly rural employment ETL",
            replace_existing=True,
            max_instances=1,
            coalesce=True,
            misfire_grace_time=settings.misfire_grace_seconds,
        )
        logger.info(
            "Registered cron job id=%s cron=%r timezone=%s",
            CRON_JOB_ID,
            settings.cron_expression,
            settings.timezone,
        )
    else:
        logger.info("ETL cron scheduler disabled via ENABLE_ETL_SCHEDULER")

    if queue_backend is not None and queue_settings is not None:
        register_recurring_queue_job(
            scheduler,
            backend=queue_backend,
            queue_settings=queue_settings,
            scheduler_settings=settings,
        )

    return scheduler
