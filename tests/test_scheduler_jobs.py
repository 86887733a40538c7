from __future__ import annotations

import unittest
from datetime import datetime, timezone
from zoneinfo import ZoneInfo

from apscheduler.triggers.cron import CronTrigger

from etl.config import QueueSettings, SchedulerSettings
from etl.domain.run import PipelineRunResult, PipelineRunStatus
from etl.queue.backend import InMemoryQueueBackend
from etl.scheduler.coordinator import RunCoordinator
from etl.scheduler.jobs import (
    CRON_JOB_ID,
    QUEUE_JOB_ID,
    build_cron_trigger,
    build_scheduler,
    enqueue_recurring_job,
    run_scheduled_etl,
)


def _ok() -> PipelineRunResult:
    now = datetime(2026, 10, 1, tzinfo=timezone.utc)
    return PipelineRunResult(status=PipelineRunStatus.SUCCEEDED, started_at=now, finished_at=now)


class TestCronTrigger(unittest.TestCase):
    def test_default_schedule_fires_on_first_of_month_at_two(self) -> None:
        trigger = build_cron_trigger(SchedulerSettings())
        self.assertIsInstance(trigger, CronTrigger)

        tz = ZoneInfo("Asia/Kolkata")
        fire_time = trigger.get_next_fire_time(None, datetime(2026, 10, 19, 12, 0, tzinfo=tz))

        self.assertEqual((fire_time.month, fire_time.day, fire_time.hour, fire_time.minute), (11, 1, 2, 0))


class TestBuildScheduler(unittest.TestCase):
    def test_registers_cron_and_recurring_queue_job(self) -> None:
        scheduler = build_scheduler(
            RunCoordinator(_ok),
            SchedulerSettings(),
            queue_backend=InMemoryQueueBackend(queue_name="mgnrega-etl"),
            queue_settings=QueueSettings(),
        )

        job_ids = {job.id for job in scheduler.get_jobs()}
        self.assertEqual(job_ids, {CRON_JOB_ID, QUEUE_JOB_ID})

    def test_disabled_cron_leaves_only_queue_job(self) -> None:
        scheduler = build_scheduler(
            RunCoordinator(_ok),
            SchedulerSettings(enabled=False),
            queue_backend=InMemoryQueueBackend(queue_name="mgnrega-etl"),
            queue_settings=QueueSettings(),
        )
        self.assertEqual([job.id for job in scheduler.get_jobs()], [QUEUE_JOB_ID])

    def test_without_queue_only_cron_job(self) -> None:
        scheduler = build_scheduler(RunCoordinator(_ok), SchedulerSettings())
        self.assertEqual([job.id for job in scheduler.get_jobs()], [CRON_JOB_ID])


class TestJobCallables(unittest.TestCase):
    def test_cron_callable_triggers_with_cron_source(self) -> None:
        coordinator = RunCoordinator(_ok)
        run_scheduled_etl(coordinator)
        self.assertEqual(coordinator.status().last_source, "cron")

    def test_recurring_job_enqueues_named_message(self) -> None:
        backend = InMemoryQueueBackend(queue_name="mgnrega-etl")
        enqueue_recurring_job(backend, "monthly-etl")

        message = backend.dequeue(timeout_seconds=0)
        self.assertEqual(message.job_name, "monthly-etl")
        self.assertEqual(message.payload, {"source": "recurring"})


if __name__ == "__main__":
    unittest.main()
