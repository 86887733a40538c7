"""
tests/test_queue_worker.py

In-memory work queue and the consumer that feeds the run coordinator.
"""

from __future__ import annotations

import threading
from datetime import datetime, timezone

import pytest

from etl.config import QueueSettings
from etl.domain.run import PipelineRunResult, PipelineRunStatus
from etl.queue.backend import InMemoryQueueBackend, QueueMessage, build_queue_backend
from etl.queue.worker import QueueWorker
from etl.scheduler.coordinator import RunCoordinator, TriggerStatus


def _ok() -> PipelineRunResult:
    now = datetime(2026, 10, 1, tzinfo=timezone.utc)
    return PipelineRunResult(status=PipelineRunStatus.SUCCEEDED, started_at=now, finished_at=now)


class TestInMemoryQueueBackend:
    def test_fifo_order(self) -> None:
        backend = InMemoryQueueBackend(queue_name="mgnrega-etl")
        first = backend.enqueue(job_name="monthly-etl")
        second = backend.enqueue(job_name="monthly-etl", payload={"source": "api"})

        assert backend.pending_count() == 2
        assert backend.dequeue(timeout_seconds=0).message_id == first.message_id
        assert backend.dequeue(timeout_seconds=0).payload == {"source": "api"}
        assert second.queue_name == "mgnrega-etl"

    def test_dequeue_times_out_when_empty(self) -> None:
        assert InMemoryQueueBackend(queue_name="q").dequeue(timeout_seconds=0.01) is None

    def test_blocked_dequeue_wakes_on_enqueue(self) -> None:
        backend = InMemoryQueueBackend(queue_name="q")
        received: list[QueueMessage | None] = []
        consumer = threading.Thread(target=lambda: received.append(backend.dequeue(timeout_seconds=5)))
        consumer.start()

        backend.enqueue(job_name="monthly-etl")
        consumer.join(timeout=5)

        assert received and received[0] is not None


class TestBuildQueueBackend:
    def test_memory_backend_by_default(self) -> None:
        backend = build_queue_backend(QueueSettings())
        assert isinstance(backend, InMemoryQueueBackend)
        assert backend.queue_name == "mgnrega-etl"

    def test_redis_backend_requires_url(self) -> None:
        with pytest.raises(ValueError):
            build_queue_backend(QueueSettings(backend="redis", redis_url=None))

    def test_unknown_backend_is_rejected(self) -> None:
        with pytest.raises(ValueError):
            build_queue_backend(QueueSettings(backend="kafka"))


class TestQueueWorker:
    def test_named_job_triggers_coordinator(self) -> None:
        backend = InMemoryQueueBackend(queue_name="mgnrega-etl")
        coordinator = RunCoordinator(_ok)
        worker = QueueWorker(backend=backend, coordinator=coordinator, job_name="monthly-etl", poll_timeout_seconds=0.01)

        backend.enqueue(job_name="monthly-etl")
        outcome = worker.process_next()

        assert outcome.status == TriggerStatus.COMPLETED
        assert outcome.source == "queue:monthly-etl"
        assert coordinator.status().last_source == "queue:monthly-etl"

    def test_unknown_job_is_ignored(self) -> None:
        calls: list[int] = []
        backend = InMemoryQueueBackend(queue_name="mgnrega-etl")
        coordinator = RunCoordinator(lambda: calls.append(1) or _ok())
        worker = QueueWorker(backend=backend, coordinator=coordinator, job_name="monthly-etl", poll_timeout_seconds=0.01)

        backend.enqueue(job_name="something-else")

        assert worker.process_next() is None
        assert calls == []

    def test_empty_queue_returns_none(self) -> None:
        worker = QueueWorker(
            backend=InMemoryQueueBackend(queue_name="q"),
            coordinator=RunCoordinator(_ok),
            job_name="monthly-etl",
            poll_timeout_seconds=0.01,
        )
        assert worker.process_next() is None

    def test_background_thread_consumes_and_stops(self) -> None:
        ran = threading.Event()

        def _run() -> PipelineRunResult:
            ran.set()
            return _ok()

        backend = InMemoryQueueBackend(queue_name="mgnrega-etl")
        worker = QueueWorker(
            backend=backend,
            coordinator=RunCoordinator(_run),
            job_name="monthly-etl",
            poll_timeout_seconds=0.05,
        )

        worker.start()
        try:
            backend.enqueue(job_name="monthly-etl")
            assert ran.wait(timeout=5)
        finally:
            worker.stop(timeout_seconds=5)

        assert not worker.is_alive
        assert backend.pending_count() == 0
