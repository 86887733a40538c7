"""
etl/queue/worker.py

Background consumer that turns queued run requests into coordinator triggers.
"""

from __future__ import annotations

import logging
import threading

import redis

from etl.queue.backend import QueueBackend, QueueMessage
from etl.scheduler.coordinator import RunCoordinator, TriggerResult

logger = logging.getLogger(__name__)

_BACKEND_ERROR_PAUSE_SECONDS = 5.0


class QueueWorker:
    """
    Consumes one message at a time; a run in flight blocks further consumption.
    """

    def __init__(
        self,
        *,
        backend: QueueBackend,
        coordinator: RunCoordinator,
        job_name: str,
        poll_timeout_seconds: float = 5.0,
    ) -> None:
        self._backend = backend
        self._coordinator = coordinator
        self._job_name = job_name
        self._poll_timeout_seconds = poll_timeout_seconds
        self._stop_event = threading.Event()
        self._thread: threading.Thread | None = None

    @property
    def is_alive(self) -> bool:
        return self._thread is not None and self._thread.is_alive()

    def start(self) -> None:
        if self.is_alive:
            logger.info("Queue worker already running job=%s", self._job_name)
            return
        self._stop_event.clear()
        self._thread = threading.Thread(target=self._run_loop, name="etl-queue-worker", daemon=True)
        self._thread.start()
        logger.info("Queue worker started job=%s", self._job_name)

    def stop(self, *, timeout_seconds: float | None = None) -> None:
        """
        Stop consuming. A run already in progress is allowed to finish.
        """

        self._stop_event.set()
        self._backend.close()
        if self._thread is not None:
            self._thread.join(timeout=timeout_seconds)
            if self._thread.is_alive():
                logger.warning("Queue worker still finishing an in-flight run")
            self._thread = None
        logger.info("Queue worker stopped job=%s", self._job_name)

    def process_next(self) -> TriggerResult | None:
        """Consume at most one message; returns None when nothing was triggered."""
        message = self._backend.dequeue(timeout_seconds=self._poll_timeout_seconds)
        if message is None:
            return None
        return self.handle(message)

    def handle(self, message: QueueMessage) -> TriggerResult | None:
        if message.job_name != self._job_name:
            logger.warning(
                "Ignoring queue message for unknown job queue=%s job=%s message_id=%s",
                message.queue_name,
                message.job_name,
                message.message_id,
            )
            return None
        logger.info("Processing queue job job=%s message_id=%s", message.job_name, message.message_id)
        return self._coordinator.trigger(f"queue:{message.job_name}")

    def _run_loop(self) -> None:
        while not self._stop_event.is_set():
            try:
                self.process_next()
            except (redis.RedisError, OSError) as exc:
                logger.error("Queue backend error job=%s error=%s", self._job_name, exc)
                self._stop_event.wait(_BACKEND_ERROR_PAUSE_SECONDS)
