"""
etl/queue/backend.py

Named work queue used to request pipeline runs out of band.

Two backends share one interface: an in-process deque for single-process
deployments and tests, and a Redis list for deployments where producers and
the worker live in different processes.
"""

from __future__ import annotations

import json
import logging
import threading
import uuid
from collections import deque
from dataclasses import asdict, dataclass, field
from datetime import datetime, timezone
from typing import Any, Protocol

import redis

from etl.config import QueueSettings

logger = logging.getLogger(__name__)


def _utcnow_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


@dataclass
class QueueMessage:
    message_id: str
    queue_name: str
    job_name: str
    payload: dict[str, Any] = field(default_factory=dict)
    enqueued_at: str | None = None

    @classmethod
    def new(cls, *, queue_name: str, job_name: str, payload: dict[str, Any] | None = None) -> "QueueMessage":
        return cls(
            message_id=f"msg_{uuid.uuid4().hex[:12]}",
            queue_name=queue_name,
            job_name=job_name,
            payload=dict(payload or {}),
            enqueued_at=_utcnow_iso(),
        )


class QueueBackend(Protocol):
    def enqueue(self, *, job_name: str, payload: dict[str, Any] | None = None) -> QueueMessage: ...

    def dequeue(self, *, timeout_seconds: float) -> QueueMessage | None: ...

    def pending_count(self) -> int: ...

    def close(self) -> None: ...


class InMemoryQueueBackend:
    """Process-local queue; blocking dequeue waits on a condition variable."""

    def __init__(self, *, queue_name: str) -> None:
        self.queue_name = queue_name
        self._messages: deque[QueueMessage] = deque()
        self._condition = threading.Condition()

    def enqueue(self, *, job_name: str, payload: dict[str, Any] | None = None) -> QueueMessage:
        msg = QueueMessage.new(queue_name=self.queue_name, job_name=job_name, payload=payload)
        with self._condition:
            self._messages.append(msg)
            self._condition.notify()
        logger.info("Enqueued job queue=%s job=%s message_id=%s", self.queue_name, job_name, msg.message_id)
        return msg

    def dequeue(self, *, timeout_seconds: float) -> QueueMessage | None:
        with self._condition:
            if not self._messages:
                self._condition.wait(timeout=max(0.0, timeout_seconds))
            if not self._messages:
                return None
            return self._messages.popleft()

    def pending_count(self) -> int:
        with self._condition:
            return len(self._messages)

    def close(self) -> None:
        with self._condition:
            self._condition.notify_all()


class RedisQueueBackend:
    """Redis list queue: RPUSH to enqueue, BLPOP to consume."""

    def __init__(self, *, client: redis.Redis, queue_name: str, namespace: str = "etl") -> None:
        self.queue_name = queue_name
        self._client = client
        self._key = f"{namespace}:queue:{queue_name}:pending"

    @classmethod
    def from_url(cls, url: str, *, queue_name: str) -> "RedisQueueBackend":
        if not url.strip():
            raise ValueError("ETL_QUEUE_REDIS_URL must be provided for redis queue backend")
        return cls(client=redis.Redis.from_url(url.strip(), decode_responses=True), queue_name=queue_name)

    def enqueue(self, *, job_name: str, payload: dict[str, Any] | None = None) -> QueueMessage:
        msg = QueueMessage.new(queue_name=self.queue_name, job_name=job_name, payload=payload)
        self._client.rpush(
            self._key,
            json.dumps(asdict(msg), sort_keys=True, ensure_ascii=True, separators=(",", ":")),
        )
        logger.info("Enqueued job queue=%s job=%s message_id=%s", self.queue_name, job_name, msg.message_id)
        return msg

    def dequeue(self, *, timeout_seconds: float) -> QueueMessage | None:
        # BLPOP treats 0 as "block forever".
        timeout = max(1, int(round(timeout_seconds)))
        item = self._client.blpop([self._key], timeout=timeout)
        if item is None:
            return None
        _, raw = item
        try:
            data = json.loads(raw)
        except json.JSONDecodeError:
            logger.warning("Dropping undecodable queue message queue=%s raw=%r", self.queue_name, raw[:200])
            return None
        if not isinstance(data, dict) or not data.get("job_name"):
            logger.warning("Dropping malformed queue message queue=%s", self.queue_name)
            return None
        return QueueMessage(
            message_id=str(data.get("message_id", "")),
            queue_name=str(data.get("queue_name", self.queue_name)),
            job_name=str(data["job_name"]),
            payload=data.get("payload") if isinstance(data.get("payload"), dict) else {},
            enqueued_at=data.get("enqueued_at"),
        )

    def pending_count(self) -> int:
        return int(self._client.llen(self._key))

    def close(self) -> None:
        self._client.close()


def build_queue_backend(settings: QueueSettings) -> QueueBackend:
    backend = settings.backend.strip().lower()
    if backend == "redis":
        if not settings.redis_url:
            raise ValueError("ETL_QUEUE_BACKEND=redis requires ETL_QUEUE_REDIS_URL or REDIS_URL")
        return RedisQueueBackend.from_url(settings.redis_url, queue_name=settings.queue_name)
    if backend != "memory":
        raise ValueError(f"Unsupported ETL_QUEUE_BACKEND={settings.backend!r}; expected 'memory' or 'redis'")
    return InMemoryQueueBackend(queue_name=settings.queue_name)
