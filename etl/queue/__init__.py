"""
etl/queue package marker.
"""

from etl.queue.backend import (
    InMemoryQueueBackend,
    QueueBackend,
    QueueMessage,
    RedisQueueBackend,
    build_queue_backend,
)
from etl.queue.worker import QueueWorker

__all__ = [
    "InMemoryQueueBackend",
    "QueueBackend",
    "QueueMessage",
    "QueueWorker",
    "RedisQueueBackend",
    "build_queue_backend",
]
