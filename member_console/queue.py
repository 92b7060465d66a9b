"""
Queue of import job ids waiting for a worker.

`InMemoryJobQueue` serves tests and single-process runs where the embedded
worker thread and request handlers share one queue; `RedisJobQueue` serves
deployments with separate worker processes.
"""

from __future__ import annotations

import logging
import threading
from dataclasses import dataclass, field
from typing import Optional, Protocol

import redis
from redis import exceptions as redis_exceptions

logger = logging.getLogger(__name__)


class JobQueue(Protocol):
    """Dispatches import job ids to workers, first in first out."""

    def enqueue(self, job_id: str) -> None:
        ...

    def dequeue(self, *, block: bool = True, timeout: Optional[float] = None) -> Optional[str]:
        ...


@dataclass
class InMemoryJobQueue:
    """
    Thread-safe FIFO. A blocking `dequeue` waits up to `timeout` seconds
    (forever when None) for a job id.
    """

    items: list[str] = field(default_factory=list)
    _ready: threading.Condition = field(
        default_factory=threading.Condition, repr=False, compare=False
    )

    def enqueue(self, job_id: str) -> None:
        with self._ready:
            self.items.append(job_id)
            self._ready.notify()

    def dequeue(self, *, block: bool = True, timeout: Optional[float] = None) -> Optional[str]:
        with self._ready:
            if block and not self._ready.wait_for(lambda: self.items, timeout=timeout):
                return None
            if not self.items:
                return None
            return self.items.pop(0)


@dataclass
class RedisJobQueue:
    """Redis list: RPUSH to enqueue, BLPOP (or LPOP) to dequeue."""

    url: str
    queue_key: str = "member_console:import_jobs"

    def __post_init__(self):
        self.client = redis.Redis.from_url(self.url)

    def enqueue(self, job_id: str) -> None:
        self.client.rpush(self.queue_key, job_id)
        logger.debug("Enqueued import job %s on %s", job_id, self.queue_key)

    def dequeue(self, *, block: bool = True, timeout: Optional[float] = None) -> Optional[str]:
        try:
            if block:
                popped = self.client.blpop(self.queue_key, timeout=timeout or 0)
                job_id = popped[1] if popped else None
            else:
                job_id = self.client.lpop(self.queue_key)
        except redis_exceptions.ConnectionError:
            # Managed Redis drops idle connections; report an empty poll and
            # let the worker loop retry on a fresh client.
            logger.warning("Redis connection lost, reconnecting")
            self.client = redis.Redis.from_url(self.url)
            return None
        if job_id is None:
            return None
        return job_id.decode("utf-8") if isinstance(job_id, bytes) else job_id
