"""Pending retry jobs ordered by earliest eligible execution time."""

import heapq
import itertools
import threading
from abc import ABC, abstractmethod

import redis

from src.models.delivery import RetryJob


class RetryQueue(ABC):
    @abstractmethod
    def push(self, job: RetryJob) -> None:
        pass

    @abstractmethod
    def pop_due(self, now_ms: int) -> list[RetryJob]:
        """Remove and return every job with ``run_at_ms <= now_ms``."""
        pass

    @abstractmethod
    def __len__(self) -> int:
        pass


class InMemoryRetryQueue(RetryQueue):
    """Min-heap keyed by ``run_at_ms``; a poll only touches due entries."""

    def __init__(self):
        self._heap: list[tuple[int, int, RetryJob]] = []
        self._seq = itertools.count()
        self._lock = threading.Lock()

    def push(self, job: RetryJob) -> None:
        with self._lock:
            heapq.heappush(self._heap, (job.run_at_ms, next(self._seq), job))

    def pop_due(self, now_ms: int) -> list[RetryJob]:
        due = []
        with self._lock:
            while self._heap and self._heap[0][0] <= now_ms:
                due.append(heapq.heappop(self._heap)[2])
        return due

    def pending(self) -> list[RetryJob]:
        with self._lock:
            return [entry[2] for entry in sorted(self._heap)]

    def __len__(self) -> int:
        with self._lock:
            return len(self._heap)


class RedisRetryQueue(RetryQueue):
    """Sorted set scored by ``run_at_ms``.

    A job belongs to whichever poller's ZREM removes it, so several processes
    can poll the same queue without executing a job twice.
    """

    DEFAULT_KEY = "webhook:retry_queue"

    def __init__(self, client: redis.Redis, key: str = DEFAULT_KEY, batch_size: int = 100):
        self._redis = client
        self._key = key
        self._batch_size = batch_size

    @classmethod
    def from_url(cls, url: str, **kwargs) -> "RedisRetryQueue":
        return cls(redis.Redis.from_url(url, decode_responses=True), **kwargs)

    def push(self, job: RetryJob) -> None:
        self._redis.zadd(self._key, {job.to_json(): job.run_at_ms})

    def pop_due(self, now_ms: int) -> list[RetryJob]:
        due = []
        while True:
            members = self._redis.zrangebyscore(
                self._key, "-inf", now_ms, start=0, num=self._batch_size
            )
            for raw in members:
                if self._redis.zrem(self._key, raw):
                    due.append(RetryJob.from_json(raw))
            # A short batch means nothing due is left
            if len(members) < self._batch_size:
                return due

    def __len__(self) -> int:
        return self._redis.zcard(self._key)
