"""Ephemeral key-value storage for the fast attempt log and last-payload cache.

Two backends share the ``KeyValueStore`` interface: a thread-safe in-memory
store for single-process use and tests, and a Redis store for deployments
where several processes share delivery state.
"""

import threading
import time
from abc import ABC, abstractmethod
from typing import Callable

import redis


class KeyValueStore(ABC):
    """Minimal key-value and list operations used by the delivery engine."""

    @abstractmethod
    def get(self, key: str) -> str | None:
        pass

    @abstractmethod
    def set(self, key: str, value: str, ttl_seconds: int | None = None) -> None:
        pass

    @abstractmethod
    def expire(self, key: str, ttl_seconds: int) -> None:
        pass

    @abstractmethod
    def delete(self, key: str) -> None:
        pass

    @abstractmethod
    def list_append(self, key: str, value: str) -> None:
        pass

    @abstractmethod
    def list_trim(self, key: str, max_len: int) -> None:
        """Keep only the ``max_len`` most recently appended entries."""
        pass

    @abstractmethod
    def list_range(self, key: str) -> list[str]:
        """All entries, oldest first."""
        pass


class InMemoryKeyValueStore(KeyValueStore):
    def __init__(self, clock: Callable[[], float] = time.monotonic):
        self._clock = clock
        self._values: dict[str, str] = {}
        self._lists: dict[str, list[str]] = {}
        self._expires_at: dict[str, float] = {}
        self._lock = threading.Lock()

    def _evict_if_expired(self, key: str) -> None:
        deadline = self._expires_at.get(key)
        if deadline is not None and self._clock() >= deadline:
            self._values.pop(key, None)
            self._lists.pop(key, None)
            self._expires_at.pop(key, None)

    def get(self, key: str) -> str | None:
        with self._lock:
            self._evict_if_expired(key)
            return self._values.get(key)

    def set(self, key: str, value: str, ttl_seconds: int | None = None) -> None:
        with self._lock:
            self._values[key] = value
            if ttl_seconds is None:
                self._expires_at.pop(key, None)
            else:
                self._expires_at[key] = self._clock() + ttl_seconds

    def expire(self, key: str, ttl_seconds: int) -> None:
        with self._lock:
            self._evict_if_expired(key)
            if key in self._values or key in self._lists:
                self._expires_at[key] = self._clock() + ttl_seconds

    def delete(self, key: str) -> None:
        with self._lock:
            self._values.pop(key, None)
            self._lists.pop(key, None)
            self._expires_at.pop(key, None)

    def list_append(self, key: str, value: str) -> None:
        with self._lock:
            self._evict_if_expired(key)
            self._lists.setdefault(key, []).append(value)

    def list_trim(self, key: str, max_len: int) -> None:
        with self._lock:
            entries = self._lists.get(key)
            if entries is not None and len(entries) > max_len:
                del entries[: len(entries) - max_len]

    def list_range(self, key: str) -> list[str]:
        with self._lock:
            self._evict_if_expired(key)
            return list(self._lists.get(key, []))


class RedisKeyValueStore(KeyValueStore):
    """Redis-backed store. Lists are kept oldest-first (RPUSH + LTRIM -n -1)."""

    def __init__(self, client: redis.Redis):
        self._redis = client

    @classmethod
    def from_url(cls, url: str) -> "RedisKeyValueStore":
        return cls(redis.Redis.from_url(url, decode_responses=True))

    def get(self, key: str) -> str | None:
        return self._redis.get(key)

    def set(self, key: str, value: str, ttl_seconds: int | None = None) -> None:
        self._redis.set(key, value, ex=ttl_seconds)

    def expire(self, key: str, ttl_seconds: int) -> None:
        self._redis.expire(key, ttl_seconds)

    def delete(self, key: str) -> None:
        self._redis.delete(key)

    def list_append(self, key: str, value: str) -> None:
        self._redis.rpush(key, value)

    def list_trim(self, key: str, max_len: int) -> None:
        self._redis.ltrim(key, -max_len, -1)

    def list_range(self, key: str) -> list[str]:
        return self._redis.lrange(key, 0, -1)
