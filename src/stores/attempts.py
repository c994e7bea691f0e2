import threading
from abc import ABC, abstractmethod

from src.models.delivery import DeliveryAttempt


class DurableAttemptStore(ABC):
    """Unbounded, authoritative history of delivery attempts."""

    @abstractmethod
    def append(self, attempt: DeliveryAttempt) -> None:
        pass

    @abstractmethod
    def recent(self, subscriber_id: str, limit: int = 20) -> list[DeliveryAttempt]:
        """Most recent attempts for a subscriber, newest first."""
        pass


class InMemoryAttemptStore(DurableAttemptStore):
    def __init__(self):
        self._attempts: list[DeliveryAttempt] = []
        self._lock = threading.Lock()

    def append(self, attempt: DeliveryAttempt) -> None:
        with self._lock:
            self._attempts.append(attempt)

    def recent(self, subscriber_id: str, limit: int = 20) -> list[DeliveryAttempt]:
        with self._lock:
            matching = [a for a in self._attempts if a.subscriber_id == subscriber_id]
        matching.sort(key=lambda a: a.attempted_at, reverse=True)
        return matching[:limit]

    def get_attempts(self, subscriber_id: str | None = None) -> list[DeliveryAttempt]:
        with self._lock:
            if subscriber_id is None:
                return list(self._attempts)
            return [a for a in self._attempts if a.subscriber_id == subscriber_id]

    def clear(self) -> None:
        with self._lock:
            self._attempts.clear()
