import threading
from abc import ABC, abstractmethod
from dataclasses import replace
from datetime import datetime, timezone

from src.models.subscriber import Subscriber
from src.utils.crypto import generate_secret


class SubscriberStore(ABC):
    """Subscriber registrations as seen by the delivery engine.

    Counter updates are atomic increments owned by the store; callers never
    read-modify-write a subscriber record.
    """

    @abstractmethod
    def get(self, subscriber_id: str) -> Subscriber | None:
        pass

    @abstractmethod
    def increment_success(self, subscriber_id: str) -> None:
        pass

    @abstractmethod
    def increment_failure(self, subscriber_id: str) -> None:
        pass

    @abstractmethod
    def touch_last_triggered(self, subscriber_id: str, when: datetime | None = None) -> None:
        pass


class InMemorySubscriberStore(SubscriberStore):
    def __init__(self, subscribers: list[Subscriber] | None = None):
        self._subscribers: dict[str, Subscriber] = {}
        self._lock = threading.Lock()
        for subscriber in subscribers or []:
            self.add(subscriber)

    def add(self, subscriber: Subscriber) -> Subscriber:
        with self._lock:
            self._subscribers[subscriber.subscriber_id] = subscriber
        return subscriber

    def get(self, subscriber_id: str) -> Subscriber | None:
        # Hand out a copy so callers never observe a half-applied update.
        with self._lock:
            subscriber = self._subscribers.get(subscriber_id)
            return replace(subscriber) if subscriber else None

    def increment_success(self, subscriber_id: str) -> None:
        with self._lock:
            subscriber = self._subscribers.get(subscriber_id)
            if subscriber is not None:
                subscriber.success_count += 1

    def increment_failure(self, subscriber_id: str) -> None:
        with self._lock:
            subscriber = self._subscribers.get(subscriber_id)
            if subscriber is not None:
                subscriber.failure_count += 1

    def touch_last_triggered(self, subscriber_id: str, when: datetime | None = None) -> None:
        with self._lock:
            subscriber = self._subscribers.get(subscriber_id)
            if subscriber is not None:
                subscriber.last_triggered_at = when or datetime.now(timezone.utc)

    def set_active(self, subscriber_id: str, active: bool) -> None:
        with self._lock:
            subscriber = self._subscribers.get(subscriber_id)
            if subscriber is None:
                raise KeyError(subscriber_id)
            subscriber.is_active = active

    def rotate_secret(self, subscriber_id: str) -> str:
        with self._lock:
            subscriber = self._subscribers.get(subscriber_id)
            if subscriber is None:
                raise KeyError(subscriber_id)
            subscriber.secret = generate_secret()
            return subscriber.secret

    def reset_counters(self, subscriber_id: str) -> None:
        with self._lock:
            subscriber = self._subscribers.get(subscriber_id)
            if subscriber is not None:
                subscriber.success_count = 0
                subscriber.failure_count = 0
