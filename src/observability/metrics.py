import threading
import time
from collections import Counter, deque

from src.models.delivery import DeliveryOutcome


class MetricsCollector:
    """Counts webhook delivery attempts per (subscriber, outcome).

    Keeps lifetime totals plus a rolling window of timestamps for failure
    rate queries.
    """

    def __init__(self, window_seconds: float = 300):
        self._window_seconds = window_seconds
        self._totals: Counter[tuple[str, DeliveryOutcome]] = Counter()
        self._recent: deque[tuple[float, str, DeliveryOutcome]] = deque()
        self._lock = threading.Lock()

    def record(self, subscriber_id: str, outcome: DeliveryOutcome) -> None:
        with self._lock:
            now = time.monotonic()
            self._totals[(subscriber_id, outcome)] += 1
            self._recent.append((now, subscriber_id, outcome))
            self._prune(now)

    def count(self, subscriber_id: str, outcome: DeliveryOutcome) -> int:
        with self._lock:
            return self._totals[(subscriber_id, outcome)]

    def totals(self) -> dict[tuple[str, str], int]:
        with self._lock:
            return {(sid, outcome.value): n for (sid, outcome), n in self._totals.items()}

    def _prune(self, now: float) -> None:
        cutoff = now - self._window_seconds
        while self._recent and self._recent[0][0] < cutoff:
            self._recent.popleft()

    def _window(self, subscriber_id: str | None) -> list[DeliveryOutcome]:
        self._prune(time.monotonic())
        return [
            outcome for _, sid, outcome in self._recent
            if subscriber_id is None or sid == subscriber_id
        ]

    def failure_rate(self, subscriber_id: str | None = None) -> float:
        """Failure rate in the current rolling window (0.0 to 1.0)."""
        with self._lock:
            outcomes = self._window(subscriber_id)
            if not outcomes:
                return 0.0
            failures = sum(1 for o in outcomes if o is DeliveryOutcome.FAILURE)
            return failures / len(outcomes)

    def total_in_window(self, subscriber_id: str | None = None) -> int:
        with self._lock:
            return len(self._window(subscriber_id))

    def failure_count_in_window(self, subscriber_id: str | None = None) -> int:
        with self._lock:
            return sum(1 for o in self._window(subscriber_id) if o is DeliveryOutcome.FAILURE)

    def success_count_in_window(self, subscriber_id: str | None = None) -> int:
        with self._lock:
            return sum(1 for o in self._window(subscriber_id) if o is DeliveryOutcome.SUCCESS)

    def reset(self) -> None:
        with self._lock:
            self._totals.clear()
            self._recent.clear()
