import logging
import time
from typing import Callable

from src.models.delivery import RetryJob
from src.stores.retry_queue import InMemoryRetryQueue, RetryQueue
from src.webhook_delivery.config import DeliveryConfig

logger = logging.getLogger(__name__)


def now_ms() -> int:
    return int(time.time() * 1000)


class RetryScheduler:
    """Decides whether and when a failed delivery is retried.

    ``failures`` counts the failed attempts of one logical event so far. The
    n-th retry waits ``min(max_backoff, 2**n * base)`` ms, and once
    ``failures`` reaches ``max_retries`` the event is abandoned.
    """

    def __init__(
        self,
        queue: RetryQueue | None = None,
        config: DeliveryConfig | None = None,
        clock: Callable[[], int] = now_ms,
    ):
        self.queue = queue if queue is not None else InMemoryRetryQueue()
        self.config = config or DeliveryConfig()
        self.clock = clock

    @property
    def max_retries(self) -> int:
        return self.config.max_retries

    def backoff_ms(self, failures: int) -> int:
        return min(self.config.max_backoff_ms, (2 ** failures) * self.config.base_backoff_ms)

    def has_attempts_remaining(self, failures: int) -> bool:
        return failures < self.config.max_retries

    def schedule_retry(
        self,
        subscriber_id: str,
        event: str,
        payload: dict,
        failures: int,
    ) -> RetryJob | None:
        if failures < 1:
            raise ValueError("a retry can only follow a failed attempt")

        if not self.has_attempts_remaining(failures):
            logger.info(
                "Giving up on %s for subscriber %s after %d attempts",
                event,
                subscriber_id,
                failures,
            )
            return None

        delay = self.backoff_ms(failures)
        job = RetryJob(
            subscriber_id=subscriber_id,
            event=event,
            payload=payload,
            attempt=failures,
            run_at_ms=self.clock() + delay,
        )
        self.queue.push(job)
        logger.debug(
            "Scheduled retry %d of %s for subscriber %s in %dms",
            failures,
            event,
            subscriber_id,
            delay,
        )
        return job

    def due_jobs(self, now: int | None = None) -> list[RetryJob]:
        return self.queue.pop_due(self.clock() if now is None else now)

    def pending_count(self) -> int:
        return len(self.queue)
