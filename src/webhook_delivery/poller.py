import logging
import threading
from concurrent.futures import Future, ThreadPoolExecutor, wait
from typing import Callable

from src.models.delivery import RetryJob
from src.webhook_delivery.retry import RetryScheduler

logger = logging.getLogger(__name__)


class RetryPoller:
    """Periodic task that re-submits due retry jobs.

    Each cycle takes every due job off the queue and hands it to a worker
    pool, so one slow subscriber does not hold up the others. Jobs that are
    not yet due stay where they are.
    """

    def __init__(
        self,
        scheduler: RetryScheduler,
        handler: Callable[[RetryJob], object],
        interval_seconds: float = 3.0,
        max_workers: int = 8,
    ):
        self.scheduler = scheduler
        self.handler = handler
        self.interval_seconds = interval_seconds
        self.max_workers = max_workers
        self._executor: ThreadPoolExecutor | None = None
        self._thread: threading.Thread | None = None
        self._stopped = threading.Event()
        self._lock = threading.Lock()

    @property
    def running(self) -> bool:
        return self._thread is not None and self._thread.is_alive()

    def start(self) -> None:
        with self._lock:
            if self.running:
                return
            self._stopped.clear()
            self._executor = ThreadPoolExecutor(
                max_workers=self.max_workers, thread_name_prefix="webhook-retry"
            )
            self._thread = threading.Thread(
                target=self._run, name="webhook-retry-poller", daemon=True
            )
            self._thread.start()

    def stop(self, timeout: float | None = 10) -> None:
        with self._lock:
            self._stopped.set()
            if self._thread is not None:
                self._thread.join(timeout=timeout)
                self._thread = None
            if self._executor is not None:
                self._executor.shutdown(wait=True)
                self._executor = None

    def _run(self) -> None:
        while not self._stopped.is_set():
            try:
                self.run_once()
            except Exception:
                logger.exception("Retry poll cycle failed")
            self._stopped.wait(self.interval_seconds)

    def run_once(self, wait_for_jobs: bool = False) -> list[Future]:
        """Dispatch every due job once.

        With ``wait_for_jobs`` the call returns only after the dispatched jobs
        have finished.
        """
        due = self.scheduler.due_jobs()
        if not due:
            return []

        logger.debug("Dispatching %d due retry jobs", len(due))
        executor = self._executor
        owns_executor = executor is None
        if owns_executor:
            executor = ThreadPoolExecutor(
                max_workers=self.max_workers, thread_name_prefix="webhook-retry"
            )
        try:
            futures = [executor.submit(self._execute, job) for job in due]
            if wait_for_jobs or owns_executor:
                wait(futures)
        finally:
            if owns_executor:
                executor.shutdown(wait=True)
        return futures

    def _execute(self, job: RetryJob) -> None:
        try:
            self.handler(job)
        except Exception:
            logger.exception(
                "Retry job %s for subscriber %s failed", job.job_id, job.subscriber_id
            )
