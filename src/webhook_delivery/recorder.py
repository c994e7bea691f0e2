import json
import logging
import threading
import uuid
from concurrent.futures import Future, ThreadPoolExecutor, wait
from datetime import datetime, timezone

from src.models.delivery import AttemptHistory, DeliveryAttempt, DeliveryResult
from src.stores.attempts import DurableAttemptStore
from src.stores.kv import KeyValueStore
from src.stores.subscribers import SubscriberStore
from src.webhook_delivery.config import DeliveryConfig

logger = logging.getLogger(__name__)


def attempts_key(subscriber_id: str) -> str:
    return f"webhook:attempts:{subscriber_id}"


def last_payload_key(subscriber_id: str) -> str:
    return f"webhook:last_payload:{subscriber_id}"


class AttemptRecorder:
    """Records delivery attempts to the fast log, durable store and counters.

    Recording never raises: the delivery already happened (or failed) whether
    or not it could be written down.
    """

    def __init__(
        self,
        kv: KeyValueStore,
        durable: DurableAttemptStore,
        subscribers: SubscriberStore,
        config: DeliveryConfig | None = None,
        durable_workers: int = 1,
    ):
        self.kv = kv
        self.durable = durable
        self.subscribers = subscribers
        self.config = config or DeliveryConfig()
        self._executor = ThreadPoolExecutor(
            max_workers=durable_workers, thread_name_prefix="webhook-durable"
        )
        self._pending: set[Future] = set()
        self._pending_lock = threading.Lock()

    def record(
        self,
        subscriber_id: str,
        event: str,
        payload: dict,
        result: DeliveryResult,
    ) -> DeliveryAttempt:
        now = datetime.now(timezone.utc)
        attempt = DeliveryAttempt(
            attempt_id=f"att_{uuid.uuid4().hex[:16]}",
            subscriber_id=subscriber_id,
            event=event,
            outcome=result.outcome,
            status_code=result.status_code,
            duration_ms=result.duration_ms,
            attempted_at=now,
            error=result.error,
            payload=payload,
        )

        self._append_fast(attempt)
        self._cache_last_payload(subscriber_id, payload)
        self._submit_durable(attempt)
        self._update_counters(subscriber_id, result, now)
        return attempt

    def _append_fast(self, attempt: DeliveryAttempt) -> None:
        key = attempts_key(attempt.subscriber_id)
        try:
            self.kv.list_append(key, json.dumps(attempt.to_dict(), default=str))
            self.kv.list_trim(key, self.config.fast_log_size)
        except Exception:
            logger.warning(
                "Could not append attempt %s to fast log", attempt.attempt_id, exc_info=True
            )

    def _cache_last_payload(self, subscriber_id: str, payload: dict) -> None:
        try:
            self.kv.set(
                last_payload_key(subscriber_id),
                json.dumps(payload, default=str),
                ttl_seconds=self.config.last_payload_ttl_seconds,
            )
        except Exception:
            logger.warning(
                "Could not cache last payload for subscriber %s", subscriber_id, exc_info=True
            )

    def _submit_durable(self, attempt: DeliveryAttempt) -> None:
        try:
            future = self._executor.submit(self._write_durable, attempt)
        except RuntimeError:
            # Executor already shut down; write inline.
            self._write_durable(attempt)
            return
        with self._pending_lock:
            self._pending.add(future)
        future.add_done_callback(self._discard_pending)

    def _discard_pending(self, future: Future) -> None:
        with self._pending_lock:
            self._pending.discard(future)

    def _write_durable(self, attempt: DeliveryAttempt) -> None:
        try:
            self.durable.append(attempt)
        except Exception:
            logger.warning(
                "Durable write failed for attempt %s (subscriber %s)",
                attempt.attempt_id,
                attempt.subscriber_id,
                exc_info=True,
            )

    def _update_counters(self, subscriber_id: str, result: DeliveryResult, when: datetime) -> None:
        try:
            if result.succeeded:
                self.subscribers.increment_success(subscriber_id)
            else:
                self.subscribers.increment_failure(subscriber_id)
        except Exception:
            logger.warning("Could not update counters for subscriber %s", subscriber_id, exc_info=True)
        try:
            self.subscribers.touch_last_triggered(subscriber_id, when)
        except Exception:
            logger.warning(
                "Could not stamp last delivery for subscriber %s", subscriber_id, exc_info=True
            )

    def last_payload(self, subscriber_id: str) -> dict | None:
        raw = self.kv.get(last_payload_key(subscriber_id))
        if raw is None:
            return None
        return json.loads(raw)

    def get_history(self, subscriber_id: str) -> AttemptHistory:
        recent_fast = []
        for raw in self.kv.list_range(attempts_key(subscriber_id)):
            try:
                recent_fast.append(DeliveryAttempt.from_dict(json.loads(raw)))
            except (ValueError, KeyError, TypeError):
                logger.warning("Skipping unreadable fast-log entry for subscriber %s", subscriber_id)

        try:
            recent_durable = self.durable.recent(
                subscriber_id, limit=self.config.durable_history_limit
            )
        except Exception:
            logger.warning("Durable history unavailable for subscriber %s", subscriber_id, exc_info=True)
            recent_durable = []

        return AttemptHistory(recent_fast=recent_fast, recent_durable=recent_durable)

    def flush(self, timeout: float | None = None) -> None:
        """Block until queued durable writes have completed."""
        with self._pending_lock:
            pending = list(self._pending)
        if pending:
            wait(pending, timeout=timeout)

    def close(self) -> None:
        self.flush()
        self._executor.shutdown(wait=True)
