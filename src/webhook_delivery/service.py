import logging
from datetime import datetime, timezone
from typing import Any

from opentelemetry.trace import Tracer

from src.models.delivery import AttemptHistory, DeliveryResult, RetryJob
from src.models.subscriber import Subscriber
from src.observability.metrics import MetricsCollector
from src.observability.tracing import annotate_delivery, delivery_span, get_tracer
from src.stores.subscribers import SubscriberStore
from src.webhook_delivery.config import DeliveryConfig
from src.webhook_delivery.errors import NoRecentPayload, SubscriberInactive, SubscriberNotFound
from src.webhook_delivery.poller import RetryPoller
from src.webhook_delivery.recorder import AttemptRecorder
from src.webhook_delivery.retry import RetryScheduler
from src.webhook_delivery.signer import SignedPayload, sign
from src.webhook_delivery.transport import HttpTransport

logger = logging.getLogger(__name__)


class WebhookDeliveryService:
    """Entry point for delivering platform events to webhook subscribers.

    A delivery resolves the subscriber, signs the payload, POSTs it, records
    the attempt and, on failure, schedules a retry. Retries are executed by a
    background RetryPoller that calls back into ``process_retry``.
    """

    def __init__(
        self,
        subscribers: SubscriberStore,
        recorder: AttemptRecorder,
        transport: HttpTransport | None = None,
        scheduler: RetryScheduler | None = None,
        metrics: MetricsCollector | None = None,
        tracer: Tracer | None = None,
        config: DeliveryConfig | None = None,
    ):
        self.config = config or DeliveryConfig()
        self.subscribers = subscribers
        self.recorder = recorder
        self.transport = transport or HttpTransport(timeout_ms=self.config.timeout_ms)
        self.scheduler = scheduler or RetryScheduler(config=self.config)
        self.metrics = metrics
        self.tracer = tracer or get_tracer()
        self.poller = RetryPoller(
            self.scheduler,
            self.process_retry,
            interval_seconds=self.config.poll_interval_seconds,
            max_workers=self.config.retry_workers,
        )

    def start(self) -> None:
        self.poller.start()

    def stop(self) -> None:
        self.poller.stop()
        self.recorder.flush()

    def deliver_event(self, subscriber_id: str, event: str, payload: dict) -> DeliveryResult:
        """Deliver ``payload`` to a subscriber once, scheduling a retry on failure.

        Raises:
            SubscriberNotFound, SubscriberInactive: the subscriber cannot be
                delivered to. Nothing is recorded or retried.
        """
        subscriber = self._resolve(subscriber_id)
        return self._attempt(subscriber, event, payload, prior_failures=0)

    def redeliver_last(self, subscriber_id: str, event: str) -> DeliveryResult:
        """Re-send the most recent payload cached for the subscriber."""
        self._resolve(subscriber_id)
        payload = self.recorder.last_payload(subscriber_id)
        if payload is None:
            raise NoRecentPayload(subscriber_id)
        return self.deliver_event(subscriber_id, event, payload)

    def test_fire(
        self,
        subscriber_id: str,
        event: str = "test.event",
        extra: dict[str, Any] | None = None,
    ) -> DeliveryResult:
        payload = {
            "id": subscriber_id,
            "event": event,
            "timestamp": datetime.now(timezone.utc).isoformat(),
            **(extra or {}),
            "test": True,
        }
        return self.deliver_event(subscriber_id, event, payload)

    def get_history(self, subscriber_id: str) -> AttemptHistory:
        return self.recorder.get_history(subscriber_id)

    def process_retry(self, job: RetryJob) -> DeliveryResult | None:
        """Execute a due retry job. Jobs for missing or inactive subscribers are dropped."""
        subscriber = self.subscribers.get(job.subscriber_id)
        if subscriber is None or not subscriber.is_active:
            logger.info(
                "Dropping retry %s of %s: subscriber %s is missing or inactive",
                job.attempt,
                job.event,
                job.subscriber_id,
            )
            return None
        return self._attempt(subscriber, job.event, job.payload, prior_failures=job.attempt)

    def _resolve(self, subscriber_id: str) -> Subscriber:
        subscriber = self.subscribers.get(subscriber_id)
        if subscriber is None:
            raise SubscriberNotFound(subscriber_id)
        if not subscriber.is_active:
            raise SubscriberInactive(subscriber_id)
        return subscriber

    def _headers(self, event: str, signed: SignedPayload) -> dict[str, str]:
        prefix = self.config.header_prefix
        return {
            f"{prefix}-Event": event,
            f"{prefix}-Signature": signed.signature,
            f"{prefix}-Timestamp": str(signed.timestamp),
        }

    def _attempt(
        self,
        subscriber: Subscriber,
        event: str,
        payload: dict,
        prior_failures: int,
    ) -> DeliveryResult:
        sid = subscriber.subscriber_id
        with delivery_span(self.tracer, sid, event) as span:
            signed = sign(subscriber.secret, payload)
            result = self.transport.deliver(
                subscriber.url,
                self._headers(event, signed),
                signed.body,
                timeout_ms=self.config.timeout_ms,
            )

            self.recorder.record(sid, event, payload, result)
            self._emit_metrics(sid, result)
            try:
                annotate_delivery(span, result)
            except Exception:
                logger.debug("Could not annotate delivery span", exc_info=True)

        if not result.succeeded:
            logger.warning(
                "Delivery of %s to subscriber %s failed (status=%s, error=%s)",
                event,
                sid,
                result.status_code,
                result.error,
            )
            self._schedule_retry(sid, event, payload, prior_failures + 1)
        return result

    def _emit_metrics(self, subscriber_id: str, result: DeliveryResult) -> None:
        if self.metrics is None:
            return
        try:
            self.metrics.record(subscriber_id, result.outcome)
        except Exception:
            logger.warning("Could not record delivery metric", exc_info=True)

    def _schedule_retry(self, subscriber_id: str, event: str, payload: dict, failures: int) -> None:
        try:
            self.scheduler.schedule_retry(subscriber_id, event, payload, failures)
        except Exception:
            logger.exception("Could not schedule retry of %s for subscriber %s", event, subscriber_id)
