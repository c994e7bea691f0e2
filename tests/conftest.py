import pytest
from opentelemetry.sdk.trace import TracerProvider
from opentelemetry.sdk.trace.export import SimpleSpanProcessor
from opentelemetry.sdk.trace.export.in_memory_span_exporter import InMemorySpanExporter

from src.models.delivery import DeliveryResult
from src.observability.metrics import MetricsCollector
from src.stores.attempts import InMemoryAttemptStore
from src.stores.kv import InMemoryKeyValueStore
from src.stores.retry_queue import InMemoryRetryQueue
from src.stores.subscribers import InMemorySubscriberStore
from src.subscriber_receiver.server import SubscriberEndpointServer
from src.utils.factories import EventPayloadFactory, SubscriberFactory
from src.webhook_delivery.config import DeliveryConfig
from src.webhook_delivery.recorder import AttemptRecorder
from src.webhook_delivery.retry import RetryScheduler
from src.webhook_delivery.service import WebhookDeliveryService
from src.webhook_delivery.signer import WebhookSigner
from src.webhook_delivery.transport import HttpTransport, classify


WEBHOOK_SECRET = "test-secret-key-for-hmac"


class FakeClock:
    """Millisecond clock that only moves when told to."""

    def __init__(self, start_ms: int = 1_700_000_000_000):
        self.now_ms = start_ms

    def __call__(self) -> int:
        return self.now_ms

    def advance(self, ms: int) -> None:
        self.now_ms += ms


class ScriptedTransport:
    """Transport double that answers from a script of status codes.

    ``None`` in the script stands for a timeout. After the script runs out
    the last entry repeats.
    """

    def __init__(self, *script: int | None):
        self.script = list(script) or [200]
        self.calls: list[dict] = []

    def deliver(self, url, headers, body, timeout_ms=None) -> DeliveryResult:
        index = min(len(self.calls), len(self.script) - 1)
        status = self.script[index]
        self.calls.append({"url": url, "headers": headers, "body": body, "timeout_ms": timeout_ms})
        return DeliveryResult(
            outcome=classify(status),
            status_code=status,
            duration_ms=1.0,
            error="timeout" if status is None else None,
        )


@pytest.fixture
def webhook_secret():
    return WEBHOOK_SECRET


@pytest.fixture
def signer():
    return WebhookSigner(WEBHOOK_SECRET)


@pytest.fixture
def config():
    return DeliveryConfig(timeout_ms=2000)


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def subscriber_store():
    return InMemorySubscriberStore()


@pytest.fixture
def kv_store():
    return InMemoryKeyValueStore()


@pytest.fixture
def attempt_store():
    return InMemoryAttemptStore()


@pytest.fixture
def retry_queue():
    return InMemoryRetryQueue()


@pytest.fixture
def recorder(kv_store, attempt_store, subscriber_store, config):
    rec = AttemptRecorder(kv_store, attempt_store, subscriber_store, config=config)
    yield rec
    rec.close()


@pytest.fixture
def scheduler(retry_queue, config, clock):
    return RetryScheduler(retry_queue, config=config, clock=clock)


@pytest.fixture
def metrics():
    return MetricsCollector(window_seconds=300)


@pytest.fixture
def span_exporter():
    return InMemorySpanExporter()


@pytest.fixture
def tracer(span_exporter):
    provider = TracerProvider()
    provider.add_span_processor(SimpleSpanProcessor(span_exporter))
    return provider.get_tracer("test")


@pytest.fixture
def transport(config):
    t = HttpTransport(timeout_ms=config.timeout_ms)
    yield t
    t.close()


@pytest.fixture
def service(subscriber_store, recorder, transport, scheduler, metrics, tracer, config):
    svc = WebhookDeliveryService(
        subscribers=subscriber_store,
        recorder=recorder,
        transport=transport,
        scheduler=scheduler,
        metrics=metrics,
        tracer=tracer,
        config=config,
    )
    yield svc
    svc.stop()


@pytest.fixture
def make_service(subscriber_store, recorder, scheduler, metrics, tracer, config):
    """Build a service around a ScriptedTransport."""
    created = []

    def _make(*script, **kwargs):
        stub = ScriptedTransport(*script)
        svc = WebhookDeliveryService(
            subscribers=subscriber_store,
            recorder=recorder,
            transport=stub,
            scheduler=kwargs.get("scheduler", scheduler),
            metrics=metrics,
            tracer=tracer,
            config=kwargs.get("config", config),
        )
        created.append(svc)
        return svc, stub

    yield _make
    for svc in created:
        svc.stop()


@pytest.fixture
def subscriber_server():
    server = SubscriberEndpointServer(secret=WEBHOOK_SECRET)
    server.start()
    yield server
    server.stop()


@pytest.fixture
def subscriber(subscriber_store, subscriber_server):
    """An active subscriber registered against the local endpoint server."""
    return subscriber_store.add(
        SubscriberFactory.create(url=subscriber_server.url, secret=WEBHOOK_SECRET)
    )


@pytest.fixture
def stub_subscriber(subscriber_store):
    """An active subscriber for tests that never touch the network."""
    return subscriber_store.add(
        SubscriberFactory.create(url="http://subscriber.invalid/hook", secret=WEBHOOK_SECRET)
    )


@pytest.fixture
def subscriber_factory():
    return SubscriberFactory


@pytest.fixture
def payload_factory():
    return EventPayloadFactory
