"""OpenTelemetry spans for webhook deliveries.

Only the OpenTelemetry API is used here; exporters and the tracer provider
are configured by the hosting application.
"""

from collections.abc import Generator
from contextlib import contextmanager

from opentelemetry import trace
from opentelemetry.trace import Span, Status, StatusCode, Tracer

from src.models.delivery import DeliveryResult

TRACER_NAME = "vikareta-webhook"


def get_tracer() -> Tracer:
    """Tracer from the global provider (no-op until one is configured)."""
    return trace.get_tracer(TRACER_NAME)


@contextmanager
def delivery_span(tracer: Tracer, subscriber_id: str, event: str) -> Generator[Span, None, None]:
    with tracer.start_as_current_span(
        "webhook.deliver",
        kind=trace.SpanKind.CLIENT,
        attributes={"webhook.id": subscriber_id, "webhook.event": event},
    ) as span:
        yield span


def annotate_delivery(span: Span, result: DeliveryResult) -> None:
    span.set_attribute("delivery.status", result.outcome.value)
    span.set_attribute("delivery.code", result.status_code or 0)
    span.set_attribute("delivery.duration_ms", result.duration_ms)
    if not result.succeeded:
        span.set_status(Status(StatusCode.ERROR, result.error or f"HTTP {result.status_code}"))
