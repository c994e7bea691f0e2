import uuid
from datetime import datetime, timezone
from decimal import Decimal

from src.models.subscriber import Subscriber
from src.utils.crypto import generate_secret


class SubscriberFactory:
    """Factory for creating Subscriber instances with sensible defaults."""

    @staticmethod
    def create(**overrides) -> Subscriber:
        defaults = {
            "subscriber_id": f"whk_{uuid.uuid4().hex[:16]}",
            "url": "http://127.0.0.1:9/webhook",
            "secret": generate_secret(),
            "is_active": True,
            "name": "Seller integration",
            "events": ["payment.succeeded", "shipment.updated"],
        }
        defaults.update(overrides)
        return Subscriber(**defaults)


class EventPayloadFactory:
    """Builds realistic platform event payloads."""

    @staticmethod
    def create(event: str = "payment.succeeded", **overrides) -> dict:
        now = datetime.now(timezone.utc)
        order_id = overrides.pop("order_id", f"ord_{uuid.uuid4().hex[:12]}")

        if event.startswith("payment."):
            payload = {
                "order_id": order_id,
                "payment_id": f"pay_{uuid.uuid4().hex[:16]}",
                "status": _event_to_status(event),
                "amount": str(overrides.pop("amount", Decimal("1499.00"))),
                "currency": overrides.pop("currency", "INR"),
            }
        elif event.startswith("shipment."):
            payload = {
                "order_id": order_id,
                "shipment_id": f"shp_{uuid.uuid4().hex[:12]}",
                "status": overrides.pop("status", "IN_TRANSIT"),
                "carrier": overrides.pop("carrier", "delhivery"),
                "tracking_number": overrides.pop("tracking_number", uuid.uuid4().hex[:10].upper()),
            }
        else:
            payload = {"order_id": order_id}

        payload["event"] = event
        payload["occurred_at"] = now.isoformat()
        payload.update(overrides)
        return payload


def _event_to_status(event: str) -> str:
    mapping = {
        "payment.succeeded": "SUCCESS",
        "payment.failed": "FAILED",
        "payment.refunded": "REFUNDED",
        "payment.pending": "PENDING",
    }
    return mapping.get(event, "UNKNOWN")
