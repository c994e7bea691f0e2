from .crypto import generate_secret, generate_signature, serialize_payload, verify_signature
from .factories import EventPayloadFactory, SubscriberFactory

__all__ = [
    "generate_secret", "generate_signature", "serialize_payload", "verify_signature",
    "EventPayloadFactory", "SubscriberFactory",
]
