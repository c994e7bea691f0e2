import time
from dataclasses import dataclass

from src.utils.crypto import generate_signature, serialize_payload, verify_signature


@dataclass(frozen=True)
class SignedPayload:
    signature: str
    timestamp: int  # ms since epoch, captured at signing time
    body: str  # exact bytes to send, as text


def sign(secret: str, payload: dict, timestamp: int | None = None) -> SignedPayload:
    """Sign ``payload`` with ``secret`` over "<timestamp>.<json body>"."""
    if timestamp is None:
        timestamp = int(time.time() * 1000)
    body = serialize_payload(payload)
    return SignedPayload(
        signature=generate_signature(secret, timestamp, body),
        timestamp=timestamp,
        body=body,
    )


class WebhookSigner:
    """Signs and verifies webhook payloads for one subscriber secret."""

    def __init__(self, secret: str):
        self.secret = secret

    def sign(self, payload: dict, timestamp: int | None = None) -> SignedPayload:
        return sign(self.secret, payload, timestamp=timestamp)

    def verify(self, timestamp: int | str, body: str, signature: str) -> bool:
        return verify_signature(self.secret, timestamp, body, signature)
