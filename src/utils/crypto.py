import hashlib
import hmac
import json
import secrets


def serialize_payload(payload: dict) -> str:
    """Compact JSON body shared by the signer and the HTTP request."""
    return json.dumps(payload, separators=(",", ":"), ensure_ascii=False, default=str)


def generate_signature(secret: str, timestamp: int, body: str) -> str:
    """Generate HMAC-SHA256 signature over "<timestamp>.<body>"."""
    if not secret:
        raise ValueError("webhook secret is required for signing")
    message = f"{timestamp}.{body}"
    return hmac.new(
        secret.encode("utf-8"),
        message.encode("utf-8"),
        hashlib.sha256,
    ).hexdigest()


def verify_signature(secret: str, timestamp: int | str, body: str, signature: str) -> bool:
    """Verify an HMAC-SHA256 webhook signature in constant time."""
    expected = generate_signature(secret, timestamp, body)
    return hmac.compare_digest(expected, signature)


def generate_secret() -> str:
    """New subscriber signing secret: 24 random bytes, hex-encoded."""
    return secrets.token_hex(24)
