from .config import DeliveryConfig
from .errors import (
    NoRecentPayload,
    SubscriberInactive,
    SubscriberNotFound,
    WebhookConfigurationError,
    WebhookError,
)
from .poller import RetryPoller
from .recorder import AttemptRecorder
from .retry import RetryScheduler
from .service import WebhookDeliveryService
from .signer import SignedPayload, WebhookSigner, sign
from .transport import HttpTransport, classify

__all__ = [
    "DeliveryConfig",
    "WebhookError", "WebhookConfigurationError", "SubscriberNotFound",
    "SubscriberInactive", "NoRecentPayload",
    "RetryPoller",
    "AttemptRecorder",
    "RetryScheduler",
    "WebhookDeliveryService",
    "SignedPayload", "WebhookSigner", "sign",
    "HttpTransport", "classify",
]
