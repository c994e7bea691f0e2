from .subscriber import Subscriber
from .delivery import (
    AttemptHistory,
    DeliveryAttempt,
    DeliveryOutcome,
    DeliveryResult,
    RetryJob,
)

__all__ = [
    "Subscriber",
    "AttemptHistory", "DeliveryAttempt", "DeliveryOutcome",
    "DeliveryResult", "RetryJob",
]
