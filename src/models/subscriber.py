from dataclasses import dataclass, field
from datetime import datetime


@dataclass
class Subscriber:
    """An external endpoint registered to receive webhook events.

    ``name`` and ``events`` are registration data for the surrounding
    registration flow. Delivery does not read them: callers decide which
    events a subscriber is sent.
    """

    subscriber_id: str
    url: str
    secret: str
    is_active: bool = True
    name: str = ""
    events: list[str] = field(default_factory=list)
    success_count: int = 0
    failure_count: int = 0
    last_triggered_at: datetime | None = None
