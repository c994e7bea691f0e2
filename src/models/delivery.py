import json
import uuid
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any


class DeliveryOutcome(Enum):
    SUCCESS = "success"
    FAILURE = "failure"


@dataclass
class DeliveryResult:
    """Outcome of a single transport-level delivery attempt."""

    outcome: DeliveryOutcome
    duration_ms: float
    status_code: int | None = None
    error: str | None = None
    response_body: Any = None

    @property
    def succeeded(self) -> bool:
        return self.outcome is DeliveryOutcome.SUCCESS


@dataclass(frozen=True)
class DeliveryAttempt:
    attempt_id: str
    subscriber_id: str
    event: str
    outcome: DeliveryOutcome
    status_code: int | None
    duration_ms: float
    attempted_at: datetime
    error: str | None = None
    payload: dict | None = None

    def to_dict(self) -> dict:
        return {
            "attempt_id": self.attempt_id,
            "subscriber_id": self.subscriber_id,
            "event": self.event,
            "outcome": self.outcome.value,
            "status_code": self.status_code,
            "duration_ms": self.duration_ms,
            "attempted_at": self.attempted_at.isoformat(),
            "error": self.error,
            "payload": self.payload,
        }

    @classmethod
    def from_dict(cls, data: dict) -> "DeliveryAttempt":
        return cls(
            attempt_id=data["attempt_id"],
            subscriber_id=data["subscriber_id"],
            event=data["event"],
            outcome=DeliveryOutcome(data["outcome"]),
            status_code=data.get("status_code"),
            duration_ms=data.get("duration_ms", 0.0),
            attempted_at=datetime.fromisoformat(data["attempted_at"]),
            error=data.get("error"),
            payload=data.get("payload"),
        )


@dataclass
class RetryJob:
    """A pending re-delivery of one logical event.

    ``attempt`` is the number of failed attempts so far, ``run_at_ms`` the
    earliest eligible execution time in milliseconds since the epoch.
    """

    subscriber_id: str
    event: str
    payload: dict
    attempt: int
    run_at_ms: int
    job_id: str = field(default_factory=lambda: f"job_{uuid.uuid4().hex[:16]}")

    def to_json(self) -> str:
        return json.dumps(
            {
                "job_id": self.job_id,
                "subscriber_id": self.subscriber_id,
                "event": self.event,
                "payload": self.payload,
                "attempt": self.attempt,
                "run_at_ms": self.run_at_ms,
            },
            default=str,
        )

    @classmethod
    def from_json(cls, raw: str | bytes) -> "RetryJob":
        data = json.loads(raw)
        return cls(
            subscriber_id=data["subscriber_id"],
            event=data["event"],
            payload=data["payload"],
            attempt=int(data["attempt"]),
            run_at_ms=int(data["run_at_ms"]),
            job_id=data["job_id"],
        )


@dataclass
class AttemptHistory:
    recent_fast: list[DeliveryAttempt] = field(default_factory=list)
    recent_durable: list[DeliveryAttempt] = field(default_factory=list)
