import os
from dataclasses import dataclass, fields


_ENV_NAMES = {
    "timeout_ms": "WEBHOOK_TIMEOUT_MS",
    "max_retries": "WEBHOOK_MAX_RETRIES",
    "base_backoff_ms": "WEBHOOK_BASE_BACKOFF_MS",
    "max_backoff_ms": "WEBHOOK_MAX_BACKOFF_MS",
    "poll_interval_ms": "WEBHOOK_POLL_INTERVAL_MS",
    "fast_log_size": "WEBHOOK_FAST_LOG_SIZE",
    "last_payload_ttl_seconds": "WEBHOOK_LAST_PAYLOAD_TTL",
    "durable_history_limit": "WEBHOOK_HISTORY_LIMIT",
    "retry_workers": "WEBHOOK_RETRY_WORKERS",
    "header_prefix": "WEBHOOK_HEADER_PREFIX",
}


@dataclass(frozen=True)
class DeliveryConfig:
    """Tunables for webhook delivery, retries and attempt history."""

    timeout_ms: int = 8000
    max_retries: int = 8
    base_backoff_ms: int = 1000
    max_backoff_ms: int = 60000
    poll_interval_ms: int = 3000
    fast_log_size: int = 50
    last_payload_ttl_seconds: int = 24 * 60 * 60
    durable_history_limit: int = 20
    retry_workers: int = 8
    header_prefix: str = "X-Vikareta"

    def __post_init__(self):
        for f in fields(self):
            value = getattr(self, f.name)
            if f.type is int and (not isinstance(value, int) or value <= 0):
                raise ValueError(f"{f.name} must be a positive integer, got {value!r}")
        if not self.header_prefix:
            raise ValueError("header_prefix must not be empty")

    @classmethod
    def from_env(cls, environ: dict[str, str] | None = None) -> "DeliveryConfig":
        """Build a config from WEBHOOK_* environment variables.

        Unset variables keep their defaults. Integer settings that do not
        parse raise ValueError.
        """
        env = os.environ if environ is None else environ
        overrides = {}
        for f in fields(cls):
            raw = env.get(_ENV_NAMES[f.name])
            if raw is None or raw == "":
                continue
            if f.name == "header_prefix":
                overrides[f.name] = raw
                continue
            try:
                overrides[f.name] = int(raw)
            except ValueError:
                raise ValueError(f"{_ENV_NAMES[f.name]} must be an integer, got {raw!r}") from None
        return cls(**overrides)

    @property
    def timeout_seconds(self) -> float:
        return self.timeout_ms / 1000

    @property
    def poll_interval_seconds(self) -> float:
        return self.poll_interval_ms / 1000
