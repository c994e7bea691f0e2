class WebhookError(Exception):
    """Base class for webhook delivery errors surfaced to callers."""


class WebhookConfigurationError(WebhookError):
    """The subscriber cannot be delivered to. Never retried."""

    def __init__(self, subscriber_id: str, message: str):
        super().__init__(message)
        self.subscriber_id = subscriber_id


class SubscriberNotFound(WebhookConfigurationError):
    def __init__(self, subscriber_id: str):
        super().__init__(subscriber_id, f"Webhook subscriber {subscriber_id} not found")


class SubscriberInactive(WebhookConfigurationError):
    def __init__(self, subscriber_id: str):
        super().__init__(subscriber_id, f"Webhook subscriber {subscriber_id} is inactive")


class NoRecentPayload(WebhookError):
    """No cached payload is available to redeliver."""

    def __init__(self, subscriber_id: str):
        super().__init__(f"No recent payload to redeliver for subscriber {subscriber_id}")
        self.subscriber_id = subscriber_id
