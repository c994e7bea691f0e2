from .attempts import DurableAttemptStore, InMemoryAttemptStore
from .kv import InMemoryKeyValueStore, KeyValueStore, RedisKeyValueStore
from .retry_queue import InMemoryRetryQueue, RedisRetryQueue, RetryQueue
from .subscribers import InMemorySubscriberStore, SubscriberStore

__all__ = [
    "DurableAttemptStore", "InMemoryAttemptStore",
    "KeyValueStore", "InMemoryKeyValueStore", "RedisKeyValueStore",
    "RetryQueue", "InMemoryRetryQueue", "RedisRetryQueue",
    "SubscriberStore", "InMemorySubscriberStore",
]
