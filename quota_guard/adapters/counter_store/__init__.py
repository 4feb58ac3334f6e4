"""Counter store adapters.

The decision engine depends only on ``AbstractCounterStore``; the in-memory
store backs unit tests and single-process runs, and the Redis store backs
production without any change to the engine.
"""

from quota_guard.adapters.counter_store.base import AbstractCounterStore
from quota_guard.adapters.counter_store.factory import create_counter_store
from quota_guard.adapters.counter_store.in_memory import InMemoryCounterStore
from quota_guard.adapters.counter_store.redis_store import RedisCounterStore

__all__ = [
    "AbstractCounterStore",
    "InMemoryCounterStore",
    "RedisCounterStore",
    "create_counter_store",
]
