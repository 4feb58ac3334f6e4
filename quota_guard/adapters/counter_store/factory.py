"""Factory pattern for creating counter store instances."""

from __future__ import annotations

from quota_guard.adapters.counter_store.base import AbstractCounterStore
from quota_guard.adapters.counter_store.in_memory import InMemoryCounterStore
from quota_guard.adapters.counter_store.redis_store import RedisCounterStore
from quota_guard.core.config import Settings, settings as default_settings
from quota_guard.core.errors import ValidationAppError


def create_counter_store(cfg: Settings | None = None) -> AbstractCounterStore:
    """Instantiate the counter store selected by configuration.

    Args:
        cfg: Settings to read from; defaults to the global settings.

    Returns:
        AbstractCounterStore: Configured store instance.

    Raises:
        ValidationAppError: If the configured backend is unknown.
    """
    cfg = cfg if cfg is not None else default_settings
    backend = cfg.rate_limit.store_backend

    if backend == "memory":
        return InMemoryCounterStore()

    if backend == "redis":
        return RedisCounterStore(
            host=cfg.redis.host,
            port=cfg.redis.port,
            password=cfg.redis.password,
            db=cfg.redis.db,
            socket_timeout_seconds=cfg.redis.socket_timeout_seconds,
        )

    raise ValidationAppError(
        code="unknown_store_backend",
        message=(
            f"Unknown counter store backend: '{backend}'. Supported backends: memory, redis"
        ),
        details={"backend": backend},
    )
