"""Redis-backed counter store.

Counters and block markers live in Redis so every API worker and instance
shares one view of each identity's quota. Atomicity comes from Redis itself:
``INCR`` is atomic per key and the ``INCR``/``PEXPIRE`` pair is sent as one
MULTI/EXEC transaction.
"""

from __future__ import annotations

import logging
from typing import Any

import redis.asyncio as aioredis

from quota_guard.adapters.counter_store.base import AbstractCounterStore

logger = logging.getLogger(__name__)


def _to_millis(ttl_seconds: float) -> int:
    return max(1, int(round(ttl_seconds * 1000)))


class RedisCounterStore(AbstractCounterStore):
    """Counter store using ``redis.asyncio``.

    Example:
        >>> store = RedisCounterStore(host="localhost", port=6379)
        >>> await store.increment("rate_limit:ip:1.2.3.4", ttl_seconds=1)
    """

    def __init__(
        self,
        *,
        host: str = "localhost",
        port: int = 6379,
        password: str | None = None,
        db: int = 0,
        socket_timeout_seconds: float = 5.0,
        client: Any | None = None,
    ) -> None:
        """Initialize the Redis store.

        The connection pool is lazy: no connection is opened until the first
        command (or ``ping``).

        Args:
            host: Redis host.
            port: Redis port.
            password: Optional Redis password.
            db: Logical database index.
            socket_timeout_seconds: Connect and read timeout for each call.
            client: Pre-built ``redis.asyncio`` client (mainly for tests).
        """
        self._address = f"{host}:{port}/{db}"
        self._redis = client or aioredis.Redis(
            host=host,
            port=port,
            password=password,
            db=db,
            socket_timeout=socket_timeout_seconds,
            socket_connect_timeout=socket_timeout_seconds,
        )
        self._closed = False

    async def ping(self) -> None:
        await self._redis.ping()
        logger.info("counter_store.connected", extra={"backend": "redis", "address": self._address})

    async def increment(self, key: str, ttl_seconds: float) -> int:
        pipe = self._redis.pipeline(transaction=True)
        pipe.incr(key)
        if ttl_seconds > 0:
            pipe.pexpire(key, _to_millis(ttl_seconds))
        results = await pipe.execute()
        return int(results[0])

    async def get(self, key: str) -> int:
        value = await self._redis.get(key)
        if value is None:
            return 0
        return int(value)

    async def set(self, key: str, value: int, ttl_seconds: float) -> None:
        if ttl_seconds > 0:
            await self._redis.set(key, int(value), px=_to_millis(ttl_seconds))
        else:
            await self._redis.set(key, int(value))

    async def exists(self, key: str) -> bool:
        return await self._redis.exists(key) > 0

    async def delete(self, key: str) -> None:
        await self._redis.delete(key)

    async def close(self) -> None:
        if self._closed:
            return
        self._closed = True
        await self._redis.aclose()
        logger.info("counter_store.closed", extra={"backend": "redis", "address": self._address})
