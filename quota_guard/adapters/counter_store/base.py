"""Counter store interface.

The decision engine should depend on this abstraction (not the concrete
implementation) so the storage backend (in-memory, Redis) can be swapped
without touching the engine.

Every operation is a coroutine. Callers bound latency with
``asyncio.timeout``; implementations must not shield their awaits from
cancellation.
"""

from __future__ import annotations

from abc import ABC, abstractmethod


class AbstractCounterStore(ABC):
    """Key-value store with atomic counters and per-key expiry."""

    @abstractmethod
    async def increment(self, key: str, ttl_seconds: float) -> int:
        """Atomically increment a counter and (re)apply its expiry.

        The counter is created at 0 when absent. The TTL is applied on every
        call, so each increment refreshes the key's lifetime.

        Args:
            key: Counter key.
            ttl_seconds: Expiry applied to the key after incrementing.

        Returns:
            The post-increment value. Concurrent callers never observe the
            same value for one key.
        """
        raise NotImplementedError

    @abstractmethod
    async def get(self, key: str) -> int:
        """Return the counter value, or 0 when the key is absent."""
        raise NotImplementedError

    @abstractmethod
    async def set(self, key: str, value: int, ttl_seconds: float) -> None:
        """Unconditionally write a value with expiry.

        Args:
            key: Key to write.
            value: Integer value to store.
            ttl_seconds: Expiry in seconds; values <= 0 mean no expiry.
        """
        raise NotImplementedError

    @abstractmethod
    async def exists(self, key: str) -> bool:
        """Return True when the key is present and not expired."""
        raise NotImplementedError

    @abstractmethod
    async def delete(self, key: str) -> None:
        """Remove a key. Deleting an absent key is not an error."""
        raise NotImplementedError

    @abstractmethod
    async def close(self) -> None:
        """Release underlying resources. Safe to call more than once."""
        raise NotImplementedError

    async def ping(self) -> None:
        """Check connectivity to the backend.

        Stores without a remote backend have nothing to probe.
        """
        return None
