"""In-memory counter store.

Notes:
- Per-process only: running multiple workers multiplies the effective limit.
- Thread-safe: uses a lock around shared state.
- Expiry is lazy: expired keys are dropped when touched, and in bulk once the
  store grows past ``purge_threshold`` entries.
"""

from __future__ import annotations

import asyncio
import logging
import threading
import time
from dataclasses import dataclass
from typing import Callable

from quota_guard.adapters.counter_store.base import AbstractCounterStore

logger = logging.getLogger(__name__)


@dataclass
class _Entry:
    value: int
    expires_at: float | None


class InMemoryCounterStore(AbstractCounterStore):
    """Counter store backed by a dict of values with expiry timestamps.

    Important:
        This store is per-process only. If the API runs with multiple workers
        (e.g., multiple Uvicorn/Gunicorn workers), each worker keeps its own
        independent counters.
    """

    def __init__(
        self,
        *,
        clock: Callable[[], float] = time.monotonic,
        purge_threshold: int = 10_000,
    ) -> None:
        """Initialize the in-memory store.

        Args:
            clock: Time source returning seconds; only differences matter.
            purge_threshold: Entry count that triggers a bulk purge of
                expired keys on write.

        Raises:
            ValueError: If purge_threshold is invalid.
        """
        if purge_threshold < 1:
            raise ValueError("purge_threshold must be >= 1")

        self._clock = clock
        self._purge_threshold = purge_threshold
        self._lock = threading.Lock()
        self._entries: dict[str, _Entry] = {}
        self._closed = False

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)

    def _expires_at(self, ttl_seconds: float) -> float | None:
        if ttl_seconds <= 0:
            return None
        return self._clock() + ttl_seconds

    def _live_entry_locked(self, key: str) -> _Entry | None:
        entry = self._entries.get(key)
        if entry is None:
            return None
        if entry.expires_at is not None and entry.expires_at <= self._clock():
            del self._entries[key]
            return None
        return entry

    def _purge_if_large_locked(self) -> None:
        if len(self._entries) >= self._purge_threshold:
            self._purge_expired_locked()

    def _purge_expired_locked(self) -> int:
        now = self._clock()
        expired_keys = [
            k for k, entry in self._entries.items()
            if entry.expires_at is not None and entry.expires_at <= now
        ]
        for key in expired_keys:
            del self._entries[key]
        return len(expired_keys)

    async def _checkpoint(self) -> None:
        # Yield once so a cancelled or timed-out caller aborts before mutating.
        await asyncio.sleep(0)
        if self._closed:
            raise RuntimeError("counter store is closed")

    async def increment(self, key: str, ttl_seconds: float) -> int:
        await self._checkpoint()
        with self._lock:
            self._purge_if_large_locked()
            entry = self._live_entry_locked(key)
            if entry is None:
                entry = _Entry(value=0, expires_at=None)
                self._entries[key] = entry
            entry.value += 1
            entry.expires_at = self._expires_at(ttl_seconds)
            return entry.value

    async def get(self, key: str) -> int:
        await self._checkpoint()
        with self._lock:
            entry = self._live_entry_locked(key)
            return entry.value if entry is not None else 0

    async def set(self, key: str, value: int, ttl_seconds: float) -> None:
        await self._checkpoint()
        with self._lock:
            self._purge_if_large_locked()
            self._entries[key] = _Entry(value=int(value), expires_at=self._expires_at(ttl_seconds))

    async def exists(self, key: str) -> bool:
        await self._checkpoint()
        with self._lock:
            return self._live_entry_locked(key) is not None

    async def delete(self, key: str) -> None:
        await self._checkpoint()
        with self._lock:
            self._entries.pop(key, None)

    def purge_expired(self) -> int:
        """Remove all expired entries.

        Returns:
            Number of entries removed.
        """
        with self._lock:
            return self._purge_expired_locked()

    async def close(self) -> None:
        with self._lock:
            if self._closed:
                return
            self._closed = True
            dropped = len(self._entries)
            self._entries.clear()
        logger.info(
            "counter_store.closed",
            extra={"backend": "memory", "dropped_entries": dropped},
        )
