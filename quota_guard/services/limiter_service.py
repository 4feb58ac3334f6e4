"""Rate limiting decision engine.

Turns ``(identity, limit class)`` into an allow/deny decision using a fixed
1-second window per identity and a hard block once the window quota is
exceeded:

1. If ``block:<class>:<identity>`` exists the request is denied without
   counting.
2. Otherwise ``rate_limit:<class>:<identity>`` is incremented with a 1 second
   expiry (refreshed on every increment).
3. A count above the quota writes the block key for the class's block
   duration and denies; anything else is allowed.

The service holds only immutable configuration and an injected store, so one
instance can serve any number of concurrent requests. It takes no locks: two
racers for the same identity are serialized by the store's atomic increment,
and a few requests that pass the block check just before the block key lands
may still be admitted. Store failures are never retried here, and an
increment is never undone when the following block write fails.
"""

from __future__ import annotations

import asyncio
import logging
import math
import time
from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from enum import Enum
from typing import Awaitable, Callable, TypeVar

from quota_guard.adapters.counter_store.base import AbstractCounterStore
from quota_guard.core.config import RateLimitSettings, settings
from quota_guard.core.errors import CancellationAppError, InvalidLimitTypeError, StoreAppError
from quota_guard.core.identity import hash_identity

logger = logging.getLogger(__name__)

T = TypeVar("T")

WINDOW_SECONDS = 1
COUNTER_KEY_PREFIX = "rate_limit"
BLOCK_KEY_PREFIX = "block"


class LimitClass(str, Enum):
    """Kind of identity a quota applies to."""

    IP = "ip"
    TOKEN = "token"


@dataclass(frozen=True)
class LimitPolicy:
    """Quota for one limit class.

    Attributes:
        requests_per_window: Requests admitted per 1-second window.
        block_duration_seconds: Cooldown once the quota is exceeded
            (0 denies only the offending request, without a block).
    """

    requests_per_window: int
    block_duration_seconds: int

    def __post_init__(self) -> None:
        if self.requests_per_window < 1:
            raise ValueError("requests_per_window must be >= 1")
        if self.block_duration_seconds < 0:
            raise ValueError("block_duration_seconds must be >= 0")


@dataclass(frozen=True)
class LimiterConfig:
    """Per-class policies consumed by the engine at construction."""

    ip: LimitPolicy
    token: LimitPolicy

    @classmethod
    def from_values(
        cls,
        *,
        ip_requests_per_second: int,
        ip_block_duration_seconds: int,
        token_requests_per_second: int,
        token_block_duration_seconds: int,
    ) -> "LimiterConfig":
        """Build a config from the four configured integers."""
        return cls(
            ip=LimitPolicy(ip_requests_per_second, ip_block_duration_seconds),
            token=LimitPolicy(token_requests_per_second, token_block_duration_seconds),
        )

    def policy_for(self, limit_class: LimitClass) -> LimitPolicy:
        return self.ip if limit_class is LimitClass.IP else self.token


@dataclass(frozen=True)
class LimitResult:
    """Outcome of one limit check.

    Attributes:
        allowed: Whether the request may proceed.
        limit: Configured requests per window for the identity's class.
        remaining: Requests left in the current window (0 when denied).
        reset_time: When the window (allowed) or block (denied) is expected
            to end. For an already-active block this is an estimate, since
            the store does not report remaining TTLs.
    """

    allowed: bool
    limit: int
    remaining: int
    reset_time: datetime

    @property
    def reset_at(self) -> int:
        """UNIX epoch seconds of ``reset_time``, rounded up."""
        return int(math.ceil(self.reset_time.timestamp()))

    def retry_after_seconds(self, now: float | None = None) -> int:
        """Seconds until ``reset_time`` (never negative)."""
        current = time.time() if now is None else now
        return max(0, int(math.ceil(self.reset_time.timestamp() - current)))


@dataclass(frozen=True)
class LimitStatus:
    """Read-only snapshot of an identity's quota state."""

    limit_type: LimitClass
    limit: int
    count: int
    blocked: bool


@dataclass
class _InFlight:
    """Store call currently awaited by a check; read when a deadline fires."""

    operation: str = "none"
    key: str = ""


def parse_limit_type(limit_type: LimitClass | str) -> LimitClass:
    """Validate a limit class given as enum member or string.

    Raises:
        InvalidLimitTypeError: If the value is not 'ip' or 'token'.
    """
    if isinstance(limit_type, LimitClass):
        return limit_type
    try:
        return LimitClass(limit_type)
    except ValueError:
        raise InvalidLimitTypeError(
            code="invalid_limit_type",
            message=f"invalid limit type: {limit_type}",
            details={
                "limit_type": str(limit_type),
                "allowed_types": [c.value for c in LimitClass],
            },
        ) from None


def counter_key(limit_class: LimitClass, identity: str) -> str:
    return f"{COUNTER_KEY_PREFIX}:{limit_class.value}:{identity}"


def block_key(limit_class: LimitClass, identity: str) -> str:
    return f"{BLOCK_KEY_PREFIX}:{limit_class.value}:{identity}"


@dataclass
class RateLimiterService:
    """Fixed-window rate limiter with a hard block, over a counter store.

    Attributes:
        store: Counter store holding all runtime state.
        config: Per-class quotas.
        timeout_seconds: Default deadline for one check (None or 0 disables).
        clock: Wall-clock source used for ``reset_time``.
    """

    store: AbstractCounterStore
    config: LimiterConfig
    timeout_seconds: float | None = None
    clock: Callable[[], float] = field(default=time.time)

    def _after(self, seconds: float) -> datetime:
        return datetime.fromtimestamp(self.clock(), tz=timezone.utc) + timedelta(seconds=seconds)

    def _denied(self, policy: LimitPolicy) -> LimitResult:
        return LimitResult(
            allowed=False,
            limit=policy.requests_per_window,
            remaining=0,
            reset_time=self._after(policy.block_duration_seconds),
        )

    async def _store_call(
        self,
        in_flight: _InFlight,
        operation: str,
        key: str,
        call: Callable[[], Awaitable[T]],
    ) -> T:
        in_flight.operation = operation
        in_flight.key = key
        try:
            return await call()
        except Exception as exc:
            logger.error(
                "rate_limit.store_error",
                extra={
                    "operation": operation,
                    "key_hash": hash_identity(key),
                    "error_type": type(exc).__name__,
                },
            )
            raise StoreAppError(
                code="store_error",
                message=f"counter store {operation} failed: {exc}",
                details={"operation": operation, "key_hash": hash_identity(key)},
                operation=operation,
                key=key,
            ) from exc

    async def _run_with_deadline(
        self,
        timeout: float | None,
        limit_class: LimitClass,
        body: Callable[[_InFlight], Awaitable[T]],
    ) -> T:
        deadline = self.timeout_seconds if timeout is None else timeout
        in_flight = _InFlight()
        try:
            async with asyncio.timeout(deadline or None):
                return await body(in_flight)
        except TimeoutError as exc:
            logger.warning(
                "rate_limit.deadline_exceeded",
                extra={
                    "limit_type": limit_class.value,
                    "operation": in_flight.operation,
                    "key_hash": hash_identity(in_flight.key),
                    "timeout_s": deadline,
                },
            )
            raise CancellationAppError(
                code="store_deadline_exceeded",
                message=f"counter store {in_flight.operation} did not complete within {deadline}s",
                details={
                    "operation": in_flight.operation,
                    "key_hash": hash_identity(in_flight.key),
                    "timeout_seconds": float(deadline or 0),
                },
                operation=in_flight.operation,
                key=in_flight.key,
            ) from exc

    async def check_limit(
        self,
        identity: str,
        limit_type: LimitClass | str,
        *,
        timeout: float | None = None,
    ) -> LimitResult:
        """Decide whether a request from ``identity`` is allowed.

        Args:
            identity: IP address or token value.
            limit_type: 'ip' or 'token' (or the LimitClass member).
            timeout: Deadline in seconds for the whole check; defaults to
                ``timeout_seconds``.

        Returns:
            LimitResult describing the decision.

        Raises:
            InvalidLimitTypeError: Unknown limit class; the store is not touched.
            StoreAppError: A store operation failed.
            CancellationAppError: The deadline expired during a store call.
        """
        limit_class = parse_limit_type(limit_type)
        policy = self.config.policy_for(limit_class)
        rate_key = counter_key(limit_class, identity)
        blocked_key = block_key(limit_class, identity)

        async def _decide(in_flight: _InFlight) -> LimitResult:
            is_blocked = await self._store_call(
                in_flight, "exists", blocked_key, lambda: self.store.exists(blocked_key)
            )
            if is_blocked:
                logger.info(
                    "rate_limit.blocked",
                    extra={"limit_type": limit_class.value, "identity_hash": hash_identity(identity)},
                )
                return self._denied(policy)

            current_count = await self._store_call(
                in_flight,
                "increment",
                rate_key,
                lambda: self.store.increment(rate_key, WINDOW_SECONDS),
            )

            if current_count > policy.requests_per_window:
                if policy.block_duration_seconds > 0:
                    await self._store_call(
                        in_flight,
                        "set",
                        blocked_key,
                        lambda: self.store.set(blocked_key, 1, policy.block_duration_seconds),
                    )
                    logger.info(
                        "rate_limit.block_set",
                        extra={
                            "limit_type": limit_class.value,
                            "identity_hash": hash_identity(identity),
                            "block_s": policy.block_duration_seconds,
                        },
                    )
                logger.warning(
                    "rate_limit.exceeded",
                    extra={
                        "limit_type": limit_class.value,
                        "identity_hash": hash_identity(identity),
                        "count": current_count,
                        "limit": policy.requests_per_window,
                        "block_s": policy.block_duration_seconds,
                    },
                )
                return self._denied(policy)

            return LimitResult(
                allowed=True,
                limit=policy.requests_per_window,
                remaining=policy.requests_per_window - current_count,
                reset_time=self._after(WINDOW_SECONDS),
            )

        return await self._run_with_deadline(timeout, limit_class, _decide)

    async def get_status(self, identity: str, limit_type: LimitClass | str) -> LimitStatus:
        """Read an identity's current count and block state without mutating it."""
        limit_class = parse_limit_type(limit_type)
        policy = self.config.policy_for(limit_class)
        rate_key = counter_key(limit_class, identity)
        blocked_key = block_key(limit_class, identity)

        async def _read(in_flight: _InFlight) -> LimitStatus:
            count = await self._store_call(in_flight, "get", rate_key, lambda: self.store.get(rate_key))
            blocked = await self._store_call(
                in_flight, "exists", blocked_key, lambda: self.store.exists(blocked_key)
            )
            return LimitStatus(
                limit_type=limit_class,
                limit=policy.requests_per_window,
                count=count,
                blocked=blocked,
            )

        return await self._run_with_deadline(None, limit_class, _read)

    async def reset(self, identity: str, limit_type: LimitClass | str) -> None:
        """Clear an identity's counter and lift any active block."""
        limit_class = parse_limit_type(limit_type)
        keys = (counter_key(limit_class, identity), block_key(limit_class, identity))

        async def _clear(in_flight: _InFlight) -> None:
            for key in keys:
                await self._store_call(in_flight, "delete", key, lambda key=key: self.store.delete(key))

        await self._run_with_deadline(None, limit_class, _clear)
        logger.info(
            "rate_limit.reset",
            extra={"limit_type": limit_class.value, "identity_hash": hash_identity(identity)},
        )


def build_limiter_service(
    store: AbstractCounterStore,
    cfg: RateLimitSettings | None = None,
) -> RateLimiterService:
    """Build the engine from rate limit settings.

    Args:
        store: Counter store to inject.
        cfg: Rate limit settings; defaults to the global settings.

    Returns:
        RateLimiterService: Engine configured with the four quota integers.
    """
    cfg = cfg if cfg is not None else settings.rate_limit
    config = LimiterConfig.from_values(
        ip_requests_per_second=cfg.ip_requests_per_second,
        ip_block_duration_seconds=cfg.ip_block_duration_seconds,
        token_requests_per_second=cfg.token_requests_per_second,
        token_block_duration_seconds=cfg.token_block_duration_seconds,
    )
    return RateLimiterService(store=store, config=config, timeout_seconds=cfg.store_timeout_seconds)
