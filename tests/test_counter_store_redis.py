"""Unit tests for the Redis counter store (Redis client mocked)."""

from unittest.mock import AsyncMock, MagicMock

import pytest
import redis

from quota_guard.adapters.counter_store.redis_store import RedisCounterStore


@pytest.fixture
def mock_redis() -> MagicMock:
    client = MagicMock()
    pipe = MagicMock()
    pipe.execute = AsyncMock(return_value=[3, True])
    client.pipeline.return_value = pipe
    client.get = AsyncMock(return_value=None)
    client.set = AsyncMock(return_value=True)
    client.exists = AsyncMock(return_value=0)
    client.delete = AsyncMock(return_value=1)
    client.ping = AsyncMock(return_value=True)
    client.aclose = AsyncMock()
    return client


@pytest.fixture
def store(mock_redis: MagicMock) -> RedisCounterStore:
    return RedisCounterStore(client=mock_redis)


@pytest.mark.asyncio
async def test_increment_runs_incr_and_pexpire_in_one_transaction(store, mock_redis) -> None:
    count = await store.increment("rate_limit:ip:1.2.3.4", 1)

    assert count == 3
    mock_redis.pipeline.assert_called_once_with(transaction=True)
    pipe = mock_redis.pipeline.return_value
    pipe.incr.assert_called_once_with("rate_limit:ip:1.2.3.4")
    pipe.pexpire.assert_called_once_with("rate_limit:ip:1.2.3.4", 1000)
    pipe.execute.assert_awaited_once()


@pytest.mark.asyncio
async def test_get_parses_bytes_and_defaults_to_zero(store, mock_redis) -> None:
    assert await store.get("missing") == 0

    mock_redis.get.return_value = b"42"
    assert await store.get("present") == 42


@pytest.mark.asyncio
async def test_set_uses_millisecond_expiry(store, mock_redis) -> None:
    await store.set("block:ip:1.2.3.4", 1, 60)

    mock_redis.set.assert_awaited_once_with("block:ip:1.2.3.4", 1, px=60_000)


@pytest.mark.asyncio
async def test_set_without_ttl_persists(store, mock_redis) -> None:
    await store.set("k", 5, 0)

    mock_redis.set.assert_awaited_once_with("k", 5)


@pytest.mark.asyncio
async def test_exists_and_delete(store, mock_redis) -> None:
    assert await store.exists("k") is False
    mock_redis.exists.return_value = 1
    assert await store.exists("k") is True

    await store.delete("k")
    mock_redis.delete.assert_awaited_once_with("k")


@pytest.mark.asyncio
async def test_close_is_idempotent(store, mock_redis) -> None:
    await store.close()
    await store.close()

    mock_redis.aclose.assert_awaited_once()


@pytest.mark.asyncio
async def test_ping_propagates_connection_errors(store, mock_redis) -> None:
    mock_redis.ping.side_effect = redis.ConnectionError("connection refused")

    with pytest.raises(redis.ConnectionError):
        await store.ping()


@pytest.mark.asyncio
async def test_builds_client_lazily_without_connecting() -> None:
    store = RedisCounterStore(host="redis.invalid", port=6380, db=2, socket_timeout_seconds=0.5)

    # No command has been sent, so closing must not need a live server
    await store.close()
