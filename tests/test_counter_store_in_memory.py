"""Unit tests for the in-memory counter store."""

import asyncio

import pytest

from quota_guard.adapters.counter_store.in_memory import InMemoryCounterStore


@pytest.mark.asyncio
async def test_increment_creates_counter_and_counts_up(memory_store) -> None:
    assert await memory_store.increment("k", 1) == 1
    assert await memory_store.increment("k", 1) == 2
    assert await memory_store.get("k") == 2


@pytest.mark.asyncio
async def test_get_returns_zero_for_missing_key(memory_store) -> None:
    assert await memory_store.get("missing") == 0
    assert await memory_store.exists("missing") is False


@pytest.mark.asyncio
async def test_counter_expires_after_ttl(memory_store, fake_clock) -> None:
    await memory_store.increment("k", 1)
    fake_clock.advance(1.0)

    assert await memory_store.exists("k") is False
    assert await memory_store.increment("k", 1) == 1


@pytest.mark.asyncio
async def test_each_increment_refreshes_ttl(memory_store, fake_clock) -> None:
    await memory_store.increment("k", 1)
    fake_clock.advance(0.8)
    await memory_store.increment("k", 1)
    fake_clock.advance(0.8)

    # 1.6s after creation, but only 0.8s after the last increment
    assert await memory_store.get("k") == 2


@pytest.mark.asyncio
async def test_set_with_ttl_and_without(memory_store, fake_clock) -> None:
    await memory_store.set("block", 1, 60)
    await memory_store.set("forever", 7, 0)

    fake_clock.advance(59)
    assert await memory_store.exists("block") is True

    fake_clock.advance(1)
    assert await memory_store.exists("block") is False
    assert await memory_store.get("forever") == 7


@pytest.mark.asyncio
async def test_delete_removes_key_and_ignores_missing(memory_store) -> None:
    await memory_store.set("k", 3, 10)
    await memory_store.delete("k")
    await memory_store.delete("never-existed")

    assert await memory_store.exists("k") is False


@pytest.mark.asyncio
async def test_concurrent_increments_never_share_a_value(memory_store) -> None:
    results = await asyncio.gather(*(memory_store.increment("k", 1) for _ in range(50)))

    assert sorted(results) == list(range(1, 51))


def test_purge_expired_removes_only_expired(memory_store, fake_clock) -> None:
    asyncio.run(memory_store.set("short", 1, 1))
    asyncio.run(memory_store.set("long", 1, 100))
    fake_clock.advance(5)

    assert memory_store.purge_expired() == 1
    assert len(memory_store) == 1


@pytest.mark.asyncio
async def test_writes_purge_expired_entries_past_threshold(fake_clock) -> None:
    store = InMemoryCounterStore(clock=fake_clock, purge_threshold=3)
    for idx in range(3):
        await store.set(f"old-{idx}", 1, 1)
    fake_clock.advance(2)

    await store.increment("fresh", 1)

    assert len(store) == 1


@pytest.mark.asyncio
async def test_close_is_idempotent_and_rejects_further_use(memory_store) -> None:
    await memory_store.increment("k", 1)

    await memory_store.close()
    await memory_store.close()

    with pytest.raises(RuntimeError):
        await memory_store.increment("k", 1)


@pytest.mark.asyncio
async def test_cancelled_caller_does_not_mutate(memory_store) -> None:
    task = asyncio.create_task(memory_store.increment("k", 1))
    task.cancel()

    with pytest.raises(asyncio.CancelledError):
        await task

    assert await memory_store.get("k") == 0


def test_invalid_constructor_args() -> None:
    with pytest.raises(ValueError):
        InMemoryCounterStore(purge_threshold=0)
