"""Pytest configuration and fixtures shared across all test modules.

This file is automatically loaded by pytest before running any tests. The
environment is fixed here, before any import that builds settings, so tests
never need a Redis server or a .env file.
"""

import os

# CRITICAL: Set these before any imports that might load settings
os.environ["APP_ENV"] = "testing"
os.environ.setdefault("RATE_LIMIT_STORE_BACKEND", "memory")
os.environ.setdefault("RATE_LIMIT_IP_REQUESTS_PER_SECOND", "5")
os.environ.setdefault("RATE_LIMIT_IP_BLOCK_DURATION_SECONDS", "60")
os.environ.setdefault("RATE_LIMIT_TOKEN_REQUESTS_PER_SECOND", "10")
os.environ.setdefault("RATE_LIMIT_TOKEN_BLOCK_DURATION_SECONDS", "120")
os.environ.setdefault("APP_ADMIN_API_KEYS", "test-admin-key-123,test-admin-key-456")

import pytest  # noqa: E402

from quota_guard.adapters.counter_store.in_memory import InMemoryCounterStore  # noqa: E402


class FakeClock:
    """Deterministic clock used to test expiration logic."""

    def __init__(self, start: float = 1_000.0) -> None:
        self.current = start

    def __call__(self) -> float:
        return self.current

    def advance(self, seconds: float) -> None:
        self.current += seconds


@pytest.fixture
def fake_clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def memory_store(fake_clock: FakeClock) -> InMemoryCounterStore:
    return InMemoryCounterStore(clock=fake_clock)
