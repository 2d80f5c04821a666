"""Global pytest configuration and fixtures.

Provides an in-memory store driven by a controllable clock, so lease
expiry can be tested without sleeping.
"""

from __future__ import annotations

from collections.abc import AsyncIterator
from datetime import datetime, timedelta, timezone

import pytest
import pytest_asyncio

from leasemutex.bootstrap import MutexInitialization
from leasemutex.mutex import DEFAULT_MUTEX_NAME, Mutex
from leasemutex.store.memory import InMemoryLockStore


class FakeClock:
    """Stand-in for the store's server clock."""

    def __init__(self, start: datetime | None = None) -> None:
        self.now = start or datetime(2026, 1, 1, 12, 0, 0, tzinfo=timezone.utc)

    def __call__(self) -> datetime:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += timedelta(seconds=seconds)


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def store(clock: FakeClock) -> InMemoryLockStore:
    """Empty in-memory store on the fake clock."""
    return InMemoryLockStore(clock=clock)


@pytest_asyncio.fixture
async def initialized_store(store: InMemoryLockStore) -> AsyncIterator[InMemoryLockStore]:
    """Store with the default lock and ``L`` seeded as unheld."""
    await MutexInitialization(store).initialize_many([DEFAULT_MUTEX_NAME, "L"])
    yield store


@pytest.fixture
def mutex(initialized_store: InMemoryLockStore) -> Mutex:
    return Mutex(initialized_store)
