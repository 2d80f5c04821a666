"""Tests for lock initialization."""

from __future__ import annotations

from unittest.mock import AsyncMock

import pytest

from leasemutex.bootstrap import MutexInitialization
from leasemutex.core.errors import InvalidArgumentError
from leasemutex.core.record import LockRecord
from leasemutex.mutex import DEFAULT_MUTEX_NAME, Mutex
from leasemutex.store.memory import InMemoryLockStore


class TestMutexInitialization:
    """Tests for MutexInitialization."""

    async def test_initialize_default_lock(self, store: InMemoryLockStore) -> None:
        created = await MutexInitialization(store).initialize()

        assert created is True
        assert await store.read(DEFAULT_MUTEX_NAME) == LockRecord.unheld(DEFAULT_MUTEX_NAME)

    async def test_initialize_is_idempotent(self, store: InMemoryLockStore) -> None:
        init = MutexInitialization(store)

        assert await init.initialize("L") is True
        assert await init.initialize("L") is False
        assert len(store) == 1

    async def test_initialize_leaves_held_lock_alone(self, store: InMemoryLockStore) -> None:
        """Re-running initialization must not free a lock someone holds."""
        await MutexInitialization(store).initialize("L")
        mutex = Mutex(store)
        assert await mutex.acquire("host-1", "L")

        await MutexInitialization(store).initialize("L")

        assert (await store.read("L")).owner == "host-1"
        assert not await mutex.acquire("host-2", "L")

    async def test_initialize_many(self, store: InMemoryLockStore) -> None:
        init = MutexInitialization(store)
        await init.initialize("a")

        results = await init.initialize_many(["a", "b", "c"])

        assert results == {"a": False, "b": True, "c": True}

    async def test_container_ensured_once(self) -> None:
        mock_store = AsyncMock()
        mock_store.name = "mock"
        mock_store.create_if_not_exists.return_value = True

        await MutexInitialization(mock_store).initialize_many(["a", "b"])

        mock_store.ensure_container.assert_awaited_once()
        assert mock_store.create_if_not_exists.await_count == 2

    @pytest.mark.parametrize("name", ["", "   "])
    async def test_blank_name_rejected(self, store: InMemoryLockStore, name: str) -> None:
        with pytest.raises(InvalidArgumentError):
            await MutexInitialization(store).initialize(name)
        assert len(store) == 0
