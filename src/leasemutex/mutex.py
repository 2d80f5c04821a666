"""Distributed mutex over a lock record store.

Each ``acquire`` or ``release`` is exactly one conditional update. The store
evaluates the predicate against the stored record and writes atomically, so
two contenders can never both observe "unheld" and both win. The mutex keeps
no state of its own and is safe to share between tasks and threads.

Acquire writes ``owner`` and ``now + lease`` when the lock is unheld or its
lease has elapsed. Release clears the owner when the caller is the stored
owner, whether or not its lease has elapsed.

There are no retries and no waiting: a lost race returns ``False`` and the
caller decides whether to poll.

Example:
    store = RedisLockStore(url="redis://localhost:6379/0")
    await MutexInitialization(store).initialize()

    mutex = Mutex(store)
    if await mutex.acquire("host-1", lease_duration=timedelta(seconds=30)):
        try:
            await do_exclusive_work()
        finally:
            await mutex.release("host-1")

    # Or as a single try-lock scope
    async with mutex.lease("host-1", lease_duration=30) as lease:
        if lease.acquired:
            await do_exclusive_work()
"""

from __future__ import annotations

import asyncio
import logging
from abc import ABC, abstractmethod
from collections.abc import Awaitable
from datetime import timedelta
from types import TracebackType
from typing import Final

from leasemutex.core.errors import (
    LockNotFoundError,
    OperationCancelledError,
    StoreUnavailableError,
)
from leasemutex.core.record import validate_lease, validate_name
from leasemutex.observability.logging import LogContext
from leasemutex.store.base import (
    LeaseUpdate,
    LockRecordStore,
    OwnedBy,
    UnheldOrExpired,
    UpdateOutcome,
    UpdateResult,
)

logger = logging.getLogger(__name__)

DEFAULT_MUTEX_NAME: Final[str] = "default-mutex"
DEFAULT_LEASE: Final[timedelta] = timedelta(seconds=30)


class AbstractMutex(ABC):
    """Public contract of a distributed mutex."""

    @abstractmethod
    async def acquire(
        self,
        owner: str,
        lock_name: str | None = None,
        lease_duration: timedelta | float = DEFAULT_LEASE,
        *,
        timeout: float | None = None,
    ) -> bool:
        """Try once to acquire the lock for ``owner``.

        The owner moniker must be the same one later passed to ``release``.
        After ``lease_duration`` the lock may be taken by anyone.

        Returns:
            True if acquired, False if another lease is live
        """
        ...

    @abstractmethod
    async def release(
        self,
        owner: str,
        lock_name: str | None = None,
        *,
        timeout: float | None = None,
    ) -> bool:
        """Release the lock if ``owner`` is the stored owner.

        Returns:
            True if released, False if ``owner`` does not hold it
        """
        ...


class Mutex(AbstractMutex):
    """Lease-based mutex backed by a :class:`LockRecordStore`.

    Args:
        store: Store holding the lock records; records must already exist
        default_lock_name: Lock used when a call omits ``lock_name``
        default_timeout: Round-trip timeout in seconds when a call gives none
    """

    def __init__(
        self,
        store: LockRecordStore,
        default_lock_name: str = DEFAULT_MUTEX_NAME,
        default_timeout: float | None = None,
    ) -> None:
        self.store = store
        self.default_lock_name = validate_name(default_lock_name, "lock_name")
        self.default_timeout = default_timeout

    async def acquire(
        self,
        owner: str,
        lock_name: str | None = None,
        lease_duration: timedelta | float = DEFAULT_LEASE,
        *,
        timeout: float | None = None,
    ) -> bool:
        owner = validate_name(owner, "owner")
        name = self._resolve_name(lock_name)
        lease = validate_lease(lease_duration)

        with LogContext(owner=owner, lock_name=name):
            logger.debug("Acquiring mutex Id: [%s] Owner: [%s]", name, owner)
            result = await self._round_trip(
                "acquire",
                name,
                self.store.conditional_update(name, UnheldOrExpired(), LeaseUpdate(owner, lease)),
                timeout,
            )
            return self._interpret("acquire", name, result)

    async def release(
        self,
        owner: str,
        lock_name: str | None = None,
        *,
        timeout: float | None = None,
    ) -> bool:
        owner = validate_name(owner, "owner")
        name = self._resolve_name(lock_name)

        with LogContext(owner=owner, lock_name=name):
            logger.debug("Releasing mutex Id: [%s] Owner: [%s]", name, owner)
            result = await self._round_trip(
                "release",
                name,
                self.store.conditional_update(name, OwnedBy(owner), LeaseUpdate("")),
                timeout,
            )
            return self._interpret("release", name, result)

    def lease(
        self,
        owner: str,
        lock_name: str | None = None,
        lease_duration: timedelta | float = DEFAULT_LEASE,
        *,
        timeout: float | None = None,
    ) -> MutexLease:
        """Scope a single acquire attempt; released on exit if it succeeded."""
        return MutexLease(self, owner, lock_name, lease_duration, timeout)

    def _resolve_name(self, lock_name: str | None) -> str:
        if lock_name is None:
            return self.default_lock_name
        return validate_name(lock_name, "lock_name")

    async def _round_trip(
        self,
        operation: str,
        name: str,
        call: Awaitable[UpdateResult],
        timeout: float | None,
    ) -> UpdateResult:
        timeout = timeout if timeout is not None else self.default_timeout
        try:
            return await asyncio.wait_for(call, timeout=timeout)
        except asyncio.TimeoutError as exc:
            logger.warning("Mutex %s on [%s] timed out after %ss", operation, name, timeout)
            raise OperationCancelledError(name, operation) from exc

    @staticmethod
    def _interpret(operation: str, name: str, result: UpdateResult) -> bool:
        if result.outcome is UpdateOutcome.APPLIED:
            logger.debug("Mutex %s applied on [%s]", operation, name)
            return True
        if result.outcome is UpdateOutcome.PREDICATE_FAILED:
            logger.debug("Mutex %s rejected on [%s]", operation, name)
            return False
        if result.outcome is UpdateOutcome.NOT_FOUND:
            raise LockNotFoundError(name)

        detail = str(result.error) if result.error else ""
        raise StoreUnavailableError(name, detail) from result.error


class MutexLease:
    """Async context manager around one acquire attempt.

    Example:
        async with mutex.lease("host-1", "reports", 60) as lease:
            if lease.acquired:
                await build_reports()
    """

    def __init__(
        self,
        mutex: Mutex,
        owner: str,
        lock_name: str | None,
        lease_duration: timedelta | float,
        timeout: float | None,
    ) -> None:
        self.mutex = mutex
        self.owner = owner
        self.lock_name = lock_name
        self.lease_duration = lease_duration
        self.timeout = timeout
        self.acquired = False

    async def __aenter__(self) -> MutexLease:
        self.acquired = await self.mutex.acquire(
            self.owner, self.lock_name, self.lease_duration, timeout=self.timeout
        )
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc_val: BaseException | None,
        exc_tb: TracebackType | None,
    ) -> None:
        if self.acquired:
            await self.mutex.release(self.owner, self.lock_name, timeout=self.timeout)
            self.acquired = False
