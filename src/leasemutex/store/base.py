"""Lock record store interface.

Defines the one primitive the mutex protocol depends on: an atomic,
server-side conditional update of a lock record. Backends translate the
declarative predicates below into whatever their server evaluates
(Lua, SQL filter, ...). The ``now`` in a predicate is always the store's
clock, never the caller's.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass
from datetime import timedelta
from enum import Enum

from leasemutex.core.record import LockRecord


class UpdateOutcome(str, Enum):
    """Result of a conditional update."""

    APPLIED = "applied"
    PREDICATE_FAILED = "predicate_failed"
    NOT_FOUND = "not_found"
    UNAVAILABLE = "unavailable"


@dataclass(frozen=True)
class UpdateResult:
    """Outcome of a conditional update, with the cause for ``UNAVAILABLE``."""

    outcome: UpdateOutcome
    error: Exception | None = None

    @property
    def applied(self) -> bool:
        return self.outcome is UpdateOutcome.APPLIED

    @classmethod
    def unavailable(cls, error: Exception) -> UpdateResult:
        return cls(UpdateOutcome.UNAVAILABLE, error)


APPLIED = UpdateResult(UpdateOutcome.APPLIED)
PREDICATE_FAILED = UpdateResult(UpdateOutcome.PREDICATE_FAILED)
NOT_FOUND = UpdateResult(UpdateOutcome.NOT_FOUND)


@dataclass(frozen=True)
class UnheldOrExpired:
    """Matches ``owner == "" or lease_expiry < now``."""


@dataclass(frozen=True)
class OwnedBy:
    """Matches ``owner == <owner>``, whatever the lease expiry."""

    owner: str


Predicate = UnheldOrExpired | OwnedBy


@dataclass(frozen=True)
class LeaseUpdate:
    """New values for a record: ``owner`` and ``lease_expiry = now + lease``."""

    owner: str
    lease: timedelta = timedelta(0)


class LockRecordStore(ABC):
    """Abstract base class for lock record backends.

    Implementations must evaluate the predicate and apply the write as one
    indivisible server-side operation, and serialize concurrent updates on
    the same key.
    """

    name: str = "abstract"

    @abstractmethod
    async def conditional_update(
        self,
        key: str,
        predicate: Predicate,
        update: LeaseUpdate,
    ) -> UpdateResult:
        """Apply ``update`` to record ``key`` if ``predicate`` holds.

        Args:
            key: Lock name; also the partition key
            predicate: Condition over the currently stored record
            update: Values to write when the condition holds

        Returns:
            UpdateResult. Transient backend failures are reported as
            ``UNAVAILABLE`` with the cause attached rather than raised.
        """
        ...

    @abstractmethod
    async def read(self, key: str) -> LockRecord | None:
        """Point read of a lock record; ``None`` if it does not exist.

        Raises:
            StoreUnavailableError: If the backend cannot be reached
        """
        ...

    @abstractmethod
    async def create_if_not_exists(self, record: LockRecord) -> bool:
        """Create ``record`` unless one with the same id exists.

        Returns:
            True if created, False if it already existed

        Raises:
            StoreUnavailableError: If the backend cannot be reached
        """
        ...

    async def ensure_container(self) -> None:
        """Create the backing table/container if the backend needs one."""
        return None

    async def close(self) -> None:
        """Release client resources."""
        return None

    async def __aenter__(self) -> LockRecordStore:
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        await self.close()
