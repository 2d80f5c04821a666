"""In-process lock record store.

Useful for tests and single-process tools. The store's clock plays the
role of the server clock and can be replaced to drive expiry.
"""

from __future__ import annotations

import asyncio
from collections.abc import Callable
from dataclasses import replace
from datetime import datetime, timezone

from leasemutex.core.record import LockRecord
from leasemutex.store.base import (
    APPLIED,
    NOT_FOUND,
    PREDICATE_FAILED,
    LeaseUpdate,
    LockRecordStore,
    OwnedBy,
    Predicate,
    UnheldOrExpired,
    UpdateResult,
)


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class InMemoryLockStore(LockRecordStore):
    """Dictionary-backed store; an asyncio lock serializes every update."""

    name = "memory"

    def __init__(self, clock: Callable[[], datetime] = _utcnow) -> None:
        self.clock = clock
        self._records: dict[str, LockRecord] = {}
        self._lock = asyncio.Lock()

    @staticmethod
    def _matches(record: LockRecord, predicate: Predicate, now: datetime) -> bool:
        if isinstance(predicate, UnheldOrExpired):
            return record.owner == "" or record.lease_expiry < now
        if isinstance(predicate, OwnedBy):
            return record.owner == predicate.owner
        raise TypeError(f"Unsupported predicate: {predicate!r}")

    async def conditional_update(
        self,
        key: str,
        predicate: Predicate,
        update: LeaseUpdate,
    ) -> UpdateResult:
        async with self._lock:
            record = self._records.get(key)
            if record is None:
                return NOT_FOUND

            now = self.clock()
            if not self._matches(record, predicate, now):
                return PREDICATE_FAILED

            self._records[key] = replace(
                record, owner=update.owner, lease_expiry=now + update.lease
            )
            return APPLIED

    async def read(self, key: str) -> LockRecord | None:
        return self._records.get(key)

    async def create_if_not_exists(self, record: LockRecord) -> bool:
        async with self._lock:
            if record.id in self._records:
                return False
            self._records[record.id] = record
            return True

    def __len__(self) -> int:
        return len(self._records)
