"""Lock initialization.

Creates the backing container (where the store has one) and seeds each lock
record as unheld. Safe to run repeatedly; existing records are left alone.
The mutex never creates records lazily, so this must run before first use.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable

from leasemutex.core.record import LockRecord, validate_name
from leasemutex.mutex import DEFAULT_MUTEX_NAME
from leasemutex.store.base import LockRecordStore

logger = logging.getLogger(__name__)


class MutexInitialization:
    """Seeds lock records in a store."""

    def __init__(self, store: LockRecordStore) -> None:
        self.store = store
        self._container_ready = False

    async def initialize(self, lock_name: str = DEFAULT_MUTEX_NAME) -> bool:
        """Initialize one named mutex.

        Returns:
            True if the record was created, False if it already existed
        """
        lock_name = validate_name(lock_name, "lock_name")
        logger.debug("Initializing mutex Id: [%s]", lock_name)

        if not self._container_ready:
            await self.store.ensure_container()
            self._container_ready = True

        created = await self.store.create_if_not_exists(LockRecord.unheld(lock_name))
        if created:
            logger.info("Created mutex [%s] in %s store", lock_name, self.store.name)
        else:
            logger.debug("Mutex [%s] already exists", lock_name)
        return created

    async def initialize_many(self, lock_names: Iterable[str]) -> dict[str, bool]:
        """Initialize several mutexes; maps each name to whether it was created."""
        return {name: await self.initialize(name) for name in lock_names}
