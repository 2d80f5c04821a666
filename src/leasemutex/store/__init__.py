"""Lock record stores.

Backends providing the atomic conditional update the mutex relies on:
- In-memory store (tests, single process)
- Redis (Lua script, server clock)
- Azure Cosmos DB (filtered patch)
"""

from leasemutex.store.base import (
    LeaseUpdate,
    LockRecordStore,
    OwnedBy,
    Predicate,
    UnheldOrExpired,
    UpdateOutcome,
    UpdateResult,
)
from leasemutex.store.cosmos import CosmosLockStore
from leasemutex.store.factory import create_lock_store
from leasemutex.store.memory import InMemoryLockStore
from leasemutex.store.redis import RedisLockStore

__all__ = [
    "CosmosLockStore",
    "InMemoryLockStore",
    "LeaseUpdate",
    "LockRecordStore",
    "OwnedBy",
    "Predicate",
    "RedisLockStore",
    "UnheldOrExpired",
    "UpdateOutcome",
    "UpdateResult",
    "create_lock_store",
]
