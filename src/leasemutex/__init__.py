"""leasemutex: a lease-based distributed mutex over a shared store.

Example:
    from leasemutex import Mutex, MutexInitialization
    from leasemutex.store import RedisLockStore

    store = RedisLockStore(url="redis://localhost:6379/0")
    await MutexInitialization(store).initialize("reports")

    mutex = Mutex(store)
    if await mutex.acquire("worker-1", "reports", lease_duration=60):
        ...
        await mutex.release("worker-1", "reports")
"""

from leasemutex.bootstrap import MutexInitialization
from leasemutex.core.errors import (
    InvalidArgumentError,
    LockNotFoundError,
    MutexError,
    OperationCancelledError,
    StoreUnavailableError,
)
from leasemutex.core.record import LockRecord
from leasemutex.mutex import (
    DEFAULT_LEASE,
    DEFAULT_MUTEX_NAME,
    AbstractMutex,
    Mutex,
    MutexLease,
)

__version__ = "0.1.0"

__all__ = [
    "DEFAULT_LEASE",
    "DEFAULT_MUTEX_NAME",
    "AbstractMutex",
    "InvalidArgumentError",
    "LockNotFoundError",
    "LockRecord",
    "Mutex",
    "MutexError",
    "MutexInitialization",
    "MutexLease",
    "OperationCancelledError",
    "StoreUnavailableError",
]
