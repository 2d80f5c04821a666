"""Core lock record model and error types."""

from leasemutex.core.errors import (
    InvalidArgumentError,
    LockNotFoundError,
    MutexError,
    OperationCancelledError,
    StoreUnavailableError,
)
from leasemutex.core.record import EPOCH, LockRecord, validate_lease, validate_name

__all__ = [
    "EPOCH",
    "InvalidArgumentError",
    "LockNotFoundError",
    "LockRecord",
    "MutexError",
    "OperationCancelledError",
    "StoreUnavailableError",
    "validate_lease",
    "validate_name",
]
