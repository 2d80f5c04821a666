"""Error taxonomy for the mutex protocol.

Contention is not an error: a lost race is reported as ``False`` by
``acquire``/``release``. Everything else is a distinct exception so callers
can tell a bootstrap problem from an outage from an unknown outcome.
"""

from __future__ import annotations


class MutexError(Exception):
    """Base class for all leasemutex errors."""


class InvalidArgumentError(MutexError, ValueError):
    """Owner, lock name or lease is missing or malformed."""

    def __init__(self, field: str, reason: str):
        self.field = field
        self.reason = reason
        super().__init__(f"Invalid {field}: {reason}")


class LockNotFoundError(MutexError):
    """The lock record does not exist; the lock was never initialized."""

    def __init__(self, lock_name: str):
        self.lock_name = lock_name
        super().__init__(
            f"Lock record '{lock_name}' not found; run initialization before use"
        )


class StoreUnavailableError(MutexError):
    """The backing store could not be reached or failed transiently."""

    def __init__(self, lock_name: str, detail: str = ""):
        self.lock_name = lock_name
        self.detail = detail
        message = f"Lock store unavailable for '{lock_name}'"
        if detail:
            message = f"{message}: {detail}"
        super().__init__(message)


class OperationCancelledError(MutexError):
    """The store round trip was abandoned before a result arrived.

    The write may or may not have been applied.
    """

    def __init__(self, lock_name: str, operation: str):
        self.lock_name = lock_name
        self.operation = operation
        super().__init__(
            f"{operation} on '{lock_name}' timed out before the store answered; "
            "outcome is unknown"
        )
