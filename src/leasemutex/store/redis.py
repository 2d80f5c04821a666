"""Redis lock record store.

Each lock is a hash ``{prefix}{name}`` with two fields:

- ``owner``: current holder, empty when unheld
- ``lease_expiry_ms``: lease expiry in milliseconds since the epoch

Conditional updates run as a Lua script. Redis executes scripts atomically
and the script reads ``TIME`` itself, so both the predicate and the new
expiry use the server clock.
"""

from __future__ import annotations

import logging
from collections.abc import Awaitable
from datetime import datetime, timedelta
from typing import TYPE_CHECKING, TypeVar, cast

import redis.asyncio as redis
from redis.exceptions import ConnectionError as RedisConnectionError
from redis.exceptions import TimeoutError as RedisTimeoutError

from leasemutex.core.errors import StoreUnavailableError
from leasemutex.core.record import EPOCH, LockRecord
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

if TYPE_CHECKING:
    from redis.asyncio import Redis

logger = logging.getLogger(__name__)

T = TypeVar("T")

DEFAULT_KEY_PREFIX = "leasemutex:lock:"

PREDICATE_UNHELD_OR_EXPIRED = "unheld_or_expired"
PREDICATE_OWNED_BY = "owned_by"

# KEYS[1] lock key
# ARGV[1] predicate kind, ARGV[2] expected owner, ARGV[3] new owner, ARGV[4] lease ms
CONDITIONAL_UPDATE_SCRIPT = """
if redis.call("EXISTS", KEYS[1]) == 0 then
    return -1
end
local t = redis.call("TIME")
local now = tonumber(t[1]) * 1000 + math.floor(tonumber(t[2]) / 1000)
local owner = redis.call("HGET", KEYS[1], "owner") or ""
local expiry = tonumber(redis.call("HGET", KEYS[1], "lease_expiry_ms") or "0") or 0
local ok
if ARGV[1] == "unheld_or_expired" then
    ok = owner == "" or expiry < now
else
    ok = owner == ARGV[2]
end
if not ok then
    return 0
end
redis.call("HSET", KEYS[1], "owner", ARGV[3], "lease_expiry_ms", tostring(now + tonumber(ARGV[4])))
return 1
"""

# KEYS[1] lock key; ARGV[1] owner, ARGV[2] lease expiry ms
CREATE_SCRIPT = """
if redis.call("EXISTS", KEYS[1]) == 1 then
    return 0
end
redis.call("HSET", KEYS[1], "owner", ARGV[1], "lease_expiry_ms", ARGV[2])
return 1
"""

_TRANSIENT_ERRORS = (RedisConnectionError, RedisTimeoutError)


def _await_redis(result: Awaitable[T] | T) -> Awaitable[T]:
    """Cast redis-py async results to an awaitable for mypy."""
    return cast(Awaitable[T], result)


def _decode(value: bytes | str | None) -> str | None:
    if value is None:
        return None
    return value.decode() if isinstance(value, bytes) else value


def _to_millis(value: datetime) -> int:
    return int((value - EPOCH) / timedelta(milliseconds=1))


def _from_millis(value: int) -> datetime:
    return EPOCH + timedelta(milliseconds=value)


class RedisLockStore(LockRecordStore):
    """Lock records in Redis hashes, updated by server-side Lua."""

    name = "redis"

    def __init__(
        self,
        client: Redis | None = None,
        url: str = "redis://localhost:6379/0",
        key_prefix: str = DEFAULT_KEY_PREFIX,
    ) -> None:
        self.url = url
        self.key_prefix = key_prefix
        self._client = client
        self._owns_client = client is None

    def _get_client(self) -> Redis:
        """Get or create the Redis client."""
        if self._client is None:
            self._client = redis.from_url(  # type: ignore[no-untyped-call]
                self.url,
                encoding="utf-8",
                decode_responses=False,
            )
        return self._client

    def key(self, lock_name: str) -> str:
        """Redis key holding the record for ``lock_name``."""
        return f"{self.key_prefix}{lock_name}"

    async def conditional_update(
        self,
        key: str,
        predicate: Predicate,
        update: LeaseUpdate,
    ) -> UpdateResult:
        if isinstance(predicate, UnheldOrExpired):
            kind, expected = PREDICATE_UNHELD_OR_EXPIRED, ""
        elif isinstance(predicate, OwnedBy):
            kind, expected = PREDICATE_OWNED_BY, predicate.owner
        else:
            raise TypeError(f"Unsupported predicate: {predicate!r}")

        lease_ms = int(update.lease / timedelta(milliseconds=1))
        client = self._get_client()
        try:
            result = await _await_redis(
                client.eval(
                    CONDITIONAL_UPDATE_SCRIPT,
                    1,
                    self.key(key),
                    kind,
                    expected,
                    update.owner,
                    str(lease_ms),
                )
            )
        except _TRANSIENT_ERRORS as exc:
            logger.warning("Redis conditional update failed for [%s]: %s", key, exc)
            return UpdateResult.unavailable(exc)

        code = int(result)
        if code == 1:
            return APPLIED
        if code == 0:
            return PREDICATE_FAILED
        return NOT_FOUND

    async def read(self, key: str) -> LockRecord | None:
        client = self._get_client()
        try:
            fields = await _await_redis(client.hgetall(self.key(key)))
        except _TRANSIENT_ERRORS as exc:
            logger.warning("Redis read failed for [%s]: %s", key, exc)
            raise StoreUnavailableError(key, str(exc)) from exc
        if not fields:
            return None

        decoded = {_decode(k): _decode(v) for k, v in fields.items()}
        expiry = decoded.get("lease_expiry_ms")
        return LockRecord(
            id=key,
            owner=decoded.get("owner") or "",
            lease_expiry=_from_millis(int(expiry)) if expiry else EPOCH,
        )

    async def create_if_not_exists(self, record: LockRecord) -> bool:
        client = self._get_client()
        try:
            created = await _await_redis(
                client.eval(
                    CREATE_SCRIPT,
                    1,
                    self.key(record.id),
                    record.owner,
                    str(_to_millis(record.lease_expiry)),
                )
            )
        except _TRANSIENT_ERRORS as exc:
            logger.warning("Redis create failed for [%s]: %s", record.id, exc)
            raise StoreUnavailableError(record.id, str(exc)) from exc
        return bool(int(created))

    async def close(self) -> None:
        """Close the client if this store created it."""
        if self._client is not None and self._owns_client:
            await self._client.aclose()
            self._client = None

