"""Lock record store factory."""

from __future__ import annotations

from leasemutex.config import Settings, settings as default_settings
from leasemutex.store.base import LockRecordStore
from leasemutex.store.cosmos import CosmosLockStore
from leasemutex.store.memory import InMemoryLockStore
from leasemutex.store.redis import RedisLockStore

SUPPORTED_BACKENDS = ("memory", "redis", "cosmos")


def create_lock_store(
    config: Settings | None = None,
    backend: str | None = None,
) -> LockRecordStore:
    """Build the lock store selected by ``backend`` or ``config.store_backend``."""
    config = config or default_settings
    store_type = (backend or config.store_backend).strip().lower()

    if store_type == "memory":
        return InMemoryLockStore()
    if store_type == "redis":
        return RedisLockStore(url=config.redis_url, key_prefix=config.redis_key_prefix)
    if store_type == "cosmos":
        if not (config.cosmos_connection_string or config.cosmos_endpoint):
            raise ValueError(
                "LEASEMUTEX_COSMOS_CONNECTION_STRING or LEASEMUTEX_COSMOS_ENDPOINT "
                "is required for store_backend='cosmos'"
            )
        return CosmosLockStore(
            endpoint=config.cosmos_endpoint,
            credential=config.cosmos_key,
            connection_string=config.cosmos_connection_string,
            database=config.cosmos_database,
            container=config.cosmos_container,
        )

    raise ValueError(
        f"Unsupported store_backend '{store_type}'. "
        f"Supported values: {', '.join(SUPPORTED_BACKENDS)}."
    )
