"""Azure Cosmos DB lock record store.

Lock records are items in a container partitioned on ``/id``. Updates use
``patch_item`` with a ``filter_predicate``: Cosmos evaluates the filter and
applies the patch as one operation and answers 412 when the filter does not
match. The filter compares against ``GetCurrentDateTime()``, so expiry is
judged by the server clock.
"""

from __future__ import annotations

import json
import logging
from datetime import datetime, timezone
from typing import Any

from azure.core.exceptions import ServiceRequestError, ServiceResponseError
from azure.cosmos import PartitionKey
from azure.cosmos.aio import ContainerProxy, CosmosClient
from azure.cosmos.exceptions import (
    CosmosHttpResponseError,
    CosmosResourceExistsError,
    CosmosResourceNotFoundError,
)

from leasemutex.core.errors import StoreUnavailableError
from leasemutex.core.record import LockRecord, format_timestamp
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

logger = logging.getLogger(__name__)

DEFAULT_DATABASE = "leasemutex"
DEFAULT_CONTAINER = "mutex"
PARTITION_KEY_PATH = "/id"

STATUS_PRECONDITION_FAILED = 412
STATUS_NOT_FOUND = 404
# Throttled, timed out, retry-with and server-side failures
_TRANSIENT_STATUS = {408, 429, 449}


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def build_filter_predicate(predicate: Predicate) -> str:
    """Translate a predicate into a Cosmos SQL filter over the stored item."""
    if isinstance(predicate, UnheldOrExpired):
        return 'FROM c WHERE c.owner = "" OR c.leaseExpiry < GetCurrentDateTime()'
    if isinstance(predicate, OwnedBy):
        # JSON string escaping is valid Cosmos SQL string literal syntax
        return f"FROM c WHERE c.owner = {json.dumps(predicate.owner)}"
    raise TypeError(f"Unsupported predicate: {predicate!r}")


def _is_transient(exc: CosmosHttpResponseError) -> bool:
    status = exc.status_code or 0
    return status in _TRANSIENT_STATUS or status >= 500


def _unavailable(operation: str, key: str, exc: Exception) -> StoreUnavailableError:
    logger.warning("Cosmos %s failed for [%s]: %s", operation, key, exc)
    return StoreUnavailableError(key, str(exc))


class CosmosLockStore(LockRecordStore):
    """Lock records as Cosmos DB items, updated by filtered patch."""

    name = "cosmos"

    def __init__(
        self,
        endpoint: str | None = None,
        credential: str | None = None,
        connection_string: str | None = None,
        database: str = DEFAULT_DATABASE,
        container: str = DEFAULT_CONTAINER,
        client: CosmosClient | None = None,
    ) -> None:
        self.endpoint = endpoint
        self.credential = credential
        self.connection_string = connection_string
        self.database = database
        self.container = container
        self._client = client
        self._owns_client = client is None
        self._container: ContainerProxy | None = None

    def _get_client(self) -> CosmosClient:
        """Get or create the CosmosClient."""
        if self._client is None:
            if self.connection_string:
                self._client = CosmosClient.from_connection_string(self.connection_string)
            elif self.endpoint:
                self._client = CosmosClient(self.endpoint, credential=self.credential)
            else:
                raise ValueError(
                    "Cosmos store requires LEASEMUTEX_COSMOS_CONNECTION_STRING "
                    "or LEASEMUTEX_COSMOS_ENDPOINT"
                )
        return self._client

    def _get_container(self) -> ContainerProxy:
        if self._container is None:
            self._container = (
                self._get_client()
                .get_database_client(self.database)
                .get_container_client(self.container)
            )
        return self._container

    async def ensure_container(self) -> None:
        """Create the database and the ``/id``-partitioned container if missing."""
        client = self._get_client()
        try:
            database = await client.create_database_if_not_exists(id=self.database)
            self._container = await database.create_container_if_not_exists(
                id=self.container,
                partition_key=PartitionKey(path=PARTITION_KEY_PATH),
            )
        except CosmosHttpResponseError as exc:
            if _is_transient(exc):
                raise _unavailable("container setup", self.container, exc) from exc
            raise
        except (ServiceRequestError, ServiceResponseError) as exc:
            raise _unavailable("container setup", self.container, exc) from exc
        logger.debug(
            "Ensured mutex container [%s] in database [%s]", self.container, self.database
        )

    async def conditional_update(
        self,
        key: str,
        predicate: Predicate,
        update: LeaseUpdate,
    ) -> UpdateResult:
        # Patch cannot compute expressions, so the new expiry uses the local clock
        lease_expiry = format_timestamp(_utcnow() + update.lease)
        operations: list[dict[str, Any]] = [
            {"op": "set", "path": "/owner", "value": update.owner},
            {"op": "set", "path": "/leaseExpiry", "value": lease_expiry},
        ]
        container = self._get_container()

        try:
            await container.patch_item(
                item=key,
                partition_key=key,
                patch_operations=operations,
                filter_predicate=build_filter_predicate(predicate),
            )
        except CosmosHttpResponseError as exc:
            if exc.status_code == STATUS_PRECONDITION_FAILED:
                return PREDICATE_FAILED
            if exc.status_code == STATUS_NOT_FOUND:
                return NOT_FOUND
            if _is_transient(exc):
                logger.warning("Cosmos patch failed for [%s]: %s", key, exc.status_code)
                return UpdateResult.unavailable(exc)
            raise
        except (ServiceRequestError, ServiceResponseError) as exc:
            logger.warning("Cosmos request failed for [%s]: %s", key, exc)
            return UpdateResult.unavailable(exc)

        return APPLIED

    async def read(self, key: str) -> LockRecord | None:
        try:
            item = await self._get_container().read_item(item=key, partition_key=key)
        except CosmosResourceNotFoundError:
            return None
        except CosmosHttpResponseError as exc:
            if _is_transient(exc):
                raise _unavailable("read", key, exc) from exc
            raise
        except (ServiceRequestError, ServiceResponseError) as exc:
            raise _unavailable("read", key, exc) from exc
        return LockRecord.from_document(item)

    async def create_if_not_exists(self, record: LockRecord) -> bool:
        if await self.read(record.id) is not None:
            logger.debug("Mutex [%s] exists", record.id)
            return False

        try:
            await self._get_container().create_item(body=record.to_document())
        except CosmosResourceExistsError:
            return False
        except CosmosHttpResponseError as exc:
            if _is_transient(exc):
                raise _unavailable("create", record.id, exc) from exc
            raise
        except (ServiceRequestError, ServiceResponseError) as exc:
            raise _unavailable("create", record.id, exc) from exc

        logger.debug("Mutex [%s] created", record.id)
        return True

    async def close(self) -> None:
        """Close the client if this store created it."""
        if self._client is not None and self._owns_client:
            await self._client.close()
            self._client = None
            self._container = None
