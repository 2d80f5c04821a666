"""Unit tests for the Cosmos DB lock store backend."""

from __future__ import annotations

from datetime import datetime, timedelta, timezone
from typing import Any

import pytest
from azure.core.exceptions import ServiceRequestError
from azure.cosmos.exceptions import (
    CosmosHttpResponseError,
    CosmosResourceExistsError,
    CosmosResourceNotFoundError,
)

from leasemutex.core.errors import StoreUnavailableError
from leasemutex.core.record import LockRecord
from leasemutex.store.base import LeaseUpdate, OwnedBy, UnheldOrExpired, UpdateOutcome
from leasemutex.store.cosmos import CosmosLockStore, build_filter_predicate


class FakeContainer:
    """Records patch calls; answers with a configured error, if any."""

    def __init__(self) -> None:
        self.items: dict[str, dict[str, Any]] = {}
        self.patches: list[dict[str, Any]] = []
        self.patch_error: Exception | None = None
        self.create_error: Exception | None = None
        self.read_error: Exception | None = None

    async def patch_item(self, item: str, partition_key: str, **kwargs: Any) -> dict[str, Any]:
        self.patches.append({"item": item, "partition_key": partition_key, **kwargs})
        if self.patch_error is not None:
            raise self.patch_error
        return self.items.get(item, {})

    async def read_item(self, item: str, partition_key: str) -> dict[str, Any]:
        if self.read_error is not None:
            raise self.read_error
        if item not in self.items:
            raise CosmosResourceNotFoundError(status_code=404, message="missing")
        return self.items[item]

    async def create_item(self, body: dict[str, Any]) -> dict[str, Any]:
        if self.create_error is not None:
            raise self.create_error
        self.items[body["id"]] = body
        return body


class FakeDatabase:
    def __init__(self, container: FakeContainer) -> None:
        self.container = container
        self.created_containers: list[dict[str, Any]] = []

    def get_container_client(self, name: str) -> FakeContainer:
        return self.container

    async def create_container_if_not_exists(self, **kwargs: Any) -> FakeContainer:
        self.created_containers.append(kwargs)
        return self.container


class FakeCosmosClient:
    def __init__(self) -> None:
        self.container = FakeContainer()
        self.database = FakeDatabase(self.container)
        self.created_databases: list[str] = []
        self.setup_error: Exception | None = None
        self.closed = False

    def get_database_client(self, name: str) -> FakeDatabase:
        return self.database

    async def create_database_if_not_exists(self, id: str) -> FakeDatabase:
        if self.setup_error is not None:
            raise self.setup_error
        self.created_databases.append(id)
        return self.database

    async def close(self) -> None:
        self.closed = True


@pytest.fixture
def client() -> FakeCosmosClient:
    return FakeCosmosClient()


@pytest.fixture
def store(client: FakeCosmosClient) -> CosmosLockStore:
    return CosmosLockStore(client=client, database="db", container="mutex")  # type: ignore[arg-type]


def test_unheld_or_expired_filter_uses_server_clock() -> None:
    assert build_filter_predicate(UnheldOrExpired()) == (
        'FROM c WHERE c.owner = "" OR c.leaseExpiry < GetCurrentDateTime()'
    )


def test_owned_by_filter_escapes_owner() -> None:
    assert build_filter_predicate(OwnedBy('host "1"')) == 'FROM c WHERE c.owner = "host \\"1\\""'


async def test_acquire_patch(store: CosmosLockStore, client: FakeCosmosClient) -> None:
    """Acquire patches owner and expiry with the unheld-or-expired filter."""
    before = datetime.now(timezone.utc)

    result = await store.conditional_update("L", UnheldOrExpired(), LeaseUpdate("host-1", timedelta(seconds=30)))

    assert result.applied
    (patch,) = client.container.patches
    assert patch["item"] == "L"
    assert patch["partition_key"] == "L"
    assert patch["filter_predicate"] == build_filter_predicate(UnheldOrExpired())

    owner_op, expiry_op = patch["patch_operations"]
    assert owner_op == {"op": "set", "path": "/owner", "value": "host-1"}
    assert expiry_op["path"] == "/leaseExpiry"
    assert expiry_op["value"] > before.strftime("%Y-%m-%dT%H:%M:%S")


@pytest.mark.parametrize(
    ("error", "outcome"),
    [
        (CosmosHttpResponseError(status_code=412, message="filter"), UpdateOutcome.PREDICATE_FAILED),
        (CosmosResourceNotFoundError(status_code=404, message="gone"), UpdateOutcome.NOT_FOUND),
        (CosmosHttpResponseError(status_code=429, message="throttled"), UpdateOutcome.UNAVAILABLE),
        (CosmosHttpResponseError(status_code=503, message="down"), UpdateOutcome.UNAVAILABLE),
        (ServiceRequestError("dns"), UpdateOutcome.UNAVAILABLE),
    ],
)
async def test_patch_error_mapping(
    store: CosmosLockStore,
    client: FakeCosmosClient,
    error: Exception,
    outcome: UpdateOutcome,
) -> None:
    client.container.patch_error = error

    result = await store.conditional_update("L", OwnedBy("host-1"), LeaseUpdate(""))

    assert result.outcome is outcome
    if outcome is UpdateOutcome.UNAVAILABLE:
        assert result.error is error


async def test_non_transient_http_error_propagates(
    store: CosmosLockStore, client: FakeCosmosClient
) -> None:
    client.container.patch_error = CosmosHttpResponseError(status_code=401, message="auth")

    with pytest.raises(CosmosHttpResponseError):
        await store.conditional_update("L", OwnedBy("host-1"), LeaseUpdate(""))


async def test_read_and_create(store: CosmosLockStore, client: FakeCosmosClient) -> None:
    assert await store.read("L") is None

    assert await store.create_if_not_exists(LockRecord.unheld("L")) is True
    assert client.container.items["L"] == {
        "id": "L",
        "owner": "",
        "leaseExpiry": "1970-01-01T00:00:00.0000000Z",
    }

    assert await store.create_if_not_exists(LockRecord.unheld("L")) is False
    assert await store.read("L") == LockRecord.unheld("L")


async def test_create_race_counts_as_existing(
    store: CosmosLockStore, client: FakeCosmosClient
) -> None:
    client.container.create_error = CosmosResourceExistsError(status_code=409, message="conflict")

    assert await store.create_if_not_exists(LockRecord.unheld("L")) is False


async def test_ensure_container(store: CosmosLockStore, client: FakeCosmosClient) -> None:
    await store.ensure_container()

    assert client.created_databases == ["db"]
    (kwargs,) = client.database.created_containers
    assert kwargs["id"] == "mutex"
    assert kwargs["partition_key"]["paths"] == ["/id"]


async def test_injected_client_not_closed(store: CosmosLockStore, client: FakeCosmosClient) -> None:
    await store.close()
    assert client.closed is False


def test_missing_configuration_rejected() -> None:
    with pytest.raises(ValueError):
        CosmosLockStore()._get_client()


@pytest.mark.parametrize(
    "error",
    [
        ServiceRequestError("connection refused"),
        CosmosHttpResponseError(status_code=503, message="down"),
        CosmosHttpResponseError(status_code=429, message="throttled"),
    ],
)
async def test_read_outage_raises_store_unavailable(
    store: CosmosLockStore, client: FakeCosmosClient, error: Exception
) -> None:
    client.container.read_error = error

    with pytest.raises(StoreUnavailableError) as exc_info:
        await store.read("L")

    assert exc_info.value.lock_name == "L"
    assert exc_info.value.__cause__ is error


async def test_read_non_transient_error_propagates(
    store: CosmosLockStore, client: FakeCosmosClient
) -> None:
    client.container.read_error = CosmosHttpResponseError(status_code=401, message="auth")

    with pytest.raises(CosmosHttpResponseError):
        await store.read("L")


async def test_create_outage_raises_store_unavailable(
    store: CosmosLockStore, client: FakeCosmosClient
) -> None:
    client.container.create_error = ServiceRequestError("connection reset")

    with pytest.raises(StoreUnavailableError):
        await store.create_if_not_exists(LockRecord.unheld("L"))


async def test_ensure_container_outage(store: CosmosLockStore, client: FakeCosmosClient) -> None:
    client.setup_error = ServiceRequestError("dns")

    with pytest.raises(StoreUnavailableError):
        await store.ensure_container()
