"""Integration fixtures: a real Redis server.

Uses LEASEMUTEX_TEST_REDIS_URL when set, otherwise starts a throwaway
``redis:7-alpine`` container through Docker. Tests skip when neither is
available.
"""

from __future__ import annotations

import asyncio
import os
import time
from collections.abc import AsyncIterator, Iterator
from urllib.parse import urlparse

import pytest
import pytest_asyncio
import redis.asyncio as redis

from leasemutex.store.redis import RedisLockStore

REDIS_IMAGE = "redis:7-alpine"


def _published_host(base_url: str) -> str:
    if base_url.startswith(("unix://", "npipe://", "http+docker://")):
        return "localhost"
    return urlparse(base_url).hostname or "localhost"


@pytest.fixture(scope="session")
def redis_url() -> Iterator[str]:
    """URL of a Redis server for the test session."""
    configured = os.environ.get("LEASEMUTEX_TEST_REDIS_URL")
    if configured:
        yield configured
        return

    import docker
    from docker.errors import DockerException

    try:
        client = docker.from_env()
        client.ping()
    except DockerException as exc:
        pytest.skip(f"Docker not available: {exc}")

    container = client.containers.run(REDIS_IMAGE, detach=True, ports={"6379/tcp": None})
    try:
        container.reload()
        port = container.attrs["NetworkSettings"]["Ports"]["6379/tcp"][0]["HostPort"]
        yield f"redis://{_published_host(client.api.base_url)}:{port}/0"
    finally:
        container.remove(force=True, v=True)
        client.close()


async def _wait_for_redis(client: redis.Redis, timeout: float = 30.0) -> None:
    """Wait for Redis to accept connections."""
    deadline = time.monotonic() + timeout
    while True:
        try:
            await client.ping()
            return
        except (redis.ConnectionError, redis.TimeoutError):
            if time.monotonic() >= deadline:
                raise
            await asyncio.sleep(0.5)


@pytest_asyncio.fixture
async def redis_client(redis_url: str) -> AsyncIterator[redis.Redis]:
    client = redis.from_url(redis_url)
    await _wait_for_redis(client)
    yield client
    await client.flushdb()
    await client.aclose()


@pytest.fixture
def redis_store(redis_client: redis.Redis) -> RedisLockStore:
    return RedisLockStore(client=redis_client, key_prefix="leasemutex-test:")
