"""CLI command exercising the mutex end to end.

Initializes the default lock and a named lock, then for each: acquires it,
checks that a second owner is refused while the lease is live, and releases.

Usage:
    leasemutex demo
    leasemutex --backend memory demo --owner host-1
"""

from __future__ import annotations

import logging
import socket

import typer

from leasemutex.bootstrap import MutexInitialization
from leasemutex.cli.common import console, resolve_timeout, run_with_store
from leasemutex.config import settings
from leasemutex.mutex import Mutex
from leasemutex.store.base import LockRecordStore

logger = logging.getLogger(__name__)

NAMED_MUTEX_NAME = "named-mutex"
DEMO_LEASE_SECONDS = 1.0


async def run_demo(mutex: Mutex, owner: str, lock_names: list[str]) -> list[str]:
    """Run the walkthrough; returns the names of locks that misbehaved."""
    rival = owner[::-1] + "-x"
    failures: list[str] = []

    for name in lock_names:
        logger.info("Acquiring mutex [%s]", name)
        if not await mutex.acquire(owner, name, DEMO_LEASE_SECONDS):
            logger.warning("Mutex [%s] is held by another owner; skipping", name)
            console.print(f"[yellow]{name}: held elsewhere, skipped[/yellow]")
            continue

        console.print(f"{name}: acquired by {owner}")

        if await mutex.acquire(rival, name, DEMO_LEASE_SECONDS):
            logger.error("Acquired previously acquired mutex [%s]", name)
            console.print(f"[red]{name}: {rival} acquired a held lock[/red]")
            failures.append(name)
        else:
            console.print(f"{name}: {rival} refused while lease is live")

        if await mutex.release(owner, name):
            console.print(f"{name}: released")
        else:
            logger.error("Could not release mutex [%s]", name)
            failures.append(name)

    return failures


def demo(
    ctx: typer.Context,
    owner: str | None = typer.Option(
        None,
        "--owner",
        "-o",
        help="Owner moniker (default: host name)",
    ),
) -> None:
    """Initialize, acquire, contend and release the default and a named lock."""
    owner = owner or socket.gethostname()
    lock_names = [settings.default_lock_name, NAMED_MUTEX_NAME]

    async def body(store: LockRecordStore) -> list[str]:
        logger.info("Initializing mutex records")
        await MutexInitialization(store).initialize_many(lock_names)
        mutex = Mutex(store, default_timeout=resolve_timeout(ctx, None))
        return await run_demo(mutex, owner, lock_names)

    failures = run_with_store(ctx, body)
    if failures:
        console.print(f"[red]Demo failed for: {', '.join(failures)}[/red]")
        raise typer.Exit(code=1)

    console.print("[green]Execution completed[/green]")
