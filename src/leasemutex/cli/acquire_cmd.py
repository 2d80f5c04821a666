"""CLI command for a single acquire attempt.

Usage:
    leasemutex acquire host-1
    leasemutex acquire host-1 --lock reports --lease 60

Exits 0 when acquired and 1 when another owner holds a live lease.
"""

from __future__ import annotations

import typer

from leasemutex.cli.common import EXIT_CONTENDED, console, resolve_timeout, run_with_store
from leasemutex.config import settings
from leasemutex.mutex import Mutex
from leasemutex.store.base import LockRecordStore


def acquire(
    ctx: typer.Context,
    owner: str = typer.Argument(..., help="Owner moniker of the caller"),
    lock: str | None = typer.Option(None, "--lock", "-l", help="Lock name"),
    lease: float | None = typer.Option(
        None,
        "--lease",
        help="Lease duration in seconds",
    ),
    timeout: float | None = typer.Option(
        None,
        "--timeout",
        "-t",
        help="Round-trip timeout in seconds",
    ),
) -> None:
    """Acquire the lock for OWNER if it is unheld or its lease has elapsed."""
    lock_name = lock if lock is not None else settings.default_lock_name
    lease_seconds = lease if lease is not None else settings.default_lease_seconds

    async def body(store: LockRecordStore) -> bool:
        mutex = Mutex(store, default_lock_name=lock_name)
        return await mutex.acquire(
            owner, lease_duration=lease_seconds, timeout=resolve_timeout(ctx, timeout)
        )

    if run_with_store(ctx, body):
        console.print(f"[green]Acquired[/green] {lock_name} as {owner} for {lease_seconds}s")
        return

    console.print(f"[yellow]Not acquired[/yellow] {lock_name}: held by another owner")
    raise typer.Exit(code=EXIT_CONTENDED)
