"""CLI command for releasing a lock.

Usage:
    leasemutex release host-1
    leasemutex release host-1 --lock reports

Exits 0 when released and 1 when OWNER is not the stored owner.
"""

from __future__ import annotations

import typer

from leasemutex.cli.common import EXIT_CONTENDED, console, resolve_timeout, run_with_store
from leasemutex.config import settings
from leasemutex.mutex import Mutex
from leasemutex.store.base import LockRecordStore


def release(
    ctx: typer.Context,
    owner: str = typer.Argument(..., help="Owner moniker used to acquire"),
    lock: str | None = typer.Option(None, "--lock", "-l", help="Lock name"),
    timeout: float | None = typer.Option(
        None,
        "--timeout",
        "-t",
        help="Round-trip timeout in seconds",
    ),
) -> None:
    """Release the lock if OWNER is its current owner."""
    lock_name = lock if lock is not None else settings.default_lock_name

    async def body(store: LockRecordStore) -> bool:
        mutex = Mutex(store, default_lock_name=lock_name)
        return await mutex.release(owner, timeout=resolve_timeout(ctx, timeout))

    if run_with_store(ctx, body):
        console.print(f"[green]Released[/green] {lock_name}")
        return

    console.print(f"[yellow]Not released[/yellow] {lock_name}: {owner} is not the owner")
    raise typer.Exit(code=EXIT_CONTENDED)
