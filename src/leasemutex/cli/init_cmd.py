"""CLI command for initializing lock records.

Usage:
    leasemutex init
    leasemutex init reports nightly-backup
"""

from __future__ import annotations

import typer

from leasemutex.bootstrap import MutexInitialization
from leasemutex.cli.common import console, run_with_store
from leasemutex.config import settings
from leasemutex.store.base import LockRecordStore


def init(
    ctx: typer.Context,
    names: list[str] | None = typer.Argument(
        None,
        help="Lock names to initialize (default: the configured default lock)",
    ),
) -> None:
    """Create the store container and seed each lock as unheld."""
    lock_names = names or [settings.default_lock_name]

    async def body(store: LockRecordStore) -> dict[str, bool]:
        return await MutexInitialization(store).initialize_many(lock_names)

    results = run_with_store(ctx, body)
    for name, created in results.items():
        status = "[green]created[/green]" if created else "[dim]exists[/dim]"
        console.print(f"{name}: {status}")
