"""CLI command for inspecting a lock record.

Usage:
    leasemutex status
    leasemutex status --lock reports --format json
"""

from __future__ import annotations

import json
from datetime import datetime, timezone
from enum import Enum

import typer
from rich.table import Table

from leasemutex.cli.common import EXIT_ERROR, console, err_console, run_with_store
from leasemutex.config import settings
from leasemutex.core.record import LockRecord, format_timestamp, validate_name
from leasemutex.store.base import LockRecordStore


class OutputFormat(str, Enum):
    TEXT = "text"
    JSON = "json"


def status(
    ctx: typer.Context,
    lock: str | None = typer.Option(None, "--lock", "-l", help="Lock name"),
    output_format: OutputFormat = typer.Option(
        OutputFormat.TEXT,
        "--format",
        "-f",
        case_sensitive=False,
        help="Output format",
    ),
) -> None:
    """Read the lock record.

    Held is judged against the local clock, so it is indicative only.
    """
    lock_name = lock if lock is not None else settings.default_lock_name

    async def body(store: LockRecordStore) -> LockRecord | None:
        return await store.read(validate_name(lock_name, "lock_name"))

    record = run_with_store(ctx, body)
    if record is None:
        err_console.print(f"[red]Lock '{lock_name}' not found[/red]; run 'leasemutex init'")
        raise typer.Exit(code=EXIT_ERROR)

    held = record.is_held(datetime.now(timezone.utc))

    if output_format is OutputFormat.JSON:
        typer.echo(json.dumps({**record.to_document(), "held": held}, indent=2))
        return

    table = Table(title=f"Mutex {lock_name}")
    table.add_column("Field", style="cyan")
    table.add_column("Value")
    table.add_row("Owner", record.holder or "-")
    table.add_row("Lease expiry", format_timestamp(record.lease_expiry))
    table.add_row("Held", "[green]yes[/green]" if held else "no")
    console.print(table)
