"""Shared plumbing for CLI commands."""

from __future__ import annotations

import asyncio
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from typing import TypeVar

import typer
from rich.console import Console

from leasemutex.config import settings
from leasemutex.core.errors import MutexError
from leasemutex.store.base import LockRecordStore
from leasemutex.store.factory import create_lock_store

T = TypeVar("T")

console = Console()
err_console = Console(stderr=True)

EXIT_CONTENDED = 1
EXIT_ERROR = 2


@dataclass
class CliState:
    """Options given to the root command."""

    backend: str | None = None
    timeout: float | None = None


def get_state(ctx: typer.Context) -> CliState:
    obj = ctx.find_object(CliState)
    return obj if obj is not None else CliState()


def open_store(ctx: typer.Context) -> LockRecordStore:
    """Create the store selected on the command line or in settings."""
    return create_lock_store(settings, backend=get_state(ctx).backend)


def run_with_store(ctx: typer.Context, body: Callable[[LockRecordStore], Awaitable[T]]) -> T:
    """Run ``body`` against a fresh store, mapping failures to exit code 2."""

    async def runner() -> T:
        store = open_store(ctx)
        try:
            return await body(store)
        finally:
            await store.close()

    try:
        return asyncio.run(runner())
    except MutexError as exc:
        err_console.print(f"[red]Error:[/red] {exc}")
        raise typer.Exit(code=EXIT_ERROR) from exc
    except ValueError as exc:
        err_console.print(f"[red]Configuration error:[/red] {exc}")
        raise typer.Exit(code=EXIT_ERROR) from exc


def resolve_timeout(ctx: typer.Context, timeout: float | None) -> float | None:
    if timeout is not None:
        return timeout
    state_timeout = get_state(ctx).timeout
    return state_timeout if state_timeout is not None else settings.operation_timeout
