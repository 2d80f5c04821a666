"""CLI commands for leasemutex.

Provides command-line interface using Typer:
- leasemutex init: Create lock records
- leasemutex acquire: Try once to acquire a lock
- leasemutex release: Release a lock
- leasemutex status: Show a lock record
- leasemutex demo: Acquire/contend/release walkthrough

Usage:
    leasemutex --help
    leasemutex init reports
    leasemutex acquire host-1 --lock reports --lease 60
    leasemutex --backend cosmos status --lock reports
"""

from __future__ import annotations

import typer

from leasemutex.cli.acquire_cmd import acquire
from leasemutex.cli.common import CliState
from leasemutex.cli.demo_cmd import demo
from leasemutex.cli.init_cmd import init
from leasemutex.cli.release_cmd import release
from leasemutex.cli.status_cmd import status
from leasemutex.config import settings
from leasemutex.observability.logging import configure_logging

# Main CLI application
app = typer.Typer(
    name="leasemutex",
    help="leasemutex: lease-based distributed mutex",
    no_args_is_help=True,
)

# Add subcommands
app.command("init")(init)
app.command("acquire")(acquire)
app.command("release")(release)
app.command("status")(status)
app.command("demo")(demo)


@app.callback()
def callback(
    ctx: typer.Context,
    backend: str | None = typer.Option(
        None,
        "--backend",
        "-b",
        help="Lock store: memory, redis, cosmos (default from LEASEMUTEX_STORE_BACKEND)",
    ),
    timeout: float | None = typer.Option(
        None,
        "--timeout",
        help="Default round-trip timeout in seconds",
    ),
    log_level: str | None = typer.Option(
        None,
        "--log-level",
        help="Log level: debug, info, warning, error",
    ),
    json_logs: bool | None = typer.Option(
        None,
        "--json-logs/--console-logs",
        help="Emit logs as JSON",
    ),
) -> None:
    """leasemutex: lease-based distributed mutex."""
    try:
        configure_logging(
            json_format=settings.log_json if json_logs is None else json_logs,
            level=log_level or settings.log_level,
        )
    except ValueError as exc:
        raise typer.BadParameter(str(exc), param_hint="--log-level") from exc
    ctx.obj = CliState(backend=backend, timeout=timeout)


def main() -> None:
    """Entry point for the CLI."""
    app()


if __name__ == "__main__":
    main()
