"""
Command-line interface for robin-sync.

``run`` is the long-lived daemon entry point; the other commands are for
operators checking or nudging the credential state by hand.
"""
from __future__ import annotations

from datetime import datetime, timezone
from typing import Optional

import typer
from rich.console import Console
from rich.table import Table
from typer import Argument, Option
from typing_extensions import Annotated

from robin_sync.application.credentials import BEARER_OVERRIDE_ENV, REFRESH_OVERRIDE_ENV, CredentialManager
from robin_sync.application.exceptions import SyncError
from robin_sync.application.scheduler import SyncScheduler
from robin_sync.application.startup import check_required_settings
from robin_sync.config import get_env, settings
from robin_sync.domain.document_store import DocumentStore
from robin_sync.domain.entities import TOKENS_DOCUMENT, TokenPair
from robin_sync.infrastructure import log_utils
from robin_sync.infrastructure.di_container import get_container
from robin_sync.infrastructure.document_store import JsonFileDocumentStore

REQUIRED_FOR_SYNC = ("UPLOAD_ENDPOINT",)

console = Console()

app = typer.Typer(
    name="robin-sync",
    help="Sync Robinhood positions and market data to an upload endpoint.",
    add_completion=False,
)


def _startup_check() -> None:
    try:
        check_required_settings(REQUIRED_FOR_SYNC)
    except SyncError as exc:
        log_utils.log_message(str(exc), "ERROR")
        typer.echo(str(exc), err=True)
        raise typer.Exit(code=2)


@app.command()
def run(
    interval: Annotated[
        Optional[float],
        Option("--interval", help="Seconds between the end of one cycle and the start of the next."),
    ] = None,
) -> None:
    """Run one sync cycle now and then forever at a fixed interval."""
    _startup_check()
    scheduler: SyncScheduler = get_container().resolve(SyncScheduler)
    try:
        scheduler.start(interval if interval is not None else settings.SYNC_INTERVAL_SECONDS)
    except KeyboardInterrupt:
        scheduler.stop()
        log_utils.log_message("Interrupted; scheduler stopped.", "INFO")


@app.command()
def sync() -> None:
    """Run exactly one refresh-and-upload cycle."""
    _startup_check()
    scheduler: SyncScheduler = get_container().resolve(SyncScheduler)
    result = scheduler.run_cycle()
    typer.echo(result.summary_line())
    raise typer.Exit(code=0 if result.success else 1)


@app.command("refresh-tokens")
def refresh_tokens() -> None:
    """Refresh credentials and persist the new token pair without syncing."""
    credentials: CredentialManager = get_container().resolve(CredentialManager)
    try:
        tokens = credentials.ensure_fresh_tokens()
    except SyncError as exc:
        log_utils.log_message(f"Failed to refresh tokens: {exc}", "ERROR")
        typer.echo(f"[FAIL] {exc.kind}: {exc}", err=True)
        raise typer.Exit(code=1)
    typer.echo("[OK] Tokens refreshed.")
    typer.echo(tokens.masked())


@app.command()
def status() -> None:
    """Show the stored token document and which overrides are configured."""
    container = get_container()
    store: JsonFileDocumentStore = container.resolve(DocumentStore)
    credentials: CredentialManager = container.resolve(CredentialManager)
    path = store.path_for(TOKENS_DOCUMENT)

    table = Table(title="robin-sync credentials")
    table.add_column("Item")
    table.add_column("State")

    if path.exists():
        try:
            tokens = credentials.stored()
        except SyncError as exc:
            table.add_row("Token document", f"unreadable: {exc}")
            tokens = TokenPair()
        else:
            modified = datetime.fromtimestamp(path.stat().st_mtime, tz=timezone.utc)
            table.add_row("Token document", f"{path} (updated {modified:%Y-%m-%d %H:%M} UTC)")
    else:
        table.add_row("Token document", f"{path} (missing)")
        tokens = TokenPair()

    table.add_row("Stored bearer", "present" if tokens.bearer else "absent")
    table.add_row("Stored refresh", "present" if tokens.refresh else "absent")
    table.add_row("Stored pair", "complete" if tokens.is_complete else "incomplete")
    table.add_row(BEARER_OVERRIDE_ENV, "set" if get_env(BEARER_OVERRIDE_ENV) else "not set")
    table.add_row(REFRESH_OVERRIDE_ENV, "set" if get_env(REFRESH_OVERRIDE_ENV) else "not set")
    table.add_row("UPLOAD_ENDPOINT", str(get_env("UPLOAD_ENDPOINT") or "not set"))
    console.print(table)

    ready = bool(tokens.refresh or get_env(REFRESH_OVERRIDE_ENV))
    raise typer.Exit(code=0 if ready else 1)


@app.command(help="View the most recent lines from the history log.")
def logs(
    number: int = Argument(50, help="Number of log lines to show (default: 50)."),
) -> None:
    log_file = settings.log_path
    if not log_file.exists():
        typer.echo(f"Log file not found: {log_file}")
        raise typer.Exit(code=1)

    with log_file.open("r", encoding="utf-8") as f:
        lines = f.readlines()
    for line in lines[-number:]:
        typer.echo(line.rstrip())


if __name__ == "__main__":
    app()
