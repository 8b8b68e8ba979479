"""Inspect room ledgers."""

from __future__ import annotations

import asyncio

import typer
from rich.console import Console
from rich.table import Table

from src.domain.errors import LedgerAccessError, LedgerKeyNotFound
from src.domain.models.ledger_entry import LedgerEntry
from src.infrastructure.adapters.sqlite_ledger import SqliteLedgerRegistry
from src.infrastructure.bootstrap import build_ledger_registry
from src.infrastructure.config.settings import Settings

app = typer.Typer(help="Inspect room ledgers")
console = Console()


def _open_registry(config_path: str | None) -> SqliteLedgerRegistry:
    try:
        settings = Settings.from_toml(config_path)
    except Exception as e:
        console.print(f"[red]Error loading configuration: {e}[/red]")
        raise typer.Exit(1)
    return build_ledger_registry(settings)


@app.command()
def ledger(
    room: str = typer.Option(..., "--room", "-r", help="Room id"),
    limit: int = typer.Option(50, "--limit", "-n", help="Number of entries to display (0 for all)"),
    config_path: str | None = typer.Option(None, help="Path to dupewarden.toml configuration file"),
) -> None:
    """
    Show a room ledger: entry count and entries ordered by key.

    Examples:
        dupewarden inspect ledger --room r1
        dupewarden inspect ledger --room r1 --limit 0
    """
    registry = _open_registry(config_path)
    path = registry.ledger_path(room)
    if not path.exists():
        console.print(f"[yellow]No ledger for room '{room}' at {path}[/yellow]")
        raise typer.Exit(1)

    async def _load() -> tuple[int, list[LedgerEntry]]:
        store = registry.for_room(room)
        return await store.count(), await store.entries(limit or None)

    try:
        total, entries = asyncio.run(_load())
    except LedgerAccessError as e:
        console.print(f"[red]Error: {e}[/red]")
        raise typer.Exit(1)
    finally:
        registry.close()

    table = Table(title=f"Ledger for room {room} ({total} entries)", show_header=True, header_style="bold magenta")
    table.add_column("Key", style="cyan", overflow="fold")
    table.add_column("Kind", justify="center")
    table.add_column("Value", overflow="fold")
    for entry in entries:
        table.add_row(entry.key_text(), entry.kind, entry.value_text())

    console.print(f"[dim]{path}[/dim]")
    console.print(table)
    if len(entries) < total:
        console.print(f"[dim]Showing {len(entries)} of {total} entries[/dim]")


@app.command()
def lookup(
    key: str = typer.Argument(..., help="Upload id or fingerprint"),
    room: str = typer.Option(..., "--room", "-r", help="Room id"),
    config_path: str | None = typer.Option(None, help="Path to dupewarden.toml configuration file"),
) -> None:
    """
    Look up one key in a room ledger.

    For a fingerprint this prints the id of the upload that owns it; for an
    upload id it prints the seen marker.
    """
    registry = _open_registry(config_path)
    if not registry.ledger_path(room).exists():
        console.print(f"[yellow]No ledger for room '{room}'[/yellow]")
        raise typer.Exit(1)

    try:
        value = asyncio.run(registry.for_room(room).get(key.encode("utf-8")))
    except LedgerKeyNotFound:
        console.print(f"[yellow]'{key}' not found in room '{room}'[/yellow]")
        raise typer.Exit(1)
    except LedgerAccessError as e:
        console.print(f"[red]Error: {e}[/red]")
        raise typer.Exit(1)
    finally:
        registry.close()

    entry = LedgerEntry(key=key.encode("utf-8"), value=value)
    console.print(f"{entry.kind}: {entry.value_text()}")
