import asyncio
import logging
import uuid
from collections import Counter
from pathlib import Path

import typer
from rich.console import Console
from rich.table import Table

from src.application.dto.intake import IntakeOutcome, IntakeResult
from src.infrastructure.adapters.local_upload import ConsoleRoomAdapter, LocalFileUpload
from src.infrastructure.bootstrap import build_intake_pipeline, build_ledger_registry
from src.infrastructure.config.settings import Settings
from src.infrastructure.logging import configure_logging, set_correlation_id

app = typer.Typer(help="Feed local files through duplicate detection")
console = Console()
logger = logging.getLogger(__name__)

_OUTCOME_STYLE = {
    IntakeOutcome.DUPLICATE: "bold red",
    IntakeOutcome.FIRST_OCCURRENCE: "green",
    IntakeOutcome.FAILED: "red",
    IntakeOutcome.UNFINGERPRINTABLE: "yellow",
}


def _collect_files(source: Path) -> list[Path]:
    if source.is_file():
        return [source]
    return sorted(p for p in source.rglob("*") if p.is_file())


async def _ingest(settings: Settings, room: ConsoleRoomAdapter, uploads: list[LocalFileUpload]) -> list[IntakeResult]:
    registry = build_ledger_registry(settings)
    try:
        async with build_intake_pipeline(settings, registry=registry) as pipeline:
            return list(await asyncio.gather(*(pipeline.on_item(room, u) for u in uploads)))
    finally:
        registry.close()


@app.command()
def run(
    source: Path = typer.Argument(..., exists=True, help="File or directory whose files are treated as uploads"),
    room: str = typer.Option(..., "--room", "-r", help="Room id whose ledger is used"),
    owner: bool = typer.Option(False, "--owner", help="Treat the room as owner-moderated (timeouts)"),
    privileged: bool = typer.Option(False, "--privileged", help="Treat the room as privileged (address bans)"),
    uploader: str = typer.Option("local", help="Uploader name used in notices"),
    ip: str | None = typer.Option(None, help="Network address attached to every upload"),
    config_path: str | None = typer.Option(None, help="Path to dupewarden.toml configuration file"),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Show debug logs"),
):
    """
    Replay local files as uploads into a room.

    Files go through the real pipeline and the room's real ledger; moderation
    actions are printed instead of performed, and no file is deleted.

    Examples:
        dupewarden ingest run ./uploads --room r1 --owner
    """
    configure_logging(logging.DEBUG if verbose else logging.INFO, verbose=verbose)

    correlation_id = str(uuid.uuid4())
    set_correlation_id(correlation_id)

    try:
        settings = Settings.from_toml(config_path)
    except Exception as e:
        console.print(f"[red]Error loading configuration: {e}[/red]")
        raise typer.Exit(1)

    files = _collect_files(source)
    if not files:
        console.print(f"[yellow]No files found in {source}[/yellow]")
        raise typer.Exit(0)

    console_room = ConsoleRoomAdapter(id=room, owner=owner, privileged=privileged, console=console)
    uploads = [
        LocalFileUpload(
            path,
            upload_id=path.relative_to(source).as_posix() if source.is_dir() else path.name,
            uploader=uploader,
            ip=ip,
            console=console,
        )
        for path in files
    ]

    results = asyncio.run(_ingest(settings, console_room, uploads))

    table = Table(title=f"Room {room}", show_header=True, header_style="bold magenta")
    table.add_column("Upload", style="cyan")
    table.add_column("Outcome")
    table.add_column("Provenance")
    table.add_column("Fingerprint", overflow="fold")
    table.add_column("Owner")
    for result in results:
        style = _OUTCOME_STYLE.get(result.outcome, "white")
        table.add_row(
            result.upload_id,
            f"[{style}]{result.outcome.value}[/{style}]",
            result.provenance or "-",
            result.fingerprint or "-",
            result.owner_id or "-",
        )
    console.print(table)

    counts = Counter(r.outcome.value for r in results)
    summary = ", ".join(f"{name}={n}" for name, n in sorted(counts.items()))
    console.print(f"Processed {len(results)} uploads: {summary}")
    typer.echo(f"correlation_id={correlation_id}")
