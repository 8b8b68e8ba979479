import asyncio
from pathlib import Path

import typer
from rich.console import Console

from src.domain.models.fingerprint_result import Unavailable
from src.infrastructure.adapters.local_upload import LocalFileUpload
from src.infrastructure.bootstrap import build_extractor
from src.infrastructure.config.settings import Settings

app = typer.Typer(help="Compute upload fingerprints")
console = Console()


@app.command()
def file(
    path: Path = typer.Argument(..., exists=True, dir_okay=False, help="File to fingerprint"),
    media_type: str | None = typer.Option(None, "--type", "-t", help="Media category (guessed from the name if omitted)"),
    checksum: str | None = typer.Option(None, help="Checksum to use as fallback (defaults to SHA-1 of the file)"),
    config_path: str | None = typer.Option(None, help="Path to dupewarden.toml configuration file"),
) -> None:
    """
    Fingerprint a local file exactly as an upload would be fingerprinted.

    Examples:
        dupewarden fingerprint file photo.jpg
        dupewarden fingerprint file clip.mp4 --checksum c1
    """
    try:
        settings = Settings.from_toml(config_path)
    except Exception as e:
        console.print(f"[red]Error loading configuration: {e}[/red]")
        raise typer.Exit(1)

    upload = LocalFileUpload(path, media_type=media_type, checksum=checksum)
    result = asyncio.run(build_extractor(settings).extract(upload))

    if isinstance(result, Unavailable):
        console.print(f"[red]No fingerprint: {result.reason}[/red]")
        raise typer.Exit(1)

    console.print(f"[cyan]{upload.id}[/cyan] type={upload.type} size={upload.size}")
    typer.echo(f"{result.provenance} {result.text()}")
