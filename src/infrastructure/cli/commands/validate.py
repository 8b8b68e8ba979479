"""Validate environment and configuration for DupeWarden."""

from __future__ import annotations

import asyncio
import logging
import tempfile
from pathlib import Path
from typing import Any

import typer
from rich.console import Console
from rich.table import Table

from src.infrastructure.adapters.exiftool_normalizer import ExiftoolNormalizerAdapter
from src.infrastructure.bootstrap import build_normalizer
from src.infrastructure.config.settings import Settings

app = typer.Typer(help="Validate environment and configuration")
console = Console()
logger = logging.getLogger(__name__)

# Smallest valid GIF: exiftool must be able to round-trip it
_PROBE_IMAGE = bytes.fromhex(
    "47494638396101000100800000000000ffffff21f90401000000002c00000000010001000002024401003b"
)


@app.command()
def run(
    config_path: str | None = typer.Option(None, help="Path to dupewarden.toml configuration file"),
) -> None:
    """
    Validate configuration, the metadata normalizer and ledger storage.

    Checks:
    - Configuration loads and policies are valid
    - exiftool is installed and strips a probe image
    - Ledger directory is writable

    Examples:
        dupewarden validate run
    """
    try:
        settings = Settings.from_toml(config_path)
    except Exception as e:
        console.print(f"[red]Error loading configuration: {e}[/red]")
        raise typer.Exit(1)

    results: list[dict[str, Any]] = [
        _check_policies(settings),
        _check_normalizer(build_normalizer(settings)),
        _check_ledger_dir(Path(settings.ledger.dir)),
    ]

    _display_results_table(results)

    if all(r["status"] in ("PASS", "WARN") for r in results):
        console.print("\n[green]✓ All validation checks passed![/green]")
        raise typer.Exit(0)
    console.print("\n[red]✗ Some validation checks failed. See details above.[/red]")
    raise typer.Exit(1)


def _check_policies(settings: Settings) -> dict[str, Any]:
    try:
        intake = settings.intake_policy()
        settings.enforcement_policy()
    except ValueError as e:
        return {
            "check": "Policies",
            "status": "FAIL",
            "message": str(e),
            "guidance": "Fix the [intake] and [enforcement] sections of dupewarden.toml",
        }
    return {
        "check": "Policies",
        "status": "PASS",
        "message": (
            f"pool_limit={intake.pool_limit}, min_size={intake.min_size}, "
            f"normalize_max_bytes={intake.normalize_max_bytes}, allow_list={len(intake.allow_list)}"
        ),
        "guidance": None,
    }


def _check_normalizer(normalizer: ExiftoolNormalizerAdapter) -> dict[str, Any]:
    if not normalizer.is_available():
        return {
            "check": "Metadata Normalizer",
            "status": "WARN",
            "message": f"'{normalizer.executable}' not found; images will use checksum fingerprints",
            "guidance": (
                "Install exiftool (e.g. `apt install libimage-exiftool-perl` or `brew install exiftool`)\n"
                "  or point DUPEWARDEN_EXIFTOOL at the binary."
            ),
        }

    async def _probe() -> int:
        async def _chunks():
            yield _PROBE_IMAGE

        total = 0
        async for block in normalizer.strip(_chunks()):
            total += len(block)
        return total

    try:
        stripped = asyncio.run(_probe())
    except Exception as e:
        return {
            "check": "Metadata Normalizer",
            "status": "FAIL",
            "message": f"Normalizer failed on probe image: {e}",
            "guidance": f"Run `{normalizer.executable} {' '.join(normalizer.args)} < image.gif` to see the error",
        }
    return {
        "check": "Metadata Normalizer",
        "status": "PASS",
        "message": f"{normalizer.executable} stripped probe image ({stripped} bytes)",
        "guidance": None,
    }


def _check_ledger_dir(ledger_dir: Path) -> dict[str, Any]:
    try:
        ledger_dir.mkdir(parents=True, exist_ok=True)
        with tempfile.NamedTemporaryFile(dir=ledger_dir, prefix=".probe."):
            pass
    except OSError as e:
        return {
            "check": "Ledger Storage",
            "status": "FAIL",
            "message": f"Ledger directory {ledger_dir} is not writable: {e}",
            "guidance": "Set [ledger] dir in dupewarden.toml or DUPEWARDEN_LEDGER_DIR to a writable path",
        }
    rooms = sorted(p.name for p in ledger_dir.glob("*.hashes"))
    return {
        "check": "Ledger Storage",
        "status": "PASS",
        "message": f"{ledger_dir} writable, {len(rooms)} room ledger(s)",
        "guidance": None,
    }


def _display_results_table(results: list[dict[str, Any]]) -> None:
    """Display validation results in a formatted table."""
    table = Table(title="Validation Results", show_header=True, header_style="bold magenta")
    table.add_column("Check", style="cyan", no_wrap=True)
    table.add_column("Status", justify="center")
    table.add_column("Message", style="white")

    for result in results:
        # Use ASCII-safe characters for Windows compatibility
        status_style = {
            "PASS": "[green][PASS][/green]",
            "FAIL": "[red][FAIL][/red]",
            "WARN": "[yellow][WARN][/yellow]",
        }.get(result["status"], result["status"])

        table.add_row(
            result["check"],
            status_style,
            result["message"],
        )

    console.print()
    console.print(table)

    failed_results = [r for r in results if r["status"] in ("FAIL", "WARN") and r["guidance"]]
    if failed_results:
        console.print("\n[bold]Guidance:[/bold]")
        for result in failed_results:
            console.print(f"\n[bold]{result['check']}:[/bold]")
            console.print(result["guidance"])
