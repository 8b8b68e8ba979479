import typer

from .commands import (
    fingerprint as fingerprint_cmd,
    ingest as ingest_cmd,
    inspect as inspect_cmd,
    validate as validate_cmd,
)

app = typer.Typer(help="DupeWarden CLI")

app.add_typer(ingest_cmd.app, name="ingest")
app.add_typer(fingerprint_cmd.app, name="fingerprint")
app.add_typer(inspect_cmd.app, name="inspect")
app.add_typer(validate_cmd.app, name="validate")


if __name__ == "__main__":
    app()
