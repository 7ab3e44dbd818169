"""CLI for the table demo app.

Commands::

    uv run demo                        # Run the Reflex demo app
    uv run demo run                    # Same as above
    uv run demo generate --rows 5000   # Write a large synthetic data/listing.json
"""

import json
import os
import random
from pathlib import Path
from typing import Annotated

import typer

app = typer.Typer(
    name="demo",
    help="Searchable table demo app.",
    invoke_without_command=True,
)

DATA_DIR: Path = Path(__file__).resolve().parent / "data"
LISTING_PATH: Path = DATA_DIR / "listing.json"

_OWNERS: tuple[str, ...] = ("ana", "ben", "ci", "deploy", "root")
_DIRS: tuple[str, ...] = ("/home/ana/docs", "/home/ben", "/srv/app", "/srv/backups", "/tmp", "/var/log/ci")
_EXTENSIONS: tuple[str, ...] = ("txt", "pdf", "jpg", "log", "json", "tar.gz", "csv")


def _run_app() -> None:
    """Start the Reflex demo app."""
    app_dir = Path(__file__).resolve().parent.parent
    os.chdir(app_dir)

    from reflex.reflex import cli

    cli(["run"])


@app.callback(invoke_without_command=True)
def default(ctx: typer.Context) -> None:
    """Run the demo app (default when no subcommand is given)."""
    if ctx.invoked_subcommand is None:
        _run_app()


@app.command()
def run() -> None:
    """Run the Reflex demo app."""
    _run_app()


@app.command()
def generate(
    rows: Annotated[int, typer.Option("--rows", "-n", min=1, help="Number of records")] = 5000,
    seed: Annotated[int, typer.Option("--seed", help="Random seed")] = 42,
) -> None:
    """Write a synthetic file listing for the "Listing" tab.

    Some records leave out the modification time so the missing-value
    ordering is visible when sorting.
    """
    rng = random.Random(seed)
    data: list[dict[str, object]] = []
    for i in range(rows):
        record: dict[str, object] = {
            "name": f"file_{i:05d}.{rng.choice(_EXTENSIONS)}",
            "dir": rng.choice(_DIRS),
            "owner": rng.choice(_OWNERS),
            "size": int(rng.lognormvariate(10, 3)),
        }
        if rng.random() > 0.05:
            record["mtime"] = rng.randint(1_600_000_000_000, 1_710_000_000_000)
        data.append(record)

    payload = {
        "headers": [
            {"id": "name", "label": "Name", "copyFields": ["dir", "name"]},
            {"id": "dir", "label": "Directory"},
            {"id": "owner", "label": "Owner"},
            {"id": "size", "label": "Size", "format": "sizeFormat"},
            {"id": "mtime", "label": "Modified", "format": "dateFormat"},
        ],
        "data": data,
    }
    DATA_DIR.mkdir(parents=True, exist_ok=True)
    LISTING_PATH.write_text(json.dumps(payload))
    typer.echo(f"Wrote {rows:,} records to {LISTING_PATH}")
    typer.echo("Run the demo with: uv run demo")


def main() -> None:
    """Entry point for the CLI."""
    app()


if __name__ == "__main__":
    main()
