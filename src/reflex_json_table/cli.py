"""CLI for reflex-json-table -- browse a data set as a searchable table.

Usage::

    # Open a JSON {headers, data} file in the browser
    reflex-json-table view files.json

    # Any tabular file polars can read works too
    reflex-json-table view data.parquet --title "Weights"

    # Print one page in the terminal, searched and sorted
    reflex-json-table show files.json --search report --sort size --asc --page 2
"""

import os
import subprocess
import sys
import tempfile
from pathlib import Path
from typing import Annotated, Optional

import typer

from reflex_json_table.engine import DEFAULT_PAGE_SIZE, compute_view, format_cell
from reflex_json_table.loader import read_dataset
from reflex_json_table.models import Dataset, QueryState, SortDirection

app = typer.Typer(
    name="reflex-json-table",
    help="Browse a data set as a searchable, sortable, paginated table.",
    no_args_is_help=True,
)


def _read_or_exit(source: str) -> Dataset:
    """Strictly load *source*, turning load errors into a CLI exit."""
    try:
        return read_dataset(source)
    except (OSError, ValueError) as exc:
        typer.echo(f"Error: {exc}", err=True)
        raise typer.Exit(code=1)


def _build_app_code(source: str, title: str, height: str) -> str:
    """Generate the Reflex app module source code."""
    # Escape backslashes and quotes for embedding in Python string literal
    safe_source = source.replace("\\", "\\\\").replace('"', '\\"')

    # Use placeholder substitution to avoid escaping nightmares.
    template = _APP_TEMPLATE
    template = template.replace("__SAFE_SOURCE__", safe_source)
    template = template.replace("__TITLE__", title.replace('"', '\\"'))
    template = template.replace("__HEIGHT__", height)
    return template


# ---------------------------------------------------------------------------
# App template -- uses __PLACEHOLDER__ tokens for dynamic parts.
# ---------------------------------------------------------------------------

_APP_TEMPLATE = '''"""Auto-generated table viewer app."""

import reflex as rx

from reflex_json_table import JsonTableMixin, json_table


class ViewerState(JsonTableMixin, rx.State):
    """Viewer state using JsonTableMixin for search, sort and paging."""

    def load_data(self):
        yield from self.load_json_table("__SAFE_SOURCE__")


def index() -> rx.Component:
    return rx.box(
        rx.heading("__TITLE__", size="5", margin_bottom="0.5em"),
        rx.cond(
            ViewerState.json_table_loaded,
            json_table(ViewerState, height="__HEIGHT__"),
            rx.text("Loading...", color="var(--gray-9)"),
        ),
        padding="1em",
        width="90%",
        max_width="1200px",
        margin="0 auto",
    )


app = rx.App()
app.add_page(index, on_load=ViewerState.load_data)
'''


@app.command()
def view(
    source: Annotated[str, typer.Argument(help="Path or http(s) URL of the data (JSON, CSV, TSV, Parquet, ...)")],
    height: Annotated[str, typer.Option("--height", "-h", help="CSS height of the grid")] = "calc(100vh - 160px)",
    port: Annotated[int, typer.Option("--port", "-p", help="Port for the Reflex frontend")] = 3000,
    title: Annotated[Optional[str], typer.Option("--title", "-t", help="Page title")] = None,
) -> None:
    """View a data set in an interactive browser table.

    The data is validated before the app is generated, so a broken file is
    reported here rather than as an empty table.
    """
    is_url = source.startswith(("http://", "https://"))
    if not is_url:
        source = str(Path(source).resolve())
    _read_or_exit(source)

    if title is None:
        title = f"{Path(source).name if not is_url else source} -- Table Viewer"

    app_code = _build_app_code(source, title, height)

    # Create a temporary Reflex app directory.
    tmp_dir = Path(tempfile.mkdtemp(prefix="json_table_viewer_"))
    app_name = "viewer_app"
    app_pkg = tmp_dir / app_name
    app_pkg.mkdir()
    (app_pkg / "__init__.py").write_text("")
    (app_pkg / f"{app_name}.py").write_text(app_code)

    rxconfig_code = f"""import reflex as rx
config = rx.Config(app_name="{app_name}", frontend_port={port})
"""
    (tmp_dir / "rxconfig.py").write_text(rxconfig_code)

    typer.echo(f"Launching viewer for: {source}")
    typer.echo(f"Port: {port}")

    os.chdir(tmp_dir)

    # Step 1: initialise the Reflex project (creates .web/ with node_modules).
    # We use subprocess because reflex's CLI calls sys.exit() on completion.
    typer.echo("Initializing Reflex project...")
    subprocess.run(
        [sys.executable, "-m", "reflex", "init"],
        cwd=str(tmp_dir),
        check=True,
    )

    # Step 2: run the app via exec (replaces this process).
    typer.echo("Starting viewer...")
    os.execvp(sys.executable, [sys.executable, "-m", "reflex", "run"])


@app.command()
def show(
    source: Annotated[str, typer.Argument(help="Path or http(s) URL of the data")],
    search: Annotated[str, typer.Option("--search", "-s", help="Case-insensitive text to search for")] = "",
    sort: Annotated[Optional[str], typer.Option("--sort", help="Field id to sort on (default: last field)")] = None,
    ascending: Annotated[bool, typer.Option("--asc/--desc", help="Sort direction")] = False,
    page: Annotated[int, typer.Option("--page", "-n", min=1, help="1-indexed page to print")] = 1,
    page_size: Annotated[int, typer.Option("--page-size", min=1, help="Records per page")] = DEFAULT_PAGE_SIZE,
) -> None:
    """Print one page of the table as tab-separated text.

    Values are rendered with their column formatters.  The last line
    summarises the match count and page position.
    """
    dataset = _read_or_exit(source)

    if sort is None and dataset.schema:
        sort = dataset.schema[-1].id
    state = QueryState(
        raw_search_text=search,
        committed_search_text=search,
        sort_field_id=sort,
        sort_direction=SortDirection.ASCENDING if ascending else SortDirection.DESCENDING,
        current_page=page,
    )
    result = compute_view(dataset, state, page_size)

    typer.echo("\t".join(f.label for f in dataset.schema))
    for record in result.page_records:
        typer.echo("\t".join(format_cell(f, record) for f in dataset.schema))
    typer.echo(f"{result.total_matching} rows | page {page}/{result.total_pages}")


def main() -> None:
    """Entry point for the CLI."""
    app()


if __name__ == "__main__":
    main()
