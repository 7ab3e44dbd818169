"""Example Reflex app demonstrating the searchable table.

Three tabs:
  1. Files (JSON) -- a small ``{headers, data}`` file with ``sizeFormat``
     and ``dateFormat`` columns.  Double-click a name to copy its full
     path (``dir\\name``).
  2. Employees -- a polars DataFrame turned into a dataset with
     ``dataset_from_frame`` and bound with ``set_dataset``.
  3. Listing -- a generated listing of several thousand files, to show
     paging and debounced search on a larger data set.  Create it with
     ``uv run demo generate``.
"""

from pathlib import Path

import polars as pl
import reflex as rx

from reflex_json_table import JsonTableMixin, dataset_from_frame, json_table

DATA_DIR: Path = Path(__file__).parent / "data"
FILES_PATH: Path = DATA_DIR / "files.json"
LISTING_PATH: Path = DATA_DIR / "listing.json"


def _build_employee_frame() -> pl.DataFrame:
    """Create a sample DataFrame with employee data."""
    return pl.DataFrame(
        {
            "id": list(range(1, 13)),
            "first_name": [
                "Alice", "Bob", "Charlie", "Diana", "Eve", "Frank",
                "Grace", "Hank", "Ivy", "Jack", "Karen", "Leo",
            ],
            "department": [
                "Engineering", "Marketing", "Engineering", "Sales", "Engineering", "Marketing",
                "Sales", "Engineering", "Marketing", "Sales", "Engineering", "Marketing",
            ],
            "salary": [
                95000, 72000, 110000, 68000, 125000, 71000,
                82000, 98000, 67000, 78000, 105000, 69000,
            ],
        }
    )


# ---------------------------------------------------------------------------
# State
# ---------------------------------------------------------------------------
# One state class per table: each subclass of the mixin gets its own
# ``json_table_*`` vars and its own query session.

class FilesState(JsonTableMixin, rx.State):
    """Table over the bundled ``files.json``."""

    def load_data(self):
        yield from self.load_json_table(FILES_PATH)


class EmployeeState(JsonTableMixin, rx.State):
    """Table over an in-memory polars frame."""

    def load_data(self):
        yield from self.set_dataset(dataset_from_frame(_build_employee_frame()), page_size=5)


class ListingState(JsonTableMixin, rx.State):
    """Table over the generated listing; empty until it is generated."""

    listing_available: bool = False

    def load_data(self):
        self.listing_available = LISTING_PATH.exists()
        yield from self.load_json_table(LISTING_PATH)


# ---------------------------------------------------------------------------
# UI components
# ---------------------------------------------------------------------------

def _intro(*children: rx.Component | str) -> rx.Component:
    return rx.text(*children, margin_bottom="1em", color="var(--gray-11)")


def files_tab() -> rx.Component:
    """Files (JSON) tab content."""
    return rx.box(
        _intro(
            "Loaded from ",
            rx.code("data/files.json"),
            ". Sizes and dates are formatted for display, but search and "
            "sort work on the raw values.  Double-click a name to copy its path.",
        ),
        json_table(FilesState, height="520px"),
        padding_top="1em",
    )


def employee_tab() -> rx.Component:
    """Employees tab content."""
    return rx.box(
        _intro(
            "A polars DataFrame bound with ",
            rx.code("dataset_from_frame()"),
            ", five rows per page.",
        ),
        json_table(EmployeeState, height="360px", page_size=5),
        padding_top="1em",
    )


def listing_tab() -> rx.Component:
    """Listing tab content."""
    return rx.box(
        rx.cond(
            ListingState.listing_available,
            rx.fragment(
                _intro("A generated listing.  Search is applied 300 ms after you stop typing."),
                json_table(ListingState),
            ),
            rx.box(
                rx.text("Listing not generated yet.", weight="bold"),
                rx.text("Run ", rx.code("uv run demo generate"), " and refresh this page."),
                padding="1.5em",
                border_radius="8px",
                background="var(--amber-3)",
                border="1px solid var(--amber-7)",
            ),
        ),
        padding_top="1em",
    )


def index() -> rx.Component:
    """Render the main page with tabs."""
    return rx.box(
        rx.heading("Searchable Table -- Reflex Demo", size="6", margin_bottom="1em"),
        rx.tabs.root(
            rx.tabs.list(
                rx.tabs.trigger("Files (JSON)", value="files"),
                rx.tabs.trigger("Employees", value="employees"),
                rx.tabs.trigger("Listing", value="listing"),
            ),
            rx.tabs.content(files_tab(), value="files"),
            rx.tabs.content(employee_tab(), value="employees"),
            rx.tabs.content(listing_tab(), value="listing"),
            default_value="files",
        ),
        padding="2em",
        max_width="1400px",
        margin="0 auto",
    )


app = rx.App()
app.add_page(
    index,
    on_load=[FilesState.load_data, EmployeeState.load_data, ListingState.load_data],
)
