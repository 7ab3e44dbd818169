"""Reflex wrapper for the MUI X DataGrid (v8) in server-driven mode.

The grid only renders: sorting and pagination are delegated to the
Python side (``sortingMode="server"``, ``paginationMode="server"``), which
sends back the rows of the current page, the total row count and the
controlled sort/pagination models.

The Community edition caps ``pageSize`` at 100, which is also the table's
default page size.

Only the props and events the table drives are bound: rows and columns,
the server sort/pagination mode with its controlled models and
``rowCount``, ``sortingOrder`` (so a header click never unsorts), a few
display switches, and ``onCellDoubleClick`` for copying.  Filtering,
selection, virtual scrolling and the toolbar stay unbound because search
runs in Python and the grid never holds more than one page.
"""

from typing import Any, Literal

import reflex as rx
from reflex.components.el import Div

from reflex_json_table.models import ColumnDef


# ---------------------------------------------------------------------------
# Event-handler argument helpers
# ---------------------------------------------------------------------------
# MUI DataGrid callback objects contain non-serializable references (api,
# column objects, DOM nodes, etc.). The helpers below create small arrow-function
# wrappers that strip those keys before the value is sent to the Python backend.

def _js_strip_keys(event_var: str, exclude_keys: list[str]) -> str:
    """Return JS expression that destructures *exclude_keys* away from *event_var*."""
    keys = ", ".join(exclude_keys)
    return f"let {{{keys}, ...rest}} = {event_var}; return rest"


def _arrow_callback(js_body: str) -> rx.Var:
    """Wrap *js_body* in an immediately-invoked arrow function."""
    return rx.Var(f"(() => {{{js_body}}})()")


# -- Cell double click: keep id / field / value / row
def _on_cell_double_click_spec(event: rx.Var) -> list[rx.Var]:
    exclude = ["api", "colDef", "node", "event", "column", "cellMode", "hasFocus", "tabIndex"]
    return [_arrow_callback(_js_strip_keys(str(event), exclude))]


# -- Sort model change: the first arg is already a plain array
def _on_sort_model_change_spec(model: rx.Var) -> list[rx.Var]:
    return [model]


# -- Pagination model change: plain { page, pageSize } object
def _on_pagination_model_change_spec(model: rx.Var) -> list[rx.Var]:
    return [model]


# ---------------------------------------------------------------------------
# DataGrid component
# ---------------------------------------------------------------------------

class DataGrid(rx.Component):
    """Reflex wrapper for the MUI X DataGrid (Community, v8).

    Requires a parent container with explicit dimensions.
    Use ``WrappedDataGrid`` (or the ``data_grid`` namespace callable) for
    a version that automatically wraps itself in a sized ``<div>``.
    """

    library: str = "@mui/x-data-grid"
    tag: str = "DataGrid"
    is_default: bool = False

    lib_dependencies: list[str] = [
        "@mui/material@^7.0.0",
        "@emotion/react@^11.14.0",
        "@emotion/styled@^11.14.0",
    ]

    # ---- data ----
    rows: rx.Var[list[dict[str, Any]]]
    columns: rx.Var[list[dict[str, Any]]]

    # ---- display ----
    loading: rx.Var[bool]
    density: rx.Var[Literal["comfortable", "compact", "standard"]]
    column_header_height: rx.Var[int]
    disable_row_selection_on_click: rx.Var[bool]
    disable_column_filter: rx.Var[bool]
    disable_column_selector: rx.Var[bool]

    # ---- server-side mode ----
    row_count: rx.Var[int]
    pagination_mode: rx.Var[Literal["client", "server"]]
    sorting_mode: rx.Var[Literal["client", "server"]]

    # ---- pagination ----
    pagination_model: rx.Var[dict[str, int]]
    page_size_options: rx.Var[list[int]]

    # ---- sorting ----
    sort_model: rx.Var[list[dict[str, Any]]]
    sorting_order: rx.Var[list[str | None]]

    # ---- row identification ----
    get_row_id: rx.Var[Any]

    # ---- event handlers ----
    on_cell_double_click: rx.EventHandler[_on_cell_double_click_spec]
    on_sort_model_change: rx.EventHandler[_on_sort_model_change_spec]
    on_pagination_model_change: rx.EventHandler[_on_pagination_model_change_spec]

    @classmethod
    def create(
        cls,
        *children: rx.Component,
        row_id_field: str | None = None,
        **props: Any,
    ) -> rx.Component:
        """Create a DataGrid component.

        Args:
            *children: Child components (typically unused).
            row_id_field: Convenience shortcut -- if provided, a JS ``getRowId``
                callback is generated that reads the given field from each row
                object.  Equivalent to ``getRowId={(row) => row.<field>}``.
            **props: All other DataGrid props.

        Returns:
            The DataGrid component.
        """
        if row_id_field is not None:
            props["get_row_id"] = rx.Var(
                f"(row) => row.{row_id_field}"
            )
        return super().create(*children, **props)


# ---------------------------------------------------------------------------
# WrappedDataGrid -- auto-sized container
# ---------------------------------------------------------------------------

class WrappedDataGrid(DataGrid):
    """DataGrid wrapped in a ``<div>`` with explicit width / height.

    MUI DataGrid requires a parent container with explicit dimensions.
    This variant pops ``width`` and ``height`` from the props and applies
    them to an outer ``<div>``.
    """

    @classmethod
    def create(cls, *children: rx.Component, **props: Any) -> rx.Component:
        width = props.pop("width", "100%")
        height = props.pop("height", "600px")

        props.setdefault("density", "compact")
        props.setdefault("disable_row_selection_on_click", True)
        props.setdefault("disable_column_filter", True)
        props.setdefault("disable_column_selector", True)

        return Div.create(
            super().create(*children, **props),
            width=width,
            height=height,
        )


# ---------------------------------------------------------------------------
# Namespace (so users can write ``data_grid(...)`` and ``data_grid.column_def``)
# ---------------------------------------------------------------------------

class DataGridNamespace(rx.ComponentNamespace):
    """Namespace for the MUI DataGrid component family."""

    column_def = ColumnDef
    root = DataGrid.create
    __call__ = WrappedDataGrid.create


data_grid = DataGridNamespace()
