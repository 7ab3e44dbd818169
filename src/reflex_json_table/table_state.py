"""Reusable searchable table: Reflex state mixin and UI helpers.

Users inherit from :class:`JsonTableMixin` **and** ``rx.State``, load a
dataset with :meth:`JsonTableMixin.load_json_table` (or hand one to
:meth:`JsonTableMixin.set_dataset`), and render with :func:`json_table`.

Typical usage::

    from reflex_json_table import JsonTableMixin, json_table

    class MyState(JsonTableMixin, rx.State):
        def load_data(self):
            yield from self.load_json_table("data/files.json")

    def index():
        return json_table(MyState)

Search, sort and paging run in Python through a per-client
:class:`~reflex_json_table.coordinator.QueryCoordinator`; the grid only
displays the current page.
"""

import asyncio
import json
import time
from collections import OrderedDict
from pathlib import Path
from typing import Any

import reflex as rx

from reflex_json_table.coordinator import DEFAULT_DEBOUNCE_SECONDS, QueryCoordinator
from reflex_json_table.datagrid import data_grid
from reflex_json_table.engine import DEFAULT_PAGE_SIZE, copy_text, format_cell
from reflex_json_table.loader import load_dataset
from reflex_json_table.models import Dataset, TablePresentation, column_defs_from_schema

_ROW_ID_FIELD: str = "__row_id__"


# ---------------------------------------------------------------------------
# Module-level registries
# ---------------------------------------------------------------------------
# Datasets and coordinators are not JSON-serialisable, so they cannot live
# inside ``rx.State``.  Datasets are shared per source (read-only after
# load); coordinators hold per-client query state and the debounce timer.
#
# Sessions are normally dropped when the table unmounts.  A tab that goes
# away without unmounting leaves its entry behind, so the registry is
# bounded: past ``_MAX_SESSIONS`` the least recently used session is closed.

_MAX_SESSIONS: int = 1000

_dataset_cache: dict[str, Dataset] = {}
_session_registry: "OrderedDict[str, QueryCoordinator]" = OrderedDict()


def _get_dataset(source: str | Path) -> Dataset:
    """Return the cached dataset for *source*, loading it on first use.

    Failed loads yield an empty dataset and are not cached, so a later
    page load retries.
    """
    key = str(source)
    if key in _dataset_cache:
        return _dataset_cache[key]
    dataset = load_dataset(source)
    if dataset.schema:
        _dataset_cache[key] = dataset
    return dataset


def _get_session(session_id: str) -> QueryCoordinator | None:
    coordinator = _session_registry.get(session_id)
    if coordinator is not None:
        _session_registry.move_to_end(session_id)
    return coordinator


def _close_session(session_id: str) -> None:
    coordinator = _session_registry.pop(session_id, None)
    if coordinator is not None:
        coordinator.close()


def _register_session(session_id: str, coordinator: QueryCoordinator) -> None:
    """Store *coordinator* under *session_id*, replacing and closing any previous one."""
    _close_session(session_id)
    _session_registry[session_id] = coordinator
    while len(_session_registry) > _MAX_SESSIONS:
        evicted_id, evicted = _session_registry.popitem(last=False)
        evicted.close()
        print(f"[JsonTable] evicted idle session {evicted_id}")


# ---------------------------------------------------------------------------
# Grid event mapping
# ---------------------------------------------------------------------------

def _apply_sort_model(coordinator: QueryCoordinator, sort_model: list[dict[str, Any]]) -> None:
    """Apply the sort model the grid proposes after a header click.

    Only the clicked field is used; the coordinator decides the direction.
    """
    if not sort_model:
        return
    field = sort_model[0].get("field")
    if field:
        coordinator.request_sort(field)


def _apply_pagination_model(coordinator: QueryCoordinator, pagination_model: dict[str, Any]) -> None:
    """Select the page chosen in the grid footer (0-indexed there)."""
    page = int(pagination_model.get("page", 0)) + 1
    if page >= 1 and page != coordinator.state.current_page:
        coordinator.set_page(page)


def _cell_copy_text(coordinator: QueryCoordinator, params: dict[str, Any]) -> str | None:
    """Copy text for a double-clicked cell, or ``None`` if there is nothing to copy.

    The row id is the record's index among all matching records, so it is
    mapped back onto the current page before lookup.
    """
    field = coordinator.dataset.get_field(params.get("field"))
    row: dict[str, Any] = params.get("row") or {}
    row_id = params.get("id", row.get(_ROW_ID_FIELD))
    if field is None or isinstance(row_id, bool) or not isinstance(row_id, int):
        return None

    presentation = coordinator.presentation()
    index = row_id - presentation.page_offset
    if not 0 <= index < len(presentation.page_records):
        return None
    return copy_text(presentation.page_records[index], field)


def _copied_feedback(ok: bool):
    """Toast for a finished clipboard write; failures stay silent."""
    if ok:
        return rx.toast("Copied to clipboard", duration=2000, position="bottom-center")
    return None


async def _wait_for_commit(pending: "asyncio.Task[None]") -> bool:
    """Wait out a debounced search commit.

    Returns ``False`` when a later keystroke or a dispose cancelled it.
    """
    await asyncio.wait({pending})
    return not pending.cancelled()


def _presentation_rows(presentation: TablePresentation) -> list[dict[str, Any]]:
    """Format the page records for the grid, tagged with their global index."""
    offset = presentation.page_offset
    rows: list[dict[str, Any]] = []
    for i, record in enumerate(presentation.page_records):
        row: dict[str, Any] = {f.id: format_cell(f, record) for f in presentation.headers}
        row[_ROW_ID_FIELD] = offset + i
        rows.append(row)
    return rows


# ---------------------------------------------------------------------------
# JsonTableMixin
# ---------------------------------------------------------------------------

class JsonTableMixin(rx.State, mixin=True):
    """Reflex State mixin for a searchable, sortable, paginated table.

    Every subclass gets its own independent set of ``json_table_*``
    reactive variables, so several tables on one page do not interfere.

    Typed search text is echoed immediately and committed after a 300 ms
    pause; clearing the box commits at once.  Committing a search goes
    back to page 1; changing the sort keeps the current page.
    """

    # -- Frontend state vars --
    json_table_rows: list[dict[str, Any]] = []
    json_table_columns: list[dict[str, Any]] = []
    json_table_row_count: int = 0
    json_table_total_pages: int = 0
    json_table_page: int = 1
    json_table_pagination_model: dict[str, int] = {
        "page": 0,
        "pageSize": DEFAULT_PAGE_SIZE,
    }
    json_table_sort_model: list[dict[str, str]] = []
    json_table_search_text: str = ""
    json_table_loading: bool = False
    json_table_loaded: bool = False

    # -- Backend-only vars (not sent to frontend) --
    _json_table_session_id: str = ""

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    def set_dataset(
        self,
        dataset: Dataset,
        page_size: int = DEFAULT_PAGE_SIZE,
        debounce_seconds: float = DEFAULT_DEBOUNCE_SECONDS,
    ):
        """Bind *dataset* to this client's table and render its first page.

        This is a **generator** -- use ``yield from self.set_dataset(...)``
        inside your event handler so the loading state is sent to the
        frontend immediately.

        Args:
            dataset: The dataset to browse.
            page_size: Records per page (the Community grid caps this at 100).
            debounce_seconds: Quiet period before typed search text applies.
        """
        self.json_table_loading = True  # type: ignore[assignment]
        yield

        session_id = f"{type(self).__name__}:{self.router.session.client_token}"
        coordinator = QueryCoordinator(
            dataset,
            page_size=page_size,
            debounce_seconds=debounce_seconds,
        )
        _register_session(session_id, coordinator)
        self._json_table_session_id = session_id  # type: ignore[assignment]

        self.json_table_columns = [  # type: ignore[assignment]
            c.dict() for c in column_defs_from_schema(dataset.schema)
        ]
        self.json_table_search_text = ""  # type: ignore[assignment]
        self._publish_json_table(coordinator)
        self.json_table_loaded = True  # type: ignore[assignment]
        self.json_table_loading = False  # type: ignore[assignment]

    def load_json_table(
        self,
        source: str | Path,
        page_size: int = DEFAULT_PAGE_SIZE,
        debounce_seconds: float = DEFAULT_DEBOUNCE_SECONDS,
    ):
        """Load *source* (path or URL) once per process and bind it.

        A source that fails to load renders as an empty table.  This is
        a generator, like :meth:`set_dataset`; the loading state is shown
        while the source is read.
        """
        self.json_table_loading = True  # type: ignore[assignment]
        yield

        dataset = _get_dataset(source)
        yield from self.set_dataset(
            dataset,
            page_size=page_size,
            debounce_seconds=debounce_seconds,
        )

    # ------------------------------------------------------------------
    # Event handlers
    # ------------------------------------------------------------------

    @rx.event(background=True)
    async def handle_json_table_search(self, value: str):
        """Echo typed text and commit it once typing pauses.

        Runs as a background task so that waiting out the debounce window
        does not block other events.  A keystroke that is superseded by a
        later one ends here without touching the view.
        """
        async with self:
            self.json_table_search_text = value  # type: ignore[assignment]
            coordinator = _get_session(self._json_table_session_id)
            if coordinator is None:
                return
            pending = coordinator.input_search(value)
            if pending is None:
                self._publish_json_table(coordinator)
                return

        if not await _wait_for_commit(pending):
            return

        async with self:
            coordinator = _get_session(self._json_table_session_id)
            if coordinator is not None:
                self._publish_json_table(coordinator)

    def clear_json_table_search(self) -> None:
        """Empty the search box and show all records again."""
        self.json_table_search_text = ""  # type: ignore[assignment]
        coordinator = _get_session(self._json_table_session_id)
        if coordinator is None:
            return
        coordinator.clear_search()
        self._publish_json_table(coordinator)

    def handle_json_table_sort(self, sort_model: list[dict[str, Any]]) -> None:
        """Apply a header click.

        The grid proposes a sort model; only the clicked field is used.
        Clicking the sorted column flips its direction, clicking another
        column sorts it descending.
        """
        coordinator = _get_session(self._json_table_session_id)
        if coordinator is None:
            return
        _apply_sort_model(coordinator, sort_model)
        self._publish_json_table(coordinator)

    def handle_json_table_pagination(self, pagination_model: dict[str, int]) -> None:
        """Switch to the page selected in the grid footer (0-indexed there)."""
        coordinator = _get_session(self._json_table_session_id)
        if coordinator is None:
            return
        _apply_pagination_model(coordinator, pagination_model)
        self._publish_json_table(coordinator)

    def handle_json_table_cell_double_click(self, params: dict[str, Any]):
        """Copy the cell's copy group to the clipboard, if it has one."""
        coordinator = _get_session(self._json_table_session_id)
        if coordinator is None:
            return None
        text = _cell_copy_text(coordinator, params)
        if text is None:
            return None
        return rx.call_script(
            f"navigator.clipboard.writeText({json.dumps(text)}).then(() => true, () => false)",
            callback=type(self).handle_json_table_copied,
        )

    def handle_json_table_copied(self, ok: bool):
        """Confirm a successful clipboard write; failures stay silent."""
        return _copied_feedback(ok)

    def dispose_json_table(self) -> None:
        """Drop this client's coordinator and cancel any pending search commit."""
        _close_session(self._json_table_session_id)
        self._json_table_session_id = ""  # type: ignore[assignment]

    # ------------------------------------------------------------------
    # Internal
    # ------------------------------------------------------------------

    def _publish_json_table(self, coordinator: QueryCoordinator) -> None:
        """Mirror the coordinator's current view into the frontend vars."""
        t0 = time.perf_counter()
        presentation = coordinator.presentation()
        self.json_table_rows = _presentation_rows(presentation)  # type: ignore[assignment]
        self.json_table_row_count = presentation.total_matching  # type: ignore[assignment]
        self.json_table_total_pages = presentation.total_pages  # type: ignore[assignment]
        self.json_table_page = presentation.current_page  # type: ignore[assignment]
        self.json_table_pagination_model = {  # type: ignore[assignment]
            "page": presentation.current_page - 1,
            "pageSize": presentation.page_size,
        }
        if presentation.sort_field_id:
            self.json_table_sort_model = [  # type: ignore[assignment]
                {"field": presentation.sort_field_id, "sort": presentation.sort_direction.value}
            ]
        else:
            self.json_table_sort_model = []  # type: ignore[assignment]
        elapsed_ms = (time.perf_counter() - t0) * 1000
        print(
            f"[JsonTable] publish: page={presentation.current_page}, "
            f"rows={len(presentation.page_records)}, "
            f"total={presentation.total_matching:,}, "
            f"elapsed={elapsed_ms:.1f}ms"
        )


# ---------------------------------------------------------------------------
# UI helpers
# ---------------------------------------------------------------------------

def json_table_toolbar(state_cls: type) -> rx.Component:
    """Return the bar with the match count, page indicator and search box.

    Args:
        state_cls: The ``rx.State`` subclass that inherits from
            :class:`JsonTableMixin`.

    Returns:
        A Reflex component.
    """
    return rx.hstack(
        rx.hstack(
            rx.text(
                state_cls.json_table_row_count.to(str),  # type: ignore[union-attr]
                " rows",
                size="2",
                color="var(--gray-11)",
            ),
            rx.cond(
                state_cls.json_table_total_pages > 1,
                rx.text(
                    "Page ",
                    state_cls.json_table_page.to(str),  # type: ignore[union-attr]
                    " / ",
                    state_cls.json_table_total_pages.to(str),  # type: ignore[union-attr]
                    size="1",
                    color="var(--gray-9)",
                ),
            ),
            spacing="3",
            align="center",
        ),
        rx.spacer(),
        rx.input(
            rx.input.slot(rx.icon("search", size=14)),
            rx.cond(
                state_cls.json_table_search_text != "",
                rx.input.slot(
                    rx.icon_button(
                        rx.icon("x", size=12),
                        size="1",
                        variant="ghost",
                        color_scheme="gray",
                        on_click=state_cls.clear_json_table_search,
                    ),
                ),
            ),
            placeholder="Search...",
            value=state_cls.json_table_search_text,
            on_change=state_cls.handle_json_table_search,
            size="1",
            width="180px",
        ),
        align="center",
        width="100%",
        padding="4px 8px",
        margin_bottom="0.5em",
    )


def json_table(
    state_cls: type,
    *,
    height: str = "calc(100vh - 160px)",
    width: str = "100%",
    density: str = "compact",
    page_size: int = DEFAULT_PAGE_SIZE,
    show_toolbar: bool = True,
    **extra_props: Any,
) -> rx.Component:
    """Return a pre-wired ``data_grid(...)`` bound to a :class:`JsonTableMixin` state.

    Sorting and pagination run server-side through the mixin's handlers;
    double-clicking a cell of a column with a copy group copies the
    group's values.  The client's session is disposed when the table
    unmounts.

    Args:
        state_cls: The ``rx.State`` subclass that also inherits from
            :class:`JsonTableMixin`.
        height: CSS height of the grid container.
        width: CSS width of the grid container.
        density: Grid density (``"comfortable"``, ``"compact"``, ``"standard"``).
        page_size: Page size the state was set up with; offered as the
            only option in the grid footer.
        show_toolbar: Show the count / search bar above the grid.
        **extra_props: Additional props forwarded to ``data_grid()``.

    Returns:
        A Reflex component.
    """
    grid = data_grid(
        rows=state_cls.json_table_rows,
        columns=state_cls.json_table_columns,
        row_id_field=_ROW_ID_FIELD,
        # -- Server-driven sort and pagination --
        sorting_mode="server",
        pagination_mode="server",
        row_count=state_cls.json_table_row_count,
        pagination_model=state_cls.json_table_pagination_model,
        page_size_options=[page_size],
        sort_model=state_cls.json_table_sort_model,
        sorting_order=["desc", "asc"],
        # -- Display --
        loading=state_cls.json_table_loading,
        density=density,
        # -- Events --
        on_sort_model_change=state_cls.handle_json_table_sort,
        on_pagination_model_change=state_cls.handle_json_table_pagination,
        on_cell_double_click=state_cls.handle_json_table_cell_double_click,
        height=height,
        width=width,
        **extra_props,
    )

    return rx.box(
        json_table_toolbar(state_cls) if show_toolbar else rx.fragment(),
        grid,
        on_unmount=state_cls.dispose_json_table,
        width=width,
    )
