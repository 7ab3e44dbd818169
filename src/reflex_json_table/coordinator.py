"""Stateful query pipeline: owns the query state and recomputes the view.

The coordinator is the only mutable piece of the table.  Each transition
replaces its :class:`QueryState` with a new immutable value and then
recomputes the whole :class:`View` with :func:`compute_view`, so a
consumer never observes a half-updated view.
"""

import asyncio
import time
from collections.abc import Callable
from dataclasses import replace

from reflex_json_table.debounce import Debouncer
from reflex_json_table.engine import DEFAULT_PAGE_SIZE, compute_view
from reflex_json_table.models import (
    Dataset,
    QueryState,
    SortDirection,
    TablePresentation,
    View,
)

DEFAULT_DEBOUNCE_SECONDS: float = 0.3


def initial_query_state(dataset: Dataset) -> QueryState:
    """Default state: sorted descending on the last declared field."""
    last_field = dataset.schema[-1].id if dataset.schema else None
    return QueryState(sort_field_id=last_field, sort_direction=SortDirection.DESCENDING)


class QueryCoordinator:
    """Apply user input to a dataset's query state and keep its view current.

    Args:
        dataset: The read-only dataset to query.
        page_size: Number of records per page.
        debounce_seconds: Quiescence window before typed search text is
            committed.
        on_change: Optional listener called with the new
            :class:`TablePresentation` after every recomputation.
    """

    def __init__(
        self,
        dataset: Dataset,
        *,
        page_size: int = DEFAULT_PAGE_SIZE,
        debounce_seconds: float = DEFAULT_DEBOUNCE_SECONDS,
        on_change: Callable[[TablePresentation], None] | None = None,
    ) -> None:
        if page_size < 1:
            raise ValueError(f"page_size must be >= 1, got {page_size}")
        self.dataset = dataset
        self.page_size = page_size
        self._on_change = on_change
        self._debouncer = Debouncer(self.commit_search, debounce_seconds)
        self._closed = False
        self._state = initial_query_state(dataset)
        self._view = self._compute()

    # ------------------------------------------------------------------
    # Accessors
    # ------------------------------------------------------------------

    @property
    def state(self) -> QueryState:
        return self._state

    @property
    def view(self) -> View:
        return self._view

    @property
    def closed(self) -> bool:
        return self._closed

    def presentation(self) -> TablePresentation:
        """Snapshot of the current view for a renderer."""
        return TablePresentation(
            headers=self.dataset.schema,
            page_records=self._view.page_records,
            total_matching=self._view.total_matching,
            total_pages=self._view.total_pages,
            current_page=self._state.current_page,
            sort_field_id=self._state.sort_field_id,
            sort_direction=self._state.sort_direction,
            page_size=self.page_size,
        )

    # ------------------------------------------------------------------
    # Search
    # ------------------------------------------------------------------

    def input_search(self, text: str) -> "asyncio.Task[None] | None":
        """Record a keystroke in the search box.

        The raw text is stored immediately.  The commit is debounced,
        except for an empty text, which commits at once.

        Returns:
            The pending commit task, or ``None`` if the text was
            committed synchronously.

        Raises:
            RuntimeError: If the coordinator has been closed.
        """
        if self._closed:
            raise RuntimeError("QueryCoordinator is closed")
        if not text:
            self.clear_search()
            return None
        self._state = replace(self._state, raw_search_text=text)
        return self._debouncer.submit(text)

    def clear_search(self) -> None:
        """Empty the search box and commit the empty query immediately."""
        self._debouncer.cancel()
        self._state = replace(self._state, raw_search_text="")
        self.commit_search("")

    def commit_search(self, text: str) -> None:
        """Apply *text* as the filter and go back to the first page."""
        self._transition(replace(self._state, committed_search_text=text, current_page=1))

    @property
    def search_pending(self) -> bool:
        return self._debouncer.pending

    # ------------------------------------------------------------------
    # Sort and paging
    # ------------------------------------------------------------------

    def request_sort(self, field_id: str) -> None:
        """Sort on *field_id*, flipping the direction if already sorted on it.

        A newly selected field starts descending.  Undeclared fields are
        ignored.  The current page is kept.
        """
        if self.dataset.get_field(field_id) is None:
            return
        if field_id == self._state.sort_field_id:
            direction = self._state.sort_direction.flipped()
        else:
            direction = SortDirection.DESCENDING
        self._transition(replace(self._state, sort_field_id=field_id, sort_direction=direction))

    def set_sort(self, field_id: str | None, direction: SortDirection) -> None:
        """Set the sort explicitly; the current page is kept."""
        self._transition(
            replace(self._state, sort_field_id=field_id, sort_direction=SortDirection(direction))
        )

    def set_page(self, page: int) -> None:
        """Select a 1-indexed page.  Pages past the end render empty.

        Raises:
            ValueError: If *page* is below 1.
        """
        if page < 1:
            raise ValueError(f"page must be >= 1, got {page}")
        self._transition(replace(self._state, current_page=page))

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    def close(self) -> None:
        """Cancel any pending search commit.  Idempotent."""
        self._debouncer.cancel()
        self._closed = True

    # ------------------------------------------------------------------
    # Internal
    # ------------------------------------------------------------------

    def _compute(self) -> View:
        return compute_view(self.dataset, self._state, self.page_size)

    def _transition(self, state: QueryState) -> None:
        t0 = time.perf_counter()
        self._state = state
        self._view = self._compute()
        elapsed_ms = (time.perf_counter() - t0) * 1000
        print(
            f"[JsonTable] view refresh: matching={self._view.total_matching:,}, "
            f"page={state.current_page}/{self._view.total_pages}, "
            f"elapsed={elapsed_ms:.1f}ms"
        )
        if self._on_change is not None:
            self._on_change(self.presentation())
