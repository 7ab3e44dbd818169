"""Search, sort and pagination over an in-memory record collection.

All functions here are pure: they never mutate their inputs and always
return new lists.  :func:`compute_view` composes them in the fixed order
filter -> sort -> paginate.
"""

import math
import re
from collections.abc import Iterable, Sequence
from functools import cmp_to_key
from typing import Any

import polars as pl

from reflex_json_table.formatters import format_value
from reflex_json_table.models import (
    Dataset,
    FieldDescriptor,
    QueryState,
    Record,
    SortDirection,
    View,
)

DEFAULT_PAGE_SIZE: int = 100

_ROW_INDEX: str = "__row_index__"
_COPY_SEPARATOR: str = "\\"
_DECIMAL_RE = re.compile(r"[+-]?(\d+\.?\d*|\.\d+)([eE][+-]?\d+)?")


# ---------------------------------------------------------------------------
# Value coercion
# ---------------------------------------------------------------------------

def to_text(value: Any) -> str:
    """Return the string form of a raw value used by search, sort and copy.

    * ``None`` -> ``""``
    * booleans -> ``"true"`` / ``"false"``
    * integral floats drop the fractional part (``2048.0`` -> ``"2048"``)
    * everything else -> ``str(value)``
    """
    if value is None:
        return ""
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    return str(value)


def to_number(value: Any) -> float | None:
    """Parse *value* as a finite number, or return ``None``.

    Numbers pass through; strings must be a plain decimal literal
    (surrounding whitespace allowed).  Booleans, empty strings and
    non-finite values are not numbers.
    """
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        number = float(value)
    elif isinstance(value, str):
        text = value.strip()
        if not _DECIMAL_RE.fullmatch(text):
            return None
        number = float(text)
    else:
        return None
    return number if math.isfinite(number) else None


# ---------------------------------------------------------------------------
# Search
# ---------------------------------------------------------------------------

def _unique_field_ids(schema: Iterable[FieldDescriptor]) -> list[str]:
    return list(dict.fromkeys(f.id for f in schema))


def build_search_frame(
    records: Sequence[Record],
    schema: Sequence[FieldDescriptor],
) -> pl.DataFrame:
    """Project *records* to a lower-cased ``String`` column per schema field."""
    field_ids = _unique_field_ids(schema)
    return pl.DataFrame(
        {fid: [to_text(r.get(fid)).lower() for r in records] for fid in field_ids},
        schema={fid: pl.String for fid in field_ids},
    )


def filter_records(
    records: Sequence[Record],
    schema: Sequence[FieldDescriptor],
    query: str,
    *,
    frame: pl.DataFrame | None = None,
) -> list[Record]:
    """Return the records where any schema field contains *query*.

    Matching is a case-insensitive literal substring test on each field's
    text form (see :func:`to_text`).  Missing values match as ``""``.
    Relative record order is preserved.

    Args:
        records: The records to search.
        schema: The declared fields; every one of them is searched.
        query: Free-text query.  An empty query matches everything.
        frame: Optional precomputed :func:`build_search_frame` of
            *records*, reused across queries to avoid rebuilding it.

    Returns:
        A new list of the matching records.
    """
    if not query:
        return list(records)

    field_ids = _unique_field_ids(schema)
    if not field_ids or not records:
        return []

    if frame is None:
        frame = build_search_frame(records, schema)

    needle = query.lower()
    hits: list[int] = (
        frame.with_row_index(_ROW_INDEX)
        .filter(pl.any_horizontal([pl.col(fid).str.contains(needle, literal=True) for fid in field_ids]))
        .get_column(_ROW_INDEX)
        .to_list()
    )
    return [records[i] for i in hits]


# ---------------------------------------------------------------------------
# Sort
# ---------------------------------------------------------------------------

def _compare_text(a: str, b: str) -> int:
    key_a, key_b = (a.casefold(), a), (b.casefold(), b)
    return (key_a > key_b) - (key_a < key_b)


def compare_values(a: Any, b: Any) -> int:
    """Compare two present values: numerically if both parse, else as text."""
    num_a, num_b = to_number(a), to_number(b)
    if num_a is not None and num_b is not None:
        return (num_a > num_b) - (num_a < num_b)
    return _compare_text(to_text(a), to_text(b))


def sort_records(
    records: Sequence[Record],
    field_id: str | None,
    direction: SortDirection,
    *,
    schema: Sequence[FieldDescriptor] | None = None,
) -> list[Record]:
    """Return *records* ordered by *field_id*.

    The sort is stable in both directions.  Records with a missing value
    for the field sort last whatever the direction.  When *field_id* is
    empty, or *schema* is given and does not declare it, the input order
    is returned unchanged.
    """
    if not field_id:
        return list(records)
    if schema is not None and field_id not in _unique_field_ids(schema):
        return list(records)

    sign = -1 if direction is SortDirection.DESCENDING else 1

    def _cmp(left: Record, right: Record) -> int:
        a, b = left.get(field_id), right.get(field_id)
        if a is None or b is None:
            return (a is None) - (b is None)
        return sign * compare_values(a, b)

    return sorted(records, key=cmp_to_key(_cmp))


# ---------------------------------------------------------------------------
# Pagination
# ---------------------------------------------------------------------------

def paginate(records: Sequence[Record], page_size: int, page: int) -> list[Record]:
    """Return the 1-indexed *page* of *records*.

    Pages outside ``[1, total_pages]`` yield an empty list.

    Raises:
        ValueError: If *page_size* is not positive.
    """
    if page_size < 1:
        raise ValueError(f"page_size must be >= 1, got {page_size}")
    if page < 1:
        return []
    start = (page - 1) * page_size
    return list(records[start:start + page_size])


def total_pages(records: Sequence[Record], page_size: int) -> int:
    """Number of pages needed for *records*; ``0`` when there are none."""
    if page_size < 1:
        raise ValueError(f"page_size must be >= 1, got {page_size}")
    return math.ceil(len(records) / page_size)


# ---------------------------------------------------------------------------
# Pipeline
# ---------------------------------------------------------------------------

def compute_view(
    dataset: Dataset,
    state: QueryState,
    page_size: int = DEFAULT_PAGE_SIZE,
) -> View:
    """Derive the :class:`View` for *state*: filter -> sort -> paginate."""
    matching = filter_records(
        dataset.records,
        dataset.schema,
        state.committed_search_text,
        frame=dataset.search_frame if state.committed_search_text else None,
    )
    ordered = sort_records(
        matching,
        state.sort_field_id,
        state.sort_direction,
        schema=dataset.schema,
    )
    return View(
        matching_records=ordered,
        page_records=paginate(ordered, page_size, state.current_page),
        total_matching=len(ordered),
        total_pages=total_pages(ordered, page_size),
    )


# ---------------------------------------------------------------------------
# Cell helpers
# ---------------------------------------------------------------------------

def format_cell(field: FieldDescriptor, record: Record) -> str:
    """Display string for one cell; missing values render as ``""``.

    A value its formatter cannot handle (``"n/a"`` in a size column, a
    timestamp outside the platform's date range) is shown as its raw
    text, so one bad cell never takes down the page.
    """
    value = record.get(field.id)
    if value is None:
        return ""
    if field.formatter is not None:
        try:
            return format_value(field.formatter, value)
        except (TypeError, ValueError, OverflowError, OSError):
            return to_text(value)
    return to_text(value)


def copy_text(record: Record, field: FieldDescriptor) -> str | None:
    """Join the values of *field*'s copy group with a backslash.

    Returns ``None`` when the field declares no copy group.
    """
    if not field.copy_fields:
        return None
    return _COPY_SEPARATOR.join(to_text(record.get(fid)) for fid in field.copy_fields)
