"""Table data model: schema, dataset, query state, and derived views."""

from collections.abc import Mapping, Sequence
from dataclasses import dataclass, field
from enum import Enum
from functools import cached_property
from typing import Any, Literal

import polars as pl
from reflex.components.props import PropsBase

from reflex_json_table.formatters import FormatterKind

Record = Mapping[str, Any]


def humanize_field_name(field_id: str) -> str:
    """Convert a snake_case or raw field id to a human-friendly label.

    Examples:
        ``"file_size"`` -> ``"File Size"``
        ``"name"`` -> ``"Name"``
    """
    return field_id.strip("_").replace("_", " ").title()


@dataclass(frozen=True)
class FieldDescriptor:
    """One declared column of the table.

    Attributes:
        id: Key of the value in each record.  Unique within a schema.
        label: Column header text.
        formatter: Optional display formatter for the raw value.
        copy_fields: Optional ordered field ids whose values are copied
            (backslash-joined) when a cell of this column is activated.
    """

    id: str
    label: str
    formatter: FormatterKind | None = None
    copy_fields: tuple[str, ...] | None = None

    @classmethod
    def from_dict(cls, raw: Mapping[str, Any]) -> "FieldDescriptor":
        """Build a descriptor from its JSON form.

        Accepts the wire keys ``id``, ``label``, ``format`` and
        ``copyFields``; ``formatterTag`` and ``copyGroup`` are accepted as
        aliases.

        Raises:
            ValueError: If ``id`` is missing, or the formatter tag is not
                registered.
        """
        field_id = raw.get("id")
        if not isinstance(field_id, str) or not field_id:
            raise ValueError(f"Field descriptor without an id: {dict(raw)!r}")

        label = raw.get("label")
        tag = raw.get("format", raw.get("formatterTag"))
        copy_fields = raw.get("copyFields", raw.get("copyGroup"))
        if copy_fields is not None and not isinstance(copy_fields, (list, tuple)):
            raise ValueError(f"copyFields of {field_id!r} must be a list, got {copy_fields!r}")

        return cls(
            id=field_id,
            label=str(label) if label is not None else humanize_field_name(field_id),
            formatter=FormatterKind.parse(tag) if tag else None,
            copy_fields=tuple(str(f) for f in copy_fields) if copy_fields else None,
        )

    def to_dict(self) -> dict[str, Any]:
        """Return the JSON wire form of this descriptor."""
        out: dict[str, Any] = {"id": self.id, "label": self.label}
        if self.formatter is not None:
            out["format"] = self.formatter.value
        if self.copy_fields is not None:
            out["copyFields"] = list(self.copy_fields)
        return out


Schema = tuple[FieldDescriptor, ...]


@dataclass(frozen=True)
class Dataset:
    """The full schema and record collection, read-only after load."""

    schema: Schema = ()
    records: tuple[Record, ...] = ()

    @classmethod
    def empty(cls) -> "Dataset":
        return cls()

    @property
    def field_ids(self) -> list[str]:
        return [f.id for f in self.schema]

    def get_field(self, field_id: str | None) -> FieldDescriptor | None:
        """Return the descriptor for *field_id*, or ``None`` if undeclared."""
        if not field_id:
            return None
        for f in self.schema:
            if f.id == field_id:
                return f
        return None

    @cached_property
    def search_frame(self) -> pl.DataFrame:
        """Lower-cased text projection of every schema field.

        Built once per dataset and reused by every search, so a keystroke
        only costs one vectorised ``str.contains`` per column.
        """
        from reflex_json_table.engine import build_search_frame

        return build_search_frame(self.records, self.schema)


class SortDirection(str, Enum):
    ASCENDING = "asc"
    DESCENDING = "desc"

    def flipped(self) -> "SortDirection":
        if self is SortDirection.ASCENDING:
            return SortDirection.DESCENDING
        return SortDirection.ASCENDING


@dataclass(frozen=True)
class QueryState:
    """User-controlled search, sort and page inputs.

    ``committed_search_text`` lags ``raw_search_text`` by the debounce
    window; only the committed text drives filtering.
    """

    raw_search_text: str = ""
    committed_search_text: str = ""
    sort_field_id: str | None = None
    sort_direction: SortDirection = SortDirection.DESCENDING
    current_page: int = 1


@dataclass(frozen=True)
class View:
    """Filtered, sorted and paginated result derived from a dataset and query."""

    matching_records: list[Record] = field(default_factory=list)
    page_records: list[Record] = field(default_factory=list)
    total_matching: int = 0
    total_pages: int = 0


@dataclass(frozen=True)
class TablePresentation:
    """Everything a renderer needs after one recomputation."""

    headers: Schema
    page_records: list[Record]
    total_matching: int
    total_pages: int
    current_page: int
    sort_field_id: str | None
    sort_direction: SortDirection
    page_size: int

    @property
    def page_offset(self) -> int:
        """Index of the first page record within the matching records."""
        return (self.current_page - 1) * self.page_size


class ColumnDef(PropsBase):
    """Column definition for the MUI X DataGrid, maps to GridColDef.

    Attributes are automatically converted from snake_case to camelCase
    when serialized to JavaScript props via PropsBase.
    """

    field: str
    header_name: str | None = None
    width: int | None = None
    min_width: int | None = None
    flex: int | None = None
    type: Literal["string", "number", "date", "dateTime", "boolean"] | None = None
    align: Literal["left", "center", "right"] | None = None
    sortable: bool = True
    filterable: bool = False
    disable_column_menu: bool = True
    description: str | None = None


def column_defs_from_schema(schema: Sequence[FieldDescriptor]) -> list[ColumnDef]:
    """Build grid column definitions in schema order.

    Columns with a copy group get a description so the header tooltip
    tells the user that a double-click copies the grouped values.
    """
    column_defs: list[ColumnDef] = []
    for f in schema:
        description: str | None = None
        if f.copy_fields:
            description = "Double-click to copy " + " \\ ".join(f.copy_fields)
        column_defs.append(
            ColumnDef(
                field=f.id,
                header_name=f.label,
                flex=1,
                description=description,
            )
        )
    return column_defs
