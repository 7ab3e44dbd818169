"""reflex-json-table – searchable, sortable, paginated table for Reflex.

Install::

    pip install reflex-json-table

Load a JSON ``{headers, data}`` file (or any tabular file polars can read)
into a :class:`Dataset`, bind it to a state inheriting from
:class:`JsonTableMixin`, and render it with :func:`json_table`.  The
search/sort/pagination engine is usable on its own through
:func:`compute_view` and :class:`QueryCoordinator`.
"""

from reflex_json_table.coordinator import (
    DEFAULT_DEBOUNCE_SECONDS,
    QueryCoordinator,
    initial_query_state,
)
from reflex_json_table.datagrid import DataGrid, DataGridNamespace, WrappedDataGrid, data_grid
from reflex_json_table.debounce import Debouncer
from reflex_json_table.engine import (
    DEFAULT_PAGE_SIZE,
    compute_view,
    copy_text,
    filter_records,
    format_cell,
    paginate,
    sort_records,
    total_pages,
)
from reflex_json_table.formatters import FormatterKind, date_format, format_value, size_format
from reflex_json_table.loader import (
    dataset_from_frame,
    dataset_from_payload,
    load_dataset,
    read_dataset,
)
from reflex_json_table.models import (
    ColumnDef,
    Dataset,
    FieldDescriptor,
    QueryState,
    SortDirection,
    TablePresentation,
    View,
    column_defs_from_schema,
)
from reflex_json_table.table_state import JsonTableMixin, json_table, json_table_toolbar
