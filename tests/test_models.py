import polars as pl
import pytest

from reflex_json_table.formatters import FormatterKind
from reflex_json_table.models import (
    Dataset,
    FieldDescriptor,
    SortDirection,
    TablePresentation,
    column_defs_from_schema,
    humanize_field_name,
)


@pytest.mark.parametrize(
    "field_id, expected",
    [("file_size", "File Size"), ("name", "Name"), ("__row_id__", "Row Id")],
)
def test_humanize_field_name(field_id, expected):
    assert humanize_field_name(field_id) == expected


def test_field_from_dict_full():
    field = FieldDescriptor.from_dict(
        {"id": "name", "label": "Name", "format": "sizeFormat", "copyFields": ["dir", "name"]}
    )
    assert field == FieldDescriptor(
        id="name",
        label="Name",
        formatter=FormatterKind.SIZE,
        copy_fields=("dir", "name"),
    )


def test_field_from_dict_aliases():
    field = FieldDescriptor.from_dict({"id": "t", "formatterTag": "dateFormat", "copyGroup": ["t"]})
    assert field.formatter is FormatterKind.DATE
    assert field.copy_fields == ("t",)


def test_field_from_dict_label_defaults_to_humanized_id():
    assert FieldDescriptor.from_dict({"id": "file_size"}).label == "File Size"


def test_field_from_dict_empty_copy_group_is_none():
    assert FieldDescriptor.from_dict({"id": "a", "copyFields": []}).copy_fields is None


@pytest.mark.parametrize(
    "raw",
    [
        {"label": "No id"},
        {"id": ""},
        {"id": 3},
        {"id": "a", "format": "currencyFormat"},
        {"id": "a", "copyFields": "dir"},
    ],
)
def test_field_from_dict_rejects_invalid(raw):
    with pytest.raises(ValueError):
        FieldDescriptor.from_dict(raw)


def test_field_to_dict():
    field = FieldDescriptor(id="size", label="Size", formatter=FormatterKind.SIZE)
    assert field.to_dict() == {"id": "size", "label": "Size", "format": "sizeFormat"}
    assert FieldDescriptor.from_dict(field.to_dict()) == field


def test_dataset_lookup(files_dataset):
    assert files_dataset.field_ids == ["name", "dir", "mtime", "size"]
    assert files_dataset.get_field("size").formatter is FormatterKind.SIZE
    assert files_dataset.get_field("nope") is None
    assert files_dataset.get_field(None) is None


def test_dataset_empty():
    empty = Dataset.empty()
    assert empty.schema == ()
    assert empty.records == ()
    assert empty.search_frame.height == 0


def test_dataset_search_frame_is_cached(files_dataset):
    frame = files_dataset.search_frame
    assert frame is files_dataset.search_frame
    assert frame.columns == ["name", "dir", "mtime", "size"]
    assert frame.get_column("name").to_list()[1] == "beta.log"
    assert frame.get_column("size").dtype == pl.String


def test_sort_direction_flipped():
    assert SortDirection.ASCENDING.flipped() is SortDirection.DESCENDING
    assert SortDirection.DESCENDING.flipped() is SortDirection.ASCENDING
    assert SortDirection("desc") is SortDirection.DESCENDING


def test_page_offset_uses_page_size_not_page_length():
    presentation = TablePresentation(
        headers=(),
        page_records=[{"a": 1}],
        total_matching=201,
        total_pages=3,
        current_page=3,
        sort_field_id=None,
        sort_direction=SortDirection.DESCENDING,
        page_size=100,
    )
    assert presentation.page_offset == 200


def test_column_defs_follow_schema(files_dataset):
    defs = column_defs_from_schema(files_dataset.schema)
    assert [d.field for d in defs] == ["name", "dir", "mtime", "size"]
    assert [d.header_name for d in defs] == ["Name", "Directory", "Modified", "Size"]
    assert defs[0].description == "Double-click to copy dir \\ name"
    assert defs[1].description is None
    assert all(d.sortable and not d.filterable for d in defs)
