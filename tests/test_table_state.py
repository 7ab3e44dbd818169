import asyncio
import json
from collections import OrderedDict
from pathlib import Path

import pytest

from reflex_json_table import table_state
from reflex_json_table.coordinator import QueryCoordinator
from reflex_json_table.loader import dataset_from_payload
from reflex_json_table.models import Dataset, SortDirection


@pytest.fixture(autouse=True)
def _isolated_registries(monkeypatch):
    monkeypatch.setattr(table_state, "_dataset_cache", {})
    monkeypatch.setattr(table_state, "_session_registry", OrderedDict())


def test_get_dataset_caches_successful_loads(files_json: Path):
    first = table_state._get_dataset(files_json)
    second = table_state._get_dataset(files_json)
    assert first is second
    assert str(files_json) in table_state._dataset_cache


def test_get_dataset_retries_failed_loads(tmp_path: Path):
    path = tmp_path / "later.json"
    assert table_state._get_dataset(path).records == ()
    assert table_state._dataset_cache == {}

    path.write_text(json.dumps([{"name": "now here"}]))
    assert len(table_state._get_dataset(path).records) == 1


def test_close_session_removes_and_closes(files_dataset):
    coordinator = QueryCoordinator(files_dataset)
    table_state._session_registry["State:abc"] = coordinator

    table_state._close_session("State:abc")
    assert table_state._get_session("State:abc") is None
    assert coordinator.closed

    # closing an unknown session is a no-op
    table_state._close_session("State:abc")


def test_presentation_rows_are_formatted_and_globally_indexed(files_dataset):
    coordinator = QueryCoordinator(files_dataset, page_size=2)
    coordinator.set_page(2)
    rows = table_state._presentation_rows(coordinator.presentation())

    assert [r["__row_id__"] for r in rows] == [2, 3]
    assert rows[0]["name"] == "alpha.txt"
    assert rows[0]["size"] == "10 B"
    assert set(rows[0]) == {"name", "dir", "mtime", "size", "__row_id__"}


def test_presentation_rows_fill_missing_cells(files_dataset):
    coordinator = QueryCoordinator(files_dataset, page_size=2)
    coordinator.set_page(3)
    (row,) = table_state._presentation_rows(coordinator.presentation())
    assert row == {"name": "delta", "dir": "/c", "mtime": "", "size": "", "__row_id__": 4}


def test_presentation_rows_survive_unformattable_values():
    dataset = dataset_from_payload(
        {
            "headers": [
                {"id": "name"},
                {"id": "size", "format": "sizeFormat"},
                {"id": "mtime", "format": "dateFormat"},
            ],
            "data": [
                {"name": "a", "size": 10, "mtime": 0},
                {"name": "b", "size": "n/a", "mtime": 10**20},
            ],
        }
    )
    coordinator = QueryCoordinator(dataset)
    coordinator.set_sort("name", SortDirection.ASCENDING)
    rows = table_state._presentation_rows(coordinator.presentation())
    assert rows[0]["size"] == "10 B"
    assert rows[1]["size"] == "n/a"
    assert rows[1]["mtime"] == str(10**20)


# ---------------------------------------------------------------------------
# Session registry
# ---------------------------------------------------------------------------

def test_register_session_replaces_and_closes_previous(files_dataset):
    old = QueryCoordinator(files_dataset)
    new = QueryCoordinator(files_dataset)
    table_state._register_session("State:abc", old)
    table_state._register_session("State:abc", new)
    assert old.closed
    assert table_state._get_session("State:abc") is new


def test_register_session_evicts_least_recently_used(monkeypatch, files_dataset):
    monkeypatch.setattr(table_state, "_MAX_SESSIONS", 2)
    first, second, third = (QueryCoordinator(files_dataset) for _ in range(3))
    table_state._register_session("s1", first)
    table_state._register_session("s2", second)
    table_state._get_session("s1")
    table_state._register_session("s3", third)

    assert list(table_state._session_registry) == ["s1", "s3"]
    assert second.closed
    assert not first.closed


# ---------------------------------------------------------------------------
# Grid event mapping
# ---------------------------------------------------------------------------

def test_sort_model_flips_same_field_and_starts_new_field_descending(files_dataset):
    coordinator = QueryCoordinator(files_dataset)

    table_state._apply_sort_model(coordinator, [{"field": "size", "sort": "asc"}])
    assert coordinator.state.sort_field_id == "size"
    assert coordinator.state.sort_direction is SortDirection.ASCENDING

    # the grid's proposed direction is ignored
    table_state._apply_sort_model(coordinator, [{"field": "name", "sort": "asc"}])
    assert coordinator.state.sort_field_id == "name"
    assert coordinator.state.sort_direction is SortDirection.DESCENDING


def test_empty_sort_model_keeps_sort(files_dataset):
    coordinator = QueryCoordinator(files_dataset)
    before = coordinator.state
    table_state._apply_sort_model(coordinator, [])
    table_state._apply_sort_model(coordinator, [{"sort": "asc"}])
    assert coordinator.state == before


def test_pagination_model_is_zero_indexed(files_dataset):
    coordinator = QueryCoordinator(files_dataset, page_size=2)
    table_state._apply_pagination_model(coordinator, {"page": 1, "pageSize": 2})
    assert coordinator.state.current_page == 2
    table_state._apply_pagination_model(coordinator, {"page": 0, "pageSize": 2})
    assert coordinator.state.current_page == 1


def test_pagination_model_ignores_negative_page(files_dataset):
    coordinator = QueryCoordinator(files_dataset, page_size=2)
    table_state._apply_pagination_model(coordinator, {"page": -5})
    assert coordinator.state.current_page == 1


def test_cell_copy_text_maps_global_row_id_onto_page(files_dataset):
    coordinator = QueryCoordinator(files_dataset, page_size=2)
    coordinator.set_page(2)
    # page 2 sorted by size descending holds alpha.txt (row 2) and Beta.log (row 3)
    text = table_state._cell_copy_text(coordinator, {"id": 3, "field": "name", "row": {}})
    assert text == "/b\\Beta.log"


def test_cell_copy_text_falls_back_to_row_id_field(files_dataset):
    coordinator = QueryCoordinator(files_dataset, page_size=2)
    coordinator.set_page(2)
    params = {"field": "name", "row": {"__row_id__": 2}}
    assert table_state._cell_copy_text(coordinator, params) == "/a\\alpha.txt"


@pytest.mark.parametrize(
    "params",
    [
        {"id": 0, "field": "name"},
        {"id": 4, "field": "name"},
        {"id": 2, "field": "dir"},
        {"id": 2, "field": "nope"},
        {"id": True, "field": "name"},
        {"id": "2", "field": "name"},
        {"field": "name"},
    ],
)
def test_cell_copy_text_none_when_nothing_to_copy(files_dataset, params):
    coordinator = QueryCoordinator(files_dataset, page_size=2)
    coordinator.set_page(2)
    assert table_state._cell_copy_text(coordinator, params) is None


def test_copied_feedback_only_on_success(monkeypatch):
    toasts: list[str] = []
    monkeypatch.setattr(table_state.rx, "toast", lambda message, **_: toasts.append(message) or message)

    assert table_state._copied_feedback(False) is None
    assert toasts == []
    assert table_state._copied_feedback(True) == "Copied to clipboard"
    assert toasts == ["Copied to clipboard"]


def test_wait_for_commit_reports_committed_and_superseded(files_dataset):
    async def scenario() -> tuple[bool, bool, QueryCoordinator]:
        coordinator = QueryCoordinator(files_dataset, debounce_seconds=0.02)
        superseded = coordinator.input_search("alp")
        latest = coordinator.input_search("alpha")
        return (
            await table_state._wait_for_commit(superseded),
            await table_state._wait_for_commit(latest),
            coordinator,
        )

    superseded_ok, latest_ok, coordinator = asyncio.run(scenario())
    assert superseded_ok is False
    assert latest_ok is True
    assert coordinator.state.committed_search_text == "alpha"


def test_wait_for_commit_after_dispose(files_dataset):
    async def scenario() -> bool:
        coordinator = QueryCoordinator(files_dataset, debounce_seconds=0.02)
        pending = coordinator.input_search("alpha")
        table_state._register_session("State:abc", coordinator)
        table_state._close_session("State:abc")
        return await table_state._wait_for_commit(pending)

    assert asyncio.run(scenario()) is False


# ---------------------------------------------------------------------------
# Loading
# ---------------------------------------------------------------------------

class _FakeTable:
    def __init__(self) -> None:
        self.json_table_loading = False
        self.bound: list[Dataset] = []

    def set_dataset(self, dataset, page_size, debounce_seconds):
        self.bound.append(dataset)
        yield


def _unwrapped(name: str):
    attr = table_state.JsonTableMixin.__dict__[name]
    return getattr(attr, "fn", attr)


def test_load_json_table_shows_loading_before_reading(monkeypatch, files_json: Path):
    reads: list = []

    def fake_get_dataset(source):
        reads.append(source)
        return Dataset.empty()

    monkeypatch.setattr(table_state, "_get_dataset", fake_get_dataset)
    table = _FakeTable()
    steps = _unwrapped("load_json_table")(table, files_json)

    next(steps)
    assert table.json_table_loading is True
    assert reads == []

    list(steps)
    assert reads == [files_json]
    assert table.bound == [Dataset.empty()]
