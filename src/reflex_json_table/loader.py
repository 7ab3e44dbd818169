"""Load a :class:`Dataset` from JSON payloads, tabular files or URLs.

The native format is a JSON object::

    {
        "headers": [
            {"id": "name", "label": "Name"},
            {"id": "size", "label": "Size", "format": "sizeFormat"},
            {"id": "path", "label": "Path", "copyFields": ["dir", "name"]}
        ],
        "data": [
            {"name": "a.txt", "size": 2048, "dir": "/tmp", "path": "/tmp/a.txt"}
        ]
    }

A bare JSON array of objects is accepted too (the schema is inferred from
the keys in first-seen order), and any tabular file polars can scan is
turned into a dataset with one column per frame column.

:func:`read_dataset` raises on any problem; :func:`load_dataset` is the
lenient variant used by the UI, which degrades to an empty dataset.
"""

import json
import time
import urllib.request
from collections.abc import Mapping
from pathlib import Path
from typing import Any

import polars as pl

from reflex_json_table.models import Dataset, FieldDescriptor, humanize_field_name

_URL_TIMEOUT_SECONDS: float = 30.0
_URL_PREFIXES: tuple[str, ...] = ("http://", "https://")


def dataset_from_payload(payload: Any) -> Dataset:
    """Build a dataset from a decoded JSON payload.

    Raises:
        ValueError: If the payload does not have a supported shape, or a
            header is invalid (missing id, unknown formatter tag).
    """
    if isinstance(payload, list):
        return _dataset_from_record_list(payload)

    if not isinstance(payload, Mapping):
        raise ValueError(f"Expected a JSON object or array, got {type(payload).__name__}")

    headers = payload.get("headers", [])
    data = payload.get("data", [])
    if not isinstance(headers, list) or not isinstance(data, list):
        raise ValueError("'headers' and 'data' must both be arrays")

    schema = tuple(FieldDescriptor.from_dict(h) for h in _require_objects(headers, "headers"))
    records = tuple(_require_objects(data, "data"))
    return Dataset(schema=schema, records=records)


def _require_objects(items: list[Any], where: str) -> list[Mapping[str, Any]]:
    for i, item in enumerate(items):
        if not isinstance(item, Mapping):
            raise ValueError(f"{where}[{i}] is not an object: {item!r}")
    return items


def _dataset_from_record_list(items: list[Any]) -> Dataset:
    records = _require_objects(items, "data")
    field_ids: dict[str, None] = {}
    for record in records:
        field_ids.update(dict.fromkeys(record))
    schema = tuple(FieldDescriptor(id=fid, label=humanize_field_name(fid)) for fid in field_ids)
    return Dataset(schema=schema, records=tuple(records))


def _dataframe_to_dicts(df: pl.DataFrame) -> list[dict[str, Any]]:
    """Convert a DataFrame to a list of JSON-safe dicts.

    Temporal columns become ISO-8601 strings, list columns comma-joined
    strings and struct columns their string form.  Other types are left
    as the Python scalars ``to_dicts()`` returns.
    """
    exprs: list[pl.Expr] = []
    for name, dtype in df.schema.items():
        if isinstance(dtype, (pl.Date, pl.Datetime, pl.Time, pl.Duration, pl.Struct)):
            exprs.append(pl.col(name).cast(pl.String))
        elif isinstance(dtype, pl.List):
            exprs.append(pl.col(name).cast(pl.List(pl.String)).list.join(","))
        else:
            exprs.append(pl.col(name))
    return df.select(exprs).to_dicts()


def dataset_from_frame(data: pl.DataFrame | pl.LazyFrame) -> Dataset:
    """Build a dataset with one field per column of a polars frame."""
    df = data.collect() if isinstance(data, pl.LazyFrame) else data
    schema = tuple(FieldDescriptor(id=name, label=humanize_field_name(name)) for name in df.columns)
    return Dataset(schema=schema, records=tuple(_dataframe_to_dicts(df)))


def _read_json_url(url: str) -> Any:
    with urllib.request.urlopen(url, timeout=_URL_TIMEOUT_SECONDS) as resp:
        return json.loads(resp.read().decode("utf-8"))


def _scan_tabular(path: Path) -> pl.LazyFrame | None:
    """Return a LazyFrame for a tabular file, or ``None`` if not tabular."""
    suffix = path.suffix.lower()
    if suffix in (".parquet", ".pq"):
        return pl.scan_parquet(path)
    if suffix == ".csv":
        return pl.scan_csv(path)
    if suffix == ".tsv":
        return pl.scan_csv(path, separator="\t")
    if suffix in (".ndjson", ".jsonl"):
        return pl.scan_ndjson(path)
    if suffix in (".ipc", ".arrow", ".feather"):
        return pl.scan_ipc(path)
    return None


def read_dataset(source: str | Path) -> Dataset:
    """Read a dataset from a file path or an ``http(s)`` URL.

    URLs and ``.json`` files must hold a JSON payload (see module
    docstring).  ``.csv``, ``.tsv``, ``.parquet``/``.pq``,
    ``.ndjson``/``.jsonl`` and ``.ipc``/``.arrow``/``.feather`` files are
    read with polars.

    Raises:
        FileNotFoundError: If *source* is a path that does not exist.
        ValueError: If the extension is not supported or the content is
            not a valid dataset.
    """
    if isinstance(source, str) and source.startswith(_URL_PREFIXES):
        return dataset_from_payload(_read_json_url(source))

    path = Path(source).resolve()
    if not path.exists():
        raise FileNotFoundError(f"File not found: {path}")

    if path.suffix.lower() == ".json":
        return dataset_from_payload(json.loads(path.read_text(encoding="utf-8")))

    lf = _scan_tabular(path)
    if lf is None:
        raise ValueError(
            f"Unsupported file extension: {path.suffix!r}. "
            "Supported: .json, .csv, .tsv, .parquet, .pq, .ndjson, .jsonl, "
            ".ipc, .arrow, .feather"
        )
    return dataset_from_frame(lf)


def load_dataset(source: str | Path) -> Dataset:
    """Like :func:`read_dataset`, but return an empty dataset on failure.

    The table then renders its empty state instead of an error page.
    """
    t0 = time.perf_counter()
    try:
        dataset = read_dataset(source)
    except (OSError, ValueError, pl.exceptions.PolarsError) as exc:
        print(f"[JsonTable] error loading data from {source}: {exc}")
        return Dataset.empty()
    elapsed_ms = (time.perf_counter() - t0) * 1000
    print(
        f"[JsonTable] loaded {len(dataset.records):,} records, "
        f"{len(dataset.schema)} fields from {source} ({elapsed_ms:.1f}ms)"
    )
    return dataset
