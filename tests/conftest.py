import json
from pathlib import Path

import pytest

from reflex_json_table.loader import dataset_from_payload
from reflex_json_table.models import Dataset

FILES_PAYLOAD: dict = {
    "headers": [
        {"id": "name", "label": "Name", "copyFields": ["dir", "name"]},
        {"id": "dir", "label": "Directory"},
        {"id": "mtime", "label": "Modified", "format": "dateFormat"},
        {"id": "size", "label": "Size", "format": "sizeFormat"},
    ],
    "data": [
        {"name": "alpha.txt", "dir": "/a", "mtime": 1700000000000, "size": 10},
        {"name": "Beta.log", "dir": "/b", "mtime": 1690000000000, "size": "9"},
        {"name": "gamma.pdf", "dir": "/a", "mtime": 1710000000000, "size": 2048},
        {"name": "delta", "dir": "/c"},
        {"name": "ALPHA-2.txt", "dir": "/b", "mtime": 1680000000000, "size": 100},
    ],
}


@pytest.fixture
def files_dataset() -> Dataset:
    return dataset_from_payload(FILES_PAYLOAD)


@pytest.fixture
def files_json(tmp_path: Path) -> Path:
    path = tmp_path / "files.json"
    path.write_text(json.dumps(FILES_PAYLOAD))
    return path
