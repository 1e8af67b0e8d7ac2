import json
from typing import Dict, List, Optional

import pytest

from src.catalog import CatalogSummary
from src.errors import SnapshotStoreError


class MemorySnapshotStore:
    """In-memory SnapshotStore that records every write."""

    def __init__(self, initial: Optional[Dict[str, str]] = None, fail_writes: int = 0):
        self.data: Dict[str, str] = dict(initial or {})
        self.writes: List[str] = []
        self.fail_writes = fail_writes

    async def get(self, key):
        return self.data.get(key)

    async def set(self, key, value):
        if self.fail_writes:
            self.fail_writes -= 1
            raise SnapshotStoreError("disk full")
        self.data[key] = value
        self.writes.append(value)

    async def remove(self, key):
        self.data.pop(key, None)


class RecordingSink:
    """Status sink that keeps every summary it receives."""

    def __init__(self):
        self.summaries: List[CatalogSummary] = []

    def __call__(self, summary):
        self.summaries.append(summary)

    @property
    def last(self) -> CatalogSummary:
        return self.summaries[-1]


@pytest.fixture
def base_catalog():
    """A small messages.json catalog covering meta ids, placeholders and natural ordering."""
    return {
        "languageName": {"message": "English", "description": "Name of the language"},
        "item10": {"message": "Tenth item"},
        "item2": {"message": "Second item"},
        "downloadFrom": {
            "message": "Download from $URL$",
            "description": "Shown while downloading",
            "placeholders": {"url": {"content": "$1", "example": "https://example.com"}}
        },
        "ok": {"message": "OK"},
    }


@pytest.fixture
def memory_store():
    return MemorySnapshotStore()


@pytest.fixture
def recording_sink():
    return RecordingSink()


@pytest.fixture
def write_json(tmp_path):
    """Write an object as JSON into tmp_path and return the file path."""
    def _write(name, data):
        path = tmp_path / name
        path.write_text(json.dumps(data, ensure_ascii=False), encoding='utf-8')
        return str(path)
    return _write
