"""Shared fixtures for todoboard tests."""

import json
import sys
from pathlib import Path

import pytest

# Ensure the package is importable without installation
sys.path.insert(0, str(Path(__file__).parent.parent))

from todoboard.schema import Board
from todoboard.store import DocumentStore, FileDocument

SAMPLE = {
    "columns": [
        {"id": "a", "title": "A", "cards": [
            {"id": "c1", "title": "X"},
            {"id": "c2", "title": "Y"},
        ]},
        {"id": "b", "title": "B", "cards": []},
    ]
}


class FlakyDocument(FileDocument):
    """FileDocument whose writes can be switched to fail."""

    def __init__(self, path):
        super().__init__(path)
        self.fail_writes = False
        self.writes = 0

    def write(self, text: str) -> None:
        if self.fail_writes:
            raise OSError("disk full")
        self.writes += 1
        super().write(text)


@pytest.fixture
def sample_board() -> Board:
    return Board.from_dict(SAMPLE)


@pytest.fixture
def doc_path(tmp_path) -> Path:
    path = tmp_path / "todo.json"
    path.write_text(json.dumps(SAMPLE, indent=2), encoding="utf-8")
    return path


@pytest.fixture
def document(doc_path) -> FlakyDocument:
    return FlakyDocument(doc_path)


@pytest.fixture
def store(document) -> DocumentStore:
    s = DocumentStore(document)
    assert not isinstance(s.open(), Exception)
    return s
