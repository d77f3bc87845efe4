"""
Tests for the document store: template creation, parse failures,
deterministic serialization, persistence failures.
"""
import json

import pytest

from todoboard.schema import Board, Card, ParseError, PersistFailure
from todoboard.store import (
    DEFAULT_COLUMNS,
    DocumentStore,
    FileDocument,
    default_board,
    parse,
    serialize,
)

from conftest import SAMPLE, FlakyDocument


# ━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━
# Serialization
# ━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━


def test_serialize_uses_two_space_indent_and_stable_keys(sample_board):
    text = serialize(sample_board)
    assert text == json.dumps(SAMPLE, indent=2)
    assert text.splitlines()[1] == '  "columns": ['


def test_round_trip(sample_board):
    assert parse(serialize(sample_board)) == sample_board


def test_serialize_is_idempotent(sample_board):
    once = serialize(sample_board)
    assert serialize(parse(once)) == once


def test_parse_returns_error_instead_of_raising():
    assert isinstance(parse("{not json"), ParseError)
    assert isinstance(parse('{"columns": 3}'), ParseError)
    assert isinstance(parse("null"), ParseError)


def test_non_ascii_titles_survive(sample_board):
    sample_board.find_column("b").cards.append(Card(id="u", title="Überprüfen ✓"))
    text = serialize(sample_board)
    assert "Überprüfen ✓" in text
    assert parse(text) == sample_board


# ━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━
# open / load
# ━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━


def test_open_creates_default_template(tmp_path):
    path = tmp_path / "todo.json"
    store = DocumentStore(FileDocument(path))
    board = store.open()

    assert path.exists()
    assert [c.id for c in board.columns] == [c["id"] for c in DEFAULT_COLUMNS]
    assert [c.title for c in board.columns] == ["Ideas", "In Progress", "Done"]
    assert all(c.cards == [] for c in board.columns)
    assert json.loads(path.read_text()) == default_board().to_dict()


def test_open_uses_configured_template(tmp_path):
    store = DocumentStore(FileDocument(tmp_path / "t.json"),
                          default_columns=[{"id": "todo", "title": "To do"}])
    board = store.open()
    assert [c.id for c in board.columns] == ["todo"]


def test_open_without_create_reports_missing(tmp_path):
    store = DocumentStore(FileDocument(tmp_path / "missing.json"))
    result = store.open(create_if_missing=False)
    assert isinstance(result, ParseError)
    assert not (tmp_path / "missing.json").exists()


def test_open_existing_document(store, sample_board):
    assert store.board == sample_board


def test_load_malformed_keeps_previous_board(store, sample_board):
    result = store.load('{"columns": [')
    assert isinstance(result, ParseError)
    assert store.board == sample_board


def test_load_replaces_board(store):
    result = store.load(json.dumps({"columns": [{"id": "z", "title": "Z", "cards": []}]}))
    assert isinstance(result, Board)
    assert [c.id for c in store.board.columns] == ["z"]


def test_load_returns_a_copy(store):
    result = store.load(json.dumps(SAMPLE))
    result.columns.clear()
    assert len(store.board.columns) == 2


def test_is_own_write(store, doc_path):
    assert store.is_own_write(doc_path.read_text())
    assert not store.is_own_write("{}")


# ━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━
# apply_and_persist
# ━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━


def _drop_first_column(board):
    board.columns.pop(0)
    return board


def test_apply_and_persist_writes_document(store, doc_path):
    result = store.apply_and_persist(_drop_first_column)

    assert result.ok
    assert result.error is None
    assert [c.id for c in store.board.columns] == ["b"]
    assert doc_path.read_text() == result.text
    assert store.is_own_write(result.text)


def test_apply_and_persist_passes_a_copy(store, sample_board):
    seen = []

    def mutation(board):
        seen.append(board)
        return _drop_first_column(board)

    store.apply_and_persist(mutation)
    assert seen[0] is not store.board


def test_persist_failure_keeps_previous_board(store, document, doc_path, sample_board):
    before_text = doc_path.read_text()
    document.fail_writes = True

    result = store.apply_and_persist(_drop_first_column)

    assert not result.ok
    assert isinstance(result.error, PersistFailure)
    assert result.board == sample_board
    assert store.board == sample_board
    assert doc_path.read_text() == before_text


def test_persist_failure_is_not_retried(store, document):
    document.fail_writes = True
    store.apply_and_persist(_drop_first_column)
    document.fail_writes = False
    assert document.writes == 0


def test_atomic_write_leaves_no_temp_file(tmp_path):
    doc = FlakyDocument(tmp_path / "todo.json")
    doc.write("{}")
    assert [p.name for p in tmp_path.iterdir()] == ["todo.json"]


def test_unloaded_document_is_not_overwritten(doc_path):
    doc_path.write_text('{"columns": [')
    store = DocumentStore(FileDocument(doc_path))
    assert isinstance(store.open(), ParseError)

    result = store.apply_and_persist(lambda board: board)

    assert not result.ok
    assert isinstance(result.error, PersistFailure)
    assert doc_path.read_text() == '{"columns": ['


def test_stale_notification_for_earlier_write(store, doc_path):
    first = store.apply_and_persist(_drop_first_column).text
    store.apply_and_persist(lambda board: Board())
    # disk has moved on: the earlier text is our own, not an edit
    assert store.is_own_write(first)
    doc_path.write_text(first)
    assert not store.is_own_write(first)
