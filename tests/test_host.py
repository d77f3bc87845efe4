"""End-to-end tests for BoardHost: real file, real dispatcher thread."""
import json
import time

import pytest

from todoboard.config import Config
from todoboard.host import BoardHost

from conftest import SAMPLE


@pytest.fixture
def host(doc_path):
    cfg = Config(document_path=str(doc_path))
    h = BoardHost(cfg)
    h.start(watch=False)
    yield h
    h.stop()


def _wait_for_prompt(host, timeout=5.0):
    deadline = time.monotonic() + timeout
    while time.monotonic() < deadline:
        pending = host.prompts.pending()
        if pending:
            return pending[0]
        time.sleep(0.01)
    raise AssertionError("no prompt opened")


def test_start_publishes_initial_snapshot(host):
    assert host.snapshot() == SAMPLE
    assert host.revision == 1


def test_submitted_message_is_persisted(host, doc_path):
    host.submit({"type": "rename-card", "columnId": "a", "cardId": "c1", "newTitle": "Renamed"})
    host.flush()

    on_disk = json.loads(doc_path.read_text())
    assert on_disk["columns"][0]["cards"][0]["title"] == "Renamed"
    assert host.snapshot() == on_disk


def test_add_card_through_prompt(host, doc_path):
    host.submit({"type": "add-card", "columnId": "b"})
    prompt = _wait_for_prompt(host)
    assert host.prompts.answer(prompt["id"], "From prompt")
    host.flush()

    cards = json.loads(doc_path.read_text())["columns"][1]["cards"]
    assert [c["title"] for c in cards] == ["From prompt"]


def test_cancelled_prompt_changes_nothing(host, doc_path):
    before = doc_path.read_text()
    host.submit({"type": "add-column"})
    prompt = _wait_for_prompt(host)
    host.prompts.cancel(prompt["id"])
    host.flush()
    assert doc_path.read_text() == before


def test_missing_document_gets_template(tmp_path):
    path = tmp_path / "fresh" / "todo.json"
    path.parent.mkdir()
    h = BoardHost(Config(document_path=str(path)))
    h.start(watch=False)
    try:
        assert [c["id"] for c in h.snapshot()["columns"]] == ["ideas", "in-progress", "done"]
        assert path.exists()
    finally:
        h.stop()


def test_watcher_picks_up_external_edit(doc_path):
    h = BoardHost(Config(document_path=str(doc_path), debounce_ms=0))
    h.start(watch=True)
    try:
        doc_path.write_text(json.dumps({"columns": [{"id": "z", "title": "Z", "cards": []}]}))
        deadline = time.monotonic() + 5.0
        while time.monotonic() < deadline:
            h.flush()
            if [c["id"] for c in h.snapshot()["columns"]] == ["z"]:
                break
            time.sleep(0.05)
        assert [c["id"] for c in h.snapshot()["columns"]] == ["z"]
    finally:
        h.stop()
