"""
Tests for document persistence.

Scope
-----
1.  **File helpers**: `read_document` / `write_document` round trip, empty
    files, malformed JSON, schema validation on load.
2.  **Repository**: per-template files, template-ID checks, default directory
    taken from `MAILBLOCKS_DOCUMENT_DIR`.
3.  **DebouncedSaver**: edits schedule a save; `flush()` runs it immediately.
"""

from __future__ import annotations

import json
import time
from pathlib import Path
from typing import Any

import pytest

from mailblocks.core.contracts.block import ROOT_BLOCK_ID, Block, Document
from mailblocks.core.settings import load_settings
from mailblocks.core.store.memory import DocumentStore
from mailblocks.core.store.storage import (
    DebouncedSaver,
    DocumentStorageError,
    JsonFileRepository,
    read_document,
    write_document,
)
from mailblocks.core.tree.operations import add_block


def test_write_then_read(tmp_path: Path, sample_document: dict[str, Block]) -> None:
    path = write_document(tmp_path / "nested" / "doc.json", sample_document)
    assert path.exists()
    assert not (tmp_path / "nested" / ".doc.json.tmp").exists()

    raw = json.loads(path.read_text(encoding="utf-8"))
    assert raw["cols"]["type"] == "ColumnsContainer"
    assert path.read_text(encoding="utf-8").endswith("\n")

    assert read_document(path) == sample_document


def test_empty_file_loads_default_document(tmp_path: Path) -> None:
    for content in ("", "   \n", "{}"):
        path = tmp_path / "empty.json"
        path.write_text(content, encoding="utf-8")
        doc = read_document(path)
        assert list(doc) == [ROOT_BLOCK_ID]


@pytest.mark.parametrize(  # type: ignore[misc]
    "content",
    [
        "{not json",
        "[1, 2]",
        '{"a": {"type": "Carousel", "data": {}}}',
        '{"a": {"type": "Text", "data": "oops"}}',
    ],
)
def test_malformed_files_raise_storage_error(tmp_path: Path, content: str) -> None:
    path = tmp_path / "bad.json"
    path.write_text(content, encoding="utf-8")
    with pytest.raises(DocumentStorageError) as info:
        read_document(path)
    assert info.value.path == path


def test_missing_file_raises(tmp_path: Path) -> None:
    with pytest.raises(DocumentStorageError):
        read_document(tmp_path / "ghost.json")


def test_schema_validation_on_load_is_configurable(tmp_path: Path, monkeypatch: Any) -> None:
    path = tmp_path / "invalid.json"
    path.write_text(
        json.dumps({ROOT_BLOCK_ID: {"type": "EmailLayout", "data": {"canvasColor": "white"}}}),
        encoding="utf-8",
    )
    with pytest.raises(DocumentStorageError, match="canvasColor"):
        read_document(path)
    assert ROOT_BLOCK_ID in read_document(path, validate=False)

    monkeypatch.setenv("MAILBLOCKS_VALIDATE_ON_LOAD", "false")
    load_settings.cache_clear()
    assert ROOT_BLOCK_ID in read_document(path)


def test_repository_defaults_to_configured_directory(tmp_path: Path) -> None:
    repo = JsonFileRepository()
    assert repo.base_dir == tmp_path / "documents"
    assert repo.base_dir.is_dir()


def test_repository_round_trip(tmp_path: Path, sample_document: dict[str, Block]) -> None:
    repo = JsonFileRepository(tmp_path / "repo")
    assert not repo.exists("welcome")
    assert list(repo.load_document("welcome")) == [ROOT_BLOCK_ID]

    repo.save_document("welcome", sample_document)
    assert (tmp_path / "repo" / "welcome.json").exists()
    assert repo.load_document("welcome") == sample_document

    assert repo.delete("welcome") is True
    assert repo.delete("welcome") is False


@pytest.mark.parametrize("template_id", ["../etc", "a b", "", "x.json"])  # type: ignore[misc]
def test_repository_rejects_unsafe_template_ids(tmp_path: Path, template_id: str) -> None:
    repo = JsonFileRepository(tmp_path)
    with pytest.raises(ValueError):
        repo.path_for(template_id)


class _MemoryRepository:
    def __init__(self) -> None:
        self.saved: dict[str, Document] = {}

    def load_document(self, template_id: str) -> Document:
        return dict(self.saved[template_id])

    def save_document(self, template_id: str, document: dict[str, Block]) -> None:
        self.saved[template_id] = dict(document)


def test_debounced_saver_flush(store: DocumentStore) -> None:
    repo = _MemoryRepository()
    saver = DebouncedSaver(store, repo, "welcome", delay=60.0)
    saver.start()
    try:
        assert saver.flush() is False, "nothing pending yet"

        store.apply(add_block(store.get_document(), "Text", id_factory=store.id_factory))
        store.apply(add_block(store.get_document(), "Text", id_factory=store.id_factory))
        assert saver.pending

        assert saver.flush() is True
        assert saver.saves == 1
        assert {"n1", "n2"} <= set(repo.saved["welcome"])
        assert not saver.pending
    finally:
        saver.stop()


def test_debounced_saver_fires_after_delay(store: DocumentStore) -> None:
    repo = _MemoryRepository()
    saver = DebouncedSaver(store, repo, "welcome", delay=0.0)
    saver.start()
    store.delete_block("t1")

    deadline = time.monotonic() + 5.0
    while saver.saves == 0 and time.monotonic() < deadline:
        time.sleep(0.01)
    saver.stop()

    assert saver.saves == 1
    assert "t1" not in repo.saved["welcome"]


def test_debounced_saver_records_failures(store: DocumentStore, tmp_path: Path) -> None:
    saver = DebouncedSaver(store, JsonFileRepository(tmp_path), "not valid!", delay=60.0)
    saver.start()
    store.delete_block("t1")
    saver.flush()
    saver.stop()

    assert saver.saves == 0
    assert isinstance(saver.last_error, ValueError)


def test_stop_cancels_pending_save(store: DocumentStore) -> None:
    repo = _MemoryRepository()
    saver = DebouncedSaver(store, repo, "welcome", delay=60.0)
    saver.start()
    store.delete_block("t1")
    saver.stop()
    assert not saver.pending
    assert saver.flush() is False
    assert repo.saved == {}


def test_replaced_timer_does_not_clear_newer_schedule(store: DocumentStore) -> None:
    repo = _MemoryRepository()
    saver = DebouncedSaver(store, repo, "welcome", delay=0.3)
    saver.start()
    store.delete_block("t1")
    store.delete_block("t2")

    # the first timer fires late, after the second edit rescheduled
    saver._fire(saver._generation - 1)
    assert saver.saves == 0
    assert saver.pending

    saver.stop()
    time.sleep(0.6)
    assert saver.saves == 0
    assert repo.saved == {}
