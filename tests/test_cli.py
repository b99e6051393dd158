"""
Tests for the mailblocks command-line interface (CLI).

Scope
-----
1.  **Command Registration**: `--help` lists the editing commands.
2.  **Editing cycle**: each command loads the file, applies one operation and
    writes the result back.
3.  **Error Handling**: missing files, unknown kinds and invalid documents
    exit non-zero with a readable message.

We use `typer.testing.CliRunner` to invoke the app in-process. Assertions use
`result.output`, which mixes stdout and stderr.
"""

from __future__ import annotations

import json
from pathlib import Path
from typing import Any

import pytest
from typer.testing import CliRunner

from mailblocks.cli import app
from mailblocks.core.contracts.block import ROOT_BLOCK_ID, Block
from mailblocks.core.settings import load_settings
from mailblocks.core.store.storage import read_document, write_document


@pytest.fixture  # type: ignore[misc]
def runner() -> CliRunner:
    """A fresh CliRunner for each test."""
    return CliRunner()


@pytest.fixture  # type: ignore[misc]
def doc_path(tmp_path: Path, sample_document: dict[str, Block]) -> Path:
    """The sample document written to disk."""
    return write_document(tmp_path / "mail.json", sample_document)


def load(path: Path) -> dict[str, Any]:
    return json.loads(path.read_text(encoding="utf-8"))


def test_cli_help_shows_usage(runner: CliRunner) -> None:
    result = runner.invoke(app, ["--help"])
    assert result.exit_code == 0, f"Help failed: {result.output}"
    for command in ("new", "show", "add", "duplicate", "move", "delete", "check", "gc"):
        assert command in result.output


def test_new_creates_root_only_document(runner: CliRunner, tmp_path: Path) -> None:
    path = tmp_path / "fresh.json"
    result = runner.invoke(app, ["new", str(path)])
    assert result.exit_code == 0, result.output
    assert list(load(path)) == [ROOT_BLOCK_ID]

    again = runner.invoke(app, ["new", str(path)])
    assert again.exit_code == 1
    assert "already exists" in again.output
    assert runner.invoke(app, ["new", str(path), "--force"]).exit_code == 0


def test_add_appends_and_reports_id(runner: CliRunner, doc_path: Path) -> None:
    result = runner.invoke(app, ["add", str(doc_path), "divider"])
    assert result.exit_code == 0, result.output
    assert "Added" in result.output

    raw = load(doc_path)
    new_id = raw[ROOT_BLOCK_ID]["data"]["childrenIds"][-1]
    assert new_id.startswith("block-")
    assert new_id in result.output
    assert raw[new_id]["type"] == "Divider"


def test_add_into_column(runner: CliRunner, doc_path: Path) -> None:
    result = runner.invoke(
        app, ["add", str(doc_path), "Text", "--parent", "cols", "--column", "1", "--position", "0"]
    )
    assert result.exit_code == 0, result.output
    columns = load(doc_path)["cols"]["data"]["props"]["columns"]
    assert columns[0]["childrenIds"] == ["img"]
    assert len(columns[1]["childrenIds"]) == 2
    assert columns[1]["childrenIds"][1] == "btn"


def test_add_rejects_unknown_kind_and_leaf_parent(runner: CliRunner, doc_path: Path) -> None:
    unknown = runner.invoke(app, ["add", str(doc_path), "Carousel"])
    assert unknown.exit_code == 2
    assert "unknown block type" in unknown.output

    leaf = runner.invoke(app, ["add", str(doc_path), "Text", "--parent", "t1"])
    assert leaf.exit_code == 1
    assert "Nothing added" in leaf.output


def test_duplicate_and_move(runner: CliRunner, doc_path: Path) -> None:
    result = runner.invoke(app, ["duplicate", str(doc_path), "t1"])
    assert result.exit_code == 0, result.output
    box_children = load(doc_path)["box"]["data"]["props"]["childrenIds"]
    assert box_children[0] == "t1" and len(box_children) == 3

    moved = runner.invoke(app, ["move", str(doc_path), "t2", "up"])
    assert moved.exit_code == 0, moved.output
    assert load(doc_path)["box"]["data"]["props"]["childrenIds"][1] == "t2"

    edge = runner.invoke(app, ["move", str(doc_path), "head", "up"])
    assert edge.exit_code == 0
    assert "already at the edge" in edge.output


def test_move_rejects_bad_direction(runner: CliRunner, doc_path: Path) -> None:
    result = runner.invoke(app, ["move", str(doc_path), "head", "sideways"])
    assert result.exit_code == 2


def test_delete_policies(runner: CliRunner, doc_path: Path) -> None:
    result = runner.invoke(app, ["delete", str(doc_path), "box"])
    assert result.exit_code == 0, result.output
    raw = load(doc_path)
    assert "box" not in raw and "t1" in raw

    cascade = runner.invoke(app, ["delete", str(doc_path), "cols", "--cascade"])
    assert cascade.exit_code == 0, cascade.output
    raw = load(doc_path)
    assert not {"cols", "img", "btn"} & set(raw)

    root = runner.invoke(app, ["delete", str(doc_path), ROOT_BLOCK_ID])
    assert root.exit_code == 1


def test_delete_uses_configured_policy(
    runner: CliRunner, doc_path: Path, monkeypatch: Any
) -> None:
    monkeypatch.setenv("MAILBLOCKS_DELETE_POLICY", "cascade")
    load_settings.cache_clear()
    result = runner.invoke(app, ["delete", str(doc_path), "box"])
    assert result.exit_code == 0, result.output
    assert "cascade" in result.output
    assert "t1" not in load(doc_path)


def test_columns_resize(runner: CliRunner, doc_path: Path) -> None:
    result = runner.invoke(app, ["columns", str(doc_path), "cols", "3"])
    assert result.exit_code == 0, result.output
    props = load(doc_path)["cols"]["data"]["props"]
    assert props["columnsCount"] == 3 and len(props["columns"]) == 3

    bad = runner.invoke(app, ["columns", str(doc_path), "cols", "5"])
    assert bad.exit_code == 1
    assert "Error" in bad.output


def test_check_and_gc(runner: CliRunner, doc_path: Path) -> None:
    assert runner.invoke(app, ["check", str(doc_path)]).exit_code == 0

    runner.invoke(app, ["delete", str(doc_path), "box", "--orphan"])
    failing = runner.invoke(app, ["check", str(doc_path)])
    assert failing.exit_code == 1
    assert "orphan" in failing.output
    assert runner.invoke(app, ["check", str(doc_path), "--allow-orphans"]).exit_code == 0

    gc = runner.invoke(app, ["gc", str(doc_path)])
    assert gc.exit_code == 0, gc.output
    assert "2 unreachable" in gc.output
    assert runner.invoke(app, ["check", str(doc_path)]).exit_code == 0
    assert set(read_document(doc_path)) == {ROOT_BLOCK_ID, "head", "cols", "img", "btn"}


def test_show_renders_tree(runner: CliRunner, doc_path: Path) -> None:
    result = runner.invoke(app, ["show", str(doc_path)])
    assert result.exit_code == 0, result.output
    for fragment in ("Email layout", "column 0", "column 1", "btn", "Heading"):
        assert fragment in result.output


def test_palette_lists_addable_kinds(runner: CliRunner) -> None:
    result = runner.invoke(app, ["palette"])
    assert result.exit_code == 0
    assert "ColumnsContainer" in result.output
    assert "EmailLayout" not in result.output


def test_missing_and_invalid_files_fail(runner: CliRunner, tmp_path: Path) -> None:
    missing = runner.invoke(app, ["show", str(tmp_path / "ghost.json")])
    assert missing.exit_code == 1
    assert "does not exist" in missing.output

    broken = tmp_path / "broken.json"
    broken.write_text("{nope", encoding="utf-8")
    result = runner.invoke(app, ["add", str(broken), "Text"])
    assert result.exit_code == 1
    assert "invalid JSON" in result.output


def test_bracketed_text_is_printed_literally(runner: CliRunner, doc_path: Path) -> None:
    raw = load(doc_path)
    raw["t1"]["data"].setdefault("props", {})["text"] = "Save [promo] now"
    doc_path.write_text(json.dumps(raw), encoding="utf-8")

    shown = runner.invoke(app, ["show", str(doc_path)])
    assert shown.exit_code == 0, shown.output
    assert "[promo]" in shown.output

    runner.invoke(app, ["delete", str(doc_path), "box"])
    failing = runner.invoke(app, ["check", str(doc_path)])
    assert "[orphan] t1" in failing.output
    assert "[orphan] t2" in failing.output
