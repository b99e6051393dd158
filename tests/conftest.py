"""Shared fixtures: small hand-built documents and deterministic ID factories.

Documents are assembled from registry defaults so that every block carries a
realistic payload; only the child references are filled in by hand.
"""

from __future__ import annotations

from collections.abc import Callable, Iterator, Sequence
from typing import Any

import pytest

from mailblocks.core.contracts.block import ROOT_BLOCK_ID, Block, BlockType
from mailblocks.core.registry import default_block
from mailblocks.core.settings import load_settings
from mailblocks.core.store.memory import DocumentStore
from mailblocks.core.tree.adapters import adapter_for
from mailblocks.core.tree.ids import BlockIdFactory, counter_ids

BlockBuilder = Callable[..., Block]


def _build(
    block_type: BlockType | str,
    children: Sequence[str] | None = None,
    columns: Sequence[Sequence[str]] | None = None,
) -> Block:
    """Default block of ``block_type`` with the given child references.

    ``columns`` resizes a columns container to ``len(columns)`` slots.
    """
    block = default_block(block_type)
    if columns is not None:
        payload = block.payload()
        payload["props"]["columnsCount"] = len(columns)
        payload["props"]["columns"] = [{"childrenIds": list(c)} for c in columns]
        return Block(type=block.type, data=payload)
    if children is not None:
        adapter = adapter_for(block)
        assert adapter is not None
        block = adapter.with_children(block, children)
    return block


@pytest.fixture  # type: ignore[misc]
def make_block() -> BlockBuilder:
    """Expose the block builder to tests."""
    return _build


@pytest.fixture  # type: ignore[misc]
def sample_document() -> dict[str, Block]:
    """A small well-formed document exercising all three container shapes.

    root
    ├── head   (Heading)
    ├── box    (Container)  -> t1, t2
    └── cols   (ColumnsContainer, 2 columns) -> [img] [btn]
    """
    return {
        ROOT_BLOCK_ID: _build(BlockType.EMAIL_LAYOUT, ["head", "box", "cols"]),
        "head": _build(BlockType.HEADING),
        "box": _build(BlockType.CONTAINER, ["t1", "t2"]),
        "t1": _build(BlockType.TEXT),
        "t2": _build(BlockType.TEXT),
        "cols": _build(BlockType.COLUMNS_CONTAINER, columns=[["img"], ["btn"]]),
        "img": _build(BlockType.IMAGE),
        "btn": _build(BlockType.BUTTON),
    }


@pytest.fixture  # type: ignore[misc]
def ids() -> BlockIdFactory:
    """Readable, never-repeating IDs: n1, n2, ..."""
    return BlockIdFactory(generator=counter_ids("n"))


@pytest.fixture  # type: ignore[misc]
def store(sample_document: dict[str, Block]) -> DocumentStore:
    """A store over the sample document issuing readable IDs."""
    return DocumentStore(sample_document, id_generator=counter_ids("n"))


@pytest.fixture(autouse=True)  # type: ignore[misc]
def fresh_settings(monkeypatch: Any, tmp_path: Any) -> Iterator[None]:
    """Point settings at a temporary document directory for every test."""
    monkeypatch.setenv("MAILBLOCKS_ENV", "test")
    monkeypatch.setenv("MAILBLOCKS_DOCUMENT_DIR", str(tmp_path / "documents"))
    monkeypatch.delenv("MAILBLOCKS_DELETE_POLICY", raising=False)
    load_settings.cache_clear()
    DocumentStore.reset_instance()
    yield
    load_settings.cache_clear()
    DocumentStore.reset_instance()
