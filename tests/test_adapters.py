"""Tests for the container adapters over the three child-reference shapes."""

from __future__ import annotations

from collections.abc import Callable

import pytest

from mailblocks.core.contracts.block import Block, BlockType
from mailblocks.core.tree.adapters import (
    COLUMNS_ADAPTER,
    CONTAINER_ADAPTER,
    ROOT_ADAPTER,
    adapter_for,
    child_ids,
    iter_child_refs,
)


def test_adapter_dispatch_by_kind(make_block: Callable[..., Block]) -> None:
    assert adapter_for(make_block(BlockType.EMAIL_LAYOUT)) is ROOT_ADAPTER
    assert adapter_for(make_block(BlockType.CONTAINER)) is CONTAINER_ADAPTER
    assert adapter_for(make_block(BlockType.COLUMNS_CONTAINER)) is COLUMNS_ADAPTER
    assert adapter_for(make_block(BlockType.TEXT)) is None


def test_flat_adapters_read_and_write_their_own_path(make_block: Callable[..., Block]) -> None:
    root = make_block(BlockType.EMAIL_LAYOUT, ["a", "b"])
    assert root.data["childrenIds"] == ["a", "b"]
    assert ROOT_ADAPTER.get_children(root) == ["a", "b"]

    box = make_block(BlockType.CONTAINER, ["x"])
    assert box.data["props"]["childrenIds"] == ["x"]
    updated = CONTAINER_ADAPTER.with_children(box, ["x", "y"])
    assert updated.data["props"]["childrenIds"] == ["x", "y"]
    assert box.data["props"]["childrenIds"] == ["x"], "original must be untouched"
    assert updated.data["style"] == box.data["style"]


def test_flat_adapter_tolerates_null_props() -> None:
    box = Block(type=BlockType.CONTAINER, data={"style": None, "props": None})
    assert CONTAINER_ADAPTER.get_children(box) == []
    filled = CONTAINER_ADAPTER.with_children(box, ["c"])
    assert filled.data["props"] == {"childrenIds": ["c"]}


def test_flat_adapter_has_a_single_slot(make_block: Callable[..., Block]) -> None:
    box = make_block(BlockType.CONTAINER)
    assert CONTAINER_ADAPTER.slot_count(box) == 1
    with pytest.raises(IndexError):
        CONTAINER_ADAPTER.get_children(box, 1)


def test_columns_adapter_touches_only_one_column(make_block: Callable[..., Block]) -> None:
    cols = make_block(BlockType.COLUMNS_CONTAINER, columns=[["a"], ["b"], []])
    assert COLUMNS_ADAPTER.slot_count(cols) == 3
    assert COLUMNS_ADAPTER.get_children(cols, 1) == ["b"]

    updated = COLUMNS_ADAPTER.with_children(cols, ["c", "b"], slot=1)
    assert COLUMNS_ADAPTER.all_children(updated) == [["a"], ["c", "b"], []]
    assert updated.data["props"]["columnsCount"] == 3
    assert updated.data["props"]["columnsGap"] == cols.data["props"]["columnsGap"]
    with pytest.raises(IndexError):
        COLUMNS_ADAPTER.with_children(cols, ["z"], slot=3)


def test_with_all_children_requires_one_list_per_slot(make_block: Callable[..., Block]) -> None:
    cols = make_block(BlockType.COLUMNS_CONTAINER, columns=[[], []])
    with pytest.raises(ValueError):
        COLUMNS_ADAPTER.with_all_children(cols, [["a"]])


def test_find_slot_and_iteration(make_block: Callable[..., Block]) -> None:
    cols = make_block(BlockType.COLUMNS_CONTAINER, columns=[["a"], ["b", "c"]])
    assert COLUMNS_ADAPTER.find_slot(cols, "c") == (1, 1)
    assert COLUMNS_ADAPTER.find_slot(cols, "zz") is None
    assert list(iter_child_refs(cols)) == [(0, 0, "a"), (1, 0, "b"), (1, 1, "c")]
    assert child_ids(cols) == ["a", "b", "c"]
    assert child_ids(make_block(BlockType.TEXT)) == []


def test_carry_children_keeps_tree_fields(make_block: Callable[..., Block]) -> None:
    """A payload edit cannot change the columns array or its count."""
    cols = make_block(BlockType.COLUMNS_CONTAINER, columns=[["a"], ["b"]])
    edited = Block(
        type=BlockType.COLUMNS_CONTAINER,
        data={"props": {"columnsGap": 40, "columnsCount": 3, "columns": []}},
    )
    carried = COLUMNS_ADAPTER.carry_children(cols, edited)
    assert carried.data["props"]["columnsGap"] == 40
    assert carried.data["props"]["columnsCount"] == 2
    assert COLUMNS_ADAPTER.all_children(carried) == [["a"], ["b"]]
