"""Tree operations, container adapters and integrity checks."""

from __future__ import annotations

from .adapters import ContainerAdapter, adapter_for, child_ids
from .ids import BlockIdFactory, generate_block_id
from .integrity import IntegrityIssue, IssueKind, check_integrity, collect_garbage
from .operations import (
    ChildLocation,
    DeletePolicy,
    TreeEdit,
    add_block,
    apply_edit,
    clone_subtree,
    delete_block,
    duplicate_block,
    find_parent,
    insert_child,
    locate,
    move_block,
    resize_columns,
    update_block_data,
)

__all__ = [
    "BlockIdFactory",
    "ChildLocation",
    "ContainerAdapter",
    "DeletePolicy",
    "IntegrityIssue",
    "IssueKind",
    "TreeEdit",
    "adapter_for",
    "add_block",
    "apply_edit",
    "check_integrity",
    "child_ids",
    "clone_subtree",
    "collect_garbage",
    "delete_block",
    "duplicate_block",
    "find_parent",
    "generate_block_id",
    "insert_child",
    "locate",
    "move_block",
    "resize_columns",
    "update_block_data",
]
