"""
Document integrity checks and reachability-based garbage collection.

The tree operations are written to preserve the document invariants; they do
not re-check them on every call. This module is the enforcement side: the
conformance tests and the ``mailblocks check`` command run
:func:`check_integrity` over documents, and :func:`collect_garbage` reaps the
orphans that the default delete policy leaves behind.

Invariants checked
------------------
1. Every child reference resolves to a document key.
2. No block is referenced as a child more than once.
3. The root exists, is an ``EmailLayout`` and is nobody's child.
4. The child graph has no cycles.
5. Every columns container has exactly ``columnsCount`` column slots.

Plus, unless orphans are explicitly allowed, every non-root block is
reachable from the root.
"""

from __future__ import annotations

from collections import Counter
from collections.abc import Mapping
from dataclasses import dataclass
from enum import Enum

from mailblocks.core.contracts.block import ROOT_BLOCK_ID, Block, BlockType
from mailblocks.core.settings import get_logger

from .adapters import COLUMNS_ADAPTER, child_ids
from .operations import TreeEdit, descendants

logger = get_logger(__name__)


class IssueKind(str, Enum):
    MISSING_ROOT = "missing_root"
    ROOT_TYPE = "root_type"
    ROOT_REFERENCED = "root_referenced"
    DANGLING_REFERENCE = "dangling_reference"
    MULTI_PARENT = "multi_parent"
    CYCLE = "cycle"
    COLUMN_ARITY = "column_arity"
    ORPHAN = "orphan"


@dataclass(frozen=True, slots=True)
class IntegrityIssue:
    """One invariant violation, attributed to the block it was found on."""

    kind: IssueKind
    block_id: str
    detail: str = ""

    def __str__(self) -> str:
        suffix = f": {self.detail}" if self.detail else ""
        return f"[{self.kind.value}] {self.block_id}{suffix}"


def reachable_ids(document: Mapping[str, Block], root_id: str = ROOT_BLOCK_ID) -> set[str]:
    """Return the root plus every block reachable from it."""
    if root_id not in document:
        return set()
    return {root_id} | descendants(document, root_id)


def _find_cycles(document: Mapping[str, Block]) -> list[str]:
    """Return the blocks closing a cycle (targets of DFS back edges)."""
    white, grey, black = 0, 1, 2
    color = dict.fromkeys(document, white)
    closing: list[str] = []

    for start in document:
        if color[start] != white:
            continue
        color[start] = grey
        stack = [(start, iter(child_ids(document[start])))]
        while stack:
            node, children = stack[-1]
            advanced = False
            for child in children:
                state = color.get(child)
                if state is None:
                    continue  # dangling, reported elsewhere
                if state == grey:
                    closing.append(child)
                elif state == white:
                    color[child] = grey
                    stack.append((child, iter(child_ids(document[child]))))
                    advanced = True
                    break
            if not advanced:
                color[node] = black
                stack.pop()
    return closing


def check_integrity(
    document: Mapping[str, Block],
    root_id: str = ROOT_BLOCK_ID,
    *,
    allow_orphans: bool = False,
) -> list[IntegrityIssue]:
    """Return every invariant violation found in ``document``.

    An empty list means the document is well-formed. ``allow_orphans`` skips
    the reachability check, which is what the default (orphaning) delete
    policy needs.
    """
    issues: list[IntegrityIssue] = []

    root = document.get(root_id)
    if root is None:
        issues.append(IntegrityIssue(IssueKind.MISSING_ROOT, root_id))
    elif root.type is not BlockType.EMAIL_LAYOUT:
        issues.append(
            IntegrityIssue(
                IssueKind.ROOT_TYPE, root_id, f"expected EmailLayout, got {root.type.value}"
            )
        )

    references: Counter[str] = Counter()
    for block_id, block in document.items():
        for child in child_ids(block):
            references[child] += 1
            if child not in document:
                issues.append(
                    IntegrityIssue(IssueKind.DANGLING_REFERENCE, block_id, f"unknown child {child}")
                )
            if child == root_id:
                issues.append(IntegrityIssue(IssueKind.ROOT_REFERENCED, block_id))

        if block.type is BlockType.COLUMNS_CONTAINER:
            props = block.data.get("props")
            expected = props.get("columnsCount", 2) if isinstance(props, dict) else 2
            actual = COLUMNS_ADAPTER.slot_count(block)
            if actual != expected:
                issues.append(
                    IntegrityIssue(
                        IssueKind.COLUMN_ARITY,
                        block_id,
                        f"{actual} column slots for columnsCount={expected}",
                    )
                )

    for child, count in sorted(references.items()):
        if count > 1:
            issues.append(IntegrityIssue(IssueKind.MULTI_PARENT, child, f"referenced {count} times"))

    for block_id in _find_cycles(document):
        issues.append(IntegrityIssue(IssueKind.CYCLE, block_id))

    if not allow_orphans:
        reachable = reachable_ids(document, root_id)
        for block_id in sorted(set(document) - reachable):
            if block_id != root_id:
                issues.append(IntegrityIssue(IssueKind.ORPHAN, block_id))

    return issues


def is_well_formed(
    document: Mapping[str, Block],
    root_id: str = ROOT_BLOCK_ID,
    *,
    allow_orphans: bool = False,
) -> bool:
    """Return ``True`` when :func:`check_integrity` finds nothing."""
    return not check_integrity(document, root_id, allow_orphans=allow_orphans)


def orphan_ids(document: Mapping[str, Block], root_id: str = ROOT_BLOCK_ID) -> set[str]:
    """Return the IDs of entries not reachable from the root."""
    return set(document) - reachable_ids(document, root_id)


def collect_garbage(document: Mapping[str, Block], root_id: str = ROOT_BLOCK_ID) -> TreeEdit:
    """Remove every entry unreachable from the root.

    Reachable blocks never reference unreachable ones, so only removals are
    needed. A document without a root is left alone rather than emptied.
    """
    if root_id not in document:
        logger.warning("collect_garbage: document has no root %s, skipping", root_id)
        return TreeEdit()
    doomed = orphan_ids(document, root_id)
    if not doomed:
        return TreeEdit()
    logger.info("collect_garbage: reaping %d orphaned block(s)", len(doomed))
    return TreeEdit(removed=frozenset(doomed), structural=True)


__all__ = [
    "IntegrityIssue",
    "IssueKind",
    "check_integrity",
    "collect_garbage",
    "is_well_formed",
    "orphan_ids",
    "reachable_ids",
]
