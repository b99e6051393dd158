"""
Tree operations over an email document snapshot.

Every function here is pure: it reads one :data:`Document` snapshot and
returns a :class:`TreeEdit` describing the complete change (blocks to merge,
IDs to remove, block to select). Nothing touches the live store; the caller
installs the edit in a single update via
:meth:`mailblocks.core.store.memory.DocumentStore.apply`, so observers never
see a child before its parent's reference list has been updated.

Operations
----------
- :func:`find_parent` / :func:`locate`: O(n) scan for the container holding a block.
- :func:`insert_child` / :func:`add_block`: attach a new block under a parent slot.
- :func:`clone_subtree`: deep copy with fresh IDs for every node.
- :func:`duplicate_block`: clone and place right after the original.
- :func:`move_block`: swap with the previous/next sibling.
- :func:`delete_block`: remove and prune every reference to it.
- :func:`resize_columns`: switch a columns container between 2 and 3 columns.
- :func:`update_block_data`: replace a payload, keeping its child references.

Failure model
-------------
UI-driven misuse (moving the first sibling up, duplicating the root, unknown
IDs) is a no-op, never an exception. Only programming errors raise, e.g. an
unknown block type or an invalid direction literal.
"""

from __future__ import annotations

from collections.abc import Container, Mapping
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Literal

from mailblocks.core.contracts.block import ROOT_BLOCK_ID, Block, BlockType, Document, Patch
from mailblocks.core.registry import default_block, get_spec
from mailblocks.core.settings import get_logger

from .adapters import COLUMNS_ADAPTER, adapter_for, child_ids
from .ids import IdFactory, generate_block_id

logger = get_logger(__name__)

Direction = Literal["up", "down"]


class DeletePolicy(str, Enum):
    """What happens to the descendants of a deleted block."""

    ORPHAN = "orphan"
    CASCADE = "cascade"


@dataclass(frozen=True, slots=True)
class TreeEdit:
    """The full result of one tree operation.

    Attributes
    ----------
    patch : dict[str, Block]
        Blocks to add or overwrite.
    removed : frozenset[str]
        Block IDs to drop from the document.
    selection : str | None
        Block the editor should select afterwards (``None`` leaves the
        current selection alone on a no-op, and clears it otherwise).
    structural : bool
        ``True`` when the edit reshapes the tree and should be installed as
        a wholesale document replacement; ``False`` for localized edits that
        are merged as a patch.
    """

    patch: dict[str, Block] = field(default_factory=dict)
    removed: frozenset[str] = frozenset()
    selection: str | None = None
    structural: bool = False

    @property
    def is_noop(self) -> bool:
        return not self.patch and not self.removed


@dataclass(frozen=True, slots=True)
class ChildLocation:
    """Where a block sits: parent ID, slot (column) index, position in the slot."""

    parent_id: str
    slot: int
    index: int


def apply_edit(document: Mapping[str, Block], edit: TreeEdit) -> Document:
    """Return the document that results from installing ``edit``.

    A no-op edit returns ``document`` itself (same object) when it is a dict.
    """
    if edit.is_noop and isinstance(document, dict):
        return document
    out = {block_id: block for block_id, block in document.items() if block_id not in edit.removed}
    out.update(edit.patch)
    return out


# --------------------------------------------------------------------------- #
# Lookup
# --------------------------------------------------------------------------- #


def locate(
    document: Mapping[str, Block], block_id: str, *, root_id: str = ROOT_BLOCK_ID
) -> ChildLocation | None:
    """Find the container slot that references ``block_id``.

    Scans every entry (there are no parent pointers). Returns the first
    match, which in a well-formed document is the only one. ``None`` for the
    root, unknown IDs and orphans; a parentless non-root block is logged as a
    data-integrity warning.
    """
    for parent_id, block in document.items():
        if parent_id == block_id:
            continue
        adapter = adapter_for(block)
        if adapter is None:
            continue
        hit = adapter.find_slot(block, block_id)
        if hit is not None:
            return ChildLocation(parent_id=parent_id, slot=hit[0], index=hit[1])

    if block_id != root_id and block_id in document:
        logger.warning("Block %s is not referenced by any container (orphan)", block_id)
    return None


def find_parent(
    document: Mapping[str, Block], block_id: str, *, root_id: str = ROOT_BLOCK_ID
) -> str | None:
    """Return the ID of the container referencing ``block_id``, or ``None``."""
    location = locate(document, block_id, root_id=root_id)
    return location.parent_id if location else None


def descendants(document: Mapping[str, Block], block_id: str) -> set[str]:
    """Return every block reachable below ``block_id`` (excluding itself).

    Dangling references are skipped and cycles are tolerated, so this is safe
    on malformed documents.
    """
    seen: set[str] = set()
    stack = [block_id]
    while stack:
        current = document.get(stack.pop())
        if current is None:
            continue
        for child in child_ids(current):
            if child in seen or child == block_id or child not in document:
                continue
            seen.add(child)
            stack.append(child)
    return seen


def _fresh_id(taken: Container[str], id_factory: IdFactory) -> str:
    candidate = id_factory()
    while candidate in taken:
        candidate = id_factory()
    return candidate


# --------------------------------------------------------------------------- #
# Insert
# --------------------------------------------------------------------------- #


def insert_child(
    document: Mapping[str, Block],
    parent_id: str,
    block: Block,
    *,
    slot: int = 0,
    position: int | None = None,
    id_factory: IdFactory = generate_block_id,
) -> TreeEdit:
    """Attach ``block`` under ``parent_id`` with a freshly generated ID.

    Parameters
    ----------
    parent_id:
        Container receiving the block.
    block:
        The new block. It is inserted as-is, so it should carry no child
        references (registry defaults never do).
    slot:
        Column index for a columns container; ``0`` for flat containers.
    position:
        ``None`` appends; an integer ``i`` inserts before sibling ``i``
        (clamped to the list bounds).

    Returns
    -------
    TreeEdit
        Patch holding the new block and the updated parent; the new block is
        selected. Unknown parents, leaf parents and bad slots yield a no-op.
    """
    parent = document.get(parent_id)
    if parent is None:
        logger.warning("insert_child: unknown parent %s", parent_id)
        return TreeEdit()
    adapter = adapter_for(parent)
    if adapter is None:
        logger.warning("insert_child: %s (%s) cannot hold children", parent_id, parent.type.value)
        return TreeEdit()
    if not 0 <= slot < adapter.slot_count(parent):
        logger.warning("insert_child: %s has no slot %d", parent_id, slot)
        return TreeEdit()

    new_id = _fresh_id(document, id_factory)
    children = adapter.get_children(parent, slot)
    if position is None or position >= len(children):
        children.append(new_id)
    else:
        children.insert(max(position, 0), new_id)

    logger.debug("insert_child: %s -> %s[%d]", new_id, parent_id, slot)
    return TreeEdit(
        patch={
            new_id: block.evolve(block.data),
            parent_id: adapter.with_children(parent, children, slot),
        },
        selection=new_id,
    )


def add_block(
    document: Mapping[str, Block],
    block_type: BlockType | str,
    parent_id: str = ROOT_BLOCK_ID,
    *,
    slot: int = 0,
    position: int | None = None,
    id_factory: IdFactory = generate_block_id,
) -> TreeEdit:
    """Create a block of ``block_type`` with its default payload and insert it.

    Raises
    ------
    KeyError
        If ``block_type`` is not registered.
    ValueError
        If the kind cannot be created from the palette (the root layout).
    """
    spec = get_spec(block_type)
    if not spec.addable:
        raise ValueError(f"{spec.type.value} blocks cannot be added to a document")
    return insert_child(
        document,
        parent_id,
        default_block(spec.type),
        slot=slot,
        position=position,
        id_factory=id_factory,
    )


# --------------------------------------------------------------------------- #
# Clone / duplicate
# --------------------------------------------------------------------------- #


def clone_subtree(
    document: Mapping[str, Block],
    block_id: str,
    *,
    id_factory: IdFactory = generate_block_id,
) -> tuple[str, Patch]:
    """Deep-copy ``block_id`` and everything below it under fresh IDs.

    Every cloned container has its child lists rewritten to point at the
    clones, slot by slot, so a columns container keeps its column count and
    order. IDs are allocated in pre-order: the clone of ``block_id`` gets the
    first one.

    Dangling child references and references that would loop back into the
    subtree are dropped from the clone (and logged).

    Returns
    -------
    (new_block_id, entries)
        The clone's top-level ID and every newly created entry.

    Raises
    ------
    KeyError
        If ``block_id`` is not in ``document``.
    """
    if block_id not in document:
        raise KeyError(block_id)

    taken: set[str] = set(document)
    entries: Patch = {}

    def _clone(source_id: str, ancestors: frozenset[str]) -> str:
        source = document[source_id]
        new_id = _fresh_id(taken, id_factory)
        taken.add(new_id)

        clone = source.evolve(source.data)
        adapter = adapter_for(source)
        if adapter is not None:
            path = ancestors | {source_id}
            relinked: list[list[str]] = []
            for children in adapter.all_children(source):
                slot_ids: list[str] = []
                for child in children:
                    if child not in document:
                        logger.warning("clone_subtree: dropping dangling child %s", child)
                        continue
                    if child in path:
                        logger.warning("clone_subtree: dropping cyclic child %s", child)
                        continue
                    slot_ids.append(_clone(child, path))
                relinked.append(slot_ids)
            clone = adapter.with_all_children(clone, relinked)

        entries[new_id] = clone
        return new_id

    new_root = _clone(block_id, frozenset())
    return new_root, entries


def duplicate_block(
    document: Mapping[str, Block],
    block_id: str,
    *,
    id_factory: IdFactory = generate_block_id,
    root_id: str = ROOT_BLOCK_ID,
) -> TreeEdit:
    """Clone ``block_id`` and insert the clone as its immediate next sibling.

    The clone lands in the same slot (column) as the original and becomes
    the selection. The root, unknown IDs and orphans are no-ops.
    """
    if block_id == root_id or block_id not in document:
        logger.debug("duplicate_block: nothing to duplicate for %s", block_id)
        return TreeEdit()
    location = locate(document, block_id, root_id=root_id)
    if location is None:
        return TreeEdit()

    parent = document[location.parent_id]
    adapter = adapter_for(parent)
    if adapter is None:
        return TreeEdit()

    new_id, entries = clone_subtree(document, block_id, id_factory=id_factory)
    siblings = adapter.get_children(parent, location.slot)
    siblings.insert(location.index + 1, new_id)

    patch: Patch = dict(entries)
    patch[location.parent_id] = adapter.with_children(parent, siblings, location.slot)
    logger.debug("duplicate_block: %s -> %s (%d entries)", block_id, new_id, len(entries))
    return TreeEdit(patch=patch, selection=new_id, structural=True)


# --------------------------------------------------------------------------- #
# Move
# --------------------------------------------------------------------------- #


def move_block(
    document: Mapping[str, Block],
    block_id: str,
    direction: Direction,
    *,
    root_id: str = ROOT_BLOCK_ID,
) -> TreeEdit:
    """Swap ``block_id`` with its neighbour in the same sibling list.

    Moving the first sibling up, the last sibling down, or a parentless block
    changes nothing. The moved block stays selected either way.

    Raises
    ------
    ValueError
        If ``direction`` is neither ``"up"`` nor ``"down"``.
    """
    if direction not in ("up", "down"):
        raise ValueError(f"direction must be 'up' or 'down', got {direction!r}")

    location = locate(document, block_id, root_id=root_id)
    if location is None:
        return TreeEdit(selection=block_id if block_id in document else None)

    parent = document[location.parent_id]
    adapter = adapter_for(parent)
    if adapter is None:
        return TreeEdit(selection=block_id)
    siblings = adapter.get_children(parent, location.slot)
    target = location.index - 1 if direction == "up" else location.index + 1
    if not 0 <= target < len(siblings):
        logger.debug("move_block: %s already at the %s boundary", block_id, direction)
        return TreeEdit(selection=block_id)

    siblings[location.index], siblings[target] = siblings[target], siblings[location.index]
    return TreeEdit(
        patch={location.parent_id: adapter.with_children(parent, siblings, location.slot)},
        selection=block_id,
        structural=True,
    )


# --------------------------------------------------------------------------- #
# Delete
# --------------------------------------------------------------------------- #


def prune_references(block: Block, doomed: set[str] | frozenset[str]) -> Block:
    """Return ``block`` without any child reference to an ID in ``doomed``.

    Returns the very same object when nothing had to be removed.
    """
    adapter = adapter_for(block)
    if adapter is None:
        return block
    lists = adapter.all_children(block)
    if not any(child in doomed for children in lists for child in children):
        return block
    return adapter.with_all_children(
        block, [[child for child in children if child not in doomed] for children in lists]
    )


def delete_block(
    document: Mapping[str, Block],
    block_id: str,
    *,
    policy: DeletePolicy | str = DeletePolicy.ORPHAN,
    root_id: str = ROOT_BLOCK_ID,
) -> TreeEdit:
    """Remove ``block_id`` and prune it from every container that lists it.

    The whole document is scanned, not just the direct parent, so stray
    duplicate references are cleaned as well.

    With :attr:`DeletePolicy.ORPHAN` the block's descendants stay in the map
    as unreferenced entries (see :func:`mailblocks.core.tree.integrity.collect_garbage`).
    With :attr:`DeletePolicy.CASCADE` they are removed too.

    Deleting the root is a no-op.
    """
    policy = DeletePolicy(policy)
    if block_id == root_id:
        logger.debug("delete_block: refusing to delete the root")
        return TreeEdit()

    doomed = {block_id}
    if policy is DeletePolicy.CASCADE and block_id in document:
        doomed |= descendants(document, block_id)
        doomed.discard(root_id)

    patch: Patch = {}
    for other_id, block in document.items():
        if other_id in doomed:
            continue
        pruned = prune_references(block, doomed)
        if pruned is not block:
            patch[other_id] = pruned

    removed = frozenset(d for d in doomed if d in document)
    if not patch and not removed:
        return TreeEdit()
    logger.debug("delete_block: %s removed=%d pruned=%d", block_id, len(removed), len(patch))
    return TreeEdit(patch=patch, removed=removed, structural=True)


# --------------------------------------------------------------------------- #
# Localized edits
# --------------------------------------------------------------------------- #


def resize_columns(document: Mapping[str, Block], block_id: str, count: int) -> TreeEdit:
    """Switch a columns container to ``count`` (2 or 3) columns.

    Growing appends empty columns. Shrinking appends the children of the
    dropped columns to the new last column, so nothing becomes an orphan.
    Unknown IDs and non-columns blocks are no-ops.

    Raises
    ------
    ValueError
        If ``count`` is not 2 or 3.
    """
    if count not in (2, 3):
        raise ValueError(f"columns count must be 2 or 3, got {count}")
    block = document.get(block_id)
    if block is None or block.type is not BlockType.COLUMNS_CONTAINER:
        logger.warning("resize_columns: %s is not a columns container", block_id)
        return TreeEdit()

    lists = COLUMNS_ADAPTER.all_children(block)
    props = block.data.get("props") or {}
    if len(lists) == count and props.get("columnsCount") == count:
        return TreeEdit(selection=block_id)

    if len(lists) < count:
        lists += [[] for _ in range(count - len(lists))]
    else:
        overflow = [child for children in lists[count:] for child in children]
        lists = lists[:count]
        lists[-1].extend(overflow)

    payload = block.payload()
    new_props: dict[str, Any] = payload["props"] if isinstance(payload.get("props"), dict) else {}
    old_columns = list(new_props.get("columns") or [])
    columns: list[dict[str, Any]] = []
    for i, children in enumerate(lists):
        old = old_columns[i] if i < len(old_columns) and isinstance(old_columns[i], dict) else {}
        columns.append({**old, "childrenIds": children})
    new_props["columns"] = columns
    new_props["columnsCount"] = count
    payload["props"] = new_props
    return TreeEdit(patch={block_id: Block(type=block.type, data=payload)}, selection=block_id)


def update_block_data(
    document: Mapping[str, Block], block_id: str, data: dict[str, Any]
) -> TreeEdit:
    """Replace the payload of ``block_id`` while keeping its child references.

    This is the inspector-panel edit: style and props change, the tree does
    not. Any ``childrenIds``/``columns`` carried by ``data`` are overwritten
    with the block's current ones. Unknown IDs are a no-op.
    """
    block = document.get(block_id)
    if block is None:
        logger.warning("update_block_data: unknown block %s", block_id)
        return TreeEdit()
    updated = block.evolve(data)
    adapter = adapter_for(block)
    if adapter is not None:
        updated = adapter.carry_children(block, updated)
    return TreeEdit(patch={block_id: updated}, selection=block_id)


__all__ = [
    "ChildLocation",
    "DeletePolicy",
    "Direction",
    "TreeEdit",
    "add_block",
    "apply_edit",
    "clone_subtree",
    "delete_block",
    "descendants",
    "duplicate_block",
    "find_parent",
    "insert_child",
    "locate",
    "move_block",
    "prune_references",
    "resize_columns",
    "update_block_data",
]
