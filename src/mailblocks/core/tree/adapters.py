"""
Container adapters: uniform access to the three child-reference shapes.

The document has no common ``children`` field. Each container kind stores its
child IDs differently:

- ``EmailLayout``       -> ``data["childrenIds"]``
- ``Container``         -> ``data["props"]["childrenIds"]``
- ``ColumnsContainer``  -> ``data["props"]["columns"][i]["childrenIds"]``

An adapter exposes those lists as numbered *slots*. Flat shapes have exactly
one slot (index 0); a columns container has one slot per column. Tree
operations only ever talk to slots, so adding a new shape means adding one
adapter class and one entry in :data:`ADAPTERS`.

Adapters are pure: ``with_children`` returns a new :class:`Block` and leaves
every other payload field (and every other column) untouched.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from collections.abc import Iterator, Sequence
from typing import Any

from mailblocks.core.contracts.block import Block
from mailblocks.core.registry import ChildShape, get_spec


class ContainerAdapter(ABC):
    """Read and replace the child-ID lists of one container shape."""

    @abstractmethod
    def slot_count(self, block: Block) -> int:
        """Number of independent child lists the block carries."""

    @abstractmethod
    def get_children(self, block: Block, slot: int = 0) -> list[str]:
        """Return a copy of the child IDs held in ``slot``."""

    @abstractmethod
    def with_children(self, block: Block, children: Sequence[str], slot: int = 0) -> Block:
        """Return a new block whose ``slot`` holds ``children``."""

    def all_children(self, block: Block) -> list[list[str]]:
        """Return one child list per slot, in slot order."""
        return [self.get_children(block, slot) for slot in range(self.slot_count(block))]

    def with_all_children(self, block: Block, lists: Sequence[Sequence[str]]) -> Block:
        """Replace every slot at once; ``lists`` must have one entry per slot."""
        if len(lists) != self.slot_count(block):
            raise ValueError(
                f"expected {self.slot_count(block)} child lists, got {len(lists)}"
            )
        out = block
        for slot, children in enumerate(lists):
            out = self.with_children(out, children, slot)
        return out

    def carry_children(self, source: Block, target: Block) -> Block:
        """Return ``target`` with ``source``'s child references copied over."""
        return self.with_all_children(target, self.all_children(source))

    def find_slot(self, block: Block, child_id: str) -> tuple[int, int] | None:
        """Return ``(slot, index)`` of ``child_id`` within ``block``, if present."""
        for slot, children in enumerate(self.all_children(block)):
            if child_id in children:
                return slot, children.index(child_id)
        return None


class FlatListAdapter(ContainerAdapter):
    """A single ordered list of child IDs found at ``path`` inside the payload."""

    def __init__(self, path: tuple[str, ...]) -> None:
        if not path:
            raise ValueError("path must name at least one key")
        self.path = path

    def __repr__(self) -> str:  # pragma: no cover - debugging aid
        return f"FlatListAdapter({'.'.join(self.path)})"

    def slot_count(self, block: Block) -> int:
        return 1

    def get_children(self, block: Block, slot: int = 0) -> list[str]:
        self._check_slot(slot)
        node: Any = block.data
        for key in self.path:
            if not isinstance(node, dict):
                return []
            node = node.get(key)
        return list(node) if node else []

    def with_children(self, block: Block, children: Sequence[str], slot: int = 0) -> Block:
        self._check_slot(slot)
        payload = block.payload()
        node = payload
        for key in self.path[:-1]:
            # A nullable ``props`` is normal in stored documents.
            if not isinstance(node.get(key), dict):
                node[key] = {}
            node = node[key]
        node[self.path[-1]] = list(children)
        return Block(type=block.type, data=payload)

    @staticmethod
    def _check_slot(slot: int) -> None:
        if slot != 0:
            raise IndexError(f"flat containers only have slot 0, got {slot}")


class ColumnsAdapter(ContainerAdapter):
    """A fixed-arity array of columns, each with its own child list.

    The slot index is the column index. Replacing one column copies the other
    columns verbatim and never changes the number of columns.
    """

    def __repr__(self) -> str:  # pragma: no cover - debugging aid
        return "ColumnsAdapter()"

    @staticmethod
    def _columns(data: dict[str, Any]) -> list[Any]:
        props = data.get("props")
        if not isinstance(props, dict):
            return []
        return list(props.get("columns") or [])

    def slot_count(self, block: Block) -> int:
        return len(self._columns(block.data))

    def get_children(self, block: Block, slot: int = 0) -> list[str]:
        columns = self._columns(block.data)
        if not 0 <= slot < len(columns):
            raise IndexError(f"column {slot} out of range for {len(columns)} columns")
        column = columns[slot]
        if not isinstance(column, dict):
            return []
        return list(column.get("childrenIds") or [])

    def with_children(self, block: Block, children: Sequence[str], slot: int = 0) -> Block:
        payload = block.payload()
        columns = self._columns(payload)
        if not 0 <= slot < len(columns):
            raise IndexError(f"column {slot} out of range for {len(columns)} columns")
        column = columns[slot] if isinstance(columns[slot], dict) else {}
        columns[slot] = {**column, "childrenIds": list(children)}
        payload["props"]["columns"] = columns
        return Block(type=block.type, data=payload)

    def carry_children(self, source: Block, target: Block) -> Block:
        """Copy the whole column array (and its count) from ``source``.

        The column arity belongs to the tree, not to the payload edit, so the
        target's own ``columns``/``columnsCount`` are discarded.
        """
        source_props = source.data.get("props")
        if not isinstance(source_props, dict):
            return target
        payload = target.payload()
        props = payload.get("props")
        if not isinstance(props, dict):
            props = payload["props"] = {}
        props["columns"] = self._columns(source.payload())
        if "columnsCount" in source_props:
            props["columnsCount"] = source_props["columnsCount"]
        return Block(type=target.type, data=payload)


ROOT_ADAPTER = FlatListAdapter(("childrenIds",))
CONTAINER_ADAPTER = FlatListAdapter(("props", "childrenIds"))
COLUMNS_ADAPTER = ColumnsAdapter()

#: Child shape -> adapter. ``ChildShape.NONE`` deliberately has no entry.
ADAPTERS: dict[ChildShape, ContainerAdapter] = {
    ChildShape.FLAT: ROOT_ADAPTER,
    ChildShape.NESTED_FLAT: CONTAINER_ADAPTER,
    ChildShape.COLUMNS: COLUMNS_ADAPTER,
}


def adapter_for(block: Block) -> ContainerAdapter | None:
    """Return the adapter for ``block``'s kind, or ``None`` for leaf kinds."""
    return ADAPTERS.get(get_spec(block.type).child_shape)


def iter_child_refs(block: Block) -> Iterator[tuple[int, int, str]]:
    """Yield ``(slot, index, child_id)`` for every child reference of ``block``."""
    adapter = adapter_for(block)
    if adapter is None:
        return
    for slot, children in enumerate(adapter.all_children(block)):
        for index, child_id in enumerate(children):
            yield slot, index, child_id


def child_ids(block: Block) -> list[str]:
    """Return every child ID of ``block`` flattened in slot order."""
    return [child_id for _, _, child_id in iter_child_refs(block)]


__all__ = [
    "ADAPTERS",
    "COLUMNS_ADAPTER",
    "CONTAINER_ADAPTER",
    "ROOT_ADAPTER",
    "ColumnsAdapter",
    "ContainerAdapter",
    "FlatListAdapter",
    "adapter_for",
    "child_ids",
    "iter_child_refs",
]
