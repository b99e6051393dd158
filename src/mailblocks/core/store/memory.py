"""
In-memory document store for the email editor.

This module holds the process-wide mutable state of one editing session:

- the current document (flat map: block ID -> Block),
- the selected block ID,
- UI-only view state (inspector tab, main tab, preview screen size, drawer
  and palette toggles).

It exposes read accessors and a small set of mutation primitives:

- ``merge_patch(patch)``: overwrite/add a subset of blocks in one update.
- ``replace_document(doc)``: wholesale swap, clears the selection.
- ``delete_block(id)``: drop one key without touching references.
- ``set_selected_block_id(id)``: move the selection (and the side panel).
- ``apply(edit)``: install the result of a tree operation in one update.

Design Goals
------------
- **One write per operation**: every structural change is computed from one
  snapshot by :mod:`mailblocks.core.tree.operations` and installed with a
  single assignment, so listeners never observe a half-applied edit.
- **Immutable values**: blocks are frozen and the document dict is replaced,
  never mutated, so ``get_document()`` can hand out a cheap shallow copy.
- **ID freshness**: the store's :class:`BlockIdFactory` remembers every ID
  that ever appeared in the document, so deleted IDs are never reissued.
- **Observability**: every document mutation bumps a revision counter and
  notifies subscribers.
"""

from __future__ import annotations

from collections.abc import Callable, Iterable, Mapping
from datetime import UTC, datetime
from typing import ClassVar, Literal

from mailblocks.core.contracts.block import ROOT_BLOCK_ID, Block, Document, document_to_payload
from mailblocks.core.registry import default_document
from mailblocks.core.settings import get_logger
from mailblocks.core.tree.adapters import child_ids
from mailblocks.core.tree.ids import BlockIdFactory, IdFactory, generate_block_id
from mailblocks.core.tree.operations import TreeEdit, apply_edit

from .snapshot import DocumentSnapshot

logger = get_logger(__name__)

SidebarTab = Literal["block-configuration", "styles"]
MainTab = Literal["editor", "preview", "json", "html"]
ScreenSize = Literal["desktop", "mobile"]

#: Called after every document update with the store that changed.
Listener = Callable[["DocumentStore"], None]


def _all_ids(document: Mapping[str, Block]) -> Iterable[str]:
    for block_id, block in document.items():
        yield block_id
        yield from child_ids(block)


class DocumentStore:
    """
    Mutable editor state around an immutable document value.

    Attributes
    ----------
    _document : dict[str, Block]
        The live document. Replaced (never mutated) on every update.
    _selected_block_id : str | None
        Current selection.
    _rev : int
        Monotonically increasing revision counter (bumps on every document
        mutation).
    _ids : BlockIdFactory
        Issues fresh IDs and remembers every ID seen this session.
    """

    __slots__ = (
        "_document",
        "_selected_block_id",
        "_sidebar_tab",
        "_main_tab",
        "_screen_size",
        "_inspector_drawer_open",
        "_block_palette_open",
        "_rev",
        "_ids",
        "_listeners",
        "root_id",
    )

    _instance: ClassVar[DocumentStore | None] = None

    def __init__(
        self,
        document: Mapping[str, Block] | None = None,
        *,
        root_id: str = ROOT_BLOCK_ID,
        id_generator: IdFactory = generate_block_id,
    ) -> None:
        self.root_id = root_id
        self._document: Document = (
            dict(document) if document is not None else default_document(root_id)
        )
        self._selected_block_id: str | None = None
        self._sidebar_tab: SidebarTab = "styles"
        self._main_tab: MainTab = "editor"
        self._screen_size: ScreenSize = "desktop"
        self._inspector_drawer_open = True
        self._block_palette_open = True
        self._rev = 0
        self._ids = BlockIdFactory(_all_ids(self._document), generator=id_generator)
        self._listeners: list[Listener] = []

    @classmethod
    def get_instance(cls) -> DocumentStore:
        """Accessor for the process-wide store."""
        if cls._instance is None:
            cls._instance = cls()
        return cls._instance

    @classmethod
    def reset_instance(cls) -> None:
        """Drop the process-wide store (tests, or a fresh editor session)."""
        cls._instance = None

    # ------------------------------- Document -------------------------------

    def get_document(self) -> Document:
        """Return the current document. Side-effect free."""
        return dict(self._document)

    def get_block(self, block_id: str) -> Block | None:
        return self._document.get(block_id)

    def __contains__(self, block_id: object) -> bool:
        return block_id in self._document

    def __len__(self) -> int:
        return len(self._document)

    @property
    def revision(self) -> int:
        return self._rev

    @property
    def id_factory(self) -> IdFactory:
        """ID source to pass to tree operations run against this store."""
        return self._ids

    def merge_patch(self, patch: Mapping[str, Block]) -> None:
        """Overwrite or add every entry of ``patch``; other keys are untouched."""
        if not patch:
            return
        merged = dict(self._document)
        merged.update(patch)
        self._install(merged)

    def replace_document(self, document: Mapping[str, Block]) -> None:
        """Swap the whole document and clear the selection."""
        self._install(dict(document), notify=False)
        self.set_selected_block_id(None)
        self._notify()

    def delete_block(self, block_id: str) -> None:
        """Remove one entry without pruning references to it.

        Callers are tree operations that already pruned the references in
        the same logical update.
        """
        if block_id not in self._document:
            return
        remaining = {k: v for k, v in self._document.items() if k != block_id}
        self._install(remaining, notify=False)
        if self._selected_block_id == block_id:
            self.set_selected_block_id(None)
        self._notify()

    def apply(self, edit: TreeEdit) -> None:
        """Install the result of a tree operation.

        Structural edits (duplicate, move, delete, garbage collection) replace
        the document wholesale; localized edits (insert, payload edits) are
        merged. Listeners are notified once, after the edit's selection is set.
        """
        if edit.is_noop:
            if edit.selection is not None:
                self.set_selected_block_id(edit.selection)
            return
        if edit.structural:
            self._install(apply_edit(self._document, edit), notify=False)
            self.set_selected_block_id(edit.selection)
        else:
            self._install({**self._document, **edit.patch}, notify=False)
            if edit.selection is not None:
                self.set_selected_block_id(edit.selection)
        self._notify()

    def _install(self, document: Document, *, notify: bool = True) -> None:
        self._ids.observe(_all_ids(document))
        self._document = document
        self._rev += 1
        logger.debug("document rev=%d blocks=%d", self._rev, len(document))
        if notify:
            self._notify()

    def _notify(self) -> None:
        for listener in list(self._listeners):
            listener(self)

    # ------------------------------- Selection ------------------------------

    @property
    def selected_block_id(self) -> str | None:
        return self._selected_block_id

    def get_selected_block_id(self) -> str | None:
        return self._selected_block_id

    def set_selected_block_id(self, block_id: str | None) -> None:
        """Move the selection.

        Selecting a block always switches the side panel to the block
        inspector and opens the drawer; clearing the selection switches it
        back to the global styles panel.
        """
        self._selected_block_id = block_id
        if block_id is None:
            self._sidebar_tab = "styles"
        else:
            self._sidebar_tab = "block-configuration"
            self._inspector_drawer_open = True

    # ------------------------------- View state -----------------------------

    @property
    def sidebar_tab(self) -> SidebarTab:
        return self._sidebar_tab

    def set_sidebar_tab(self, tab: SidebarTab) -> None:
        self._sidebar_tab = tab

    @property
    def main_tab(self) -> MainTab:
        return self._main_tab

    def set_main_tab(self, tab: MainTab) -> None:
        self._main_tab = tab

    @property
    def screen_size(self) -> ScreenSize:
        return self._screen_size

    def set_screen_size(self, size: ScreenSize) -> None:
        self._screen_size = size

    @property
    def inspector_drawer_open(self) -> bool:
        return self._inspector_drawer_open

    def toggle_inspector_drawer(self) -> bool:
        self._inspector_drawer_open = not self._inspector_drawer_open
        return self._inspector_drawer_open

    @property
    def block_palette_open(self) -> bool:
        return self._block_palette_open

    def toggle_block_palette(self) -> bool:
        self._block_palette_open = not self._block_palette_open
        return self._block_palette_open

    # ------------------------------- Observers ------------------------------

    def subscribe(self, listener: Listener) -> Callable[[], None]:
        """Register ``listener`` for document updates; return an unsubscribe callable."""
        self._listeners.append(listener)

        def _unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return _unsubscribe

    # ------------------------------- Snapshots ------------------------------

    def snapshot(self, note: str | None = None) -> DocumentSnapshot:
        """Capture an immutable, JSON-safe copy of the current document."""
        ts_str = datetime.now(UTC).strftime("%Y-%m-%dT%H:%M:%S.%f")[:-3] + "Z"
        return DocumentSnapshot(
            timestamp=ts_str,
            revision=self._rev,
            note=note,
            selected_block_id=self._selected_block_id,
            document=document_to_payload(self._document),
        )


def get_document_store() -> DocumentStore:
    """Return the process-wide :class:`DocumentStore`."""
    return DocumentStore.get_instance()


__all__ = ["DocumentStore", "Listener", "get_document_store"]
