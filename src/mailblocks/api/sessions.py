"""
In-Memory Editor Sessions.

One :class:`DocumentStore` per template ID, loaded from the repository on
first access and saved back after every change.

Note on Persistence
-------------------
The stores are volatile; the repository is the source of truth. Restarting
the server drops selections and view state but no document content, since
every mutation is written through immediately.
"""

from __future__ import annotations

from collections.abc import Mapping
from typing import ClassVar

from mailblocks.core.contracts.block import Block
from mailblocks.core.settings import get_logger
from mailblocks.core.store.memory import DocumentStore
from mailblocks.core.store.storage import DocumentRepository, JsonFileRepository

logger = get_logger(__name__)


class EditorSessions:
    """
    A dictionary-backed registry of open documents.
    """

    # Singleton instance placeholder (initialized in app startup)
    _instance: ClassVar[EditorSessions | None] = None

    def __init__(self, repository: DocumentRepository | None = None) -> None:
        self.repository: DocumentRepository = (
            repository if repository is not None else JsonFileRepository()
        )
        self._stores: dict[str, DocumentStore] = {}

    @classmethod
    def get_instance(cls) -> EditorSessions:
        """Accessor for the global singleton instance."""
        if cls._instance is None:
            cls._instance = cls()
        return cls._instance

    @classmethod
    def reset_instance(cls, repository: DocumentRepository | None = None) -> EditorSessions:
        """Replace the global instance, e.g. to point it at another repository."""
        cls._instance = cls(repository)
        return cls._instance

    def open(self, template_id: str) -> DocumentStore:
        """Return the store for ``template_id``, loading it on first use.

        Raises
        ------
        ValueError
            If the template ID is not acceptable to the repository.
        DocumentStorageError
            If the stored document cannot be read.
        """
        store = self._stores.get(template_id)
        if store is None:
            store = DocumentStore(self.repository.load_document(template_id))
            self._stores[template_id] = store
            logger.info("Opened session for %s (%d block(s))", template_id, len(store))
        return store

    def save(self, template_id: str, document: Mapping[str, Block] | None = None) -> None:
        """Write ``document`` (default: the session's current one) to the repository."""
        if document is None:
            store = self._stores.get(template_id)
            if store is None:
                return
            document = store.get_document()
        self.repository.save_document(template_id, document)

    def is_open(self, template_id: str) -> bool:
        return template_id in self._stores

    def close(self, template_id: str) -> None:
        self._stores.pop(template_id, None)

    def clear(self) -> None:
        self._stores.clear()


# Global accessor for convenience
def get_editor_sessions() -> EditorSessions:
    return EditorSessions.get_instance()


__all__ = ["EditorSessions", "get_editor_sessions"]
