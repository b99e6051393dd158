"""Disk-backed persistence for editor documents.

This module is the persistence collaborator of the editor core. The core only
consumes in-memory snapshots; loading and saving happen here:

- ``read_document(path)`` / ``write_document(path, doc)``: single-file JSON I/O.
- :class:`JsonFileRepository`: one JSON file per email template under a base
  directory (``MAILBLOCKS_DOCUMENT_DIR`` or ``artifacts/documents/``).
- :class:`DebouncedSaver`: subscribes to a store and saves after a quiet
  period, the way the editor's autosave behaves.

File format
-----------
The document's wire shape, UTF-8, indented::

    {
      "root": {"type": "EmailLayout", "data": {"childrenIds": ["block-..."]}},
      "block-...": {"type": "Text", "data": {...}}
    }

An empty file or ``{}`` loads as the default root-only document.

Writes go to a temporary sibling first and are moved into place with
``os.replace`` so a crash never leaves half a document behind. Concurrent
writers are not coordinated: last write wins.
"""

from __future__ import annotations

import json
import os
import re
import threading
from collections.abc import Mapping
from pathlib import Path
from typing import Any, Protocol

from pydantic import ValidationError

from mailblocks.core.contracts.block import Block, Document, document_from_payload, document_to_payload
from mailblocks.core.contracts.validation import validate_document
from mailblocks.core.registry import default_document
from mailblocks.core.settings import get_logger, load_settings

from .memory import DocumentStore

logger = get_logger(__name__)

_TEMPLATE_ID = re.compile(r"^[A-Za-z0-9_-]+$")


class DocumentStorageError(RuntimeError):
    """Raised when a document cannot be read, parsed or written."""

    def __init__(self, path: Path, reason: str) -> None:
        super().__init__(f"{path}: {reason}")
        self.path = path
        self.reason = reason


def read_document(path: Path, *, validate: bool | None = None) -> Document:
    """Load a document from ``path``.

    Parameters
    ----------
    path : Path
        JSON file to read. A missing path raises; an empty file or an empty
        object yields the default root-only document.
    validate : bool | None
        Run the payload schemas over every block. ``None`` defers to
        ``settings.validate_on_load``.

    Raises
    ------
    DocumentStorageError
        On I/O errors, malformed JSON, unknown block types, or (when
        validating) payload schema violations.
    """
    if validate is None:
        validate = load_settings().validate_on_load

    try:
        text = path.read_text(encoding="utf-8")
    except OSError as exc:
        raise DocumentStorageError(path, f"cannot read file ({exc.strerror or exc})") from exc

    if not text.strip():
        return default_document()

    try:
        raw: Any = json.loads(text)
    except json.JSONDecodeError as exc:
        raise DocumentStorageError(path, f"invalid JSON ({exc.msg} at line {exc.lineno})") from exc
    if not isinstance(raw, dict):
        raise DocumentStorageError(path, "top-level JSON value must be an object")
    if not raw:
        return default_document()

    try:
        document = document_from_payload(raw)
    except ValidationError as exc:
        raise DocumentStorageError(path, f"malformed block entry ({exc.error_count()} error(s))") from exc

    if validate:
        result = validate_document(document)
        if result.is_err():
            problems = result.unwrap_err()
            raise DocumentStorageError(path, "schema validation failed: " + "; ".join(problems))

    logger.info("Loaded %d block(s) from %s", len(document), path)
    return document


def write_document(path: Path, document: Mapping[str, Block]) -> Path:
    """Write ``document`` to ``path`` atomically and return the path."""
    payload = document_to_payload(document)
    tmp = path.with_name(f".{path.name}.tmp")
    try:
        path.parent.mkdir(parents=True, exist_ok=True)
        with tmp.open("w", encoding="utf-8") as f:
            json.dump(payload, f, ensure_ascii=False, indent=2)
            f.write("\n")
        os.replace(tmp, path)
    except OSError as exc:
        raise DocumentStorageError(path, f"cannot write file ({exc.strerror or exc})") from exc
    logger.info("Saved %d block(s) to %s", len(payload), path)
    return path


class DocumentRepository(Protocol):
    """What the editor needs from a persistence backend."""

    def load_document(self, template_id: str) -> Document: ...

    def save_document(self, template_id: str, document: Mapping[str, Block]) -> None: ...


class JsonFileRepository:
    """Persist one JSON document per template under ``base_dir``."""

    def __init__(self, base_dir: Path | None = None, *, validate: bool | None = None) -> None:
        self.base_dir: Path = base_dir if base_dir is not None else load_settings().document_dir
        self.validate = validate
        self.base_dir.mkdir(parents=True, exist_ok=True)

    def path_for(self, template_id: str) -> Path:
        """Return the file backing ``template_id``.

        Raises
        ------
        ValueError
            If the ID contains anything besides letters, digits, ``-`` and ``_``.
        """
        if not _TEMPLATE_ID.match(template_id):
            raise ValueError(f"Invalid template id: {template_id!r}")
        return self.base_dir / f"{template_id}.json"

    def exists(self, template_id: str) -> bool:
        return self.path_for(template_id).exists()

    def load_document(self, template_id: str) -> Document:
        """Load a template; unknown templates start as the default document."""
        path = self.path_for(template_id)
        if not path.exists():
            logger.info("No stored document for %s, starting from the default layout", template_id)
            return default_document()
        return read_document(path, validate=self.validate)

    def save_document(self, template_id: str, document: Mapping[str, Block]) -> None:
        write_document(self.path_for(template_id), document)

    def delete(self, template_id: str) -> bool:
        """Remove a stored template; return whether a file was deleted."""
        path = self.path_for(template_id)
        if not path.exists():
            return False
        path.unlink()
        return True


class DebouncedSaver:
    """Save a store's document after ``delay`` seconds without further edits.

    Usage
    -----
    >>> saver = DebouncedSaver(store, repo, "welcome-mail")
    >>> saver.start()      # subscribe to store updates
    >>> ...                # edits schedule (and reschedule) a save
    >>> saver.flush()      # save now if a save is pending
    >>> saver.stop()       # unsubscribe and cancel

    Failures while saving are logged and kept on ``last_error``; the next
    edit schedules another attempt.
    """

    def __init__(
        self,
        store: DocumentStore,
        repository: DocumentRepository,
        template_id: str,
        *,
        delay: float | None = None,
    ) -> None:
        self.store = store
        self.repository = repository
        self.template_id = template_id
        self.delay = load_settings().autosave_delay if delay is None else delay
        self.saves = 0
        self.last_error: Exception | None = None
        self._timer: threading.Timer | None = None
        self._generation = 0
        self._lock = threading.Lock()
        self._unsubscribe: Any = None

    @property
    def pending(self) -> bool:
        with self._lock:
            return self._timer is not None

    def start(self) -> None:
        if self._unsubscribe is None:
            self._unsubscribe = self.store.subscribe(lambda _store: self.schedule())

    def stop(self) -> None:
        if self._unsubscribe is not None:
            self._unsubscribe()
            self._unsubscribe = None
        self.cancel()

    def schedule(self) -> None:
        """(Re)start the quiet-period timer."""
        with self._lock:
            if self._timer is not None:
                self._timer.cancel()
            self._generation += 1
            self._timer = threading.Timer(self.delay, self._fire, args=(self._generation,))
            self._timer.daemon = True
            self._timer.start()

    def cancel(self) -> None:
        with self._lock:
            if self._timer is not None:
                self._timer.cancel()
                self._timer = None

    def flush(self) -> bool:
        """Save immediately if a save is pending; return whether one ran."""
        with self._lock:
            timer, self._timer = self._timer, None
        if timer is None:
            return False
        timer.cancel()
        self._save()
        return True

    def _fire(self, generation: int) -> None:
        # A timer that was replaced or cancelled after it started must not save.
        with self._lock:
            if self._timer is None or generation != self._generation:
                return
            self._timer = None
        self._save()

    def _save(self) -> None:
        try:
            self.repository.save_document(self.template_id, self.store.get_document())
        except (DocumentStorageError, ValueError) as exc:
            self.last_error = exc
            logger.error("Autosave of %s failed: %s", self.template_id, exc)
            return
        self.last_error = None
        self.saves += 1


__all__ = [
    "DebouncedSaver",
    "DocumentRepository",
    "DocumentStorageError",
    "JsonFileRepository",
    "read_document",
    "write_document",
]
