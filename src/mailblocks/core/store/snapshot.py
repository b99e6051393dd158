"""
Document snapshot definition.

An immutable record of the editor document at one revision. Snapshots are
what leaves the store: the persistence collaborator writes them and the CLI
prints them. Keeping the dataclass in its own module lets storage code import
it without pulling in the store itself.

Design Notes
------------
- **Immutability**: ``frozen=True``; the ``document`` dict is a JSON-safe copy
  taken at capture time, so later edits never leak into it.
- **Serialization**: the timestamp is already an ISO string (UTC, millisecond
  precision, trailing ``Z``), so ``dataclasses.asdict`` yields plain JSON.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any


@dataclass(frozen=True, slots=True)
class DocumentSnapshot:
    """
    Immutable record of the document at a given store revision.

    Attributes
    ----------
    timestamp : str
        ISO-8601 UTC capture time, e.g. ``"2025-11-12T02:02:37.104Z"``.
    revision : int
        Store revision counter at capture time.
    note : str | None
        Optional label, e.g. ``"before delete"``.
    selected_block_id : str | None
        Selection at capture time.
    document : dict[str, Any]
        The document in its JSON wire shape ``{id: {type, data}}``.
    """

    timestamp: str
    revision: int
    note: str | None
    selected_block_id: str | None = None
    document: dict[str, Any] = field(default_factory=dict)

    @property
    def block_count(self) -> int:
        return len(self.document)
