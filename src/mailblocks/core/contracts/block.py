"""
Block Contract

A Block is one node of an email document: a ``{type, data}`` pair whose
``data`` payload is kind-specific. A Document is a flat mapping from block ID
to Block; the tree structure lives entirely in the child-reference fields of
the container payloads (see :mod:`mailblocks.core.tree.adapters`).

Blocks are frozen. Operations that change a block build a new value with
:meth:`Block.evolve`, which deep-copies the payload so the original is never
shared with the result.
"""

from __future__ import annotations

import copy
from collections.abc import Mapping
from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field

#: Well-known ID of the root layout block.
ROOT_BLOCK_ID = "root"


class BlockType(str, Enum):
    """Closed set of block kinds, stored by their wire value."""

    TEXT = "Text"
    HEADING = "Heading"
    IMAGE = "Image"
    BUTTON = "Button"
    DIVIDER = "Divider"
    SPACER = "Spacer"
    AVATAR = "Avatar"
    HTML = "Html"
    CONTAINER = "Container"
    COLUMNS_CONTAINER = "ColumnsContainer"
    EMAIL_LAYOUT = "EmailLayout"


class Block(BaseModel):
    """A single node of an email document."""

    model_config = ConfigDict(frozen=True)

    type: BlockType = Field(..., description="Block kind tag.")
    data: dict[str, Any] = Field(
        default_factory=dict,
        description="Kind-specific payload; containers also carry child IDs here.",
    )

    def evolve(self, data: dict[str, Any]) -> Block:
        """Return a new block of the same kind carrying a deep copy of ``data``."""
        return Block(type=self.type, data=copy.deepcopy(data))

    def payload(self) -> dict[str, Any]:
        """Return a deep, mutable copy of the payload."""
        return copy.deepcopy(self.data)


#: Block ID -> Block. Insertion order carries no meaning.
Document = dict[str, Block]

#: Partial document merged over a live one.
Patch = dict[str, Block]


def document_to_payload(document: Mapping[str, Block]) -> dict[str, dict[str, Any]]:
    """Serialize a document to its JSON wire shape ``{id: {type, data}}``."""
    return {block_id: block.model_dump(mode="json") for block_id, block in document.items()}


def document_from_payload(raw: Mapping[str, Any]) -> Document:
    """Parse the JSON wire shape back into Blocks.

    Only the envelope (``type`` and ``data``) is checked here; payload shapes
    are the validation collaborator's job.

    Raises
    ------
    pydantic.ValidationError
        If an entry has an unknown type tag or a non-object payload.
    """
    return {str(block_id): Block.model_validate(entry) for block_id, entry in raw.items()}


__all__ = [
    "ROOT_BLOCK_ID",
    "Block",
    "BlockType",
    "Document",
    "Patch",
    "document_from_payload",
    "document_to_payload",
]
