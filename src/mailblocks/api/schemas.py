"""
API Data Models (Pydantic Schemas).

Request and response bodies of the document-editing endpoints. Blocks travel
in their JSON wire shape ``{id: {"type": ..., "data": {...}}}``, exactly as
they are stored on disk.
"""

from __future__ import annotations

from typing import Any, Literal

from pydantic import BaseModel, Field

from mailblocks.core.contracts.block import ROOT_BLOCK_ID, BlockType


class AddBlockRequest(BaseModel):
    """Payload for ``POST /documents/{template_id}/blocks``."""

    type: BlockType = Field(..., description="Kind of block to create with default content.")
    parent_id: str = Field(default=ROOT_BLOCK_ID, description="Container to insert into.")
    column: int = Field(default=0, ge=0, description="Column index inside a columns container.")
    position: int | None = Field(
        default=None, ge=0, description="Insert position; appended when omitted."
    )


class UpdateBlockRequest(BaseModel):
    """Payload for ``PATCH /documents/{template_id}/blocks/{block_id}``.

    ``data`` replaces the block's payload; child references are kept as they
    are in the document whatever ``data`` says about them.
    """

    data: dict[str, Any]


class MoveRequest(BaseModel):
    direction: Literal["up", "down"]


class ColumnsRequest(BaseModel):
    count: int = Field(..., description="New column count (2 or 3).")


class DocumentResponse(BaseModel):
    """A document together with the session state around it."""

    template_id: str
    revision: int
    selected_block_id: str | None
    document: dict[str, dict[str, Any]]


class EditResponse(DocumentResponse):
    """Result of one editing request."""

    changed: bool = Field(..., description="False when the request was a no-op.")
    removed: list[str] = Field(default_factory=list)


class IssueModel(BaseModel):
    kind: str
    block_id: str
    detail: str = ""


class IntegrityResponse(BaseModel):
    template_id: str
    ok: bool
    issues: list[IssueModel] = Field(default_factory=list)


__all__ = [
    "AddBlockRequest",
    "ColumnsRequest",
    "DocumentResponse",
    "EditResponse",
    "IntegrityResponse",
    "IssueModel",
    "MoveRequest",
    "UpdateBlockRequest",
]
