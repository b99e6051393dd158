"""
API Routes for Document Editing.

Each template is edited through its own in-memory session; every request
runs one tree operation against the session's store and, if the document
changed, writes it through to the repository.

Endpoints
---------
- `GET /documents/{template_id}`: current document and selection.
- `POST /documents/{template_id}/blocks`: add a block with default content.
- `PATCH /documents/{template_id}/blocks/{block_id}`: validated payload edit.
- `POST /documents/{template_id}/blocks/{block_id}/duplicate`
- `POST /documents/{template_id}/blocks/{block_id}/move`
- `POST /documents/{template_id}/blocks/{block_id}/columns`
- `DELETE /documents/{template_id}/blocks/{block_id}`
- `GET /documents/{template_id}/integrity`
- `POST /documents/{template_id}/gc`

Status codes
------------
- 404 when the block named in the path does not exist.
- 400 (via the app's ``ValueError`` handler) for requests that are well-formed
  but cannot be applied, e.g. duplicating the root or an invalid payload.
- Moving a block that is already at the edge is *not* an error: the response
  reports ``changed: false``.
"""

from __future__ import annotations

from typing import Annotated

from fastapi import APIRouter, Depends, HTTPException, Query, status

from mailblocks.api.schemas import (
    AddBlockRequest,
    ColumnsRequest,
    DocumentResponse,
    EditResponse,
    IntegrityResponse,
    IssueModel,
    MoveRequest,
    UpdateBlockRequest,
)
from mailblocks.api.sessions import EditorSessions, get_editor_sessions
from mailblocks.core.contracts.block import Block, document_to_payload
from mailblocks.core.contracts.validation import validate_block
from mailblocks.core.settings import load_settings
from mailblocks.core.store.memory import DocumentStore
from mailblocks.core.tree.adapters import adapter_for
from mailblocks.core.tree.integrity import check_integrity, collect_garbage
from mailblocks.core.tree.operations import (
    DeletePolicy,
    TreeEdit,
    add_block,
    apply_edit,
    delete_block,
    duplicate_block,
    move_block,
    resize_columns,
    update_block_data,
)

router = APIRouter(prefix="/documents", tags=["Documents"])

Sessions = Annotated[EditorSessions, Depends(get_editor_sessions)]


def _document_response(template_id: str, store: DocumentStore) -> DocumentResponse:
    return DocumentResponse(
        template_id=template_id,
        revision=store.revision,
        selected_block_id=store.selected_block_id,
        document=document_to_payload(store.get_document()),
    )


def _require_block(store: DocumentStore, block_id: str) -> Block:
    block = store.get_block(block_id)
    if block is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND, detail=f"Block not found: {block_id}"
        )
    return block


def _commit(
    sessions: EditorSessions, template_id: str, store: DocumentStore, edit: TreeEdit
) -> EditResponse:
    """Persist the edited document, then install ``edit`` and describe the result.

    A failed save leaves the session untouched.
    """
    if not edit.is_noop:
        sessions.save(template_id, apply_edit(store.get_document(), edit))
    store.apply(edit)
    return EditResponse(
        **_document_response(template_id, store).model_dump(),
        changed=not edit.is_noop,
        removed=sorted(edit.removed),
    )


@router.get("/{template_id}", response_model=DocumentResponse, summary="Get a document")
async def get_document(template_id: str, sessions: Sessions) -> DocumentResponse:
    """Return the document, creating the default layout for new templates."""
    return _document_response(template_id, sessions.open(template_id))


@router.post(
    "/{template_id}/blocks",
    response_model=EditResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Add a block",
)
async def create_block(
    template_id: str, request: AddBlockRequest, sessions: Sessions
) -> EditResponse:
    store = sessions.open(template_id)
    parent = _require_block(store, request.parent_id)
    adapter = adapter_for(parent)
    if adapter is None or request.column >= adapter.slot_count(parent):
        raise ValueError(
            f"{request.parent_id} ({parent.type.value}) has no child slot {request.column}"
        )
    edit = add_block(
        store.get_document(),
        request.type,
        request.parent_id,
        slot=request.column,
        position=request.position,
        id_factory=store.id_factory,
    )
    return _commit(sessions, template_id, store, edit)


@router.patch(
    "/{template_id}/blocks/{block_id}",
    response_model=EditResponse,
    summary="Replace a block's payload",
)
async def update_block(
    template_id: str, block_id: str, request: UpdateBlockRequest, sessions: Sessions
) -> EditResponse:
    store = sessions.open(template_id)
    block = _require_block(store, block_id)
    edit = update_block_data(store.get_document(), block_id, request.data)
    candidate = edit.patch.get(block_id, block)
    result = validate_block(candidate, block_id)
    if result.is_err():
        raise ValueError(result.unwrap_err())
    return _commit(sessions, template_id, store, edit)


@router.post(
    "/{template_id}/blocks/{block_id}/duplicate",
    response_model=EditResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Duplicate a block and its subtree",
)
async def duplicate(template_id: str, block_id: str, sessions: Sessions) -> EditResponse:
    store = sessions.open(template_id)
    _require_block(store, block_id)
    edit = duplicate_block(
        store.get_document(), block_id, id_factory=store.id_factory, root_id=store.root_id
    )
    if edit.is_noop:
        raise ValueError(f"{block_id} has no parent and cannot be duplicated")
    return _commit(sessions, template_id, store, edit)


@router.post(
    "/{template_id}/blocks/{block_id}/move",
    response_model=EditResponse,
    summary="Move a block among its siblings",
)
async def move(
    template_id: str, block_id: str, request: MoveRequest, sessions: Sessions
) -> EditResponse:
    store = sessions.open(template_id)
    _require_block(store, block_id)
    edit = move_block(store.get_document(), block_id, request.direction, root_id=store.root_id)
    return _commit(sessions, template_id, store, edit)


@router.post(
    "/{template_id}/blocks/{block_id}/columns",
    response_model=EditResponse,
    summary="Change a columns container's column count",
)
async def set_columns(
    template_id: str, block_id: str, request: ColumnsRequest, sessions: Sessions
) -> EditResponse:
    store = sessions.open(template_id)
    _require_block(store, block_id)
    edit = resize_columns(store.get_document(), block_id, request.count)
    return _commit(sessions, template_id, store, edit)


@router.delete(
    "/{template_id}/blocks/{block_id}",
    response_model=EditResponse,
    summary="Delete a block",
)
async def remove_block(
    template_id: str,
    block_id: str,
    sessions: Sessions,
    cascade: Annotated[
        bool | None, Query(description="Remove descendants too; defaults to the configured policy.")
    ] = None,
) -> EditResponse:
    store = sessions.open(template_id)
    _require_block(store, block_id)
    if block_id == store.root_id:
        raise ValueError("The root block cannot be deleted")
    if cascade is None:
        policy = DeletePolicy(load_settings().delete_policy)
    else:
        policy = DeletePolicy.CASCADE if cascade else DeletePolicy.ORPHAN
    edit = delete_block(store.get_document(), block_id, policy=policy, root_id=store.root_id)
    return _commit(sessions, template_id, store, edit)


@router.get(
    "/{template_id}/integrity",
    response_model=IntegrityResponse,
    summary="Check document invariants",
)
async def integrity(
    template_id: str,
    sessions: Sessions,
    allow_orphans: Annotated[bool, Query(description="Skip the reachability check.")] = False,
) -> IntegrityResponse:
    store = sessions.open(template_id)
    issues = check_integrity(store.get_document(), store.root_id, allow_orphans=allow_orphans)
    return IntegrityResponse(
        template_id=template_id,
        ok=not issues,
        issues=[IssueModel(kind=i.kind.value, block_id=i.block_id, detail=i.detail) for i in issues],
    )


@router.post(
    "/{template_id}/gc",
    response_model=EditResponse,
    summary="Remove unreachable blocks",
)
async def garbage_collect(template_id: str, sessions: Sessions) -> EditResponse:
    store = sessions.open(template_id)
    edit = collect_garbage(store.get_document(), store.root_id)
    return _commit(sessions, template_id, store, edit)


__all__ = ["router"]
