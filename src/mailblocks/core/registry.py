# -----------------------------------------------------------------------------
# This module defines the static block registry: one entry per block kind.
#
# The registry gives us a single place to:
#   - declare which block kinds exist and how the add-block menu labels them
#   - produce the default payload for "create a new block of this kind"
#   - declare each kind's child-reference shape, so tree operations can pick
#     the right container adapter without a kind-by-kind switch
#   - attach the payload schema used by the validation collaborator
#
# Adding a block kind means adding one entry here and, only if it introduces a
# new child-reference shape, one adapter in ``mailblocks.core.tree.adapters``.
# -----------------------------------------------------------------------------
from __future__ import annotations

from collections.abc import Callable, Mapping
from dataclasses import dataclass
from enum import Enum
from typing import Any

from pydantic import BaseModel

from mailblocks.core.contracts.block import ROOT_BLOCK_ID, Block, BlockType
from mailblocks.core.contracts.payloads import (
    AvatarPayload,
    ButtonPayload,
    ColumnsContainerPayload,
    ContainerPayload,
    DividerPayload,
    EmailLayoutPayload,
    HeadingPayload,
    HtmlPayload,
    ImagePayload,
    SpacerPayload,
    TextPayload,
)


class ChildShape(str, Enum):
    """How a block kind stores its child references."""

    NONE = "none"
    FLAT = "flat"  # data.childrenIds
    NESTED_FLAT = "nested_flat"  # data.props.childrenIds
    COLUMNS = "columns"  # data.props.columns[i].childrenIds


@dataclass(frozen=True, slots=True)
class BlockSpec:
    """Registry entry for a single block kind.

    Parameters
    ----------
    type:
        The kind this entry describes.
    label:
        Human-friendly name shown in the add-block palette.
    child_shape:
        Where (and whether) the kind stores child references.
    factory:
        Zero-argument callable returning a *fresh* default payload. It is a
        callable rather than a constant so that no two blocks ever share the
        same nested dicts.
    schema:
        Pydantic model describing the payload shape.
    addable:
        Whether users may create this kind from the palette. The root layout
        exists exactly once per document and is never addable.
    """

    type: BlockType
    label: str
    child_shape: ChildShape
    factory: Callable[[], dict[str, Any]]
    schema: type[BaseModel]
    addable: bool = True

    @property
    def is_container(self) -> bool:
        return self.child_shape is not ChildShape.NONE


def _padding(top: int, bottom: int, left: int = 24, right: int = 24) -> dict[str, int]:
    return {"top": top, "bottom": bottom, "left": left, "right": right}


def _text() -> dict[str, Any]:
    return {
        "style": {
            "color": "#333333",
            "fontSize": 16,
            "fontFamily": "MODERN_SANS",
            "fontWeight": "normal",
            "textAlign": "left",
            "padding": _padding(8, 8),
        },
        "props": {"text": "Enter your text here..."},
    }


def _heading() -> dict[str, Any]:
    return {
        "style": {
            "color": "#111111",
            "fontFamily": "MODERN_SANS",
            "fontWeight": "bold",
            "textAlign": "left",
            "padding": _padding(16, 8),
        },
        "props": {"text": "Heading", "level": "h2"},
    }


def _image() -> dict[str, Any]:
    return {
        "style": {"padding": _padding(8, 8), "textAlign": "center"},
        "props": {
            "url": "https://placehold.co/600x200/F8F8F8/CCC?text=Your+image",
            "alt": "Image",
            "contentAlignment": "middle",
            "width": None,
            "height": None,
            "linkHref": None,
        },
    }


def _button() -> dict[str, Any]:
    return {
        "style": {
            "fontSize": 16,
            "fontFamily": "MODERN_SANS",
            "fontWeight": "bold",
            "textAlign": "center",
            "padding": _padding(16, 16),
        },
        "props": {
            "text": "Click Here",
            "url": "https://example.com",
            "buttonBackgroundColor": "#a3e635",
            "buttonTextColor": "#000000",
            "buttonStyle": "rounded",
            "size": "medium",
            "fullWidth": False,
        },
    }


def _divider() -> dict[str, Any]:
    return {
        "style": {"padding": _padding(16, 16)},
        "props": {"lineColor": "#e5e5e5", "lineHeight": 1},
    }


def _spacer() -> dict[str, Any]:
    return {"style": {}, "props": {"height": 32}}


def _avatar() -> dict[str, Any]:
    return {
        "style": {"textAlign": "left", "padding": _padding(8, 8)},
        "props": {
            "imageUrl": "https://placehold.co/100x100/F8F8F8/CCC?text=A",
            "alt": "Avatar",
            "size": 64,
            "shape": "circle",
        },
    }


def _html() -> dict[str, Any]:
    return {
        "style": {"fontSize": 14, "fontFamily": "MONOSPACE", "padding": _padding(8, 8)},
        "props": {"contents": '<p style="color: #333;">Custom HTML content</p>'},
    }


def _container() -> dict[str, Any]:
    return {
        "style": {
            "backgroundColor": None,
            "borderColor": None,
            "borderRadius": None,
            "padding": _padding(16, 16, 0, 0),
        },
        "props": {"childrenIds": []},
    }


def _columns_container() -> dict[str, Any]:
    return {
        "style": {"backgroundColor": None, "padding": _padding(16, 16, 0, 0)},
        "props": {
            "columnsCount": 2,
            "columnsGap": 16,
            "contentAlignment": "top",
            "columns": [{"childrenIds": []}, {"childrenIds": []}],
        },
    }


def _email_layout() -> dict[str, Any]:
    return {
        "backdropColor": "#F5F5F5",
        "canvasColor": "#FFFFFF",
        "textColor": "#262626",
        "fontFamily": "MODERN_SANS",
        "borderRadius": None,
        "borderColor": None,
        "childrenIds": [],
    }


# --------------------------------------------------------------------------- #
# Registry
# --------------------------------------------------------------------------- #

#: Block kind -> spec. Declaration order is the palette order.
REGISTRY: dict[BlockType, BlockSpec] = {
    BlockType.HEADING: BlockSpec(
        BlockType.HEADING, "Heading", ChildShape.NONE, _heading, HeadingPayload
    ),
    BlockType.TEXT: BlockSpec(BlockType.TEXT, "Text", ChildShape.NONE, _text, TextPayload),
    BlockType.IMAGE: BlockSpec(BlockType.IMAGE, "Image", ChildShape.NONE, _image, ImagePayload),
    BlockType.BUTTON: BlockSpec(
        BlockType.BUTTON, "Button", ChildShape.NONE, _button, ButtonPayload
    ),
    BlockType.DIVIDER: BlockSpec(
        BlockType.DIVIDER, "Divider", ChildShape.NONE, _divider, DividerPayload
    ),
    BlockType.SPACER: BlockSpec(
        BlockType.SPACER, "Spacer", ChildShape.NONE, _spacer, SpacerPayload
    ),
    BlockType.AVATAR: BlockSpec(
        BlockType.AVATAR, "Avatar", ChildShape.NONE, _avatar, AvatarPayload
    ),
    BlockType.HTML: BlockSpec(BlockType.HTML, "HTML", ChildShape.NONE, _html, HtmlPayload),
    BlockType.CONTAINER: BlockSpec(
        BlockType.CONTAINER,
        "Container",
        ChildShape.NESTED_FLAT,
        _container,
        ContainerPayload,
    ),
    BlockType.COLUMNS_CONTAINER: BlockSpec(
        BlockType.COLUMNS_CONTAINER,
        "Columns",
        ChildShape.COLUMNS,
        _columns_container,
        ColumnsContainerPayload,
    ),
    BlockType.EMAIL_LAYOUT: BlockSpec(
        BlockType.EMAIL_LAYOUT,
        "Email layout",
        ChildShape.FLAT,
        _email_layout,
        EmailLayoutPayload,
        addable=False,
    ),
}


def get_spec(block_type: BlockType | str) -> BlockSpec:
    """Return the registry entry for ``block_type``.

    Accepts either the enum member or its wire value (``"Text"``).

    Raises
    ------
    KeyError
        If the kind is not registered.
    """
    try:
        return REGISTRY[BlockType(block_type)]
    except ValueError as exc:
        raise KeyError(f"Unknown block type: {block_type!r}") from exc


def default_block(block_type: BlockType | str) -> Block:
    """Build a new block of ``block_type`` with its default payload."""
    spec = get_spec(block_type)
    return Block(type=spec.type, data=spec.factory())


def default_document(root_id: str = ROOT_BLOCK_ID) -> dict[str, Block]:
    """Return a fresh root-only document."""
    return {root_id: default_block(BlockType.EMAIL_LAYOUT)}


def palette() -> list[BlockSpec]:
    """Return the kinds offered by the add-block menu, in menu order."""
    return [spec for spec in REGISTRY.values() if spec.addable]


def all_specs() -> Mapping[BlockType, BlockSpec]:
    """Return a shallow copy of the registry for diagnostics and tests."""
    return dict(REGISTRY)


__all__ = [
    "REGISTRY",
    "BlockSpec",
    "ChildShape",
    "all_specs",
    "default_block",
    "default_document",
    "get_spec",
    "palette",
]
