"""Per-kind payload schemas for email blocks.

Each block kind declares the shape of its ``data`` payload here as a Pydantic
v2 model. These models are the schema-validation collaborator: the tree
operations never consult them, but the repository runs them on load and the
API runs them before accepting a payload edit.

Notes
-----
- Most fields are optional and nullable; the stored documents omit styling
  keys freely and the renderer falls back to its own defaults.
- Unknown keys are ignored rather than rejected so documents written by newer
  editors still load.
- Child references are validated for *shape* only (lists of strings, fixed
  column arity). Whether the IDs resolve is an integrity concern, see
  :mod:`mailblocks.core.tree.integrity`.
"""

from __future__ import annotations

from typing import Annotated, Literal

from pydantic import BaseModel, ConfigDict, Field, model_validator

# ---- Shared small types ------------------------------------------------------

HexColor = Annotated[str, Field(pattern=r"^#[0-9a-fA-F]{6}$")]
TextAlign = Literal["left", "center", "right"]
ContentAlignment = Literal["top", "middle", "bottom"]
FontFamily = Literal[
    "MODERN_SANS",
    "BOOK_SANS",
    "ORGANIC_SANS",
    "GEOMETRIC_SANS",
    "HEAVY_SANS",
    "ROUNDED_SANS",
    "MODERN_SERIF",
    "BOOK_SERIF",
    "MONOSPACE",
]
FontWeight = Literal["bold", "normal"]


class _Lenient(BaseModel):
    model_config = ConfigDict(extra="ignore")


class Padding(_Lenient):
    top: int = Field(ge=0)
    bottom: int = Field(ge=0)
    left: int = Field(ge=0)
    right: int = Field(ge=0)


class BlockStyle(_Lenient):
    """Style keys shared by the leaf blocks. Every key is optional."""

    color: HexColor | None = None
    backgroundColor: HexColor | None = None
    fontSize: int | None = Field(default=None, ge=0)
    fontFamily: FontFamily | None = None
    fontWeight: FontWeight | None = None
    textAlign: TextAlign | None = None
    padding: Padding | None = None


class ContainerStyle(_Lenient):
    backgroundColor: HexColor | None = None
    borderColor: HexColor | None = None
    borderRadius: int | None = Field(default=None, ge=0)
    padding: Padding | None = None


# ---- Leaf payloads -----------------------------------------------------------


class TextProps(_Lenient):
    text: str | None = None
    markdown: bool | None = None


class TextPayload(_Lenient):
    style: BlockStyle | None = None
    props: TextProps | None = None


class HeadingProps(_Lenient):
    text: str | None = None
    level: Literal["h1", "h2", "h3"] | None = None


class HeadingPayload(_Lenient):
    style: BlockStyle | None = None
    props: HeadingProps | None = None


class ImageProps(_Lenient):
    url: str | None = None
    alt: str | None = None
    linkHref: str | None = None
    width: int | None = Field(default=None, ge=0)
    height: int | None = Field(default=None, ge=0)
    contentAlignment: ContentAlignment | None = None


class ImagePayload(_Lenient):
    style: BlockStyle | None = None
    props: ImageProps | None = None


class ButtonProps(_Lenient):
    text: str | None = None
    url: str | None = None
    buttonBackgroundColor: HexColor | None = None
    buttonTextColor: HexColor | None = None
    buttonStyle: Literal["rectangle", "pill", "rounded"] | None = None
    size: Literal["x-small", "small", "medium", "large"] | None = None
    fullWidth: bool | None = None


class ButtonPayload(_Lenient):
    style: BlockStyle | None = None
    props: ButtonProps | None = None


class DividerProps(_Lenient):
    lineColor: HexColor | None = None
    lineHeight: int | None = Field(default=None, ge=0)


class DividerPayload(_Lenient):
    style: BlockStyle | None = None
    props: DividerProps | None = None


class SpacerProps(_Lenient):
    height: int | None = Field(default=None, ge=0)


class SpacerPayload(_Lenient):
    style: BlockStyle | None = None
    props: SpacerProps | None = None


class AvatarProps(_Lenient):
    imageUrl: str | None = None
    alt: str | None = None
    size: int | None = Field(default=None, ge=1)
    shape: Literal["circle", "square", "rounded"] | None = None


class AvatarPayload(_Lenient):
    style: BlockStyle | None = None
    props: AvatarProps | None = None


class HtmlProps(_Lenient):
    contents: str | None = None


class HtmlPayload(_Lenient):
    style: BlockStyle | None = None
    props: HtmlProps | None = None


# ---- Container payloads ------------------------------------------------------


class ContainerProps(_Lenient):
    childrenIds: list[str] | None = None


class ContainerPayload(_Lenient):
    style: ContainerStyle | None = None
    props: ContainerProps | None = None


class ColumnSlot(_Lenient):
    childrenIds: list[str] = Field(default_factory=list)


class ColumnsContainerProps(_Lenient):
    columnsCount: Literal[2, 3] = 2
    columnsGap: int | None = Field(default=None, ge=0)
    contentAlignment: ContentAlignment | None = None
    fixedWidths: list[int | None] | None = None
    columns: list[ColumnSlot]

    @model_validator(mode="after")
    def _columns_match_count(self) -> ColumnsContainerProps:
        """Column slots are never omitted: one slot per configured column."""
        if len(self.columns) != self.columnsCount:
            raise ValueError(
                f"columns has {len(self.columns)} slots but columnsCount is {self.columnsCount}"
            )
        return self


class ColumnsContainerPayload(_Lenient):
    style: ContainerStyle | None = None
    props: ColumnsContainerProps


class EmailLayoutPayload(_Lenient):
    backdropColor: HexColor | None = None
    canvasColor: HexColor | None = None
    textColor: HexColor | None = None
    fontFamily: FontFamily | None = None
    borderRadius: int | None = Field(default=None, ge=0)
    borderColor: HexColor | None = None
    childrenIds: list[str] | None = None


__all__ = [
    "AvatarPayload",
    "BlockStyle",
    "ButtonPayload",
    "ColumnSlot",
    "ColumnsContainerPayload",
    "ColumnsContainerProps",
    "ContainerPayload",
    "ContainerStyle",
    "DividerPayload",
    "EmailLayoutPayload",
    "HeadingPayload",
    "HtmlPayload",
    "ImagePayload",
    "Padding",
    "SpacerPayload",
    "TextPayload",
]
