"""Schema validation for block payloads.

Given a block's declared kind and payload, confirm the payload is shaped the
way the kind's schema (see :mod:`mailblocks.core.contracts.payloads`) says.
Problems come back as :class:`~mailblocks.core.result.Err` values carrying
readable messages; nothing here raises for bad input.

The tree operations never call into this module. It is used at the edges:
the repository on load and the API before accepting a payload edit.
"""

from __future__ import annotations

from collections.abc import Mapping

from pydantic import ValidationError

from mailblocks.core.contracts.block import Block, Document
from mailblocks.core.registry import get_spec
from mailblocks.core.result import Result, err, ok


def _format_errors(block_id: str, exc: ValidationError) -> list[str]:
    out: list[str] = []
    for e in exc.errors():
        loc = ".".join(str(p) for p in e.get("loc", ()))
        where = f"{block_id}.data.{loc}" if loc else f"{block_id}.data"
        out.append(f"{where}: {e.get('msg', 'invalid value')}")
    return out


def validate_block(block: Block, block_id: str = "<block>") -> Result[Block, str]:
    """Check ``block.data`` against its kind's payload schema."""
    schema = get_spec(block.type).schema
    try:
        schema.model_validate(block.data)
    except ValidationError as exc:
        return err("; ".join(_format_errors(block_id, exc)))
    return ok(block)


def validate_document(document: Mapping[str, Block]) -> Result[Document, list[str]]:
    """Validate every block; collect all problems rather than stopping at the first."""
    problems: list[str] = []
    for block_id, block in document.items():
        result = validate_block(block, block_id)
        if result.is_err():
            problems.append(result.unwrap_err())
    if problems:
        return err(problems)
    return ok(dict(document))


__all__ = ["validate_block", "validate_document"]
