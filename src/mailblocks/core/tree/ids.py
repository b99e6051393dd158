"""Fresh block ID generation.

Block IDs are opaque strings that must never be reused within the lifetime of
a document, not even after the block carrying them was deleted. A plain
random ID makes collisions unlikely; :class:`BlockIdFactory` makes them
impossible by remembering every ID it has observed or issued and retrying on
a clash.

The tree operations accept any zero-argument callable returning a string as
their ``id_factory``; the document store hands out its own factory so that
the "seen" set covers the whole editing session.
"""

from __future__ import annotations

import uuid
from collections.abc import Callable, Iterable

#: Signature accepted by every tree operation that mints IDs.
IdFactory = Callable[[], str]

ID_PREFIX = "block-"


def generate_block_id() -> str:
    """Return a random block ID such as ``block-3f9c2a7d41e0``."""
    return f"{ID_PREFIX}{uuid.uuid4().hex[:12]}"


class BlockIdFactory:
    """Issue block IDs that differ from every ID seen so far.

    Parameters
    ----------
    seen:
        IDs that already exist (typically the keys and child references of
        the document being edited).
    generator:
        Source of candidate IDs; defaults to :func:`generate_block_id`.
        Tests inject a deterministic counter here.
    """

    __slots__ = ("_seen", "_generator")

    def __init__(
        self,
        seen: Iterable[str] = (),
        generator: IdFactory = generate_block_id,
    ) -> None:
        self._seen: set[str] = set(seen)
        self._generator = generator

    def observe(self, ids: Iterable[str]) -> None:
        """Record IDs that must never be issued."""
        self._seen.update(ids)

    def __contains__(self, block_id: object) -> bool:
        return block_id in self._seen

    def __len__(self) -> int:
        return len(self._seen)

    def __call__(self) -> str:
        candidate = self._generator()
        while candidate in self._seen:
            candidate = self._generator()
        self._seen.add(candidate)
        return candidate


def counter_ids(prefix: str = "b") -> IdFactory:
    """Return a deterministic factory yielding ``b1``, ``b2``, ... .

    Meant for fixtures, where readable IDs matter more than randomness. Wrap
    it in a :class:`BlockIdFactory` to keep the no-reuse guarantee.
    """
    n = 0

    def _next() -> str:
        nonlocal n
        n += 1
        return f"{prefix}{n}"

    return _next


__all__ = ["ID_PREFIX", "BlockIdFactory", "IdFactory", "counter_ids", "generate_block_id"]
