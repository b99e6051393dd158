"""Ok/Err values returned by payload validation.

A bad payload is an expected outcome when loading documents written by other
tools, so the validation layer reports it as a value. Callers then decide:
the repository turns an ``Err`` into :class:`DocumentStorageError`, the API
turns it into a 400 response.

>>> from mailblocks.core.result import ok, err
>>> ok(2).unwrap()
2
>>> err("bad colour").unwrap_err()
'bad colour'
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Any, Generic, TypeVar

T = TypeVar("T")
E = TypeVar("E")


class Result(ABC, Generic[T, E]):
    """Common interface of :class:`Ok` and :class:`Err`."""

    __slots__ = ()

    @abstractmethod
    def is_ok(self) -> bool: ...

    def is_err(self) -> bool:
        return not self.is_ok()

    @abstractmethod
    def unwrap(self) -> T:
        """The success value; ``RuntimeError`` on ``Err``."""

    @abstractmethod
    def unwrap_err(self) -> E:
        """The error value; ``RuntimeError`` on ``Ok``."""


@dataclass(frozen=True, slots=True)
class Ok(Result[T, E]):
    """A successful outcome carrying ``value``."""

    value: T

    def is_ok(self) -> bool:
        return True

    def unwrap(self) -> T:
        return self.value

    def unwrap_err(self) -> E:
        raise RuntimeError(f"unwrap_err() called on {self!r}")


@dataclass(frozen=True, slots=True)
class Err(Result[T, E]):
    """A failed outcome carrying ``error`` (a message or a list of them)."""

    error: E

    def is_ok(self) -> bool:
        return False

    def unwrap(self) -> T:
        raise RuntimeError(f"unwrap() called on {self!r}")

    def unwrap_err(self) -> E:
        return self.error


def ok(value: T) -> Result[T, Any]:
    return Ok(value)


def err(error: E) -> Result[Any, E]:
    return Err(error)


__all__ = ["Err", "Ok", "Result", "err", "ok"]
