"""
Ok/Err envelope for collaborator calls that report failure as a value.

``ContentStore.write`` returns a ``Result`` so an I/O-backed store never has
to raise through the engine. Inside Execute the engine calls ``unwrap()``
within the card's graph transaction: an ``Err`` re-raises its error, the
graph changes of that card roll back, and the card is reported as failed.

Examples:
    >>> Ok("ADR-100").unwrap()
    'ADR-100'
    >>> Err(OSError("disk full")).is_err()
    True
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Generic, TypeVar

T = TypeVar("T")


@dataclass(frozen=True, slots=True)
class Ok(Generic[T]):
    value: T

    def is_ok(self) -> bool:
        return True

    def is_err(self) -> bool:
        return False

    def unwrap(self) -> T:
        return self.value


@dataclass(frozen=True, slots=True)
class Err(Generic[T]):
    """Failure carrying the exception ``unwrap()`` re-raises."""

    error: Exception

    def is_ok(self) -> bool:
        return False

    def is_err(self) -> bool:
        return True

    def unwrap(self) -> T:
        raise self.error


Result = Ok[T] | Err[T]


__all__ = ["Ok", "Err", "Result"]
