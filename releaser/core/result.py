"""Result type for explicit error handling.

Every fallible release step returns ``Ok(value)`` or ``Err(error)`` instead
of raising, so the pipeline can decide in one place whether a failure needs
a rollback.

Usage:
    match read_manifest_version(path):
        case Ok(version):
            console.print(f"current: {version}")
        case Err(error):
            print_release_failure(error, console)
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Generic, TypeVar

T = TypeVar("T")
E = TypeVar("E")


@dataclass(frozen=True, slots=True)
class Ok(Generic[T]):
    """A successful result.

    Attributes:
        value: The success value.
    """

    value: T

    def __repr__(self) -> str:
        return f"Ok({self.value!r})"


@dataclass(frozen=True, slots=True)
class Err(Generic[E]):
    """A failed result.

    Attributes:
        error: The error value.
    """

    error: E

    def __repr__(self) -> str:
        return f"Err({self.error!r})"


Result = Ok[T] | Err[E]
