"""
Result envelope for consistent success/failure handling.

Operations return ``Ok[T]`` for success or ``Err[T]`` for failure instead
of raising. The dispatcher runs each attempt behind this boundary: the
attempt body returns a Result, and the single caller that owns the
``FAILED`` transition consumes it.

Architecture:
    ::

        ┌──────────────────────────────────────────────────────┐
        │                     Result[T]                         │
        ├─────────────────┬─────────────────┬──────────────────┤
        │     Ok[T]       │     Err[T]      │   Utilities      │
        ├─────────────────┼─────────────────┼──────────────────┤
        │ • value: T      │ • error: Exc    │ • try_result()   │
        │ • flat_map()    │ • flat_map()    │                  │
        │ • unwrap()      │ • unwrap()      │                  │
        └─────────────────┴─────────────────┴──────────────────┘

Examples:
    >>> try_result(lambda: 1 / 0).is_err()
    True
    >>> try_result(lambda: Ok(2)).flat_map(lambda inner: inner).unwrap()
    2

Tags:
    result-pattern, error-handling, functional-programming, jobspine
"""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass
from typing import Generic, TypeVar

T = TypeVar("T")
U = TypeVar("U")


@dataclass(frozen=True, slots=True)
class Ok(Generic[T]):
    """Successful result containing a value."""

    value: T

    def is_ok(self) -> bool:
        return True

    def is_err(self) -> bool:
        return False

    def unwrap(self) -> T:
        """Get the value. Safe for Ok."""
        return self.value

    def flat_map(self, f: Callable[[T], Result[U]]) -> Result[U]:
        """Chain to another Result-returning function."""
        return f(self.value)

    def __repr__(self) -> str:
        return f"Ok({self.value!r})"


@dataclass(frozen=True, slots=True)
class Err(Generic[T]):
    """Failed result containing the exception that caused it."""

    error: Exception

    def is_ok(self) -> bool:
        return False

    def is_err(self) -> bool:
        return True

    def unwrap(self) -> T:
        """Raise the error. Use only when you're sure it's Ok."""
        raise self.error

    def flat_map(self, f: Callable[[T], Result[U]]) -> Result[U]:
        """No-op for Err."""
        return Err(self.error)

    def __repr__(self) -> str:
        return f"Err({self.error!r})"


Result = Ok[T] | Err[T]


def try_result(f: Callable[[], T]) -> Result[T]:
    """
    Execute a function and wrap its outcome in a Result.

    Any ``Exception`` raised by ``f`` becomes ``Err``; ``BaseException``
    subclasses such as ``KeyboardInterrupt`` still propagate.

    Args:
        f: Zero-argument callable that may raise exceptions

    Returns:
        Ok[T] if f() succeeds, Err[T] with the exception if f() raises
    """
    try:
        return Ok(f())
    except Exception as e:
        return Err(e)


__all__ = ["Ok", "Err", "Result", "try_result"]
