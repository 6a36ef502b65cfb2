"""
Result pattern for explicit error handling at I/O boundaries.

Vendor clients never raise across their interface; they return either a
Success carrying the fetched value or a Failure carrying a typed error.
Callers pattern-match instead of wrapping every call in try/except.

Example:
    >>> def parse_rating(text: str) -> Result[float, str]:
    ...     try:
    ...         return Success(float(text))
    ...     except ValueError:
    ...         return Failure(f"not a rating: {text!r}")
    ...
    >>> match parse_rating("4.5"):
    ...     case Success(value):
    ...         print(value)
    ...     case Failure(error):
    ...         print(error)
    4.5
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING, Never

if TYPE_CHECKING:
    from collections.abc import Callable


@dataclass(frozen=True, slots=True)
class Success[T]:
    """
    A successful outcome.

    Attributes:
        value: The success value (may itself be None, e.g. "no match").
    """

    value: T

    def is_success(self) -> bool:
        """Return True."""
        return True

    def is_failure(self) -> bool:
        """Return False."""
        return False

    def unwrap(self) -> T:
        """Return the contained value."""
        return self.value

    def unwrap_or(self, _default: T) -> T:
        """Return the contained value, ignoring the default."""
        return self.value

    def map[U](self, func: Callable[[T], U]) -> Success[U]:
        """
        Apply a function to the contained value.

        Args:
            func: Function to apply.

        Returns:
            New Success wrapping the mapped value.
        """
        return Success(func(self.value))


@dataclass(frozen=True, slots=True)
class Failure[E]:
    """
    A failed outcome.

    Attributes:
        error: The error value.
    """

    error: E

    def is_success(self) -> bool:
        """Return False."""
        return False

    def is_failure(self) -> bool:
        """Return True."""
        return True

    def unwrap(self) -> Never:
        """
        Refuse to unwrap a failure.

        Raises:
            ValueError: Always.
        """
        raise ValueError(f"Cannot unwrap Failure: {self.error}")

    def unwrap_or[T](self, default: T) -> T:
        """Return the provided default."""
        return default

    def map[T, U](self, _func: Callable[[T], U]) -> Failure[E]:
        """Return self; there is no value to map."""
        return self


type Result[T, E] = Success[T] | Failure[E]


def success[T](value: T) -> Success[T]:
    """Wrap a value in Success."""
    return Success(value)


def failure[E](error: E) -> Failure[E]:
    """Wrap an error in Failure."""
    return Failure(error)
