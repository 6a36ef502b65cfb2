"""Errors raised by the pricing engine."""

from __future__ import annotations


class PricingError(Exception):
    """Base error for the pricing engine."""

    def __init__(self, message: str, details: str | None = None) -> None:
        """Initialize error."""
        super().__init__(message)
        self.message = message
        self.details = details


class InvalidQueryError(PricingError):
    """The query is empty or blank; the only error callers ever see."""


class PersistenceError(PricingError):
    """A snapshot or history write failed. Logged, never surfaced."""
