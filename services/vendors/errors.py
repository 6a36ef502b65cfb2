"""Error types returned by vendor clients."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum


class VendorErrorCode(str, Enum):
    """Error codes for vendor fetch failures."""

    UNKNOWN = "unknown"
    NETWORK = "network"
    TIMEOUT = "timeout"
    BLOCKED = "blocked"
    RATE_LIMIT = "rate_limit"
    PARSE = "parse"
    NOT_FOUND = "not_found"


@dataclass(frozen=True, slots=True)
class VendorFailure:
    """
    A single vendor's failure to produce a listing.

    Never raised; carried inside ``Failure`` and absorbed by the
    fetch coordinator as an absent outcome.

    Attributes:
        code: Error code identifying the type of failure.
        message: Human-readable message.
        vendor: Code of the vendor that failed.
        details: Additional details (optional).
    """

    code: VendorErrorCode
    message: str
    vendor: str
    details: str | None = None

    def __str__(self) -> str:
        """Return string representation of the failure."""
        return f"[{self.vendor}] {self.code.value}: {self.message}"


def NetworkFailure(
    vendor: str,
    message: str = "Network error",
    details: str | None = None,
) -> VendorFailure:
    """Create a network failure."""
    return VendorFailure(
        code=VendorErrorCode.NETWORK,
        message=message,
        vendor=vendor,
        details=details,
    )


def TimeoutFailure(
    vendor: str,
    message: str = "Vendor did not respond in time",
    details: str | None = None,
) -> VendorFailure:
    """Create a timeout failure."""
    return VendorFailure(
        code=VendorErrorCode.TIMEOUT,
        message=message,
        vendor=vendor,
        details=details,
    )


def BlockedFailure(
    vendor: str,
    message: str = "Request blocked by vendor",
    details: str | None = None,
) -> VendorFailure:
    """Create a blocked (403/429 or bot wall) failure."""
    return VendorFailure(
        code=VendorErrorCode.BLOCKED,
        message=message,
        vendor=vendor,
        details=details,
    )


def RateLimitFailure(
    vendor: str,
    message: str = "Rate limit exceeded",
    details: str | None = None,
) -> VendorFailure:
    """Create a rate limit failure."""
    return VendorFailure(
        code=VendorErrorCode.RATE_LIMIT,
        message=message,
        vendor=vendor,
        details=details,
    )


def ParseFailure(
    vendor: str,
    message: str = "Failed to parse vendor page",
    details: str | None = None,
) -> VendorFailure:
    """Create a parse failure."""
    return VendorFailure(
        code=VendorErrorCode.PARSE,
        message=message,
        vendor=vendor,
        details=details,
    )


def UnexpectedFailure(vendor: str, error: BaseException) -> VendorFailure:
    """Wrap an exception that escaped a vendor client."""
    return VendorFailure(
        code=VendorErrorCode.UNKNOWN,
        message=f"{type(error).__name__}: {error}",
        vendor=vendor,
    )
