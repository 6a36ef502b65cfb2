"""Vendor clients package."""

from services.vendors.base import Listing, VendorClient
from services.vendors.errors import (
    BlockedFailure,
    NetworkFailure,
    ParseFailure,
    RateLimitFailure,
    TimeoutFailure,
    VendorErrorCode,
    VendorFailure,
)
from services.vendors.profiles import DEFAULT_PROFILES, VendorProfile
from services.vendors.registry import VendorNotFoundError, VendorRegistry
from services.vendors.scraping import HtmlVendorClient

__all__ = [
    "DEFAULT_PROFILES",
    "BlockedFailure",
    "HtmlVendorClient",
    "Listing",
    "NetworkFailure",
    "ParseFailure",
    "RateLimitFailure",
    "TimeoutFailure",
    "VendorClient",
    "VendorErrorCode",
    "VendorFailure",
    "VendorNotFoundError",
    "VendorProfile",
    "VendorRegistry",
]
