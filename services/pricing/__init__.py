"""Price aggregation package."""

from services.pricing.errors import InvalidQueryError, PersistenceError, PricingError
from services.pricing.service import AggregationService
from services.pricing.types import (
    AggregationResult,
    OutcomeStatus,
    ResultSource,
    SearchQuery,
    VendorOutcome,
)

__all__ = [
    "AggregationResult",
    "AggregationService",
    "InvalidQueryError",
    "OutcomeStatus",
    "PersistenceError",
    "PricingError",
    "ResultSource",
    "SearchQuery",
    "VendorOutcome",
]
