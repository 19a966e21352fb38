"""Domain entities for internal representation.

These are pure dataclasses (frozen) used internally by services
and repositories. They are NOT used for API contracts - use DTOs
from the dto package for that.
"""

from .cache_entry import CacheEntry, trim_attributes
from .credits import CreditOptions, CreditTable
from .rate_window import Allowed, Denied, RateDecision, RateWindow
from .request import CallResult, ExecuteOptions, RequestSpec, TransportResponse

__all__ = [
    "Allowed",
    "CacheEntry",
    "CallResult",
    "CreditOptions",
    "CreditTable",
    "Denied",
    "ExecuteOptions",
    "RateDecision",
    "RateWindow",
    "RequestSpec",
    "TransportResponse",
    "trim_attributes",
]
