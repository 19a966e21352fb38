"""Data Transfer Objects for API contracts.

These Pydantic models define the external API contract.
They are used for request/response validation and serialization.

Internal domain logic should use entities from the entities package.
"""

from .requests import CachingToggleRequest, ExecuteRequest
from .responses import (
    CallResultResponse,
    ClearCacheResponse,
    HealthCheckResponse,
    RateLimitStatusResponse,
    StatsResponse,
)

__all__ = [
    "ExecuteRequest",
    "CachingToggleRequest",
    "CallResultResponse",
    "ClearCacheResponse",
    "RateLimitStatusResponse",
    "StatsResponse",
    "HealthCheckResponse",
]
