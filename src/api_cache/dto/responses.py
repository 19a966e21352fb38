"""Response DTOs for API endpoints."""

from typing import Any

from pydantic import BaseModel, Field


class CallResultResponse(BaseModel):
    """Response DTO for a gated call.

    The remote status code is reported in ``status_code``; the HTTP status
    of this endpoint is 200 whenever the call went through, even if the
    remote API answered with an error.
    """

    key: str = Field(..., description="Cache key of the call")
    from_cache: bool = Field(..., description="Whether the response was served from cache")
    status_code: int = Field(..., description="Status code returned by the remote API")
    headers: dict[str, str] = Field(default_factory=dict, description="Remote response headers")
    body: str = Field(..., description="Remote response body, decoded as UTF-8")
    json_body: Any | None = Field(None, description="Parsed body when the remote API returned JSON")
    elapsed_time: float = Field(..., description="Seconds spent in the transport", ge=0.0)
    cost: float | None = Field(None, description="Credits charged, for metered clients")


class RateLimitStatusResponse(BaseModel):
    """Response DTO for a client's rate-limit window."""

    client: str = Field(..., description="Client name")
    state: str = Field(..., description="'within_limit' or 'at_limit'")
    attempts: int = Field(..., description="Attempts recorded in the current window", ge=0)
    max_attempts: int | None = Field(None, description="Attempts per window (null = unlimited)")
    remaining_attempts: int | None = Field(None, description="Attempts left (null = unlimited)")
    decay_seconds: float = Field(..., description="Window length in seconds", gt=0)
    available_in: float = Field(..., description="Seconds until the next attempt is allowed", ge=0.0)


class ClearCacheResponse(BaseModel):
    """Response DTO for cache and rate-limit clearing operations."""

    success: bool = Field(..., description="Whether the operation succeeded")
    deleted_count: int = Field(0, description="Number of entries deleted", ge=0)
    message: str = Field(..., description="Human-readable status message")


class StatsResponse(BaseModel):
    """Response DTO for gate statistics."""

    caching_enabled: bool = Field(..., description="Global caching switch")
    failure_policy: str = Field(..., description="Storage failure policy: 'open' or 'closed'")
    compression: bool = Field(..., description="Whether stored records are compressed")
    total_entries: int = Field(..., description="Total number of cached responses", ge=0)
    expired_entries: int = Field(0, description="Entries past their expiry, not yet swept", ge=0)
    clients: dict[str, dict[str, int]] = Field(
        default_factory=dict,
        description="Per-client cache sizes",
    )
    credits: dict[str, Any] = Field(default_factory=dict, description="Credit totals for dispatched calls")


class HealthCheckResponse(BaseModel):
    """Response DTO for health check."""

    status: str = Field(..., description="Health status: 'healthy' or 'unhealthy'")
    storage_healthy: bool = Field(..., description="Whether the storage backend is reachable")
