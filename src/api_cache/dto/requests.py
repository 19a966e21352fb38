"""Request DTOs for API endpoints."""

from typing import Any

from pydantic import BaseModel, Field


class ExecuteRequest(BaseModel):
    """Request DTO for a gated call.

    The handler will convert this to ExecuteOptions and a RequestGate.execute call.
    """

    client: str = Field(..., description="Registered client name", min_length=1)
    endpoint: str = Field(..., description="Endpoint relative to the client's base URL", min_length=1)
    params: dict[str, Any] | None = Field(
        default=None,
        description="Request parameters (query string or JSON body depending on method)",
    )
    method: str = Field("GET", description="HTTP method")
    version: str | None = Field(None, description="API version (defaults to the client's version)")
    attributes: list[str | None] = Field(
        default_factory=list,
        description="Up to three free-form labels stored with the response",
        max_length=3,
    )
    use_cache: bool = Field(True, description="Set to false to bypass the cache for this call")
    ttl: int | None = Field(None, description="Cache TTL override in seconds", gt=0)
    amount: int = Field(1, description="Attempt units the call consumes", ge=1)


class CachingToggleRequest(BaseModel):
    """Request DTO for switching caching on or off."""

    enabled: bool = Field(..., description="Whether responses are cached and served from cache")
