"""HTTP handlers for request-gate operations.

Handlers convert between DTOs (API contracts) and service calls.
They handle HTTP concerns like status codes, validation, and error handling.
"""

import json
import math

from fastapi import HTTPException, status
from fastapi.concurrency import run_in_threadpool

from api_cache.dto import (
    CachingToggleRequest,
    CallResultResponse,
    ClearCacheResponse,
    ExecuteRequest,
    HealthCheckResponse,
    RateLimitStatusResponse,
    StatsResponse,
)
from api_cache.entities import CallResult, ExecuteOptions
from api_cache.errors import RateLimitExceeded, StorageError, TransportError, UnknownClientError, ValidationError
from api_cache.services import RequestGate


def to_http_exception(error: Exception, action: str, resource_lookup: bool = False) -> HTTPException:
    """Map a domain error to the HTTP status the API reports for it.

    ``resource_lookup`` marks routes whose path or query names the client;
    an unknown client there is a 404 instead of a 400.
    """
    if resource_lookup and isinstance(error, UnknownClientError):
        return HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(error))
    if isinstance(error, RateLimitExceeded):
        return HTTPException(
            status_code=status.HTTP_429_TOO_MANY_REQUESTS,
            detail=str(error),
            headers={"Retry-After": str(math.ceil(error.retry_after))},
        )
    if isinstance(error, ValidationError):
        return HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(error))
    if isinstance(error, TransportError):
        return HTTPException(status_code=status.HTTP_502_BAD_GATEWAY, detail=f"Upstream request failed: {error}")
    if isinstance(error, StorageError):
        return HTTPException(status_code=status.HTTP_503_SERVICE_UNAVAILABLE, detail=f"Storage unavailable: {error}")
    return HTTPException(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        detail=f"Failed to {action}: {error}",
    )


def _json_body(result: CallResult):
    content_type = result.response.headers.get("content-type", "")
    if "json" not in content_type.lower():
        return None
    try:
        return json.loads(result.response.body)
    except ValueError:
        return None


class GateHandler:
    """HTTP handlers for the request gate.

    This handler delegates business logic to RequestGate
    and handles HTTP-specific concerns like:
    - Converting DTOs to ExecuteOptions and results back to DTOs
    - Mapping domain errors to status codes (429, 400, 502, 503)
    - Running the blocking gate off the event loop

    Example:
        ```python
        from api_cache.services import RequestGate
        from api_cache.handlers import GateHandler

        gate = RequestGate.create()
        handler = GateHandler(gate=gate)

        # Use in FastAPI route
        @app.post("/gate/execute", response_model=CallResultResponse)
        async def execute(request: ExecuteRequest):
            return await handler.execute(request)
        ```
    """

    def __init__(self, gate: RequestGate) -> None:
        """Initialize the gate handler.

        Args:
            gate: The request gate for business logic (required).
        """
        self._gate = gate

    async def execute(self, request: ExecuteRequest) -> CallResultResponse:
        """Handle POST /gate/execute requests.

        Args:
            request: The execute request DTO

        Returns:
            CallResultResponse with the remote response and cache status

        Raises:
            HTTPException: 429 when rate limited, 400 on invalid input,
                502 when the remote API is unreachable, 503 when storage is down
        """
        try:
            options = ExecuteOptions(
                attributes=tuple(request.attributes),
                use_cache=request.use_cache,
                ttl=request.ttl,
                amount=request.amount,
            )
            result = await run_in_threadpool(
                self._gate.execute,
                request.client,
                request.endpoint,
                request.params,
                request.method,
                request.version,
                options,
            )
        except Exception as e:
            raise to_http_exception(e, "execute request") from e

        return CallResultResponse(
            key=result.key,
            from_cache=result.from_cache,
            status_code=result.response.status_code,
            headers=result.response.headers,
            body=result.response.text,
            json_body=_json_body(result),
            elapsed_time=result.elapsed_time,
            cost=result.cost,
        )

    async def rate_limit_status(self, client_name: str) -> RateLimitStatusResponse:
        """Handle GET /rate-limit/{client} requests."""
        try:
            data = await run_in_threadpool(self._gate.rate_limit_status, client_name)
        except Exception as e:
            raise to_http_exception(e, "get rate limit status", resource_lookup=True) from e

        return RateLimitStatusResponse(**data)

    async def clear_rate_limit(self, client_name: str) -> ClearCacheResponse:
        """Handle DELETE /rate-limit/{client} requests."""
        try:
            await run_in_threadpool(self._gate.clear_rate_limit, client_name)
        except Exception as e:
            raise to_http_exception(e, "clear rate limit", resource_lookup=True) from e

        return ClearCacheResponse(
            success=True,
            message=f"Rate limit cleared for client '{client_name}'",
        )

    async def clear_cache(self, client_name: str | None = None) -> ClearCacheResponse:
        """Handle DELETE /cache requests.

        Args:
            client_name: Clear only this client's entries (None = all)

        Returns:
            ClearCacheResponse with the number of deleted entries
        """
        try:
            count = await run_in_threadpool(self._gate.clear_cache, client_name)
        except Exception as e:
            raise to_http_exception(e, "clear cache", resource_lookup=True) from e

        return ClearCacheResponse(
            success=True,
            deleted_count=count,
            message="Cache cleared successfully",
        )

    async def delete_expired(self, client_name: str | None = None) -> ClearCacheResponse:
        """Handle DELETE /cache/expired requests."""
        try:
            count = await run_in_threadpool(self._gate.delete_expired, client_name)
        except Exception as e:
            raise to_http_exception(e, "delete expired entries", resource_lookup=True) from e

        return ClearCacheResponse(
            success=True,
            deleted_count=count,
            message="Expired entries deleted",
        )

    async def set_caching(self, request: CachingToggleRequest) -> dict:
        """Handle PUT /cache/enabled requests."""
        self._gate.set_caching_enabled(request.enabled)
        return {"caching_enabled": self._gate.caching_enabled}

    async def get_stats(self) -> StatsResponse:
        """Handle GET /stats requests.

        Returns:
            StatsResponse with cache sizes and credit totals

        Raises:
            HTTPException: If an error occurs while fetching stats
        """
        try:
            stats = await run_in_threadpool(self._gate.stats)
        except Exception as e:
            raise to_http_exception(e, "get stats") from e

        return StatsResponse(**stats)

    async def health_check(self) -> HealthCheckResponse:
        """Handle GET /health requests."""
        is_healthy = await run_in_threadpool(self._gate.is_healthy)

        return HealthCheckResponse(
            status="healthy" if is_healthy else "unhealthy",
            storage_healthy=is_healthy,
        )
