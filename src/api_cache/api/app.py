from typing import Any

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from api_cache.api.dependencies import HandlerDep, lifespan
from api_cache.config import settings
from api_cache.dto import (
    CachingToggleRequest,
    CallResultResponse,
    ClearCacheResponse,
    ExecuteRequest,
    HealthCheckResponse,
    RateLimitStatusResponse,
    StatsResponse,
)

app = FastAPI(
    title="API Cache",
    description="Caching and rate-limiting gate for third-party HTTP APIs",
    version="0.1.0",
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,  # type: ignore[arg-type]
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.get("/")
async def root() -> dict[str, Any]:
    """Root endpoint with API information."""
    return {
        "name": "API Cache",
        "version": "0.1.0",
        "description": "Caching and rate-limiting gate for third-party HTTP APIs",
        "endpoints": {
            "execute": "/gate/execute",
            "rate_limit": "/rate-limit/{client}",
            "cache": "/cache",
            "expired": "/cache/expired",
            "stats": "/stats",
            "health": "/health",
            "docs": "/docs",
        },
    }


@app.get("/health", response_model=HealthCheckResponse)
async def health(handler: HandlerDep) -> HealthCheckResponse:
    """Health check endpoint."""
    return await handler.health_check()


@app.post("/gate/execute", response_model=CallResultResponse)
async def execute(request: ExecuteRequest, handler: HandlerDep) -> CallResultResponse:
    """
    Run a call through the cache and the client's rate limiter.

    Args:
        request: Client, endpoint, parameters and per-call options.

    Returns:
        The remote response, whether it came from cache, and its cost.
    """
    return await handler.execute(request)


@app.get("/rate-limit/{client}", response_model=RateLimitStatusResponse)
async def rate_limit_status(client: str, handler: HandlerDep) -> RateLimitStatusResponse:
    """Get a client's current rate-limit window."""
    return await handler.rate_limit_status(client)


@app.delete("/rate-limit/{client}", response_model=ClearCacheResponse)
async def clear_rate_limit(client: str, handler: HandlerDep) -> ClearCacheResponse:
    """Reset a client's rate-limit window."""
    return await handler.clear_rate_limit(client)


@app.delete("/cache", response_model=ClearCacheResponse)
async def clear_cache(handler: HandlerDep, client: str | None = None) -> ClearCacheResponse:
    """Clear cached responses, for one client or all of them."""
    return await handler.clear_cache(client)


@app.delete("/cache/expired", response_model=ClearCacheResponse)
async def delete_expired(handler: HandlerDep, client: str | None = None) -> ClearCacheResponse:
    """Sweep expired cached responses, for one client or all of them."""
    return await handler.delete_expired(client)


@app.put("/cache/enabled", response_model=dict[str, bool])
async def set_caching(request: CachingToggleRequest, handler: HandlerDep) -> dict[str, bool]:
    """Turn response caching on or off."""
    return await handler.set_caching(request)


@app.get("/stats", response_model=StatsResponse)
async def get_stats(handler: HandlerDep) -> StatsResponse:
    """Get cache and credit statistics."""
    return await handler.get_stats()


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "api_cache.api.app:app",
        host=settings.api_host,
        port=settings.api_port,
        reload=settings.api_reload,
    )
