"""API Cache - caching and rate-limiting gate for third-party HTTP APIs.

This package provides a layered architecture around one entry point, the
request gate, which decides for every outbound call whether a stored
response can be reused, whether the client's rate limit allows a dispatch,
and how to record the outcome.

Layers:
    - protocols: Interface contracts (ApiClient, StorageBackend, Transport)
    - repositories: Storage, transport and client implementations
    - services: Business logic (fingerprints, store, limiter, credits, gate)
    - handlers: HTTP endpoint handlers
    - dto: Data transfer objects (API contracts)
    - entities: Domain models (internal)

Usage:
    ```python
    from api_cache import BaseApiClient, RequestGate

    gate = RequestGate.create()
    gate.register(BaseApiClient("demo", "http://localhost:8000/v1"))
    result = gate.execute("demo", "predictions", {"query": "test"})
    ```

For HTTP API:
    ```python
    from api_cache.api.app import app
    ```
"""

from api_cache.config import ClientSettings, StorageFailurePolicy, get_redis_client, settings
from api_cache.entities import CacheEntry, CallResult, CreditOptions, CreditTable, ExecuteOptions, RateWindow
from api_cache.errors import (
    ApiCacheError,
    RateLimitExceeded,
    StorageError,
    TransportError,
    UnknownClientError,
    ValidationError,
)
from api_cache.protocols import ApiClient, StorageBackend, Transport
from api_cache.repositories import BaseApiClient, HttpxTransport, InMemoryStorageBackend, RedisStorageBackend
from api_cache.services import CreditCalculator, RateLimiter, RequestGate, ResponseStore, fingerprint

__all__ = [
    # Configuration
    "settings",
    "get_redis_client",
    "ClientSettings",
    "StorageFailurePolicy",
    # Errors
    "ApiCacheError",
    "RateLimitExceeded",
    "StorageError",
    "TransportError",
    "UnknownClientError",
    "ValidationError",
    # Protocols (interfaces)
    "ApiClient",
    "StorageBackend",
    "Transport",
    # Services (business logic)
    "RequestGate",
    "ResponseStore",
    "RateLimiter",
    "CreditCalculator",
    "fingerprint",
    # Repositories
    "BaseApiClient",
    "HttpxTransport",
    "InMemoryStorageBackend",
    "RedisStorageBackend",
    # Entities (domain models)
    "CacheEntry",
    "CallResult",
    "CreditOptions",
    "CreditTable",
    "ExecuteOptions",
    "RateWindow",
]
