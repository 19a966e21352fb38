"""Repository layer for data access.

This layer abstracts external dependencies (Redis, HTTP) behind
protocol-based interfaces. This enables:
- Easy swapping of implementations (Redis → memory, httpx → fakes)
- Unit testing without a Redis server or network
- Clear separation of concerns

The repositories are protocol-based (structural typing), not inheritance-based.
Any class implementing the required methods will satisfy the protocol.
"""

from api_cache.protocols import ApiClient, StorageBackend, Transport

from .base_api_client import BaseApiClient
from .httpx_transport import HttpxTransport
from .memory_backend import InMemoryStorageBackend
from .redis_backend import RedisStorageBackend

__all__ = [
    "ApiClient",
    "StorageBackend",
    "Transport",
    "BaseApiClient",
    "HttpxTransport",
    "InMemoryStorageBackend",
    "RedisStorageBackend",
]
