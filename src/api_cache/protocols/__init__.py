"""Protocol interfaces for swappable implementations.

This package contains protocol definitions using structural typing.
Protocols enable:
- Easy swapping of implementations (Redis → memory, httpx → test doubles)
- Unit testing with fake transports and failing backends
- Clear separation of concerns

Usage:
    ```python
    from api_cache.protocols import StorageBackend, Transport

    backend: StorageBackend = RedisStorageBackend.create()  # works
    backend: StorageBackend = InMemoryStorageBackend()      # also works
    ```
"""

from .api_client import ApiClient
from .storage_backend import StorageBackend
from .transport import Transport

__all__ = [
    "ApiClient",
    "StorageBackend",
    "Transport",
]
