"""Storage backend protocol.

Defines the key/value interface that sits underneath both the response
store and the rate limiter.

Implementations can include:
- Redis (default, shared across processes)
- In-process memory (tests, single-process tools)
- Any store that can run the window update atomically
"""

from typing import Protocol, runtime_checkable


@runtime_checkable
class StorageBackend(Protocol):
    """Protocol for cache and rate-limit storage.

    Implementations raise ``StorageError`` when the underlying store is
    unreachable, and never for a missing key.

    Example:
        ```python
        from api_cache.protocols import StorageBackend

        backend: StorageBackend = RedisStorageBackend.create()
        backend: StorageBackend = InMemoryStorageBackend()
        ```
    """

    def get(self, key: str) -> bytes | None:
        """Fetch a value.

        Args:
            key: Storage key

        Returns:
            The stored bytes, or None when absent or expired
        """
        ...

    def put(self, key: str, value: bytes, ttl: float | None = None) -> None:
        """Store a value, replacing any previous one.

        Args:
            key: Storage key
            value: Bytes to store
            ttl: Seconds until the key expires (None = never)
        """
        ...

    def delete(self, key: str) -> bool:
        """Delete a key.

        Returns:
            True if a key was removed
        """
        ...

    def delete_prefix(self, prefix: str) -> int:
        """Delete every key starting with ``prefix``.

        Returns:
            Number of keys removed
        """
        ...

    def count_prefix(self, prefix: str) -> int:
        """Count keys starting with ``prefix``."""
        ...

    def scan_prefix(self, prefix: str) -> list[str]:
        """List keys starting with ``prefix``.

        May include keys whose TTL has run out but that the backend has not
        purged yet; reading such a key returns None.
        """
        ...

    def get_window(self, key: str) -> tuple[float, int] | None:
        """Read a rate window without changing it.

        Returns:
            ``(window_start, attempt_count)`` or None if no window exists
        """
        ...

    def hit_window(
        self,
        key: str,
        now: float,
        decay_seconds: float,
        amount: int,
        limit: int | None,
    ) -> tuple[bool, float, int]:
        """Atomically roll over and increment a rate window.

        In one indivisible step: start a fresh window at ``now`` if the stored
        one is missing or ``decay_seconds`` old, then add ``amount`` attempts
        unless ``limit`` is set and the window already holds ``limit`` or more.

        Args:
            key: Storage key of the window
            now: Current Unix time
            decay_seconds: Window length
            amount: Attempts to add
            limit: Refuse the increment at this count (None = always add)

        Returns:
            ``(applied, window_start, attempt_count)`` after the operation
        """
        ...

    def health_check(self) -> bool:
        """Check if the backend is reachable."""
        ...
