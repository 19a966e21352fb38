"""In-process implementation of StorageBackend.

Keeps everything in dictionaries guarded by one lock. Useful for tests and
single-process tools; state is lost on restart and is not shared between
processes.
"""

import threading
import time
from typing import Callable


class InMemoryStorageBackend:
    """Thread-safe dictionary storage with TTL.

    Expired values read as missing but stay in memory until they are
    overwritten or deleted (ResponseStore.delete_expired sweeps them).

    This class satisfies the StorageBackend protocol through structural
    typing - no explicit inheritance needed.
    """

    def __init__(self, clock: Callable[[], float] = time.time) -> None:
        """Initialize the backend.

        Args:
            clock: Source of Unix time, replaceable in tests.
        """
        self._clock = clock
        self._lock = threading.Lock()
        self._values: dict[str, tuple[bytes, float | None]] = {}
        self._windows: dict[str, tuple[float, int]] = {}

    def _live_value(self, key: str) -> bytes | None:
        item = self._values.get(key)
        if item is None:
            return None
        value, expires_at = item
        if expires_at is not None and self._clock() >= expires_at:
            return None
        return value

    def get(self, key: str) -> bytes | None:
        with self._lock:
            return self._live_value(key)

    def put(self, key: str, value: bytes, ttl: float | None = None) -> None:
        expires_at = self._clock() + ttl if ttl is not None else None
        with self._lock:
            self._values[key] = (value, expires_at)

    def delete(self, key: str) -> bool:
        with self._lock:
            removed = self._values.pop(key, None) is not None
            removed = self._windows.pop(key, None) is not None or removed
        return removed

    def delete_prefix(self, prefix: str) -> int:
        with self._lock:
            keys = [k for k in self._values if k.startswith(prefix)]
            window_keys = [k for k in self._windows if k.startswith(prefix)]
            for key in keys:
                del self._values[key]
            for key in window_keys:
                del self._windows[key]
        return len(keys) + len(window_keys)

    def count_prefix(self, prefix: str) -> int:
        now = self._clock()
        with self._lock:
            return sum(
                1
                for key, (_, expires_at) in self._values.items()
                if key.startswith(prefix) and (expires_at is None or now < expires_at)
            )

    def scan_prefix(self, prefix: str) -> list[str]:
        with self._lock:
            return [key for key in self._values if key.startswith(prefix)]

    def get_window(self, key: str) -> tuple[float, int] | None:
        with self._lock:
            return self._windows.get(key)

    def hit_window(
        self,
        key: str,
        now: float,
        decay_seconds: float,
        amount: int,
        limit: int | None,
    ) -> tuple[bool, float, int]:
        with self._lock:
            start, count = self._windows.get(key, (now, 0))
            if now - start >= decay_seconds:
                start, count = now, 0

            if limit is not None and count >= limit:
                return False, start, count

            count += amount
            self._windows[key] = (start, count)
            return True, start, count

    def health_check(self) -> bool:
        return True
