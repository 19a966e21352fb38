"""Response store: persisted API responses keyed by fingerprint.

Entries are serialized to JSON (body base64-encoded) and, when compression
is on, zlib-compressed. A one-byte marker in front of each record says which
encoding was used, so a store can read records written with the other
setting.
"""

import base64
import binascii
import dataclasses
import json
import time
import zlib
from typing import Any, Callable, Iterator

from loguru import logger

from api_cache.entities import CacheEntry
from api_cache.protocols import StorageBackend

_PLAIN = b"j"
_COMPRESSED = b"z"


def _encode_entry(entry: CacheEntry) -> dict[str, Any]:
    record = dataclasses.asdict(entry)
    record["body"] = base64.b64encode(entry.body).decode("ascii")
    record["attributes"] = list(entry.attributes)
    return record


def _decode_entry(record: dict[str, Any]) -> CacheEntry:
    record = dict(record)
    record["body"] = base64.b64decode(record["body"])
    record["attributes"] = tuple(record.get("attributes") or (None, None, None))
    return CacheEntry(**record)


class ResponseStore:
    """Stores and retrieves CacheEntry objects on a StorageBackend.

    Example:
        ```python
        store = ResponseStore(backend=InMemoryStorageBackend())
        store.put(entry, ttl=3600)
        store.get(entry.key)  # the entry, until it expires
        ```
    """

    def __init__(
        self,
        backend: StorageBackend,
        namespace: str = "api-cache",
        compression: bool = False,
        clock: Callable[[], float] = time.time,
    ) -> None:
        """Initialize the response store.

        Args:
            backend: Key/value storage (required).
            namespace: Prefix shared by every key this store writes.
            compression: zlib-compress records on write.
            clock: Source of Unix time, replaceable in tests.
        """
        self._backend = backend
        self._prefix = f"{namespace}:response:"
        self._compression = compression
        self._clock = clock

    def storage_key(self, key: str) -> str:
        return f"{self._prefix}{key}"

    def _client_prefix(self, client_name: str | None) -> str:
        # Fingerprints start with "<client>." and client names cannot contain dots.
        return self._prefix if client_name is None else f"{self._prefix}{client_name}."

    def serialize(self, entry: CacheEntry) -> bytes:
        payload = json.dumps(_encode_entry(entry), separators=(",", ":")).encode("utf-8")
        if self._compression:
            compressed = zlib.compress(payload)
            logger.debug(
                "Compressed cache record key={} original_size={} compressed_size={}",
                entry.key,
                len(payload),
                len(compressed),
            )
            return _COMPRESSED + compressed
        return _PLAIN + payload

    @staticmethod
    def deserialize(raw: bytes) -> CacheEntry:
        marker, payload = raw[:1], raw[1:]
        if marker == _COMPRESSED:
            payload = zlib.decompress(payload)
        elif marker != _PLAIN:
            raise ValueError(f"Unknown cache record marker: {marker!r}")
        return _decode_entry(json.loads(payload))

    def get(self, key: str) -> CacheEntry | None:
        """Look up a response by fingerprint.

        Args:
            key: The fingerprint

        Returns:
            The entry, or None on a miss. Expired and unreadable records are
            deleted and reported as misses.

        Raises:
            StorageError: If the backend is unreachable
        """
        storage_key = self.storage_key(key)
        raw = self._backend.get(storage_key)
        if raw is None:
            logger.debug("Cache miss key={}", key)
            return None

        try:
            entry = self.deserialize(raw)
        except (ValueError, TypeError, KeyError, zlib.error, binascii.Error) as e:
            logger.warning("Discarding unreadable cache record key={} error={}", key, e)
            self._backend.delete(storage_key)
            return None

        if entry.is_expired(self._clock()):
            logger.debug("Cache entry expired key={} expires_at={}", key, entry.expires_at)
            self._backend.delete(storage_key)
            return None

        logger.debug("Cache hit key={}", key)
        return entry

    def put(self, entry: CacheEntry, ttl: float | None = None) -> CacheEntry:
        """Store an entry, replacing any entry with the same key.

        ``created_at`` is stamped if the entry has none, and ``expires_at``
        is derived from ``ttl`` when one is given.

        Args:
            entry: The entry to store
            ttl: Seconds until the entry expires (None = no expiry)

        Returns:
            The entry as stored

        Raises:
            StorageError: If the backend is unreachable
        """
        created_at = entry.created_at or self._clock()
        expires_at = created_at + ttl if ttl is not None else None
        entry = dataclasses.replace(entry, created_at=created_at, expires_at=expires_at)

        self._backend.put(self.storage_key(entry.key), self.serialize(entry), ttl)

        logger.info(
            "Stored response in cache client={} key={} expires_at={} response_size={}",
            entry.client_name,
            entry.key,
            entry.expires_at,
            entry.size,
        )
        return entry

    def clear(self, key: str) -> bool:
        """Delete one entry. Returns True if it existed."""
        return self._backend.delete(self.storage_key(key))

    def clear_all(self, client_name: str | None = None) -> int:
        """Delete every entry, or every entry of one client.

        Returns:
            Number of entries deleted
        """
        count = self._backend.delete_prefix(self._client_prefix(client_name))
        logger.info("Cleared cached responses client={} count={}", client_name or "*", count)
        return count

    def count(self, client_name: str | None = None) -> int:
        """Count stored entries, optionally for one client."""
        return self._backend.count_prefix(self._client_prefix(client_name))

    def _expired_keys(self, client_name: str | None) -> Iterator[str]:
        """Yield the storage key of every expired record."""
        now = self._clock()
        for storage_key in self._backend.scan_prefix(self._client_prefix(client_name)):
            raw = self._backend.get(storage_key)
            if raw is None:
                # the backend TTL ran out first
                yield storage_key
                continue
            try:
                entry = self.deserialize(raw)
            except (ValueError, TypeError, KeyError, zlib.error, binascii.Error):
                continue
            if entry.is_expired(now):
                yield storage_key

    def count_expired(self, client_name: str | None = None) -> int:
        """Count entries past their expiry that have not been deleted yet."""
        return sum(1 for _ in self._expired_keys(client_name))

    def delete_expired(self, client_name: str | None = None) -> int:
        """Sweep expired entries, for one client or all of them.

        Lookups already treat expired entries as misses; this removes the
        ones nobody reads again.

        Returns:
            Number of expired entries removed
        """
        count = 0
        for storage_key in self._expired_keys(client_name):
            self._backend.delete(storage_key)
            count += 1

        logger.info("Deleted expired cached responses client={} count={}", client_name or "*", count)
        return count

    @property
    def compression(self) -> bool:
        return self._compression
