"""Redis implementation of StorageBackend.

Response records are plain string keys with a server-side TTL. Rate windows
are ``"<start>:<count>"`` strings updated by a Lua script, so the
read-rollover-increment sequence runs atomically inside Redis no matter how
many processes share the limiter.
"""

import re

import redis
from loguru import logger

from api_cache.config import get_redis_client
from api_cache.errors import StorageError

# KEYS[1] = window key
# ARGV = now, decay_seconds, amount, limit (-1 = unlimited)
HIT_WINDOW_SCRIPT = """
local raw = redis.call('GET', KEYS[1])
local now = tonumber(ARGV[1])
local decay = tonumber(ARGV[2])
local amount = tonumber(ARGV[3])
local limit = tonumber(ARGV[4])
local start_raw = ARGV[1]
local count = 0
if raw then
  local sep = string.find(raw, ':', 1, true)
  local stored_start = string.sub(raw, 1, sep - 1)
  if now - tonumber(stored_start) < decay then
    start_raw = stored_start
    count = tonumber(string.sub(raw, sep + 1))
  end
end
if limit >= 0 and count >= limit then
  return {0, start_raw, tostring(count)}
end
count = count + amount
local ttl = math.ceil(tonumber(start_raw) + decay - now)
if ttl < 1 then ttl = 1 end
redis.call('SET', KEYS[1], start_raw .. ':' .. tostring(count), 'EX', ttl)
return {1, start_raw, tostring(count)}
"""

_GLOB_SPECIAL = re.compile(r"([*?\[\]\\])")


def _escape_glob(prefix: str) -> str:
    return _GLOB_SPECIAL.sub(r"\\\1", prefix)


def _text(value: bytes | str) -> str:
    return value.decode() if isinstance(value, bytes) else value


class RedisStorageBackend:
    """Redis-backed storage shared by every process pointing at the server.

    This class satisfies the StorageBackend protocol through structural
    typing - no explicit inheritance needed.
    """

    def __init__(self, redis_client: redis.Redis | None = None) -> None:
        """Initialize the Redis backend.

        Args:
            redis_client: Redis client instance. If None, creates default.
        """
        self._client = redis_client or get_redis_client()
        self._hit_window = self._client.register_script(HIT_WINDOW_SCRIPT)

    @classmethod
    def create(cls, redis_client: redis.Redis | None = None) -> "RedisStorageBackend":
        """Factory method to create RedisStorageBackend with defaults.

        Args:
            redis_client: Redis client. If None, built from settings.

        Returns:
            Configured RedisStorageBackend
        """
        return cls(redis_client=redis_client)

    def get(self, key: str) -> bytes | None:
        try:
            return self._client.get(key)  # type: ignore[return-value]
        except redis.RedisError as e:
            raise StorageError(f"Redis GET failed: {e}", operation="get") from e

    def put(self, key: str, value: bytes, ttl: float | None = None) -> None:
        try:
            if ttl is not None:
                self._client.set(key, value, px=max(1, int(ttl * 1000)))
            else:
                self._client.set(key, value)
        except redis.RedisError as e:
            raise StorageError(f"Redis SET failed: {e}", operation="put") from e

    def delete(self, key: str) -> bool:
        try:
            result: int = self._client.delete(key)  # type: ignore[assignment]
        except redis.RedisError as e:
            raise StorageError(f"Redis DEL failed: {e}", operation="delete") from e
        return result > 0

    def delete_prefix(self, prefix: str) -> int:
        count = 0
        try:
            batch: list[bytes] = []
            for key in self._client.scan_iter(match=f"{_escape_glob(prefix)}*", count=500):
                batch.append(key)
                if len(batch) >= 500:
                    count += self._client.delete(*batch)  # type: ignore[operator]
                    batch = []
            if batch:
                count += self._client.delete(*batch)  # type: ignore[operator]
        except redis.RedisError as e:
            raise StorageError(f"Redis prefix delete failed: {e}", operation="delete_prefix") from e

        logger.debug("Deleted keys by prefix prefix={} count={}", prefix, count)
        return count

    def count_prefix(self, prefix: str) -> int:
        try:
            return sum(1 for _ in self._client.scan_iter(match=f"{_escape_glob(prefix)}*", count=500))
        except redis.RedisError as e:
            raise StorageError(f"Redis scan failed: {e}", operation="count_prefix") from e

    def scan_prefix(self, prefix: str) -> list[str]:
        try:
            return [_text(key) for key in self._client.scan_iter(match=f"{_escape_glob(prefix)}*", count=500)]
        except redis.RedisError as e:
            raise StorageError(f"Redis scan failed: {e}", operation="scan_prefix") from e

    def get_window(self, key: str) -> tuple[float, int] | None:
        raw = self.get(key)
        if raw is None:
            return None
        start, _, count = _text(raw).partition(":")
        return float(start), int(count)

    def hit_window(
        self,
        key: str,
        now: float,
        decay_seconds: float,
        amount: int,
        limit: int | None,
    ) -> tuple[bool, float, int]:
        try:
            applied, start, count = self._hit_window(
                keys=[key],
                args=[f"{now:.6f}", decay_seconds, amount, -1 if limit is None else limit],
            )
        except redis.RedisError as e:
            raise StorageError(f"Redis rate window update failed: {e}", operation="hit_window") from e
        return bool(applied), float(_text(start)), int(_text(count))

    def health_check(self) -> bool:
        """Check if Redis is accessible.

        Returns:
            True if healthy, False otherwise
        """
        try:
            return bool(self._client.ping())
        except redis.RedisError:
            return False

    @property
    def client(self) -> redis.Redis:
        """Get the Redis client."""
        return self._client
