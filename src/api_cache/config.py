import os
from dataclasses import dataclass
from enum import Enum
from functools import lru_cache

import redis
from dotenv import load_dotenv

load_dotenv()


class StorageFailurePolicy(str, Enum):
    """What the gate does when the cache or rate-limit backend is unavailable.

    OPEN treats a failed lookup as a miss and a failed limiter as an allow.
    CLOSED rejects the call with the underlying StorageError.
    """

    OPEN = "open"
    CLOSED = "closed"


@dataclass(frozen=True)
class Settings:
    """Application settings loaded from environment variables."""

    # Redis
    redis_url: str = os.getenv("REDIS_URL", "redis://localhost:6379")
    redis_password: str | None = os.getenv("REDIS_PASSWORD")

    # Storage
    backend: str = os.getenv("API_CACHE_BACKEND", "redis")  # "redis" or "memory"
    namespace: str = os.getenv("API_CACHE_NAMESPACE", "api-cache")
    storage_failure_policy: StorageFailurePolicy = StorageFailurePolicy(
        os.getenv("API_CACHE_STORAGE_FAILURE_POLICY", "open").lower()
    )
    compression_enabled: bool = os.getenv("API_CACHE_COMPRESSION", "false").lower() == "true"

    # Gate
    caching_enabled: bool = os.getenv("API_CACHE_CACHING_ENABLED", "true").lower() == "true"
    transport_timeout: float = float(os.getenv("API_CACHE_TRANSPORT_TIMEOUT", "30"))
    clients: str = os.getenv("API_CACHE_CLIENTS", "")

    # API
    api_host: str = os.getenv("API_HOST", "0.0.0.0")
    api_port: int = int(os.getenv("API_PORT", "8000"))
    api_reload: bool = os.getenv("API_RELOAD", "true").lower() == "true"

    @property
    def client_names(self) -> list[str]:
        """Names listed in API_CACHE_CLIENTS, in order, without blanks."""
        return [name.strip() for name in self.clients.split(",") if name.strip()]

    def __post_init__(self) -> None:
        """Validate settings after initialization."""
        if self.backend not in ("redis", "memory"):
            raise ValueError(f"API_CACHE_BACKEND must be 'redis' or 'memory', got {self.backend!r}")

        if self.transport_timeout <= 0:
            raise ValueError("API_CACHE_TRANSPORT_TIMEOUT must be positive")


@dataclass(frozen=True)
class ClientSettings:
    """Per-client configuration surface.

    Attributes:
        name: Client identifier, also the first segment of every cache key
        base_url: Root URL that endpoints are joined to
        api_key: Opaque credential handed to the client adapter
        version: API version appended to cache keys
        cache_ttl: Seconds a stored response stays valid (None = no expiry)
        rate_limit_max_attempts: Attempts per window (None or negative = unlimited)
        rate_limit_decay_seconds: Window length in seconds
    """

    name: str
    base_url: str = ""
    api_key: str | None = None
    version: str | None = None
    cache_ttl: int | None = None
    rate_limit_max_attempts: int | None = 1000
    rate_limit_decay_seconds: int = 60

    def __post_init__(self) -> None:
        if self.rate_limit_decay_seconds <= 0:
            raise ValueError("rate_limit_decay_seconds must be positive")

        if self.cache_ttl is not None and self.cache_ttl <= 0:
            raise ValueError("cache_ttl must be positive when set")


def _optional_int(value: str | None) -> int | None:
    if value is None or value.strip() == "":
        return None
    return int(value)


def load_client_settings(name: str) -> ClientSettings:
    """Read a client's settings from ``{NAME}_*`` environment variables.

    Hyphens in the client name become underscores in the variable prefix,
    so ``open-router`` reads ``OPEN_ROUTER_BASE_URL``.
    """
    prefix = name.upper().replace("-", "_")
    max_attempts = os.getenv(f"{prefix}_RATE_LIMIT_MAX_ATTEMPTS", "1000")

    return ClientSettings(
        name=name,
        base_url=os.getenv(f"{prefix}_BASE_URL", ""),
        api_key=os.getenv(f"{prefix}_API_KEY"),
        version=os.getenv(f"{prefix}_VERSION") or None,
        cache_ttl=_optional_int(os.getenv(f"{prefix}_CACHE_TTL")),
        rate_limit_max_attempts=_optional_int(max_attempts),
        rate_limit_decay_seconds=int(os.getenv(f"{prefix}_RATE_LIMIT_DECAY_SECONDS", "60")),
    )


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()


# Global settings instance
settings = get_settings()


def get_redis_client() -> redis.Redis:
    """Create a Redis client instance."""
    return redis.from_url(
        settings.redis_url,
        password=settings.redis_password,
        decode_responses=False,
    )
