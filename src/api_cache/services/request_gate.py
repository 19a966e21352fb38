"""Request gate: the single entry point for outbound API calls.

This service orchestrates a call by coordinating the fingerprint generator,
the response store, the client's rate limiter, the credit calculator and
the transport.
"""

import time
from typing import Any, Callable, TypeVar

from loguru import logger

from api_cache.config import (
    ClientSettings,
    Settings,
    StorageFailurePolicy,
    get_redis_client,
    load_client_settings,
    settings,
)
from api_cache.entities import (
    Allowed,
    CacheEntry,
    CallResult,
    Denied,
    ExecuteOptions,
    RateDecision,
    TransportResponse,
    trim_attributes,
)
from api_cache.errors import RateLimitExceeded, StorageError, TransportError
from api_cache.protocols import ApiClient, StorageBackend, Transport
from api_cache.repositories import BaseApiClient, HttpxTransport, InMemoryStorageBackend, RedisStorageBackend
from api_cache.services.client_registry import ClientRegistry, RegisteredClient
from api_cache.services.credit_calculator import CreditCalculator, CreditLedger
from api_cache.services.fingerprint import fingerprint, summarize_params
from api_cache.services.response_store import ResponseStore

T = TypeVar("T")


class RequestGate:
    """Cache-then-limit-then-dispatch orchestration.

    For every call:
    1. Validate priced options (metered clients) and compute the fingerprint
    2. Return a cached response if there is one; cache hits never touch
       the rate limiter
    3. Build the request, then acquire a rate-limit slot or fail with
       RateLimitExceeded
    4. Send the request, timing the transport
    5. Store the response (any status code) unless caching is off or the
       client's should_cache rejects it

    The slot is acquired atomically before dispatch, so concurrent callers
    can never send more than the window allows. Transport failures still
    consume their slot and are never cached.

    Example:
        ```python
        gate = RequestGate.create()
        gate.register(BaseApiClient("demo", "http://localhost:8000/v1"))
        result = gate.execute("demo", "predictions", {"query": "test"})
        result.from_cache  # False the first time, True afterwards
        ```
    """

    def __init__(
        self,
        registry: ClientRegistry,
        store: ResponseStore,
        transport: Transport,
        failure_policy: StorageFailurePolicy = StorageFailurePolicy.OPEN,
        caching_enabled: bool = True,
        ledger: CreditLedger | None = None,
        clock: Callable[[], float] = time.time,
    ) -> None:
        """Initialize the request gate.

        Args:
            registry: Configured clients and their limiters (required).
            store: Response store (required).
            transport: HTTP transport (required).
            failure_policy: Behavior when storage is unavailable.
            caching_enabled: Global cache switch.
            ledger: Credit totals; a fresh one if None.
            clock: Source of Unix time, replaceable in tests.
        """
        self._registry = registry
        self._store = store
        self._transport = transport
        self._failure_policy = failure_policy
        self._caching_enabled = caching_enabled
        self._ledger = ledger or CreditLedger()
        self._clock = clock

    @classmethod
    def create(
        cls,
        backend: StorageBackend | None = None,
        transport: Transport | None = None,
        app_settings: Settings | None = None,
    ) -> "RequestGate":
        """Factory method to create a RequestGate from settings.

        Builds the backend named by API_CACHE_BACKEND and registers a
        BaseApiClient for every name in API_CACHE_CLIENTS.

        Args:
            backend: Storage backend. If None, chosen from settings.
            transport: Transport. If None, an HttpxTransport.
            app_settings: Settings to use. If None, the global settings.

        Returns:
            Configured RequestGate
        """
        app_settings = app_settings or settings
        if backend is None:
            if app_settings.backend == "memory":
                backend = InMemoryStorageBackend()
            else:
                backend = RedisStorageBackend.create(get_redis_client())

        registry = ClientRegistry(backend=backend, namespace=app_settings.namespace)
        store = ResponseStore(
            backend=backend,
            namespace=app_settings.namespace,
            compression=app_settings.compression_enabled,
        )
        gate = cls(
            registry=registry,
            store=store,
            transport=transport or HttpxTransport.create(timeout=app_settings.transport_timeout),
            failure_policy=app_settings.storage_failure_policy,
            caching_enabled=app_settings.caching_enabled,
        )

        for name in app_settings.client_names:
            client_settings = load_client_settings(name)
            gate.register(BaseApiClient.from_settings(client_settings), client_settings)

        return gate

    def register(
        self,
        client: ApiClient,
        client_settings: ClientSettings | None = None,
        calculator: CreditCalculator | None = None,
    ) -> RegisteredClient:
        """Register a client with the gate. See ClientRegistry.register."""
        registered = self._registry.register(client, client_settings, calculator)
        logger.debug(
            "API client registered client={} base_url={} version={} max_attempts={} decay_seconds={}",
            registered.name,
            client.base_url,
            client.version,
            registered.settings.rate_limit_max_attempts,
            registered.settings.rate_limit_decay_seconds,
        )
        return registered

    def _guard(self, operation: str, action: Callable[[], T], fallback: T) -> T:
        """Run a storage operation under the configured failure policy."""
        try:
            return action()
        except StorageError as e:
            if self._failure_policy is StorageFailurePolicy.CLOSED:
                logger.error("Storage unavailable, rejecting call operation={} error={}", operation, e)
                raise
            logger.warning("Storage unavailable, failing open operation={} error={}", operation, e)
            return fallback

    def execute(
        self,
        client_name: str,
        endpoint: str,
        params: dict[str, Any] | None = None,
        method: str = "GET",
        version: str | None = None,
        options: ExecuteOptions | None = None,
    ) -> CallResult:
        """Run one call through cache, rate limit and transport.

        Args:
            client_name: Registered client to call through
            endpoint: Endpoint relative to the client's base URL
            params: Request parameters (None and {} are the same call)
            method: HTTP method
            version: API version. Defaults to the client's version.
            options: Per-call options (attributes, cache switch, TTL, amount)

        Returns:
            CallResult with the response and whether it came from cache

        Raises:
            ValidationError: Unknown client, bad parameters or invalid
                option combinations, before anything is sent
            RateLimitExceeded: The client has no attempts left
            TransportError: The request could not be sent
            StorageError: Storage is down and the policy is CLOSED
        """
        options = options or ExecuteOptions()
        params = params or {}
        method = method.upper()
        registered = self._registry.get(client_name)
        client = registered.client
        version = version if version is not None else client.version

        cost = registered.calculator.credits_for(params) if registered.calculator else None
        key = fingerprint(client_name, endpoint, params, method, version)
        use_cache = self._caching_enabled and options.use_cache

        logger.debug("Processing cached request client={} endpoint={} method={}", client_name, endpoint, method)

        if use_cache:
            cached = self._guard("cache_lookup", lambda: self._store.get(key), None)
            if cached is not None:
                logger.debug("Cache used client={} endpoint={} cache_key={}", client_name, endpoint, key)
                return self._from_entry(cached)
        else:
            logger.debug("Caching disabled for this request client={} endpoint={}", client_name, endpoint)

        request = client.build_request(endpoint, params, method)

        decision: RateDecision = self._guard(
            "rate_limit",
            lambda: registered.limiter.acquire(options.amount),
            Allowed(),
        )
        if isinstance(decision, Denied):
            raise RateLimitExceeded(client_name, decision.retry_after)

        logger.debug("Sending API request client={} method={} url={}", client_name, request.method, request.url)

        started = time.perf_counter()
        try:
            response = self._transport.send(request)
        except TransportError as e:
            logger.error(
                "API request failed client={} url={} cache_key={} error={}", client_name, request.url, key, e
            )
            raise
        elapsed = time.perf_counter() - started

        logger.debug(
            "API request completed client={} status={} response_time={:.3f}",
            client_name,
            response.status_code,
            elapsed,
        )
        if not response.ok:
            logger.warning(
                "API returned error status client={} status={} cache_key={}",
                client_name,
                response.status_code,
                key,
            )

        if cost is not None:
            self._ledger.add(client_name, cost)

        if use_cache and not client.should_cache(response):
            logger.warning(
                "Response rejected for caching client={} status={} cache_key={}",
                client_name,
                response.status_code,
                key,
            )
        elif use_cache:
            entry = CacheEntry(
                key=key,
                client_name=client_name,
                endpoint=endpoint,
                version=version,
                method=method,
                status_code=response.status_code,
                headers=response.headers,
                body=response.body,
                cost=cost,
                attributes=trim_attributes(options.attributes),
                created_at=self._clock(),
                base_url=client.base_url,
                full_url=response.url or request.url,
                response_time=elapsed,
                params_summary=summarize_params(params),
            )
            ttl = options.ttl if options.ttl is not None else registered.settings.cache_ttl
            self._guard("cache_store", lambda: self._store.put(entry, ttl), None)

        return CallResult(response=response, from_cache=False, elapsed_time=elapsed, key=key, cost=cost)

    @staticmethod
    def _from_entry(entry: CacheEntry) -> CallResult:
        response = TransportResponse(
            status_code=entry.status_code,
            headers=dict(entry.headers),
            body=entry.body,
            url=entry.full_url,
        )
        return CallResult(
            response=response,
            from_cache=True,
            elapsed_time=entry.response_time or 0.0,
            key=entry.key,
            cost=entry.cost,
        )

    def set_caching_enabled(self, enabled: bool) -> None:
        """Turn caching on or off for every subsequent call."""
        self._caching_enabled = enabled
        logger.info("Caching {}", "enabled" if enabled else "disabled")

    @property
    def caching_enabled(self) -> bool:
        return self._caching_enabled

    def clear_cache(self, client_name: str | None = None) -> int:
        """Delete cached responses, for one client or all of them.

        Returns:
            Number of entries deleted
        """
        if client_name is not None:
            self._registry.get(client_name)
        return self._store.clear_all(client_name)

    def delete_expired(self, client_name: str | None = None) -> int:
        """Sweep expired cached responses, for one client or all of them."""
        if client_name is not None:
            self._registry.get(client_name)
        return self._store.delete_expired(client_name)

    def clear_rate_limit(self, client_name: str) -> None:
        """Reset a client's rate-limit window."""
        self._registry.get(client_name).limiter.clear()

    def rate_limit_status(self, client_name: str) -> dict[str, Any]:
        limiter = self._registry.get(client_name).limiter
        window = limiter.current_window()
        return {
            "client": client_name,
            "state": limiter.state.value,
            "attempts": window.attempt_count,
            "max_attempts": limiter.max_attempts,
            "remaining_attempts": window.remaining(),
            "decay_seconds": limiter.decay_seconds,
            "available_in": limiter.available_in(),
        }

    def stats(self) -> dict[str, Any]:
        """Get gate statistics.

        Returns:
            Dictionary with cache sizes and credit totals
        """
        return {
            "caching_enabled": self._caching_enabled,
            "failure_policy": self._failure_policy.value,
            "compression": self._store.compression,
            "total_entries": self._store.count(),
            "expired_entries": self._store.count_expired(),
            "clients": {
                name: {
                    "cached_entries": self._store.count(name),
                    "expired_entries": self._store.count_expired(name),
                }
                for name in self._registry.names()
            },
            "credits": self._ledger.summary(),
        }

    def is_healthy(self) -> bool:
        return self._registry.backend.health_check()

    @property
    def registry(self) -> ClientRegistry:
        """Get the client registry (for testing)."""
        return self._registry

    @property
    def store(self) -> ResponseStore:
        """Get the response store (for testing)."""
        return self._store

    @property
    def ledger(self) -> CreditLedger:
        return self._ledger
