"""Registry of configured clients and the state each one owns.

Every client gets its own RateLimiter instance; the gate looks them up here
by name instead of reaching for shared module-level counters.
"""

import time
from dataclasses import dataclass
from typing import Callable, Iterator

from api_cache.config import ClientSettings
from api_cache.errors import UnknownClientError, ValidationError
from api_cache.protocols import ApiClient, StorageBackend
from api_cache.services.credit_calculator import CreditCalculator
from api_cache.services.fingerprint import validate_identifier
from api_cache.services.rate_limiter import RateLimiter


@dataclass(frozen=True)
class RegisteredClient:
    """A client adapter together with its configuration and limiter."""

    client: ApiClient
    settings: ClientSettings
    limiter: RateLimiter
    calculator: CreditCalculator | None = None

    @property
    def name(self) -> str:
        return self.settings.name


class ClientRegistry:
    """Name → RegisteredClient mapping backed by one storage backend."""

    def __init__(
        self,
        backend: StorageBackend,
        namespace: str = "api-cache",
        clock: Callable[[], float] = time.time,
    ) -> None:
        self._backend = backend
        self._namespace = namespace
        self._clock = clock
        self._clients: dict[str, RegisteredClient] = {}

    def register(
        self,
        client: ApiClient,
        client_settings: ClientSettings | None = None,
        calculator: CreditCalculator | None = None,
    ) -> RegisteredClient:
        """Register a client, creating its rate limiter.

        Args:
            client: The provider adapter.
            client_settings: Limits and TTL. Defaults to ClientSettings(name=client.name).
            calculator: Credit pricing for metered providers.

        Returns:
            The registered client

        Raises:
            ValidationError: If the name is not an identifier or does not
                match the settings
        """
        validate_identifier(client.name)
        client_settings = client_settings or ClientSettings(name=client.name)
        if client_settings.name != client.name:
            raise ValidationError(
                f"Client name {client.name!r} does not match settings name {client_settings.name!r}"
            )

        limiter = RateLimiter(
            client_name=client.name,
            backend=self._backend,
            max_attempts=client_settings.rate_limit_max_attempts,
            decay_seconds=client_settings.rate_limit_decay_seconds,
            namespace=self._namespace,
            clock=self._clock,
        )
        registered = RegisteredClient(
            client=client,
            settings=client_settings,
            limiter=limiter,
            calculator=calculator,
        )
        self._clients[client.name] = registered
        return registered

    def get(self, name: str) -> RegisteredClient:
        """Look up a client by name.

        Raises:
            UnknownClientError: If no client with that name is registered
        """
        try:
            return self._clients[name]
        except KeyError:
            raise UnknownClientError(name) from None

    @property
    def backend(self) -> StorageBackend:
        return self._backend

    def names(self) -> list[str]:
        return sorted(self._clients)

    def __contains__(self, name: object) -> bool:
        return name in self._clients

    def __iter__(self) -> Iterator[RegisteredClient]:
        return iter(list(self._clients.values()))

    def __len__(self) -> int:
        return len(self._clients)
