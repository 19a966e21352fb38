"""API client protocol.

Provider adapters (scrapers, prediction APIs, LLM gateways) only need to
describe themselves and turn an endpoint plus parameters into a request.
Caching, rate limiting and dispatch stay in the request gate.
"""

from typing import Any, Protocol, runtime_checkable

from api_cache.entities import RequestSpec, TransportResponse


@runtime_checkable
class ApiClient(Protocol):
    """Protocol for provider adapters."""

    @property
    def name(self) -> str:
        """Client identifier (letters, digits, hyphens, underscores)."""
        ...

    @property
    def base_url(self) -> str:
        """Root URL endpoints are resolved against."""
        ...

    @property
    def version(self) -> str | None:
        """API version, folded into cache keys."""
        ...

    def auth_params(self) -> dict[str, str]:
        """Opaque authentication parameters merged into every request."""
        ...

    def build_request(self, endpoint: str, params: dict[str, Any], method: str) -> RequestSpec:
        """Build the outbound request.

        Args:
            endpoint: Endpoint path relative to ``base_url``
            params: Caller parameters (auth params not yet merged)
            method: HTTP method

        Returns:
            The request for the transport
        """
        ...

    def should_cache(self, response: TransportResponse) -> bool:
        """Decide whether a dispatched response may be stored.

        Lets a provider refuse bodies it knows are transient, such as an
        "in progress" payload returned with status 200.
        """
        ...
