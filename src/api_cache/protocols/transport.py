"""HTTP transport protocol."""

from typing import Protocol, runtime_checkable

from api_cache.entities import RequestSpec, TransportResponse


@runtime_checkable
class Transport(Protocol):
    """Protocol for whatever actually puts bytes on the wire.

    Any status code is a successful send. Network failures and timeouts
    raise ``TransportError``. Retries, if any, live here and not in the gate.
    """

    def send(self, request: RequestSpec) -> TransportResponse:
        """Send the request and return the response."""
        ...
