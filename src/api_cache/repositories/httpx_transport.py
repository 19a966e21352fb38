"""httpx-based implementation of the Transport protocol."""

import httpx
from loguru import logger

from api_cache.config import settings
from api_cache.entities import RequestSpec, TransportResponse
from api_cache.errors import TransportError


class HttpxTransport:
    """Send requests with a shared ``httpx.Client``.

    This class satisfies the Transport protocol through structural typing.
    Every response comes back as a TransportResponse, 4xx and 5xx included;
    only failures that leave no response raise ``TransportError``.

    Example:
        ```python
        transport = HttpxTransport.create(timeout=10.0)
        response = transport.send(RequestSpec(method="GET", url="https://example.com/health"))
        ```
    """

    def __init__(
        self,
        timeout: float | None = None,
        client: httpx.Client | None = None,
    ) -> None:
        """Initialize the transport.

        Args:
            timeout: Request timeout in seconds. Defaults to settings.
            client: Preconfigured httpx client (tests pass one with a MockTransport).
        """
        self._timeout = timeout or settings.transport_timeout
        self._client = client

    @classmethod
    def create(cls, timeout: float | None = None) -> "HttpxTransport":
        """Factory method to create HttpxTransport with defaults."""
        return cls(timeout=timeout)

    @property
    def client(self) -> httpx.Client:
        """Lazy-load the HTTP client.

        Cookies are not persisted between calls; a cookie jar would make
        otherwise identical requests behave differently.
        """
        if self._client is None:
            self._client = httpx.Client(
                timeout=self._timeout,
                limits=httpx.Limits(max_connections=100, max_keepalive_connections=20),
            )
        return self._client

    def send(self, request: RequestSpec) -> TransportResponse:
        try:
            response = self.client.request(
                request.method,
                request.url,
                params=request.params or None,
                json=request.json,
                headers=request.headers,
            )
        except httpx.TimeoutException as e:
            logger.error("Request timed out method={} url={}", request.method, request.url)
            raise TransportError(f"Request timed out: {e}", url=request.url, timeout=True) from e
        except httpx.HTTPError as e:
            logger.error("Connection error method={} url={} error={}", request.method, request.url, e)
            raise TransportError(f"Connection error: {e}", url=request.url) from e

        self.client.cookies.clear()

        return TransportResponse(
            status_code=response.status_code,
            headers=dict(response.headers),
            body=response.content,
            url=str(response.url),
        )

    def close(self) -> None:
        """Close the HTTP client.

        Should be called when shutting down the application.
        """
        if self._client is not None:
            self._client.close()
            self._client = None
