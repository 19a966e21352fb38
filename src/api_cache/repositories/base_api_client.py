"""Generic provider adapter.

Covers the common case of a JSON API with bearer-token auth. Providers that
authenticate through query parameters override ``auth_params``; providers
with a different header scheme override ``auth_headers``.
"""

from typing import Any

from api_cache.config import ClientSettings
from api_cache.entities import RequestSpec, TransportResponse
from api_cache.errors import ValidationError

BODY_METHODS = frozenset({"POST", "PUT", "PATCH"})
QUERY_METHODS = frozenset({"GET", "HEAD", "DELETE"})


class BaseApiClient:
    """Default ApiClient implementation.

    This class satisfies the ApiClient protocol through structural typing.

    Example:
        ```python
        client = BaseApiClient(name="demo", base_url="http://localhost:8000/v1", api_key="demo-key")
        spec = client.build_request("predictions", {"query": "test"}, "GET")
        spec.url  # "http://localhost:8000/v1/predictions"
        ```
    """

    def __init__(
        self,
        name: str,
        base_url: str,
        api_key: str | None = None,
        version: str | None = None,
    ) -> None:
        self._name = name
        self._base_url = base_url.rstrip("/")
        self._api_key = api_key
        self._version = version

    @classmethod
    def from_settings(cls, client_settings: ClientSettings) -> "BaseApiClient":
        """Build a client from its configuration block."""
        return cls(
            name=client_settings.name,
            base_url=client_settings.base_url,
            api_key=client_settings.api_key,
            version=client_settings.version,
        )

    @property
    def name(self) -> str:
        return self._name

    @property
    def base_url(self) -> str:
        return self._base_url

    @property
    def version(self) -> str | None:
        return self._version

    def auth_params(self) -> dict[str, str]:
        return {}

    def auth_headers(self) -> dict[str, str]:
        headers = {"Accept": "application/json"}
        if self._api_key:
            headers["Authorization"] = f"Bearer {self._api_key}"
        return headers

    def should_cache(self, response: TransportResponse) -> bool:
        return True

    def build_url(self, endpoint: str) -> str:
        return f"{self._base_url}/{endpoint.lstrip('/')}"

    def build_request(self, endpoint: str, params: dict[str, Any], method: str) -> RequestSpec:
        method = method.upper()
        merged = {**self.auth_params(), **params}

        if method in QUERY_METHODS:
            return RequestSpec(
                method=method,
                url=self.build_url(endpoint),
                params=merged,
                headers=self.auth_headers(),
            )
        if method in BODY_METHODS:
            return RequestSpec(
                method=method,
                url=self.build_url(endpoint),
                json=merged,
                headers=self.auth_headers(),
            )

        raise ValidationError(f"Unsupported HTTP method: {method}")
