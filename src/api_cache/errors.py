"""Domain exceptions raised by the request gate and its collaborators."""

from __future__ import annotations

import math


class ApiCacheError(Exception):
    """Base class for every error raised by this package."""


class ValidationError(ApiCacheError, ValueError):
    """Raised when call parameters are invalid or mutually exclusive.

    The caller must fix its input; the gate never retries these.
    """


class UnknownClientError(ValidationError):
    """Raised when a call or admin operation names an unregistered client."""

    def __init__(self, client_name: str) -> None:
        super().__init__(f"Unknown client: {client_name!r}")
        self.client_name = client_name


class StorageError(ApiCacheError):
    """Raised when the cache or rate-limit backend cannot be reached."""

    def __init__(self, detail: str, *, operation: str | None = None) -> None:
        super().__init__(detail)
        self.detail = detail
        self.operation = operation


class TransportError(ApiCacheError):
    """Raised when the HTTP transport fails before producing a response.

    Timeouts, DNS failures and refused connections land here. HTTP error
    status codes do not: those are ordinary responses.
    """

    def __init__(self, detail: str, *, url: str | None = None, timeout: bool = False) -> None:
        super().__init__(detail)
        self.detail = detail
        self.url = url
        self.timeout = timeout


class RateLimitExceeded(ApiCacheError):
    """Raised when a client has no attempts left in its current window."""

    def __init__(self, client_name: str, retry_after: float, message: str | None = None) -> None:
        message = message or (
            f"Rate limit exceeded for client '{client_name}'. "
            f"Available in {math.ceil(retry_after)} seconds."
        )
        super().__init__(message)
        self.client_name = client_name
        self.retry_after = retry_after
