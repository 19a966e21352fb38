"""Request and response domain entities exchanged with the transport."""

from dataclasses import dataclass, field
from typing import Any

from api_cache.errors import ValidationError


@dataclass(frozen=True)
class RequestSpec:
    """Fully built HTTP request, ready for a transport.

    Attributes:
        method: HTTP method in upper case
        url: Absolute URL
        params: Query string parameters
        json: JSON body for methods that carry one
        headers: Request headers, including auth headers
    """

    method: str
    url: str
    params: dict[str, Any] = field(default_factory=dict)
    json: dict[str, Any] | None = None
    headers: dict[str, str] = field(default_factory=dict)


@dataclass(frozen=True)
class TransportResponse:
    """Well-formed HTTP response, whatever its status code."""

    status_code: int
    headers: dict[str, str]
    body: bytes
    url: str | None = None

    @property
    def ok(self) -> bool:
        return 200 <= self.status_code < 300

    @property
    def text(self) -> str:
        return self.body.decode("utf-8", errors="replace")


@dataclass(frozen=True)
class ExecuteOptions:
    """Per-call options for the request gate.

    Attributes:
        attributes: Up to three free-form labels stored with the response
        use_cache: False skips both the lookup and the store for this call
        ttl: Cache TTL override in seconds (None = the client's cache_ttl)
        amount: Attempt units the call consumes against the rate limit
    """

    attributes: tuple[str | None, ...] = ()
    use_cache: bool = True
    ttl: int | None = None
    amount: int = 1

    def __post_init__(self) -> None:
        if self.ttl is not None and self.ttl <= 0:
            raise ValidationError("ttl must be positive when set")
        if self.amount < 1:
            raise ValidationError("amount must be at least 1")


@dataclass(frozen=True)
class CallResult:
    """Outcome of one gated call.

    Attributes:
        response: The response, fresh or rebuilt from cache
        from_cache: Whether the response came from the response store
        elapsed_time: Seconds spent in the transport (cache hits report the
            originally recorded time)
        key: Fingerprint of the call
        cost: Credits charged for the call, None if the client is not metered
    """

    response: TransportResponse
    from_cache: bool
    elapsed_time: float
    key: str
    cost: float | None = None
