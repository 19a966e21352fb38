"""Cache entry domain entity."""

from dataclasses import dataclass

Attributes = tuple[str | None, str | None, str | None]

ATTRIBUTE_MAX_LENGTH = 255


def trim_attributes(attributes: tuple[str | None, ...] | None) -> Attributes:
    """Pad or cut caller attributes to exactly three slots of at most 255 chars."""
    values = list(attributes or ())[:3]
    values += [None] * (3 - len(values))
    return tuple(v if v is None else str(v)[:ATTRIBUTE_MAX_LENGTH] for v in values)  # type: ignore[return-value]


@dataclass(frozen=True)
class CacheEntry:
    """Domain entity for a stored API response.

    Entries are written once and replaced wholesale; nothing mutates them.

    Attributes:
        key: Fingerprint the entry is stored under
        client_name: Client that produced the response
        endpoint: Endpoint the request went to
        version: API version, part of the fingerprint
        method: HTTP method in upper case
        status_code: Remote status code (4xx/5xx included)
        headers: Response headers
        body: Raw response body
        cost: Credits charged for the call, if the client is metered
        attributes: Three free-form caller labels
        created_at: Unix timestamp of the store
        expires_at: Unix timestamp after which the entry is a miss
    """

    key: str
    client_name: str
    endpoint: str
    version: str | None
    method: str
    status_code: int
    headers: dict[str, str]
    body: bytes
    cost: float | None = None
    attributes: Attributes = (None, None, None)
    created_at: float = 0.0
    expires_at: float | None = None
    base_url: str | None = None
    full_url: str | None = None
    response_time: float | None = None
    params_summary: str | None = None

    def is_expired(self, now: float) -> bool:
        return self.expires_at is not None and now >= self.expires_at

    @property
    def size(self) -> int:
        return len(self.body)
