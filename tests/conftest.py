"""
Shared fixtures: a controllable clock, a scripted transport and a gate
wired to the in-memory backend.
"""

import threading

import pytest

from api_cache.config import ClientSettings, StorageFailurePolicy
from api_cache.entities import RequestSpec, TransportResponse
from api_cache.errors import StorageError, TransportError
from api_cache.repositories import BaseApiClient, InMemoryStorageBackend
from api_cache.services import ClientRegistry, RequestGate, ResponseStore


class FakeClock:
    """Manually advanced replacement for time.time."""

    def __init__(self, start: float = 1_700_000_000.0) -> None:
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


class FakeTransport:
    """Transport that records requests and answers from a script.

    Each queued item is a TransportResponse to return or an exception to
    raise; once the queue is empty the default response is returned.
    """

    def __init__(self, default: TransportResponse | None = None) -> None:
        self.default = default or TransportResponse(
            status_code=200,
            headers={"content-type": "application/json"},
            body=b'{"ok": true}',
        )
        self.queue: list[TransportResponse | Exception] = []
        self.requests: list[RequestSpec] = []
        self._lock = threading.Lock()

    def respond_with(self, *items: TransportResponse | Exception) -> None:
        self.queue.extend(items)

    @property
    def calls(self) -> int:
        return len(self.requests)

    def send(self, request: RequestSpec) -> TransportResponse:
        with self._lock:
            self.requests.append(request)
            item = self.queue.pop(0) if self.queue else self.default
        if isinstance(item, Exception):
            raise item
        return item


class FailingBackend(InMemoryStorageBackend):
    """In-memory backend whose every operation fails like a dead Redis."""

    def _fail(self, *args, **kwargs):
        raise StorageError("connection refused", operation="test")

    get = put = delete = delete_prefix = count_prefix = scan_prefix = get_window = hit_window = _fail

    def health_check(self) -> bool:
        return False


@pytest.fixture
def clock():
    """Clock that only moves when a test advances it."""
    return FakeClock()


@pytest.fixture
def transport():
    """Scripted transport recording every dispatched request."""
    return FakeTransport()


@pytest.fixture
def backend(clock):
    """Fresh in-memory storage backend on the fake clock."""
    return InMemoryStorageBackend(clock=clock)


@pytest.fixture
def store(backend, clock):
    """Response store on the in-memory backend."""
    return ResponseStore(backend=backend, namespace="test", clock=clock)


def build_gate(
    backend,
    transport,
    clock,
    failure_policy: StorageFailurePolicy = StorageFailurePolicy.OPEN,
    max_attempts: int | None = 3,
    decay_seconds: int = 60,
    cache_ttl: int | None = None,
) -> RequestGate:
    """Gate with one client named "demo" registered."""
    registry = ClientRegistry(backend=backend, namespace="test", clock=clock)
    gate = RequestGate(
        registry=registry,
        store=ResponseStore(backend=backend, namespace="test", clock=clock),
        transport=transport,
        failure_policy=failure_policy,
        clock=clock,
    )
    gate.register(
        BaseApiClient(name="demo", base_url="http://api.test/v1", api_key="demo-key", version="v1"),
        ClientSettings(
            name="demo",
            base_url="http://api.test/v1",
            api_key="demo-key",
            version="v1",
            cache_ttl=cache_ttl,
            rate_limit_max_attempts=max_attempts,
            rate_limit_decay_seconds=decay_seconds,
        ),
    )
    return gate


@pytest.fixture
def gate(backend, transport, clock):
    """Gate with client "demo": 3 attempts per 60 seconds, no cache TTL."""
    return build_gate(backend, transport, clock)


@pytest.fixture
def transport_error():
    """A transport failure to script into FakeTransport."""
    return TransportError("Connection error: refused", url="http://api.test/v1/predictions")


@pytest.fixture
def make_gate(transport, clock):
    """Factory for gates with custom limits, policies or backends."""

    def factory(backend=None, **kwargs) -> RequestGate:
        return build_gate(backend or InMemoryStorageBackend(clock=clock), transport, clock, **kwargs)

    return factory
