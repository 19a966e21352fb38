"""
Tests for the request gate: caching, rate limiting and failure handling.
"""

from concurrent.futures import ThreadPoolExecutor

import pytest

from api_cache.config import ClientSettings, StorageFailurePolicy
from api_cache.entities import ExecuteOptions, TransportResponse
from api_cache.errors import RateLimitExceeded, StorageError, TransportError, ValidationError
from api_cache.repositories import BaseApiClient, InMemoryStorageBackend
from api_cache.services import CreditCalculator
from conftest import FailingBackend


def test_second_call_served_from_cache(gate, transport):
    """Identical calls dispatch once and return the same body."""
    first = gate.execute("demo", "predictions", {"query": "test"})
    second = gate.execute("demo", "predictions", {"query": "test"})

    assert transport.calls == 1
    assert first.from_cache is False
    assert second.from_cache is True
    assert second.response.body == first.response.body
    assert second.key == first.key


def test_cache_hits_do_not_count_attempts(gate, transport):
    """Only dispatched calls consume rate-limit attempts."""
    for _ in range(10):
        gate.execute("demo", "predictions", {"query": "test"})

    assert transport.calls == 1
    assert gate.rate_limit_status("demo")["remaining_attempts"] == 2


def test_rate_limit_enforced_with_rollover(gate, transport, clock):
    """3 per 60s: 4th call denied, allowed again after the window."""
    for i in range(3):
        gate.execute("demo", "predictions", {"query": f"q{i}"})

    with pytest.raises(RateLimitExceeded) as exc_info:
        gate.execute("demo", "predictions", {"query": "q3"})
    assert exc_info.value.client_name == "demo"
    assert exc_info.value.retry_after == pytest.approx(60)
    assert transport.calls == 3

    clock.advance(60)
    result = gate.execute("demo", "predictions", {"query": "q4"})
    assert result.from_cache is False
    assert transport.calls == 4


def test_denied_call_is_not_stored(gate, transport):
    """A rate-limited call records nothing."""
    for i in range(3):
        gate.execute("demo", "predictions", {"query": f"q{i}"})
    with pytest.raises(RateLimitExceeded):
        gate.execute("demo", "predictions", {"query": "denied"})

    assert gate.store.count("demo") == 3
    assert gate.rate_limit_status("demo")["attempts"] == 3


def test_cached_call_allowed_while_rate_limited(gate, transport):
    """A cached response is served even when the client is at its limit."""
    for i in range(3):
        gate.execute("demo", "predictions", {"query": f"q{i}"})

    result = gate.execute("demo", "predictions", {"query": "q0"})
    assert result.from_cache is True


def test_http_errors_are_cached(gate, transport):
    """Remote 500s are ordinary responses and are cached."""
    transport.respond_with(TransportResponse(status_code=500, headers={}, body=b"boom"))

    first = gate.execute("demo", "predictions", {"query": "x"})
    second = gate.execute("demo", "predictions", {"query": "x"})

    assert first.response.status_code == 500
    assert second.from_cache is True
    assert second.response.status_code == 500
    assert transport.calls == 1


def test_transport_errors_not_cached_but_counted(gate, transport, transport_error):
    """A transport failure propagates, consumes an attempt, caches nothing."""
    transport.respond_with(transport_error)

    with pytest.raises(TransportError):
        gate.execute("demo", "predictions", {"query": "x"})

    assert gate.store.count() == 0
    assert gate.rate_limit_status("demo")["attempts"] == 1

    result = gate.execute("demo", "predictions", {"query": "x"})
    assert result.from_cache is False
    assert transport.calls == 2


def test_caching_disabled_globally(gate, transport):
    """With caching off every call dispatches and nothing is stored."""
    gate.set_caching_enabled(False)

    gate.execute("demo", "predictions", {"query": "x"})
    gate.execute("demo", "predictions", {"query": "x"})

    assert transport.calls == 2
    assert gate.store.count() == 0
    assert gate.caching_enabled is False


def test_caching_disabled_per_call(gate, transport):
    """use_cache=False bypasses both the lookup and the store."""
    gate.execute("demo", "predictions", {"query": "x"})
    result = gate.execute("demo", "predictions", {"query": "x"}, options=ExecuteOptions(use_cache=False))

    assert result.from_cache is False
    assert transport.calls == 2


def test_none_and_empty_params_are_the_same_call(gate, transport):
    """params=None and params={} hit the same cache entry."""
    gate.execute("demo", "status", None)
    result = gate.execute("demo", "status", {})

    assert result.from_cache is True
    assert transport.calls == 1


def test_request_built_from_client(gate, transport):
    """The transport receives the client's URL, params and auth headers."""
    gate.execute("demo", "/predictions", {"query": "test"})

    request = transport.requests[0]
    assert request.method == "GET"
    assert request.url == "http://api.test/v1/predictions"
    assert request.params == {"query": "test"}
    assert request.headers["Authorization"] == "Bearer demo-key"


def test_post_sends_json_body(gate, transport):
    """Body methods send parameters as JSON."""
    gate.execute("demo", "predictions", {"query": "test"}, method="post")

    request = transport.requests[0]
    assert request.method == "POST"
    assert request.json == {"query": "test"}
    assert request.params == {}


def test_cache_ttl_from_client_settings(make_gate, transport, clock):
    """Entries expire after the client's cache_ttl."""
    gate = make_gate(cache_ttl=300)
    gate.execute("demo", "predictions", {"query": "x"})

    clock.advance(299)
    assert gate.execute("demo", "predictions", {"query": "x"}).from_cache is True

    clock.advance(1)
    assert gate.execute("demo", "predictions", {"query": "x"}).from_cache is False
    assert transport.calls == 2


def test_ttl_option_overrides_client_ttl(make_gate, clock):
    """A per-call TTL wins over the client setting."""
    gate = make_gate(cache_ttl=300)
    result = gate.execute("demo", "predictions", {"query": "x"}, options=ExecuteOptions(ttl=10))

    entry = gate.store.get(result.key)
    assert entry.expires_at == clock.now + 10


def test_stored_entry_metadata(gate):
    """Stored entries carry attributes, URLs and a parameter summary."""
    result = gate.execute(
        "demo",
        "predictions",
        {"query": "test"},
        options=ExecuteOptions(attributes=("batch-7", "x" * 300)),
    )

    entry = gate.store.get(result.key)
    assert entry.attributes == ("batch-7", "x" * 255, None)
    assert entry.base_url == "http://api.test/v1"
    assert entry.full_url == "http://api.test/v1/predictions"
    assert entry.version == "v1"
    assert entry.params_summary == '{"query":"test"}'
    assert entry.response_time is not None


def test_version_override_changes_key(gate, transport):
    """An explicit version is a different call."""
    gate.execute("demo", "predictions", {"query": "x"})
    result = gate.execute("demo", "predictions", {"query": "x"}, version="v2")

    assert result.from_cache is False
    assert result.key.endswith(".v2")


def test_unknown_client(gate, transport):
    """Calls through unregistered clients are rejected before dispatch."""
    with pytest.raises(ValidationError):
        gate.execute("missing", "predictions")
    assert transport.calls == 0


def test_unsupported_params_rejected_before_dispatch(gate, transport):
    """Parameters that cannot be fingerprinted never reach the transport."""
    with pytest.raises(ValidationError):
        gate.execute("demo", "predictions", {"when": object()})
    assert transport.calls == 0
    assert gate.rate_limit_status("demo")["attempts"] == 0


def test_amount_consumes_multiple_attempts(gate):
    """Weighted calls consume their amount."""
    gate.execute("demo", "predictions", {"query": "x"}, options=ExecuteOptions(amount=2))
    assert gate.rate_limit_status("demo")["remaining_attempts"] == 1


class TestMeteredClient:
    """Gate behavior for clients priced in credits."""

    @pytest.fixture
    def metered_gate(self, gate):
        gate.register(
            BaseApiClient(name="scraper", base_url="http://scraper.test/api"),
            ClientSettings(name="scraper", rate_limit_max_attempts=10),
            calculator=CreditCalculator(),
        )
        return gate

    def test_cost_reported_and_cached(self, metered_gate):
        """Cost is part of the result, also when served from cache."""
        first = metered_gate.execute("scraper", "scrape", {"url": "https://example.com", "dynamic": True})
        second = metered_gate.execute("scraper", "scrape", {"url": "https://example.com", "dynamic": True})

        assert first.cost == 5
        assert second.from_cache is True
        assert second.cost == 5

    def test_ledger_counts_dispatches_only(self, metered_gate):
        """Cache hits cost nothing."""
        for _ in range(3):
            metered_gate.execute("scraper", "scrape", {"url": "https://example.com", "premium": True})

        assert metered_gate.ledger.summary()["clients"]["scraper"] == {"credits": 10, "calls": 1}

    def test_invalid_options_rejected_before_io(self, metered_gate, transport):
        """Invalid credit options fail before any cache or transport use."""
        with pytest.raises(ValidationError):
            metered_gate.execute("scraper", "scrape", {"super_proxy": True, "dynamic": True})

        assert transport.calls == 0
        assert metered_gate.rate_limit_status("scraper")["attempts"] == 0

    def test_unmetered_client_has_no_cost(self, metered_gate):
        """Clients without a calculator report cost None."""
        assert metered_gate.execute("demo", "predictions").cost is None


class TestStorageFailure:
    """Behavior when the storage backend is unreachable."""

    def test_fail_open_dispatches(self, make_gate, transport):
        """OPEN: lookup is a miss, limiter allows, store is skipped."""
        gate = make_gate(backend=FailingBackend(), failure_policy=StorageFailurePolicy.OPEN)

        result = gate.execute("demo", "predictions", {"query": "x"})

        assert result.from_cache is False
        assert result.response.status_code == 200
        assert transport.calls == 1

    def test_fail_closed_raises(self, make_gate, transport):
        """CLOSED: the storage error propagates and nothing is dispatched."""
        gate = make_gate(backend=FailingBackend(), failure_policy=StorageFailurePolicy.CLOSED)

        with pytest.raises(StorageError):
            gate.execute("demo", "predictions", {"query": "x"})
        assert transport.calls == 0

    def test_health_reports_backend(self, make_gate):
        """is_healthy() reflects the backend."""
        assert make_gate().is_healthy() is True
        assert make_gate(backend=FailingBackend()).is_healthy() is False


class TestAdministration:
    """Cache and rate-limit management."""

    def test_clear_cache_for_client(self, gate, transport):
        """Cleared entries are fetched again."""
        gate.execute("demo", "predictions", {"query": "x"})
        assert gate.clear_cache("demo") == 1

        assert gate.execute("demo", "predictions", {"query": "x"}).from_cache is False
        assert transport.calls == 2

    def test_clear_cache_unknown_client(self, gate):
        """Clearing an unknown client is a validation error."""
        with pytest.raises(ValidationError):
            gate.clear_cache("missing")

    def test_clear_rate_limit(self, gate):
        """Clearing the limit restores the full allowance."""
        for i in range(3):
            gate.execute("demo", "predictions", {"query": f"q{i}"})
        gate.clear_rate_limit("demo")

        status = gate.rate_limit_status("demo")
        assert status["remaining_attempts"] == 3
        assert status["state"] == "within_limit"

    def test_stats(self, gate):
        """Stats list cache sizes per client."""
        gate.execute("demo", "predictions", {"query": "x"})

        stats = gate.stats()
        assert stats["total_entries"] == 1
        assert stats["clients"]["demo"] == {"cached_entries": 1}
        assert stats["caching_enabled"] is True
        assert stats["failure_policy"] == "open"


def test_concurrent_callers_never_exceed_limit(make_gate, transport):
    """M concurrent distinct calls against N slots dispatch exactly N times."""
    gate = make_gate(backend=InMemoryStorageBackend(), max_attempts=5)

    def call(i):
        try:
            gate.execute("demo", "predictions", {"query": f"q{i}"})
            return "ok"
        except RateLimitExceeded:
            return "denied"

    with ThreadPoolExecutor(max_workers=16) as executor:
        outcomes = list(executor.map(call, range(50)))

    assert outcomes.count("ok") == 5
    assert outcomes.count("denied") == 45
    assert transport.calls == 5


def test_unbuildable_request_consumes_no_attempt(gate, transport):
    """A request the client cannot build fails before rate-limit accounting."""
    with pytest.raises(ValidationError):
        gate.execute("demo", "predictions", {"query": "x"}, method="OPTIONS")

    assert transport.calls == 0
    assert gate.rate_limit_status("demo")["remaining_attempts"] == 3


class PendingAwareClient(BaseApiClient):
    """Client that refuses to cache "still processing" bodies."""

    def should_cache(self, response: TransportResponse) -> bool:
        return b"pending" not in response.body


class TestShouldCache:
    """Clients can veto storing a dispatched response."""

    @pytest.fixture
    def pending_gate(self, gate):
        gate.register(
            PendingAwareClient(name="jobs", base_url="http://jobs.test"),
            ClientSettings(name="jobs", rate_limit_max_attempts=10),
        )
        return gate

    def test_rejected_response_not_stored(self, pending_gate, transport):
        """A vetoed response is returned but the next call dispatches again."""
        transport.respond_with(TransportResponse(status_code=200, headers={}, body=b'{"status": "pending"}'))

        first = pending_gate.execute("jobs", "status", {"id": 1})
        second = pending_gate.execute("jobs", "status", {"id": 1})

        assert first.response.body == b'{"status": "pending"}'
        assert first.from_cache is False
        assert second.from_cache is False
        assert transport.calls == 2
        assert pending_gate.store.count("jobs") == 1

    def test_accepted_response_stored(self, pending_gate, transport):
        pending_gate.execute("jobs", "status", {"id": 2})
        assert pending_gate.execute("jobs", "status", {"id": 2}).from_cache is True
        assert transport.calls == 1


def test_non_positive_ttl_rejected():
    """A TTL of zero would otherwise mean "never expire"."""
    with pytest.raises(ValidationError):
        ExecuteOptions(ttl=0)
    with pytest.raises(ValidationError):
        ExecuteOptions(ttl=-5)


def test_short_ttl_expires(gate, clock, transport):
    """The smallest TTL still expires."""
    gate.execute("demo", "predictions", {"query": "x"}, options=ExecuteOptions(ttl=1))
    clock.advance(10**6)

    assert gate.execute("demo", "predictions", {"query": "x"}).from_cache is False
    assert transport.calls == 2


def test_stats_and_sweep_expired(gate, clock):
    """Expired entries are counted in stats and removed by the sweep."""
    gate.execute("demo", "predictions", {"query": "old"}, options=ExecuteOptions(ttl=10))
    gate.execute("demo", "predictions", {"query": "kept"})
    clock.advance(11)

    stats = gate.stats()
    assert stats["total_entries"] == 1
    assert stats["expired_entries"] == 1
    assert stats["clients"]["demo"] == {"cached_entries": 1, "expired_entries": 1}

    assert gate.delete_expired("demo") == 1
    assert gate.stats()["expired_entries"] == 0
    assert gate.store.count() == 1


def test_delete_expired_unknown_client(gate):
    with pytest.raises(ValidationError):
        gate.delete_expired("missing")
