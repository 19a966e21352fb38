"""Service layer for business logic.

This layer contains the request-gating engine: cache keys, the response
store, per-client rate limiting, credit pricing and the gate that
orchestrates them. Services depend on protocols (interfaces), not concrete
implementations, making them testable with in-memory fakes.

Architecture:
    Handler -> Service -> Repository
    (HTTP)  -> (Business) -> (Storage / Transport)

Usage:
    ```python
    from api_cache.services import RequestGate

    # Using factory method (recommended)
    gate = RequestGate.create()

    # Or manual creation
    gate = RequestGate(registry=registry, store=store, transport=transport)
    ```
"""

from .client_registry import ClientRegistry, RegisteredClient
from .credit_calculator import CreditCalculator, CreditLedger, calculate_credits
from .fingerprint import canonical_json, fingerprint, normalize_params, summarize_params, validate_identifier
from .rate_limiter import RateLimiter, RateLimitState
from .request_gate import RequestGate
from .response_store import ResponseStore

__all__ = [
    "ClientRegistry",
    "RegisteredClient",
    "CreditCalculator",
    "CreditLedger",
    "calculate_credits",
    "canonical_json",
    "fingerprint",
    "normalize_params",
    "summarize_params",
    "validate_identifier",
    "RateLimiter",
    "RateLimitState",
    "RequestGate",
    "ResponseStore",
]
