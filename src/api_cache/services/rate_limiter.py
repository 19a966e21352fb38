"""Fixed-window rate limiter, one instance per client.

The limiter owns no counters itself. Windows live in the storage backend so
that several processes sharing Redis also share the limit, and every
mutation goes through the backend's atomic ``hit_window``.
"""

import time
from enum import Enum
from typing import Callable

from loguru import logger

from api_cache.entities import Allowed, Denied, RateDecision, RateWindow
from api_cache.protocols import StorageBackend


class RateLimitState(str, Enum):
    WITHIN_LIMIT = "within_limit"
    AT_LIMIT = "at_limit"


class RateLimiter:
    """Attempt counter for a single client.

    ``allow``/``check`` are read-only: they account for an expired window
    without storing the rollover. ``increment`` and ``acquire`` are the only
    mutations, and both are atomic in the backend.

    Example:
        ```python
        limiter = RateLimiter("demo", backend, max_attempts=3, decay_seconds=60)
        decision = limiter.acquire()
        if isinstance(decision, Denied):
            wait(decision.retry_after)
        ```
    """

    def __init__(
        self,
        client_name: str,
        backend: StorageBackend,
        max_attempts: int | None,
        decay_seconds: float,
        namespace: str = "api-cache",
        clock: Callable[[], float] = time.time,
    ) -> None:
        """Initialize the limiter.

        Args:
            client_name: Client this limiter counts for.
            backend: Storage holding the window (required).
            max_attempts: Attempts per window. None or negative = unlimited.
            decay_seconds: Window length in seconds.
            namespace: Key prefix shared with the response store.
            clock: Source of Unix time, replaceable in tests.
        """
        if decay_seconds <= 0:
            raise ValueError("decay_seconds must be positive")

        self._client_name = client_name
        self._backend = backend
        self._max_attempts = max_attempts
        self._decay_seconds = decay_seconds
        self._key = f"{namespace}:rate-limit:{client_name}"
        self._clock = clock

    @property
    def client_name(self) -> str:
        return self._client_name

    @property
    def key(self) -> str:
        return self._key

    @property
    def max_attempts(self) -> int | None:
        return self._max_attempts

    @property
    def decay_seconds(self) -> float:
        return self._decay_seconds

    @property
    def unlimited(self) -> bool:
        return self._max_attempts is None or self._max_attempts < 0

    def _window(self, start: float, count: int) -> RateWindow:
        return RateWindow(
            client_name=self._client_name,
            window_start=start,
            attempt_count=count,
            max_attempts=self._max_attempts,
            decay_seconds=self._decay_seconds,
        )

    def window(self) -> RateWindow | None:
        """The stored window, exactly as persisted (possibly expired)."""
        stored = self._backend.get_window(self._key)
        if stored is None:
            return None
        return self._window(*stored)

    def current_window(self) -> RateWindow:
        """The window as it applies right now, rollover included."""
        now = self._clock()
        stored = self.window()
        if stored is None:
            return self._window(now, 0)
        return stored.rolled(now)

    def check(self) -> RateDecision:
        """Decide whether one more attempt fits, without recording anything."""
        now = self._clock()
        window = self.current_window()

        if window.at_limit():
            retry_after = window.retry_after(now)
            logger.warning(
                "Rate limit exceeded client={} available_in={:.1f} max_attempts={}",
                self._client_name,
                retry_after,
                self._max_attempts,
            )
            return Denied(retry_after=retry_after)

        logger.debug(
            "Rate limit status check client={} remaining_attempts={} max_attempts={}",
            self._client_name,
            window.remaining(),
            self._max_attempts,
        )
        return Allowed(remaining=window.remaining())

    def allow(self) -> bool:
        """True if the current window has attempts left."""
        return self.check().allowed

    def acquire(self, amount: int = 1) -> RateDecision:
        """Check and record an attempt in one atomic step.

        Two callers racing for the last slot cannot both get ``Allowed``.
        A ``Denied`` result records nothing.

        Args:
            amount: Attempt units the call consumes

        Returns:
            Allowed with the remaining attempts, or Denied with retry_after
        """
        now = self._clock()
        limit = None if self.unlimited else self._max_attempts
        applied, start, count = self._backend.hit_window(self._key, now, self._decay_seconds, amount, limit)
        window = self._window(start, count)

        if not applied:
            retry_after = window.retry_after(now)
            logger.warning(
                "Rate limit exceeded client={} available_in={:.1f} max_attempts={}",
                self._client_name,
                retry_after,
                self._max_attempts,
            )
            return Denied(retry_after=retry_after)

        logger.debug(
            "Rate limit attempt recorded client={} amount={} remaining_attempts={}",
            self._client_name,
            amount,
            window.remaining(),
        )
        return Allowed(remaining=window.remaining())

    def increment(self, amount: int = 1) -> RateWindow:
        """Record attempts unconditionally, rolling the window over if due."""
        _, start, count = self._backend.hit_window(self._key, self._clock(), self._decay_seconds, amount, None)
        window = self._window(start, count)
        logger.debug(
            "Rate limit incremented client={} amount={} remaining_attempts={}",
            self._client_name,
            amount,
            window.remaining(),
        )
        return window

    def clear(self) -> None:
        """Drop the window; the next attempt starts a fresh one."""
        remaining_before = self.remaining_attempts()
        self._backend.delete(self._key)
        logger.debug(
            "Rate limit state cleared client={} remaining_attempts_before_clear={}",
            self._client_name,
            remaining_before,
        )

    def remaining_attempts(self) -> int | None:
        """Attempts left in the current window (None = unlimited)."""
        return self.current_window().remaining()

    def available_in(self) -> float:
        """Seconds until an attempt is possible again (0 if one is possible now)."""
        window = self.current_window()
        if not window.at_limit():
            return 0.0
        return window.retry_after(self._clock())

    @property
    def state(self) -> RateLimitState:
        return RateLimitState.AT_LIMIT if self.current_window().at_limit() else RateLimitState.WITHIN_LIMIT
