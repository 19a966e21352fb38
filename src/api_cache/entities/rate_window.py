"""Rate window domain entity and the tagged limiter decision."""

from dataclasses import dataclass


@dataclass(frozen=True)
class RateWindow:
    """Fixed attempt-counting window for one client.

    Attributes:
        client_name: Client the window belongs to
        window_start: Unix timestamp the window opened at
        attempt_count: Attempts recorded in this window
        max_attempts: Allowed attempts per window (None = unlimited)
        decay_seconds: Window length in seconds
    """

    client_name: str
    window_start: float
    attempt_count: int
    max_attempts: int | None
    decay_seconds: float

    @property
    def unlimited(self) -> bool:
        return self.max_attempts is None or self.max_attempts < 0

    def is_expired(self, now: float) -> bool:
        """True once the window has run its full length."""
        return now - self.window_start >= self.decay_seconds

    def rolled(self, now: float) -> "RateWindow":
        """Return the window as it stands at ``now``.

        An expired window is replaced by a fresh one starting at ``now`` with
        zero attempts. Nothing is persisted; callers that need the rollover
        stored go through the limiter's atomic increment.
        """
        if not self.is_expired(now):
            return self
        return RateWindow(
            client_name=self.client_name,
            window_start=now,
            attempt_count=0,
            max_attempts=self.max_attempts,
            decay_seconds=self.decay_seconds,
        )

    def remaining(self) -> int | None:
        if self.unlimited:
            return None
        return max(0, self.max_attempts - self.attempt_count)  # type: ignore[operator]

    def at_limit(self) -> bool:
        return not self.unlimited and self.attempt_count >= self.max_attempts  # type: ignore[operator]

    def retry_after(self, now: float) -> float:
        """Seconds until this window rolls over (0 when already expired)."""
        return max(0.0, self.window_start + self.decay_seconds - now)


@dataclass(frozen=True)
class Allowed:
    """The client may dispatch. ``remaining`` is None when unlimited."""

    remaining: int | None = None

    allowed = True


@dataclass(frozen=True)
class Denied:
    """The client is at its limit until ``retry_after`` seconds pass."""

    retry_after: float

    allowed = False


RateDecision = Allowed | Denied
