"""Circuit breaker state machine for aumai-mockservice."""

from __future__ import annotations

import logging

from aumai_mockservice.models import BreakerSnapshot, BreakerState, ServiceConfig
from aumai_mockservice.sources import iso_timestamp

logger = logging.getLogger(__name__)


class CircuitBreaker:
    """Three-state breaker driven by the density of recent failures.

    Failures are kept as timestamps in an error window.  The window is pruned
    to ``circuit_breaker_window_ms`` every time the breaker is consulted, and
    the breaker opens once the pruned window holds
    ``circuit_breaker_threshold`` entries.

    Transitions:

    * CLOSED -> OPEN when the threshold is reached during :meth:`should_reject`.
    * OPEN -> HALF_OPEN once ``circuit_breaker_recovery_ms`` has elapsed; the
      request that observes this is admitted.
    * HALF_OPEN -> CLOSED after ``circuit_breaker_half_open_requests``
      successes.  Only errors from the most recent half window survive.
    * HALF_OPEN -> OPEN on any failure, with a fresh open timestamp.

    There is no timer: every transition happens inside a call.
    """

    def __init__(self, config: ServiceConfig) -> None:
        self._config = config
        self.state = BreakerState.CLOSED
        self.opened_at: float | None = None
        self.half_open_successes = 0
        self._errors: list[float] = []

    @property
    def error_count(self) -> int:
        return len(self._errors)

    def errors(self) -> list[float]:
        """Return a copy of the error window, oldest first."""
        return list(self._errors)

    def should_reject(self, now: float) -> bool:
        """Return True if the request must be rejected.

        This is a transition point, not a pure read: it prunes the error
        window and may move the breaker CLOSED -> OPEN or OPEN -> HALF_OPEN.
        """
        self._prune(now)

        if self.state is BreakerState.CLOSED:
            if len(self._errors) >= self._config.circuit_breaker_threshold:
                self.state = BreakerState.OPEN
                self.opened_at = now
                logger.info(
                    "Circuit breaker OPENED at %s due to %d errors",
                    iso_timestamp(now),
                    len(self._errors),
                )
                return True
            return False

        if self.state is BreakerState.OPEN:
            recovery = self._config.circuit_breaker_recovery_ms
            if self.opened_at is None or now - self.opened_at >= recovery:
                self.state = BreakerState.HALF_OPEN
                self.half_open_successes = 0
                logger.info(
                    "Circuit breaker moved to HALF_OPEN at %s", iso_timestamp(now)
                )
                return False
            return True

        return False

    def record_failure(self, now: float) -> None:
        """Add a failure to the error window; a half-open breaker reopens."""
        self._errors.append(now)
        if self.state is BreakerState.HALF_OPEN:
            self.state = BreakerState.OPEN
            self.opened_at = now
            self.half_open_successes = 0
            logger.info(
                "Circuit breaker REOPENED at %s due to failure in half-open state",
                iso_timestamp(now),
            )

    def record_success(self, now: float) -> None:
        """Count a half-open probe success, closing the breaker when enough pass."""
        if self.state is not BreakerState.HALF_OPEN:
            return
        self.half_open_successes += 1
        if self.half_open_successes < self._config.circuit_breaker_half_open_requests:
            return

        self.state = BreakerState.CLOSED
        self.half_open_successes = 0
        cutoff = now - self._config.circuit_breaker_window_ms / 2
        self._errors = [ts for ts in self._errors if ts > cutoff]
        logger.info(
            "Circuit breaker CLOSED at %s after successful half-open period",
            iso_timestamp(now),
        )

    def reset(self) -> None:
        """Force the breaker CLOSED and forget all recorded failures."""
        self.state = BreakerState.CLOSED
        self.opened_at = None
        self.half_open_successes = 0
        self._errors.clear()
        logger.info("Circuit breaker manually reset")

    def recovery_remaining_seconds(self, now: float) -> int:
        """Seconds until an OPEN breaker may probe again, 0 otherwise."""
        if self.state is not BreakerState.OPEN or self.opened_at is None:
            return 0
        remaining = self._config.circuit_breaker_recovery_ms - (now - self.opened_at)
        return max(0, round(remaining / 1000))

    def snapshot(self) -> BreakerSnapshot:
        return BreakerSnapshot(
            state=self.state,
            error_count=len(self._errors),
            opened_at=self.opened_at,
            half_open_successes=self.half_open_successes,
        )

    def _prune(self, now: float) -> None:
        window = self._config.circuit_breaker_window_ms
        self._errors = [ts for ts in self._errors if now - ts < window]


__all__ = ["CircuitBreaker"]
