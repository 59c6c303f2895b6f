"""Core error and delay injection for aumai-mockservice."""

from __future__ import annotations

from aumai_mockservice.models import ErrorKind, ServiceConfig
from aumai_mockservice.sources import RandomSource, uniform

# ---------------------------------------------------------------------------
# Custom exceptions
# ---------------------------------------------------------------------------

class MockServiceError(RuntimeError):
    """Base class for failures reported to the caller as an error body."""

    kind: ErrorKind = ErrorKind.unexpected_error

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message

    @property
    def status_code(self) -> int:
        return self.kind.status_code


class RequestValidationError(MockServiceError):
    """Raised by an endpoint handler when a required field is missing."""

    kind = ErrorKind.validation_error


# ---------------------------------------------------------------------------
# ErrorInjector
# ---------------------------------------------------------------------------

ERROR_MESSAGES: dict[ErrorKind, str] = {
    ErrorKind.server_error: "Internal Server Error",
    ErrorKind.client_error: "Bad Request",
    ErrorKind.timeout: "Request Timeout",
    ErrorKind.network_failure: "Simulated network failure (gateway timeout)",
}


class ErrorInjector:
    """Map one uniform draw onto an injected error kind.

    ``[0, 1)`` is split into consecutive bands: server errors first, then
    client errors, then timeouts, and the remainder means no error.  The
    thresholds are cumulative, so the bands never overlap.
    """

    def __init__(self, config: ServiceConfig) -> None:
        server = config.server_error_chance
        client = server + config.client_error_chance
        timeout = client + config.timeout_chance
        self._bands: tuple[tuple[float, ErrorKind], ...] = (
            (server, ErrorKind.server_error),
            (client, ErrorKind.client_error),
            (timeout, ErrorKind.timeout),
        )

    def classify(self, draw: float) -> ErrorKind | None:
        """Return the error kind whose band contains *draw*, or None."""
        for threshold, kind in self._bands:
            if draw < threshold:
                return kind
        return None


# ---------------------------------------------------------------------------
# DelayInjector
# ---------------------------------------------------------------------------

class DelayInjector:
    """Decide how much artificial latency to add to a request.

    The injector only computes the delay; the caller awaits it.
    """

    def __init__(self, config: ServiceConfig, rng: RandomSource) -> None:
        self._config = config
        self._rng = rng

    def compute_delay(self, draw: float) -> float:
        """Return a delay in milliseconds, or 0.0 when *draw* misses.

        With probability ``slow_response_chance`` the delay is drawn uniformly
        between ``min_slow_delay_ms`` and ``max_slow_delay_ms``.
        """
        if draw >= self._config.slow_response_chance:
            return 0.0
        return uniform(
            self._rng,
            self._config.min_slow_delay_ms,
            self._config.max_slow_delay_ms,
        )


__all__ = [
    "DelayInjector",
    "ERROR_MESSAGES",
    "ErrorInjector",
    "MockServiceError",
    "RequestValidationError",
]
