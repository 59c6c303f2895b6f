"""Request admission pipeline for aumai-mockservice."""

from __future__ import annotations

import logging
import math
import threading
import uuid
from collections.abc import Callable
from typing import Any

from aumai_mockservice.breaker import CircuitBreaker
from aumai_mockservice.core import (
    ERROR_MESSAGES,
    DelayInjector,
    ErrorInjector,
    RequestValidationError,
)
from aumai_mockservice.handlers import SuccessContext, dispatch
from aumai_mockservice.metrics import MetricsRecorder
from aumai_mockservice.models import (
    ErrorKind,
    RequestDescriptor,
    ResponseOutcome,
    ServiceConfig,
    ServiceState,
)
from aumai_mockservice.ratelimit import RateLimiter
from aumai_mockservice.schedulers import NormalPeriodScheduler, OutageScheduler
from aumai_mockservice.sources import (
    Clock,
    RandomSource,
    SystemClock,
    SystemRandom,
    iso_timestamp,
)

logger = logging.getLogger(__name__)

Dispatcher = Callable[[RequestDescriptor, SuccessContext], dict[str, Any]]

BREAKER_RETRY_AFTER_SECONDS = 30


def new_request_id(now: float) -> str:
    """Return an opaque, unique request identifier."""
    return f"req_{int(now)}_{uuid.uuid4().hex[:9]}"


class AdmissionPipeline:
    """Run every inbound request through the admission gates.

    Gate order: rate limiter, outage scheduler, circuit breaker, artificial
    delay, normal-period check, error injection, plain drop, and finally the
    success handler.  Each gate sees the same ``now``, taken once on entry.

    The pipeline owns all shared state.  A single :class:`threading.Lock`
    guards every decision; it is released while the artificial delay is
    awaited so concurrent requests keep flowing.
    """

    def __init__(
        self,
        config: ServiceConfig | None = None,
        clock: Clock | None = None,
        rng: RandomSource | None = None,
        dispatcher: Dispatcher | None = None,
    ) -> None:
        self.config = config or ServiceConfig()
        self.clock: Clock = clock or SystemClock()
        self.rng: RandomSource = rng or SystemRandom()
        self.rate_limiter = RateLimiter(self.config)
        self.outages = OutageScheduler(self.config, self.rng)
        self.normal_periods = NormalPeriodScheduler(self.config, self.rng)
        self.breaker = CircuitBreaker(self.config)
        self.error_injector = ErrorInjector(self.config)
        self.delay_injector = DelayInjector(self.config, self.rng)
        self.metrics = MetricsRecorder()
        self._dispatch: Dispatcher = dispatcher or dispatch
        self._lock: threading.Lock = threading.Lock()

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    async def handle(self, request: RequestDescriptor) -> ResponseOutcome:
        """Decide the outcome of *request*, awaiting any injected delay.

        Never raises: gate rejections, injected errors and handler faults
        all come back as a :class:`ResponseOutcome` with an ``error_kind``.
        """
        started = self.clock.now()
        request_id = new_request_id(started)

        with self._lock:
            rejection = self._run_admission_gates(request, request_id, started)
            delay_ms = 0.0
            if rejection is None:
                delay_ms = self.delay_injector.compute_delay(self.rng.next())
        if rejection is not None:
            return rejection

        if delay_ms > 0:
            logger.debug(
                "Adding artificial delay: %dms [%s]", round(delay_ms), request_id
            )
            await self.clock.sleep(delay_ms)

        with self._lock:
            return self._complete(request, request_id, started, delay_ms)

    def reset_circuit_breaker(self) -> ResponseOutcome:
        """Force the breaker CLOSED, bypassing every admission gate."""
        started = self.clock.now()
        request_id = new_request_id(started)
        with self._lock:
            self.breaker.reset()
            state = self.breaker.state
        logger.info("Circuit breaker manually reset [%s]", request_id)
        return ResponseOutcome(
            status_code=200,
            payload={
                "status": "success",
                "message": "Circuit breaker has been reset",
                "timestamp": iso_timestamp(started),
                "requestId": request_id,
                "response_time_ms": round(self.clock.now() - started),
                "circuit_breaker_state": state.value,
                "hint": "Circuit breaker is now CLOSED and ready to accept requests",
            },
        )

    def state(self) -> ServiceState:
        """Return a consistent snapshot of all pipeline state."""
        with self._lock:
            return self._snapshot()

    # ------------------------------------------------------------------
    # Gates
    # ------------------------------------------------------------------

    def _run_admission_gates(
        self, request: RequestDescriptor, request_id: str, now: float
    ) -> ResponseOutcome | None:
        if not self.rate_limiter.admit(request.client_id, now):
            return self._reject(
                ErrorKind.rate_limit,
                "Too many requests",
                request_id,
                now,
                retry_after=math.ceil(self.config.rate_limit_window_ms / 1000),
            )

        if not self.outages.is_available(now):
            return self._reject(
                ErrorKind.service_unavailable,
                "Service temporarily unavailable",
                request_id,
                now,
                retry_after=self.outages.retry_after_seconds(now),
            )

        if self.breaker.should_reject(now):
            outcome = self._reject(
                ErrorKind.circuit_breaker_open,
                "Circuit breaker open - too many recent failures",
                request_id,
                now,
                retry_after=BREAKER_RETRY_AFTER_SECONDS,
            )
            outcome.payload["circuit_breaker_state"] = self.breaker.state.value
            outcome.payload["recovery_time_remaining"] = (
                self.breaker.recovery_remaining_seconds(now)
            )
            return outcome

        return None

    def _complete(
        self,
        request: RequestDescriptor,
        request_id: str,
        now: float,
        delay_ms: float,
    ) -> ResponseOutcome:
        in_normal_period = self.normal_periods.is_in_normal_period(now)

        if not in_normal_period:
            kind = self.error_injector.classify(self.rng.next())
            if kind is None and self.rng.next() > self.config.base_success_rate:
                kind = ErrorKind.network_failure
            if kind is not None:
                return self._reject(
                    kind,
                    ERROR_MESSAGES[kind],
                    request_id,
                    now,
                    response_time_ms=self._elapsed(now),
                    delay_ms=delay_ms,
                )

        response_time_ms = self._elapsed(now)
        context = SuccessContext(
            request_id=request_id,
            now=now,
            response_time_ms=response_time_ms,
            delay_ms=delay_ms,
            in_normal_period=in_normal_period,
            state=self._snapshot(pending_success_ms=response_time_ms),
            config=self.config,
        )
        try:
            payload = self._dispatch(request, context)
        except RequestValidationError as exc:
            return self._reject(
                exc.kind,
                exc.message,
                request_id,
                now,
                response_time_ms=response_time_ms,
                delay_ms=delay_ms,
                breaker_failure=False,
            )
        except Exception as exc:  # noqa: BLE001
            logger.exception(
                "Unexpected error while handling %s %s [%s]",
                request.method,
                request.path,
                request_id,
            )
            outcome = self._reject(
                ErrorKind.unexpected_error,
                "Internal server error",
                request_id,
                now,
                response_time_ms=response_time_ms,
                delay_ms=delay_ms,
            )
            outcome.payload["error"] = str(exc)
            return outcome

        self.breaker.record_success(now)
        self.metrics.record_outcome(True, response_time_ms)
        logger.debug(
            "Successful %s %s [%s] processed in %dms",
            request.method,
            request.path,
            request_id,
            round(response_time_ms),
        )
        return ResponseOutcome(status_code=200, payload=payload, delay_ms=delay_ms)

    # ------------------------------------------------------------------
    # Helpers (caller holds the lock)
    # ------------------------------------------------------------------

    def _reject(
        self,
        kind: ErrorKind,
        message: str,
        request_id: str,
        now: float,
        *,
        retry_after: int | None = None,
        response_time_ms: float | None = None,
        delay_ms: float = 0.0,
        breaker_failure: bool = True,
    ) -> ResponseOutcome:
        if breaker_failure:
            self.breaker.record_failure(now)
        elapsed = self._elapsed(now) if response_time_ms is None else response_time_ms
        self.metrics.record_outcome(False, elapsed)

        payload: dict[str, Any] = {
            "status": "error",
            "message": message,
            "timestamp": iso_timestamp(now),
            "requestId": request_id,
            "error_type": kind.value,
        }
        if retry_after is not None:
            payload["retry_after"] = retry_after
        if response_time_ms is not None:
            payload["response_time_ms"] = round(response_time_ms)

        logger.info(
            "Rejected request [%s] with %s (%d) after %dms",
            request_id,
            kind.value,
            kind.status_code,
            round(elapsed),
        )
        return ResponseOutcome(
            status_code=kind.status_code,
            error_kind=kind,
            payload=payload,
            delay_ms=delay_ms,
            breaker_failure=breaker_failure,
            retry_after=retry_after,
        )

    def _elapsed(self, started: float) -> float:
        return max(0.0, self.clock.now() - started)

    def _snapshot(self, pending_success_ms: float | None = None) -> ServiceState:
        # A pending success is counted in the reported metrics but not recorded.
        if pending_success_ms is None:
            metrics = self.metrics.snapshot()
        else:
            metrics = self.metrics.preview(True, pending_success_ms)
        return ServiceState(
            metrics=metrics,
            breaker=self.breaker.snapshot(),
            healthy=self.outages.healthy,
            outage_start=self.outages.outage_start,
            outage_end=self.outages.outage_end,
            normal_period_start=self.normal_periods.period_start,
            normal_period_duration_ms=self.normal_periods.period_duration_ms,
            tracked_clients=len(self.rate_limiter),
        )


__all__ = [
    "AdmissionPipeline",
    "BREAKER_RETRY_AFTER_SECONDS",
    "Dispatcher",
    "new_request_id",
]
