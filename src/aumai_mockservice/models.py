"""Pydantic models for aumai-mockservice."""

from __future__ import annotations

from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, model_validator


class ErrorKind(str, Enum):
    """Machine-readable error categories reported in ``error_type``."""

    rate_limit = "rate_limit"
    service_unavailable = "service_unavailable"
    circuit_breaker_open = "circuit_breaker_open"
    server_error = "server_error"
    client_error = "client_error"
    timeout = "timeout"
    network_failure = "network_failure"
    validation_error = "validation_error"
    unexpected_error = "unexpected_error"

    @property
    def status_code(self) -> int:
        """HTTP status code a response of this kind is sent with."""
        return _STATUS_BY_KIND[self]


_STATUS_BY_KIND: dict[ErrorKind, int] = {
    ErrorKind.rate_limit: 429,
    ErrorKind.service_unavailable: 503,
    ErrorKind.circuit_breaker_open: 503,
    ErrorKind.server_error: 500,
    ErrorKind.client_error: 400,
    ErrorKind.timeout: 408,
    ErrorKind.network_failure: 504,
    ErrorKind.validation_error: 400,
    ErrorKind.unexpected_error: 500,
}


class BreakerState(str, Enum):
    """States of the simulated circuit breaker."""

    CLOSED = "CLOSED"
    OPEN = "OPEN"
    HALF_OPEN = "HALF_OPEN"


class ServiceConfig(BaseModel):
    """Behaviour knobs for the simulated service.

    Every probability is a per-request chance in ``[0, 1]`` and every
    duration is in milliseconds.  Defaults reproduce a mostly healthy
    service: 95% base success, occasional slow responses, rare outages.

    The three error chances are laid out as cumulative bands over one draw.
    When they sum past 1.0 the later bands are truncated, not rejected.
    """

    model_config = ConfigDict(frozen=True, extra="forbid")

    base_success_rate: float = Field(default=0.95, ge=0.0, le=1.0)

    outage_chance: float = Field(default=0.0001, ge=0.0, le=1.0)
    min_outage_duration_ms: float = Field(default=15_000, ge=0)
    max_outage_duration_ms: float = Field(default=45_000, ge=0)

    slow_response_chance: float = Field(default=0.15, ge=0.0, le=1.0)
    min_slow_delay_ms: float = Field(default=500, ge=0)
    max_slow_delay_ms: float = Field(default=2_000, ge=0)

    normal_period_chance: float = Field(default=0.002, ge=0.0, le=1.0)
    min_normal_period_ms: float = Field(default=300_000, ge=0)
    max_normal_period_ms: float = Field(default=1_800_000, ge=0)

    server_error_chance: float = Field(default=0.01, ge=0.0, le=1.0)
    client_error_chance: float = Field(default=0.005, ge=0.0, le=1.0)
    timeout_chance: float = Field(default=0.002, ge=0.0, le=1.0)

    circuit_breaker_threshold: int = Field(default=15, ge=1)
    circuit_breaker_window_ms: float = Field(default=60_000, gt=0)
    circuit_breaker_recovery_ms: float = Field(default=20_000, ge=0)
    circuit_breaker_half_open_requests: int = Field(default=2, ge=1)

    rate_limit_window_ms: float = Field(default=10_000, gt=0)
    rate_limit_max: int = Field(default=50, ge=1)
    rate_limit_max_clients: int = Field(default=10_000, ge=1)

    @model_validator(mode="after")
    def _check_bounds(self) -> ServiceConfig:
        pairs = (
            ("min_outage_duration_ms", "max_outage_duration_ms"),
            ("min_slow_delay_ms", "max_slow_delay_ms"),
            ("min_normal_period_ms", "max_normal_period_ms"),
        )
        for low_name, high_name in pairs:
            if getattr(self, low_name) > getattr(self, high_name):
                raise ValueError(f"{low_name} must not exceed {high_name}")
        return self


class RequestDescriptor(BaseModel):
    """Transport-neutral view of one inbound call."""

    model_config = ConfigDict(frozen=True)

    method: str
    path: str = "/"
    client_id: str = "unknown"
    body: dict[str, Any] | None = None
    query: dict[str, str] | None = None


class ResponseOutcome(BaseModel):
    """Result of running one request through the admission pipeline."""

    status_code: int
    error_kind: ErrorKind | None = None
    payload: dict[str, Any] = Field(default_factory=dict)
    delay_ms: float = 0.0
    breaker_failure: bool = False
    retry_after: int | None = None

    @property
    def ok(self) -> bool:
        return self.error_kind is None


class RateLimitEntry(BaseModel):
    """Request counter for one client inside its current window."""

    count: int = 1
    window_start: float


class MetricsSnapshot(BaseModel):
    """Point-in-time copy of the request counters."""

    total_requests: int = 0
    successful_requests: int = 0
    failed_requests: int = 0
    average_response_time_ms: float = 0.0

    @property
    def success_rate(self) -> float:
        """Percentage of successful requests, 0 when nothing was recorded."""
        if self.total_requests == 0:
            return 0.0
        return self.successful_requests / self.total_requests * 100


class BreakerSnapshot(BaseModel):
    """Point-in-time copy of the circuit breaker state."""

    state: BreakerState
    error_count: int
    opened_at: float | None = None
    half_open_successes: int = 0


class ServiceState(BaseModel):
    """Aggregate view of everything the pipeline tracks."""

    metrics: MetricsSnapshot
    breaker: BreakerSnapshot
    healthy: bool = True
    outage_start: float | None = None
    outage_end: float | None = None
    normal_period_start: float | None = None
    normal_period_duration_ms: float | None = None
    tracked_clients: int = 0

    @property
    def in_normal_period(self) -> bool:
        return self.normal_period_duration_ms is not None


__all__ = [
    "BreakerSnapshot",
    "BreakerState",
    "ErrorKind",
    "MetricsSnapshot",
    "RateLimitEntry",
    "RequestDescriptor",
    "ResponseOutcome",
    "ServiceConfig",
    "ServiceState",
]
