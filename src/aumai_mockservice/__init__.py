"""aumai-mockservice: A backend test double that fails like a real service."""

from aumai_mockservice.breaker import CircuitBreaker
from aumai_mockservice.core import (
    DelayInjector,
    ErrorInjector,
    MockServiceError,
    RequestValidationError,
)
from aumai_mockservice.metrics import MetricsRecorder
from aumai_mockservice.models import (
    BreakerState,
    ErrorKind,
    RequestDescriptor,
    ResponseOutcome,
    ServiceConfig,
    ServiceState,
)
from aumai_mockservice.pipeline import AdmissionPipeline
from aumai_mockservice.ratelimit import RateLimiter
from aumai_mockservice.schedulers import NormalPeriodScheduler, OutageScheduler
from aumai_mockservice.sources import (
    ManualClock,
    ScriptedRandom,
    SystemClock,
    SystemRandom,
)

__version__ = "0.1.0"

__all__ = [
    "AdmissionPipeline",
    "BreakerState",
    "CircuitBreaker",
    "DelayInjector",
    "ErrorInjector",
    "ErrorKind",
    "ManualClock",
    "MetricsRecorder",
    "MockServiceError",
    "NormalPeriodScheduler",
    "OutageScheduler",
    "RateLimiter",
    "RequestDescriptor",
    "RequestValidationError",
    "ResponseOutcome",
    "ScriptedRandom",
    "ServiceConfig",
    "ServiceState",
    "SystemClock",
    "SystemRandom",
]
