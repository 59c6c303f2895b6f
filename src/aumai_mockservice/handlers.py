"""Success-path endpoint handlers.

Once a request has passed every admission gate, :func:`dispatch` turns it
into a JSON payload.  Handlers are plain functions of the request and a
:class:`SuccessContext`; they may raise :class:`RequestValidationError`, which
the pipeline reports as ``validation_error``.
"""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel

from aumai_mockservice.core import RequestValidationError
from aumai_mockservice.models import RequestDescriptor, ServiceConfig, ServiceState
from aumai_mockservice.sources import iso_timestamp

SERVICE_VERSION = "0.1.0"


class SuccessContext(BaseModel):
    """What the pipeline knows about an admitted request at dispatch time."""

    request_id: str
    now: float
    response_time_ms: float
    delay_ms: float
    in_normal_period: bool
    state: ServiceState
    config: ServiceConfig


def _percent(value: float) -> str:
    return f"{value * 100:g}%"


def _name_from(mapping: dict[str, Any] | None) -> Any:
    if not mapping:
        return None
    return mapping.get("name") or None


def health(request: RequestDescriptor, ctx: SuccessContext) -> dict[str, Any]:
    metrics = ctx.state.metrics
    breaker = ctx.state.breaker
    return {
        "status": "success",
        "message": "Realistic mock service is running",
        "timestamp": iso_timestamp(ctx.now),
        "version": SERVICE_VERSION,
        "requestId": ctx.request_id,
        "service_metrics": {
            "total_requests": metrics.total_requests,
            "successful_requests": metrics.successful_requests,
            "failed_requests": metrics.failed_requests,
            "success_rate": f"{metrics.success_rate:.2f}%",
            "average_response_time_ms": round(metrics.average_response_time_ms),
            "current_response_time_ms": round(ctx.response_time_ms),
            "in_normal_period": ctx.in_normal_period,
            "service_healthy": ctx.state.healthy,
            "circuit_breaker_errors": breaker.error_count,
            "circuit_breaker_state": breaker.state.value,
            "half_open_attempts": breaker.half_open_successes,
        },
        "behavior_config": {
            "base_success_rate": _percent(ctx.config.base_success_rate),
            "slow_response_chance": _percent(ctx.config.slow_response_chance),
            "outage_chance_per_request": _percent(ctx.config.outage_chance),
        },
        "hint": (
            "This service simulates real-world API behavior with failures, "
            "delays, and outages"
        ),
    }


def hello(
    request: RequestDescriptor, ctx: SuccessContext, name: Any
) -> dict[str, Any]:
    payload: dict[str, Any] = {
        "message": f"Hello {name}!",
        "requestId": ctx.request_id,
        "response_time_ms": round(ctx.response_time_ms),
        "timestamp": iso_timestamp(ctx.now),
        "artificial_delay_ms": ctx.delay_ms,
        "in_normal_period": ctx.in_normal_period,
    }
    if request.method == "POST":
        payload["received_data"] = request.body or {}
    return payload


def post_echo(request: RequestDescriptor, ctx: SuccessContext) -> dict[str, Any]:
    stamp = iso_timestamp(ctx.now)
    return {
        "status": "success",
        "message": "Request processed successfully",
        "timestamp": stamp,
        "requestId": ctx.request_id,
        "endpoint": request.path,
        "method": request.method,
        "receivedData": request.body or {},
        "processedAt": stamp,
        "response_time_ms": round(ctx.response_time_ms),
        "artificial_delay_ms": ctx.delay_ms,
        "in_normal_period": ctx.in_normal_period,
        "hint": 'Include {"name": "YourName"} in body for hello functionality',
    }


def method_echo(request: RequestDescriptor, ctx: SuccessContext) -> dict[str, Any]:
    return {
        "status": "success",
        "message": f"{request.method} request processed",
        "timestamp": iso_timestamp(ctx.now),
        "requestId": ctx.request_id,
        "endpoint": request.path,
        "method": request.method,
        "response_time_ms": round(ctx.response_time_ms),
        "artificial_delay_ms": ctx.delay_ms,
        "in_normal_period": ctx.in_normal_period,
    }


def dispatch(request: RequestDescriptor, ctx: SuccessContext) -> dict[str, Any]:
    """Route an admitted request to the handler for its method and path.

    Raises:
        RequestValidationError: ``POST /hello`` without a ``name`` in the body.
    """
    if request.method == "GET":
        name = _name_from(request.query)
        if request.path == "/health" or (request.path == "/" and name is None):
            return health(request, ctx)
        if name is not None:
            return hello(request, ctx, name)
        return hello(request, ctx, "World")

    if request.method == "POST":
        name = _name_from(request.body)
        if request.path == "/hello" and name is None:
            raise RequestValidationError("Missing required field: name")
        if name is not None:
            return hello(request, ctx, name)
        return post_echo(request, ctx)

    return method_echo(request, ctx)


__all__ = [
    "SERVICE_VERSION",
    "SuccessContext",
    "dispatch",
    "health",
    "hello",
    "method_echo",
    "post_echo",
]
