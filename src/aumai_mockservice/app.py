"""
FastAPI application factory.

Usage:
    from aumai_mockservice.app import create_app

    app = create_app()

Or run through the CLI:
    aumai-mockservice serve --port 8080
"""

from __future__ import annotations

import json
import logging
import math
from typing import Any

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse, Response

from aumai_mockservice.models import (
    ErrorKind,
    RequestDescriptor,
    ResponseOutcome,
    ServiceConfig,
)
from aumai_mockservice.pipeline import AdmissionPipeline, new_request_id
from aumai_mockservice.sources import iso_timestamp

logger = logging.getLogger(__name__)

CORS_HEADERS = {
    "Access-Control-Allow-Origin": "*",
    "Access-Control-Allow-Methods": "GET, POST, OPTIONS, PUT, DELETE",
    "Access-Control-Allow-Headers": "Content-Type, Authorization",
}


def client_id_for(request: Request) -> str:
    """Identify the caller by forwarded address, falling back to the peer."""
    forwarded = request.headers.get("x-forwarded-for")
    if forwarded:
        return forwarded.split(",")[0].strip()
    if request.client is not None and request.client.host:
        return request.client.host
    return "unknown"


def _reject_constant(name: str) -> float:
    raise ValueError(f"JSON constant {name} is not allowed")


def _finite_float(text: str) -> float:
    value = float(text)
    if not math.isfinite(value):
        raise ValueError(f"JSON number {text} is out of range")
    return value


async def read_json_body(request: Request) -> dict[str, Any] | None:
    """Return the request body as a JSON object, or None if it is not one."""
    raw = await request.body()
    if not raw:
        return None
    try:
        data = json.loads(
            raw, parse_constant=_reject_constant, parse_float=_finite_float
        )
    except ValueError:
        logger.debug("Ignoring non-JSON request body on %s", request.url.path)
        return None
    return data if isinstance(data, dict) else None


async def describe(request: Request) -> RequestDescriptor:
    return RequestDescriptor(
        method=request.method.upper(),
        path=request.url.path,
        client_id=client_id_for(request),
        body=await read_json_body(request),
        query=dict(request.query_params),
    )


def to_response(outcome: ResponseOutcome) -> JSONResponse:
    headers = dict(CORS_HEADERS)
    if outcome.retry_after is not None:
        headers["Retry-After"] = str(outcome.retry_after)
    return JSONResponse(
        status_code=outcome.status_code, content=outcome.payload, headers=headers
    )


def create_app(
    config: ServiceConfig | None = None,
    pipeline: AdmissionPipeline | None = None,
) -> FastAPI:
    """
    Create the FastAPI application wrapping one admission pipeline.

    Args:
        config: Behaviour configuration; ignored when *pipeline* is given.
        pipeline: Pre-built pipeline, e.g. with a manual clock for tests.

    Returns:
        Configured FastAPI application instance.
    """
    service = pipeline or AdmissionPipeline(config=config)

    app = FastAPI(
        title="aumai-mockservice",
        description="Backend test double with realistic failure behaviour",
    )
    app.state.pipeline = service

    @app.exception_handler(Exception)
    async def generic_error_handler(request: Request, exc: Exception) -> JSONResponse:
        """Report anything that escaped the pipeline as ``unexpected_error``."""
        now = service.clock.now()
        logger.exception("Unhandled error on %s %s", request.method, request.url.path)
        return JSONResponse(
            status_code=ErrorKind.unexpected_error.status_code,
            content={
                "status": "error",
                "message": "Internal server error",
                "timestamp": iso_timestamp(now),
                "requestId": new_request_id(now),
                "error_type": ErrorKind.unexpected_error.value,
                "error": str(exc),
            },
            headers=dict(CORS_HEADERS),
        )

    @app.post("/reset-circuit-breaker")
    async def reset_circuit_breaker() -> JSONResponse:
        return to_response(service.reset_circuit_breaker())

    async def simulate(request: Request) -> Response:
        if request.method == "OPTIONS":
            return Response(status_code=204, headers=CORS_HEADERS)
        outcome = await service.handle(await describe(request))
        return to_response(outcome)

    # No method list: HEAD, TRACE and extension verbs reach the pipeline too.
    app.add_route("/{path:path}", simulate, include_in_schema=False)

    return app


__all__ = ["CORS_HEADERS", "client_id_for", "create_app"]
