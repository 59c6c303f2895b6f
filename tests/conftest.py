"""Shared pytest fixtures for aumai-mockservice test suite."""

from __future__ import annotations

import asyncio

import pytest

from aumai_mockservice.models import RequestDescriptor, ResponseOutcome, ServiceConfig
from aumai_mockservice.pipeline import AdmissionPipeline
from aumai_mockservice.sources import ManualClock, ScriptedRandom

# Arbitrary fixed epoch (2023-11-14T22:13:20Z) so timestamps are realistic.
EPOCH_MS = 1_700_000_000_000.0

# ---------------------------------------------------------------------------
# Config fixtures
# ---------------------------------------------------------------------------


def quiet(**overrides: object) -> ServiceConfig:
    """A config with every random failure switched off, plus *overrides*."""
    values: dict[str, object] = {
        "base_success_rate": 1.0,
        "outage_chance": 0.0,
        "slow_response_chance": 0.0,
        "normal_period_chance": 0.0,
        "server_error_chance": 0.0,
        "client_error_chance": 0.0,
        "timeout_chance": 0.0,
    }
    values.update(overrides)
    return ServiceConfig(**values)  # type: ignore[arg-type]


@pytest.fixture()
def quiet_config() -> ServiceConfig:
    """ServiceConfig under which every admitted request succeeds."""
    return quiet()


@pytest.fixture()
def breaker_config() -> ServiceConfig:
    """Small breaker thresholds so state transitions take few calls."""
    return quiet(
        circuit_breaker_threshold=3,
        circuit_breaker_window_ms=60_000,
        circuit_breaker_recovery_ms=20_000,
        circuit_breaker_half_open_requests=2,
    )


# ---------------------------------------------------------------------------
# Time and randomness
# ---------------------------------------------------------------------------


@pytest.fixture()
def clock() -> ManualClock:
    """A manual clock parked at EPOCH_MS."""
    return ManualClock(EPOCH_MS)


@pytest.fixture()
def rng() -> ScriptedRandom:
    """Scripted draws that default to 0.5 once the script runs out."""
    return ScriptedRandom(fallback=0.5)


# ---------------------------------------------------------------------------
# Pipeline helpers
# ---------------------------------------------------------------------------


@pytest.fixture()
def pipeline(
    quiet_config: ServiceConfig, clock: ManualClock, rng: ScriptedRandom
) -> AdmissionPipeline:
    """A pipeline on the quiet config, manual clock and scripted draws."""
    return AdmissionPipeline(config=quiet_config, clock=clock, rng=rng)


def get(
    path: str = "/health", client_id: str = "10.0.0.1", **query: str
) -> RequestDescriptor:
    return RequestDescriptor(
        method="GET", path=path, client_id=client_id, query=query or None
    )


def post(
    path: str = "/", body: dict[str, object] | None = None, client_id: str = "10.0.0.1"
) -> RequestDescriptor:
    return RequestDescriptor(method="POST", path=path, client_id=client_id, body=body)


def run(pipeline: AdmissionPipeline, request: RequestDescriptor) -> ResponseOutcome:
    """Drive one request through *pipeline* to completion."""
    return asyncio.run(pipeline.handle(request))
