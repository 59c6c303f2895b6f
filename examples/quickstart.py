"""aumai-mockservice quickstart: working demonstrations of the admission pipeline.

Run this file directly to verify your installation:

    python examples/quickstart.py

Every demo drives an in-process AdmissionPipeline on a ManualClock, so
outages and circuit-breaker recovery play out instantly.
"""

from __future__ import annotations

import asyncio

from fastapi.testclient import TestClient

from aumai_mockservice import (
    AdmissionPipeline,
    BreakerState,
    ErrorKind,
    ManualClock,
    RequestDescriptor,
    ResponseOutcome,
    ScriptedRandom,
    ServiceConfig,
    SystemRandom,
)
from aumai_mockservice.app import create_app

QUIET = ServiceConfig(
    base_success_rate=1.0,
    outage_chance=0.0,
    slow_response_chance=0.0,
    normal_period_chance=0.0,
    server_error_chance=0.0,
    client_error_chance=0.0,
    timeout_chance=0.0,
)


def send(pipeline: AdmissionPipeline, path: str = "/health") -> ResponseOutcome:
    request = RequestDescriptor(method="GET", path=path, client_id="quickstart")
    return asyncio.run(pipeline.handle(request))


# ---------------------------------------------------------------------------
# Demo 1: Default behaviour
# ---------------------------------------------------------------------------

def demo_default_behaviour() -> None:
    """Send a burst of requests through the default, mostly healthy config."""

    print("\n=== Demo 1: Default behaviour ===")

    clock = ManualClock()
    pipeline = AdmissionPipeline(clock=clock, rng=SystemRandom(42))
    counts: dict[str, int] = {}
    for _ in range(200):
        outcome = send(pipeline)
        label = outcome.error_kind.value if outcome.error_kind else "success"
        counts[label] = counts.get(label, 0) + 1
        clock.advance(300)

    metrics = pipeline.state().metrics
    print(f"  outcomes: {counts}")
    print(f"  success rate: {metrics.success_rate:.1f}%")
    assert metrics.total_requests == 200

    print("  Demo 1 passed.")


# ---------------------------------------------------------------------------
# Demo 2: Rate limiting
# ---------------------------------------------------------------------------

def demo_rate_limit() -> None:
    """Exceed the per-client limit and read the retry hint."""

    print("\n=== Demo 2: Rate limiting ===")

    pipeline = AdmissionPipeline(
        config=QUIET.model_copy(update={"rate_limit_max": 3}),
        clock=ManualClock(),
        rng=ScriptedRandom(),
    )
    outcomes = [send(pipeline) for _ in range(4)]
    print(f"  statuses: {[o.status_code for o in outcomes]}")
    print(f"  retry after: {outcomes[-1].retry_after}s")
    assert outcomes[-1].error_kind is ErrorKind.rate_limit

    print("  Demo 2 passed.")


# ---------------------------------------------------------------------------
# Demo 3: Circuit breaker lifecycle
# ---------------------------------------------------------------------------

def demo_circuit_breaker() -> None:
    """Trip the breaker with injected errors, then let it recover."""

    print("\n=== Demo 3: Circuit breaker ===")

    clock = ManualClock()
    pipeline = AdmissionPipeline(
        config=QUIET.model_copy(update={"circuit_breaker_threshold": 3}),
        clock=clock,
        rng=ScriptedRandom(),
    )
    for _ in range(3):
        pipeline.breaker.record_failure(clock.now())

    outcome = send(pipeline)
    print(f"  tripped: {outcome.status_code} {outcome.payload['message']}")
    assert pipeline.breaker.state is BreakerState.OPEN

    clock.advance(QUIET.circuit_breaker_recovery_ms)
    send(pipeline)
    print(f"  after recovery timeout: {pipeline.breaker.state.value}")
    send(pipeline)
    print(f"  after probe successes: {pipeline.breaker.state.value}")
    assert pipeline.breaker.state is BreakerState.CLOSED

    print("  Demo 3 passed.")


# ---------------------------------------------------------------------------
# Demo 4: HTTP surface
# ---------------------------------------------------------------------------

def demo_http() -> None:
    """Talk to the FastAPI app in-process."""

    print("\n=== Demo 4: HTTP surface ===")

    client = TestClient(create_app(QUIET))
    health = client.get("/health").json()
    print(f"  /health breaker: {health['service_metrics']['circuit_breaker_state']}")
    hello = client.post("/hello", json={"name": "Ada"}).json()
    print(f"  POST /hello: {hello['message']}")
    missing = client.post("/hello", json={})
    print(f"  POST /hello without name: {missing.status_code}")
    assert missing.status_code == 400

    print("  Demo 4 passed.")


# ---------------------------------------------------------------------------
# Entry point
# ---------------------------------------------------------------------------

def main() -> None:
    """Run all quickstart demos in sequence."""
    print("aumai-mockservice quickstart demos")
    print("=" * 45)

    demo_default_behaviour()
    demo_rate_limit()
    demo_circuit_breaker()
    demo_http()

    print("\n" + "=" * 45)
    print("All demos completed successfully.")


if __name__ == "__main__":
    main()
