"""CLI entry point for aumai-mockservice."""

from __future__ import annotations

import asyncio
import json
import logging
import sys
from collections import Counter
from pathlib import Path
from typing import Any

import click
import yaml
from pydantic import ValidationError

from aumai_mockservice.models import RequestDescriptor, ServiceConfig
from aumai_mockservice.pipeline import AdmissionPipeline
from aumai_mockservice.sources import ManualClock, SystemRandom

# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

def load_config(path: str | None) -> ServiceConfig:
    """Load a :class:`ServiceConfig` from a YAML or JSON file.

    ``None`` yields the defaults.  Unknown keys and out-of-range values raise
    :class:`pydantic.ValidationError`; a file that does not hold a mapping
    raises :class:`ValueError`.
    """
    if path is None:
        return ServiceConfig()
    file_path = Path(path)
    raw = file_path.read_text(encoding="utf-8")
    if file_path.suffix in (".yaml", ".yml"):
        data: Any = yaml.safe_load(raw) or {}
    else:
        data = json.loads(raw)
    if not isinstance(data, dict):
        raise ValueError(
            f"{file_path} must contain a mapping, got {type(data).__name__}"
        )
    return ServiceConfig(**data)


def _config_or_exit(path: str | None) -> ServiceConfig:
    try:
        return load_config(path)
    except (OSError, ValueError, ValidationError, yaml.YAMLError) as exc:
        click.echo(f"Error loading config: {exc}", err=True)
        sys.exit(1)


def _configure_logging(level: str) -> None:
    logging.basicConfig(
        level=getattr(logging, level.upper()),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )


_config_option = click.option(
    "--config",
    "config_path",
    default=None,
    metavar="PATH",
    help="Behaviour configuration file (YAML or JSON).",
)


def _log_level_option(default: str) -> Any:
    return click.option(
        "--log-level",
        default=default,
        show_default=True,
        type=click.Choice(["debug", "info", "warning", "error"], case_sensitive=False),
    )


# ---------------------------------------------------------------------------
# CLI
# ---------------------------------------------------------------------------

@click.group()
@click.version_option(package_name="aumai-mockservice")
def main() -> None:
    """AumAI Mock Service: a backend that fails like a real one."""


@main.command("serve")
@_config_option
@click.option(
    "--host", default="0.0.0.0", show_default=True, envvar="AUMAI_MOCKSERVICE_HOST"
)
@click.option(
    "--port", default=8080, show_default=True, type=int, envvar="AUMAI_MOCKSERVICE_PORT"
)
@_log_level_option("info")
def serve_command(config_path: str | None, host: str, port: int, log_level: str) -> None:
    """Serve the simulated backend over HTTP."""
    import uvicorn

    from aumai_mockservice.app import create_app

    config = _config_or_exit(config_path)
    _configure_logging(log_level)
    click.echo(f"Serving mock service on http://{host}:{port}")
    uvicorn.run(create_app(config), host=host, port=port, log_level=log_level.lower())


@main.command("config")
@_config_option
def config_command(config_path: str | None) -> None:
    """Print the effective behaviour configuration as JSON."""
    config = _config_or_exit(config_path)
    click.echo(config.model_dump_json(indent=2))


@main.command("simulate")
@_config_option
@click.option(
    "--requests",
    "request_count",
    default=100,
    show_default=True,
    type=click.IntRange(min=1),
)
@click.option("--seed", default=None, type=int, help="Seed for reproducible runs.")
@click.option(
    "--interval-ms",
    default=250.0,
    show_default=True,
    type=click.FloatRange(min=0),
    help="Simulated time between requests.",
)
@click.option("--client", "client_id", default="simulator", show_default=True)
@click.option("--json-output", is_flag=True, help="Emit the summary as JSON.")
@_log_level_option("warning")
def simulate_command(
    config_path: str | None,
    request_count: int,
    seed: int | None,
    interval_ms: float,
    client_id: str,
    json_output: bool,
    log_level: str,
) -> None:
    """Drive requests through an in-process pipeline on simulated time.

    No sockets are opened and no real time passes, so long outages and
    recovery periods play out instantly.
    """
    config = _config_or_exit(config_path)
    _configure_logging(log_level)

    clock = ManualClock()
    pipeline = AdmissionPipeline(config=config, clock=clock, rng=SystemRandom(seed))
    request = RequestDescriptor(method="GET", path="/health", client_id=client_id)

    async def drive() -> Counter[str]:
        outcomes: Counter[str] = Counter()
        for _ in range(request_count):
            outcome = await pipeline.handle(request)
            label = outcome.error_kind.value if outcome.error_kind else "success"
            outcomes[label] += 1
            clock.advance(interval_ms)
        return outcomes

    outcomes = asyncio.run(drive())
    state = pipeline.state()
    summary: dict[str, Any] = {
        "requests": request_count,
        "outcomes": dict(sorted(outcomes.items())),
        "success_rate": round(state.metrics.success_rate, 2),
        "average_response_time_ms": round(state.metrics.average_response_time_ms, 1),
        "circuit_breaker_state": state.breaker.state.value,
        "service_healthy": state.healthy,
        "in_normal_period": state.in_normal_period,
    }

    if json_output:
        click.echo(json.dumps(summary, indent=2))
        return

    click.echo(f"Requests     : {request_count}")
    click.echo(f"Success rate : {summary['success_rate']}%")
    click.echo(f"Avg latency  : {summary['average_response_time_ms']}ms")
    click.echo(f"Breaker      : {summary['circuit_breaker_state']}")
    click.echo("Outcomes     :")
    for label, count in summary["outcomes"].items():
        click.echo(f"  {label}: {count}")


if __name__ == "__main__":
    main()
