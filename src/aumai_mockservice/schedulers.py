"""Outage and normal-period scheduling.

Both schedulers are Bernoulli-triggered: each consulted request has a small
chance of opening a window of fixed-but-random length.  No timers run in the
background; a window's start and end are only noticed by the next request
that consults the scheduler, so a service that receives no traffic never
heals on its own.
"""

from __future__ import annotations

import logging

from aumai_mockservice.models import ServiceConfig
from aumai_mockservice.sources import RandomSource, iso_timestamp, uniform

logger = logging.getLogger(__name__)


class OutageScheduler:
    """Decide whether the service is currently inside an outage window."""

    def __init__(self, config: ServiceConfig, rng: RandomSource) -> None:
        self._config = config
        self._rng = rng
        self.healthy = True
        self.outage_start: float | None = None
        self.outage_end: float | None = None

    def is_available(self, now: float) -> bool:
        """Return False while an outage is active, possibly starting a new one.

        An expired window is cleared first; the trigger draw only happens when
        no window is set, so at most one outage is active at a time.
        """
        if self.outage_end is not None:
            if now < self.outage_end:
                return False
            logger.info("Service recovered from outage at %s", iso_timestamp(now))
            self.healthy = True
            self.outage_start = None
            self.outage_end = None

        if self.healthy and self._rng.next() < self._config.outage_chance:
            duration = uniform(
                self._rng,
                self._config.min_outage_duration_ms,
                self._config.max_outage_duration_ms,
            )
            self.healthy = False
            self.outage_start = now
            self.outage_end = now + duration
            logger.info(
                "Service outage started at %s, duration: %ds",
                iso_timestamp(now),
                round(duration / 1000),
            )
            return False

        return self.healthy

    def retry_after_seconds(self, now: float) -> int:
        """Seconds until the active outage ends, 0 when none is active."""
        if self.outage_end is None:
            return 0
        return max(0, round((self.outage_end - now) / 1000))


class NormalPeriodScheduler:
    """Track windows during which every admitted request succeeds."""

    def __init__(self, config: ServiceConfig, rng: RandomSource) -> None:
        self._config = config
        self._rng = rng
        self.period_start: float | None = None
        self.period_duration_ms: float | None = None

    @property
    def active(self) -> bool:
        return self.period_duration_ms is not None

    def is_in_normal_period(self, now: float) -> bool:
        if (
            self.period_start is not None
            and self.period_duration_ms is not None
            and now - self.period_start > self.period_duration_ms
        ):
            logger.info("Normal period ended at %s", iso_timestamp(now))
            self.period_start = None
            self.period_duration_ms = None

        if not self.active and self._rng.next() < self._config.normal_period_chance:
            self.period_start = now
            self.period_duration_ms = uniform(
                self._rng,
                self._config.min_normal_period_ms,
                self._config.max_normal_period_ms,
            )
            logger.info(
                "Normal period started at %s, duration: %d minutes",
                iso_timestamp(now),
                round(self.period_duration_ms / 60_000),
            )

        return self.active


__all__ = ["NormalPeriodScheduler", "OutageScheduler"]
