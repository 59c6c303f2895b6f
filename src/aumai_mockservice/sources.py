"""Injectable time and randomness for aumai-mockservice.

Every time-based and probabilistic decision in the service goes through a
:class:`Clock` or a :class:`RandomSource`.  Production code uses the
system-backed implementations; tests swap in :class:`ManualClock` and
:class:`ScriptedRandom` to replay scenarios without sleeping.
"""

from __future__ import annotations

import asyncio
import random
import time
from collections.abc import Iterable
from datetime import UTC, datetime
from typing import Protocol


class Clock(Protocol):
    def now(self) -> float:
        """Current time in epoch milliseconds."""
        ...

    async def sleep(self, duration_ms: float) -> None:
        """Suspend the caller for *duration_ms* without blocking the loop."""
        ...


class RandomSource(Protocol):
    def next(self) -> float:
        """Return a uniform draw in ``[0, 1)``."""
        ...


class SystemClock:
    """Wall-clock time with a non-blocking ``asyncio`` sleep."""

    def now(self) -> float:
        return time.time() * 1000.0

    async def sleep(self, duration_ms: float) -> None:
        if duration_ms > 0:
            await asyncio.sleep(duration_ms / 1000.0)


class ManualClock:
    """Clock that only moves when told to.

    ``sleep`` advances the clock instead of suspending, so a delayed request
    completes instantly but still observes the elapsed time.
    """

    def __init__(self, start_ms: float = 0.0) -> None:
        self._now = float(start_ms)

    def now(self) -> float:
        return self._now

    def set(self, now_ms: float) -> None:
        self._now = float(now_ms)

    def advance(self, duration_ms: float) -> float:
        """Move the clock forward and return the new time."""
        self._now += duration_ms
        return self._now

    async def sleep(self, duration_ms: float) -> None:
        if duration_ms > 0:
            self._now += duration_ms


class SystemRandom:
    """Pseudo-random draws from :class:`random.Random`, optionally seeded."""

    def __init__(self, seed: int | None = None) -> None:
        self._rng = random.Random(seed)  # noqa: S311

    def next(self) -> float:
        return self._rng.random()


class ScriptedRandom:
    """Replay a fixed sequence of draws, then repeat *fallback* forever.

    Example::

        rng = ScriptedRandom([0.0, 0.99], fallback=0.5)
        rng.next()  # 0.0
        rng.next()  # 0.99
        rng.next()  # 0.5
    """

    def __init__(self, draws: Iterable[float] = (), fallback: float = 0.5) -> None:
        self._draws = list(draws)
        self._fallback = fallback
        for value in [*self._draws, fallback]:
            if not 0.0 <= value < 1.0:
                raise ValueError(f"Scripted draw {value!r} is outside [0, 1).")
        self.consumed = 0

    def push(self, *draws: float) -> None:
        """Append more draws to the end of the script."""
        self._draws.extend(draws)

    def next(self) -> float:
        self.consumed += 1
        if self._draws:
            return self._draws.pop(0)
        return self._fallback


def iso_timestamp(now_ms: float) -> str:
    """Render epoch milliseconds as an ISO-8601 UTC timestamp."""
    stamp = datetime.fromtimestamp(now_ms / 1000.0, tz=UTC)
    return stamp.isoformat(timespec="milliseconds")


def uniform(source: RandomSource, low: float, high: float) -> float:
    """Draw a uniform value in ``[low, high)`` from *source*."""
    return low + source.next() * (high - low)


__all__ = [
    "Clock",
    "ManualClock",
    "RandomSource",
    "ScriptedRandom",
    "SystemClock",
    "SystemRandom",
    "iso_timestamp",
    "uniform",
]
