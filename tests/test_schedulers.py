"""Tests for aumai_mockservice.schedulers: outage and normal-period windows."""

from __future__ import annotations

from conftest import EPOCH_MS, quiet

from aumai_mockservice.schedulers import NormalPeriodScheduler, OutageScheduler
from aumai_mockservice.sources import ScriptedRandom

# ---------------------------------------------------------------------------
# OutageScheduler
# ---------------------------------------------------------------------------


def _outages(draws: list[float]) -> tuple[OutageScheduler, ScriptedRandom]:
    rng = ScriptedRandom(draws, fallback=0.99)
    config = quiet(
        outage_chance=0.5, min_outage_duration_ms=15_000, max_outage_duration_ms=45_000
    )
    return OutageScheduler(config, rng), rng


class TestOutageTrigger:
    def test_available_when_draw_misses(self) -> None:
        scheduler, _ = _outages([0.7])
        assert scheduler.is_available(EPOCH_MS) is True
        assert scheduler.outage_end is None

    def test_draw_below_chance_starts_outage(self) -> None:
        scheduler, _ = _outages([0.1, 0.5])
        assert scheduler.is_available(EPOCH_MS) is False
        assert scheduler.healthy is False
        assert scheduler.outage_start == EPOCH_MS
        # uniform(15s, 45s) at 0.5 -> 30s
        assert scheduler.outage_end == EPOCH_MS + 30_000

    def test_zero_chance_never_triggers(self) -> None:
        scheduler = OutageScheduler(quiet(), ScriptedRandom([0.0] * 10))
        assert all(scheduler.is_available(EPOCH_MS + i) for i in range(10))


class TestOutageWindow:
    def test_requests_before_end_are_rejected_without_drawing(self) -> None:
        scheduler, rng = _outages([0.1, 0.5])
        scheduler.is_available(EPOCH_MS)
        consumed = rng.consumed
        for offset in (1, 10_000, 29_999):
            assert scheduler.is_available(EPOCH_MS + offset) is False
        assert rng.consumed == consumed

    def test_first_request_at_end_clears_window(self) -> None:
        scheduler, _ = _outages([0.1, 0.5])
        scheduler.is_available(EPOCH_MS)
        assert scheduler.is_available(EPOCH_MS + 30_000) is True
        assert scheduler.healthy is True
        assert scheduler.outage_start is None
        assert scheduler.outage_end is None

    def test_stays_available_after_recovery(self) -> None:
        scheduler, _ = _outages([0.1, 0.5])
        scheduler.is_available(EPOCH_MS)
        scheduler.is_available(EPOCH_MS + 30_001)
        assert scheduler.is_available(EPOCH_MS + 30_002) is True

    def test_new_outage_may_start_right_after_recovery(self) -> None:
        scheduler, _ = _outages([0.1, 0.5, 0.2, 0.0])
        scheduler.is_available(EPOCH_MS)
        assert scheduler.is_available(EPOCH_MS + 30_000) is False
        assert scheduler.outage_end == EPOCH_MS + 30_000 + 15_000


class TestRetryAfter:
    def test_zero_without_outage(self) -> None:
        scheduler, _ = _outages([])
        assert scheduler.retry_after_seconds(EPOCH_MS) == 0

    def test_rounds_remaining_seconds(self) -> None:
        scheduler, _ = _outages([0.1, 0.5])
        scheduler.is_available(EPOCH_MS)
        assert scheduler.retry_after_seconds(EPOCH_MS) == 30
        assert scheduler.retry_after_seconds(EPOCH_MS + 20_400) == 10


# ---------------------------------------------------------------------------
# NormalPeriodScheduler
# ---------------------------------------------------------------------------


def _periods(draws: list[float]) -> tuple[NormalPeriodScheduler, ScriptedRandom]:
    rng = ScriptedRandom(draws, fallback=0.99)
    config = quiet(
        normal_period_chance=0.1,
        min_normal_period_ms=60_000,
        max_normal_period_ms=120_000,
    )
    return NormalPeriodScheduler(config, rng), rng


class TestNormalPeriod:
    def test_inactive_when_draw_misses(self) -> None:
        scheduler, _ = _periods([0.5])
        assert scheduler.is_in_normal_period(EPOCH_MS) is False
        assert scheduler.active is False

    def test_draw_below_chance_starts_period(self) -> None:
        scheduler, _ = _periods([0.05, 0.5])
        assert scheduler.is_in_normal_period(EPOCH_MS) is True
        assert scheduler.period_start == EPOCH_MS
        assert scheduler.period_duration_ms == 90_000

    def test_active_period_skips_draw(self) -> None:
        scheduler, rng = _periods([0.05, 0.0])
        scheduler.is_in_normal_period(EPOCH_MS)
        consumed = rng.consumed
        assert scheduler.is_in_normal_period(EPOCH_MS + 59_000) is True
        assert rng.consumed == consumed

    def test_period_lasts_exactly_its_duration(self) -> None:
        scheduler, _ = _periods([0.05, 0.0])
        scheduler.is_in_normal_period(EPOCH_MS)
        assert scheduler.is_in_normal_period(EPOCH_MS + 60_000) is True
        assert scheduler.is_in_normal_period(EPOCH_MS + 60_001) is False
        assert scheduler.period_start is None
        assert scheduler.period_duration_ms is None

    def test_new_period_can_start_on_expiry(self) -> None:
        scheduler, _ = _periods([0.05, 0.0, 0.01, 0.5])
        scheduler.is_in_normal_period(EPOCH_MS)
        assert scheduler.is_in_normal_period(EPOCH_MS + 70_000) is True
        assert scheduler.period_start == EPOCH_MS + 70_000
        assert scheduler.period_duration_ms == 90_000
