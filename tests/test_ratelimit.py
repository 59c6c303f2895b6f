"""Tests for aumai_mockservice.ratelimit: RateLimiter."""

from __future__ import annotations

from conftest import EPOCH_MS, quiet

from aumai_mockservice.ratelimit import RateLimiter


class TestAdmit:
    def test_first_request_allowed_and_tracked(self) -> None:
        limiter = RateLimiter(quiet())
        assert limiter.admit("a", EPOCH_MS) is True
        entry = limiter.get("a")
        assert entry is not None
        assert entry.count == 1
        assert entry.window_start == EPOCH_MS

    def test_request_over_max_is_denied(self) -> None:
        limiter = RateLimiter(quiet(rate_limit_max=50, rate_limit_window_ms=10_000))
        results = [limiter.admit("a", EPOCH_MS + i) for i in range(51)]
        assert results[:50] == [True] * 50
        assert results[50] is False

    def test_denied_requests_keep_counting(self) -> None:
        limiter = RateLimiter(quiet(rate_limit_max=2))
        for _ in range(5):
            limiter.admit("a", EPOCH_MS)
        entry = limiter.get("a")
        assert entry is not None
        assert entry.count == 5

    def test_clients_are_independent(self) -> None:
        limiter = RateLimiter(quiet(rate_limit_max=1))
        assert limiter.admit("a", EPOCH_MS) is True
        assert limiter.admit("a", EPOCH_MS) is False
        assert limiter.admit("b", EPOCH_MS) is True


class TestWindowReset:
    def test_window_boundary_is_exclusive(self) -> None:
        limiter = RateLimiter(quiet(rate_limit_max=1, rate_limit_window_ms=10_000))
        limiter.admit("a", EPOCH_MS)
        # Exactly one window later still belongs to the old window.
        assert limiter.admit("a", EPOCH_MS + 10_000) is False

    def test_request_after_window_starts_fresh(self) -> None:
        limiter = RateLimiter(quiet(rate_limit_max=1, rate_limit_window_ms=10_000))
        limiter.admit("a", EPOCH_MS)
        limiter.admit("a", EPOCH_MS + 5)
        assert limiter.admit("a", EPOCH_MS + 10_001) is True
        entry = limiter.get("a")
        assert entry is not None
        assert entry.count == 1
        assert entry.window_start == EPOCH_MS + 10_001


class TestEviction:
    def test_sweep_removes_expired_windows(self) -> None:
        limiter = RateLimiter(quiet(rate_limit_window_ms=1_000))
        limiter.admit("old", EPOCH_MS)
        limiter.admit("new", EPOCH_MS + 900)
        assert limiter.sweep(EPOCH_MS + 1_500) == 1
        assert limiter.get("old") is None
        assert limiter.get("new") is not None

    def test_map_bounded_by_max_clients(self) -> None:
        limiter = RateLimiter(quiet(rate_limit_max_clients=3))
        for i in range(10):
            limiter.admit(f"client-{i}", EPOCH_MS)
        assert len(limiter) == 3

    def test_least_recently_seen_evicted_first(self) -> None:
        limiter = RateLimiter(quiet(rate_limit_max_clients=2))
        limiter.admit("a", EPOCH_MS)
        limiter.admit("b", EPOCH_MS)
        limiter.admit("a", EPOCH_MS + 1)
        limiter.admit("c", EPOCH_MS + 2)
        assert limiter.get("a") is not None
        assert limiter.get("b") is None
        assert limiter.get("c") is not None

    def test_expired_entries_swept_before_evicting_live_ones(self) -> None:
        limiter = RateLimiter(
            quiet(rate_limit_max_clients=2, rate_limit_window_ms=1_000)
        )
        limiter.admit("live", EPOCH_MS + 500)
        limiter.admit("stale", EPOCH_MS)
        limiter.admit("fresh", EPOCH_MS + 1_200)
        # "stale" is the most recently inserted of the old pair but expired.
        assert limiter.get("stale") is None
        assert limiter.get("live") is not None
        assert limiter.get("fresh") is not None

    def test_admitted_key_never_evicted(self) -> None:
        limiter = RateLimiter(quiet(rate_limit_max_clients=1))
        limiter.admit("a", EPOCH_MS)
        assert limiter.admit("b", EPOCH_MS) is True
        assert limiter.get("b") is not None
        assert len(limiter) == 1
