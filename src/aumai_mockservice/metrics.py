"""Request counters for aumai-mockservice."""

from __future__ import annotations

import threading

from aumai_mockservice.models import MetricsSnapshot


class MetricsRecorder:
    """Running totals and mean response time over completed requests.

    All mutations and snapshot reads take an internal :class:`threading.Lock`,
    so ``total == successful + failed`` holds in every snapshot even when the
    recorder is shared between threads.
    """

    def __init__(self) -> None:
        self._total = 0
        self._successes = 0
        self._failures = 0
        self._average_ms = 0.0
        self._lock: threading.Lock = threading.Lock()

    def record_outcome(self, success: bool, response_time_ms: float) -> None:
        """Count one completed request and fold its time into the mean."""
        with self._lock:
            folded = self._folded(success, response_time_ms)
            self._total = folded.total_requests
            self._successes = folded.successful_requests
            self._failures = folded.failed_requests
            self._average_ms = folded.average_response_time_ms

    def preview(self, success: bool, response_time_ms: float) -> MetricsSnapshot:
        """Return the snapshot as it would read after one more outcome.

        Nothing is recorded; the request still has to be counted with
        :meth:`record_outcome` once its final outcome is known.
        """
        with self._lock:
            return self._folded(success, response_time_ms)

    def snapshot(self) -> MetricsSnapshot:
        with self._lock:
            return MetricsSnapshot(
                total_requests=self._total,
                successful_requests=self._successes,
                failed_requests=self._failures,
                average_response_time_ms=self._average_ms,
            )

    def clear(self) -> None:
        """Reset every counter to zero."""
        with self._lock:
            self._total = 0
            self._successes = 0
            self._failures = 0
            self._average_ms = 0.0

    def _folded(self, success: bool, response_time_ms: float) -> MetricsSnapshot:
        total = self._total + 1
        mean = (self._average_ms * (total - 1) + response_time_ms) / total
        return MetricsSnapshot(
            total_requests=total,
            successful_requests=self._successes + (1 if success else 0),
            failed_requests=self._failures + (0 if success else 1),
            average_response_time_ms=mean,
        )


__all__ = ["MetricsRecorder"]
