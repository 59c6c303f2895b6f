"""Per-client fixed-window rate limiting."""

from __future__ import annotations

import logging
from collections import OrderedDict

from aumai_mockservice.models import RateLimitEntry, ServiceConfig

logger = logging.getLogger(__name__)


class RateLimiter:
    """Count requests per client key inside a window of ``rate_limit_window_ms``.

    A window starts at the first request of a key and resets once more than
    the window length has elapsed.  The map of tracked keys is bounded by
    ``rate_limit_max_clients``: when it overflows, expired windows are swept
    first and the least recently seen keys are evicted after that.

    Not thread-safe on its own; the admission pipeline serialises access.
    """

    def __init__(self, config: ServiceConfig) -> None:
        self._window_ms = config.rate_limit_window_ms
        self._max_requests = config.rate_limit_max
        self._max_clients = config.rate_limit_max_clients
        self._entries: OrderedDict[str, RateLimitEntry] = OrderedDict()

    def admit(self, client_key: str, now: float) -> bool:
        """Count one request for *client_key* and return False if over the limit."""
        entry = self._entries.get(client_key)
        if entry is None or now - entry.window_start > self._window_ms:
            self._entries[client_key] = RateLimitEntry(count=1, window_start=now)
            self._entries.move_to_end(client_key)
            self._enforce_bound(now)
            return True

        self._entries.move_to_end(client_key)
        entry.count += 1
        return entry.count <= self._max_requests

    def get(self, client_key: str) -> RateLimitEntry | None:
        """Return the entry tracked for *client_key*, if any."""
        return self._entries.get(client_key)

    def sweep(self, now: float) -> int:
        """Drop every entry whose window has expired; return how many went."""
        expired = [
            key
            for key, entry in self._entries.items()
            if now - entry.window_start > self._window_ms
        ]
        for key in expired:
            del self._entries[key]
        return len(expired)

    def __len__(self) -> int:
        return len(self._entries)

    def _enforce_bound(self, now: float) -> None:
        if len(self._entries) <= self._max_clients:
            return
        swept = self.sweep(now)
        evicted = 0
        while len(self._entries) > self._max_clients:
            self._entries.popitem(last=False)
            evicted += 1
        logger.debug(
            "Rate limit map over capacity: swept %d expired, evicted %d idle clients",
            swept,
            evicted,
        )


__all__ = ["RateLimiter"]
