"""
Resolution engine for zoneWalk.

Walks a domain's DNS delegation hierarchy over DNS-over-HTTPS (JSON),
aggregates detailed record sets, and looks up RDAP registration data.

This module holds the shared query budget:
- RateLimiter: sliding-window admission control shared by every query path
"""
from __future__ import annotations

import time
from dataclasses import dataclass, field
from typing import Callable, List

from zoneWalk.logging_config import get_logger

logger = get_logger("resolver")


@dataclass
class RateLimiter:
    """
    Sliding-window admission control for outbound queries.

    Allows up to max_queries within the trailing window_ms milliseconds.
    Exceeding the limit is a hard rejection, not a delay: the caller
    decides whether to wait reset_delay_ms() and retry.

    Usage:
        limiter = RateLimiter(max_queries=100, window_ms=60_000)

        if not limiter.admit():
            raise RateLimited(limiter.reset_delay_ms())
        limiter.record()

        await issue_query()

    One instance is shared by the zone walk, record fetch and RDAP paths.
    No lock: the event loop never preempts between admit() and record().
    """
    max_queries: int = 100
    window_ms: int = 60_000
    clock: Callable[[], float] = time.monotonic

    # Internal state, timestamps in milliseconds, oldest first
    _timestamps: List[float] = field(default_factory=list, init=False)

    def _now_ms(self) -> float:
        return self.clock() * 1000.0

    def _purge(self) -> None:
        now = self._now_ms()
        self._timestamps = [t for t in self._timestamps if now - t < self.window_ms]

    def admit(self) -> bool:
        """Return True if another query fits in the current window."""
        self._purge()
        return len(self._timestamps) < self.max_queries

    def record(self) -> None:
        """Record a query issued now."""
        self._timestamps.append(self._now_ms())

    def remaining(self) -> int:
        """Return number of queries still available in the window."""
        self._purge()
        return max(0, self.max_queries - len(self._timestamps))

    def reset_delay_ms(self) -> int:
        """
        Milliseconds until the oldest retained timestamp leaves the window.
        Returns 0 if nothing is recorded.
        """
        if not self._timestamps:
            return 0
        oldest = self._timestamps[0]
        return max(0, int(round(oldest + self.window_ms - self._now_ms())))

    def reset(self) -> None:
        """Forget every recorded query."""
        self._timestamps.clear()

    def get_stats(self) -> dict:
        """Get rate limiter statistics."""
        return {
            "max_queries": self.max_queries,
            "window_ms": self.window_ms,
            "remaining": self.remaining(),
            "reset_delay_ms": self.reset_delay_ms(),
        }
