"""In-memory fixed-window request throttling per client address.

This counter is unrelated to the CSRF token quota: it limits request volume,
while the quota limits how many tokens an address may hold.
"""

from __future__ import annotations

import time
from collections.abc import Callable
from dataclasses import dataclass
from threading import Lock


@dataclass
class RateLimitWindow:
    """Request count for one address in its current window."""

    count: int
    reset_at: float


@dataclass(frozen=True)
class RateLimitDecision:
    """Outcome of recording one request."""

    allowed: bool
    limit: int
    remaining: int
    reset_at: float

    def headers(self) -> dict[str, str]:
        return {
            "X-RateLimit-Limit": str(self.limit),
            "X-RateLimit-Remaining": str(self.remaining),
            "X-RateLimit-Reset": str(int(self.reset_at * 1000)),
        }


class RateLimiter:
    """Fixed-window counter keyed by client address."""

    def __init__(
        self,
        max_requests: int,
        window_seconds: float,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self.max_requests = max_requests
        self.window_seconds = window_seconds
        self._clock = clock
        self._windows: dict[str, RateLimitWindow] = {}
        self._lock = Lock()
        self._next_prune = clock() + window_seconds

    def hit(self, address: str) -> RateLimitDecision:
        """Record one request from `address` and decide whether it may proceed."""
        now = self._clock()
        with self._lock:
            if now >= self._next_prune:
                self._prune(now)

            window = self._windows.get(address)
            if window is None or window.reset_at <= now:
                window = RateLimitWindow(count=0, reset_at=now + self.window_seconds)
                self._windows[address] = window

            window.count += 1
            allowed = window.count <= self.max_requests
            return RateLimitDecision(
                allowed=allowed,
                limit=self.max_requests,
                remaining=max(0, self.max_requests - window.count),
                reset_at=window.reset_at,
            )

    def tracked_addresses(self) -> int:
        with self._lock:
            return len(self._windows)

    def _prune(self, now: float) -> None:
        expired = [address for address, window in self._windows.items() if window.reset_at <= now]
        for address in expired:
            del self._windows[address]
        self._next_prune = now + self.window_seconds
