from __future__ import annotations

import math
import time
from collections import deque
from dataclasses import dataclass
from threading import Lock

from fastapi import HTTPException


@dataclass(frozen=True)
class Quota:
    limit: int
    remaining: int
    reset_in: float

    def headers(self) -> dict[str, str]:
        return {
            "X-RateLimit-Limit": str(self.limit),
            "X-RateLimit-Remaining": str(self.remaining),
            "X-RateLimit-Reset": str(math.ceil(self.reset_in)),
        }


class RateLimiter:
    """
    Per-process sliding window keyed by client (usually `ip:<addr>`).

    Each process keeps its own counters, so N workers allow N x limit.
    """

    def __init__(self, *, limit: int, window_seconds: int) -> None:
        self.limit = int(limit)
        self.window_seconds = float(window_seconds)
        self._lock = Lock()
        self._hits: dict[str, deque[float]] = {}
        self._next_sweep = 0.0

    def _expire(self, q: deque[float], now: float) -> None:
        cutoff = now - self.window_seconds
        while q and q[0] <= cutoff:
            q.popleft()

    def _sweep(self, now: float) -> None:
        # Keys whose newest hit is older than the window.
        cutoff = now - self.window_seconds
        for key in [k for k, q in self._hits.items() if not q or q[-1] <= cutoff]:
            del self._hits[key]
        self._next_sweep = now + self.window_seconds

    def hit(self, *, key: str, detail: str = "Too many requests") -> Quota:
        """Count one request for `key`; 429 with Retry-After once the window is full."""
        now = time.monotonic()
        with self._lock:
            if now >= self._next_sweep:
                self._sweep(now)
            q = self._hits.setdefault(key, deque())
            self._expire(q, now)
            if len(q) >= self.limit:
                reset_in = q[0] + self.window_seconds - now
                quota = Quota(self.limit, 0, reset_in)
                headers = {**quota.headers(), "Retry-After": str(max(1, math.ceil(reset_in)))}
                raise HTTPException(status_code=429, detail=detail, headers=headers)
            q.append(now)
            return Quota(self.limit, self.limit - len(q), q[0] + self.window_seconds - now)

