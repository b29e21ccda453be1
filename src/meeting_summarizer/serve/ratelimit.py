"""Fixed-window rate limiting for the /api routes."""
from __future__ import annotations
import threading
import time
from dataclasses import dataclass
from typing import Callable

from fastapi import Request

@dataclass
class RateDecision:
    allowed: bool
    limit: int
    remaining: int
    reset_after: int

class FixedWindowRateLimiter:
    """Counts requests per client key inside fixed windows.

    A key's window opens on its first request and every request until
    ``window_seconds`` later counts against ``max_requests``. Expired
    windows are dropped on access.
    """

    def __init__(
        self,
        max_requests: int = 20,
        window_seconds: int = 60,
        now: Callable[[], float] | None = None,
    ) -> None:
        self.max_requests = max_requests
        self.window_seconds = window_seconds
        self._now = now or time.monotonic
        self._lock = threading.Lock()
        self._windows: dict[str, tuple[float, int]] = {}

    def hit(self, key: str) -> RateDecision:
        current = self._now()
        with self._lock:
            self._purge(current)
            start, count = self._windows.get(key, (current, 0))
            reset_after = max(int(start + self.window_seconds - current + 0.999), 1)
            if count >= self.max_requests:
                return RateDecision(False, self.max_requests, 0, reset_after)
            count += 1
            self._windows[key] = (start, count)
            return RateDecision(True, self.max_requests, self.max_requests - count, reset_after)

    def _purge(self, current: float) -> None:
        expired = [k for k, (start, _) in self._windows.items() if current - start >= self.window_seconds]
        for k in expired:
            del self._windows[k]

def client_key(request: Request, trust_proxy_headers: bool = False) -> str:
    """Key requests by peer address, or by the first X-Forwarded-For hop when trusted."""
    if trust_proxy_headers:
        forwarded = request.headers.get("x-forwarded-for", "")
        first = forwarded.split(",")[0].strip()
        if first:
            return first
    return request.client.host if request.client else "unknown"
