"""Sliding-window request rate limiting."""

import threading
import time
from collections import deque
from typing import Any


class SlidingWindowRateLimiter:
    """Thread-safe per-client limiter over a rolling time window.

    A client may issue at most ``max_requests`` within any ``window_seconds``
    span. Rejected calls are not recorded, so a client that backs off regains
    capacity as soon as its oldest accepted request leaves the window.
    Clients with no request inside the window are forgotten; a sweep over all
    clients runs at most once per window.
    """

    def __init__(self, max_requests: int = 100, window_seconds: int = 900):
        self.max_requests = max(1, max_requests)
        self.window = max(1, window_seconds)
        self._hits: dict[str, deque[float]] = {}
        self._lock = threading.Lock()
        self._last_sweep: float | None = None

    def _prune(self, client: str, now: float) -> deque[float] | None:
        hits = self._hits.get(client)
        if hits is None:
            return None
        cutoff = now - self.window
        while hits and hits[0] <= cutoff:
            hits.popleft()
        if not hits:
            del self._hits[client]
            return None
        return hits

    def _sweep(self, now: float):
        if self._last_sweep is not None and now - self._last_sweep < self.window:
            return
        self._last_sweep = now
        for client in list(self._hits):
            self._prune(client, now)

    def allow(self, client: str, now: float | None = None) -> bool:
        """Record a request for ``client`` and report whether it is within the limit."""
        now = time.monotonic() if now is None else now
        with self._lock:
            self._sweep(now)
            hits = self._prune(client, now)
            if hits is None:
                self._hits[client] = deque([now])
                return True
            if len(hits) >= self.max_requests:
                return False
            hits.append(now)
            return True

    def retry_after(self, client: str, now: float | None = None) -> int:
        """Seconds until ``client`` may issue another request."""
        now = time.monotonic() if now is None else now
        with self._lock:
            hits = self._prune(client, now)
            if hits is None or len(hits) < self.max_requests:
                return 0
            return max(1, int(hits[0] + self.window - now) + 1)

    def reset(self):
        """Forget all recorded requests."""
        with self._lock:
            self._hits.clear()
            self._last_sweep = None

    def stats(self) -> dict[str, Any]:
        """Get limiter statistics."""
        with self._lock:
            return {
                "clients": len(self._hits),
                "max_requests": self.max_requests,
                "window_seconds": self.window,
            }
