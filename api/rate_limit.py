"""In-memory per-client rate limiting for the expensive and auth routes."""

from __future__ import annotations

import time
from collections import deque
from threading import Lock
from typing import Callable, Deque, Dict

from fastapi import HTTPException, Request, status

from config import get_settings


class RateLimiter:
    """Simple in-memory sliding window rate limiter."""

    def __init__(self, limit: int, window_seconds: float, clock: Callable[[], float] = time.time) -> None:
        self._limit = limit
        self._window = window_seconds
        self._clock = clock
        self._lock = Lock()
        self._buckets: Dict[str, Deque[float]] = {}
        self._last_sweep = clock()

    def check(self, key: str) -> None:
        now = self._clock()
        with self._lock:
            boundary = now - self._window
            if now - self._last_sweep >= self._window:
                self._sweep(boundary)
                self._last_sweep = now
            bucket = self._buckets.setdefault(key, deque())
            while bucket and bucket[0] <= boundary:
                bucket.popleft()
            if len(bucket) >= self._limit:
                raise HTTPException(
                    status_code=status.HTTP_429_TOO_MANY_REQUESTS,
                    detail="rate limit exceeded",
                )
            bucket.append(now)

    def _sweep(self, boundary: float) -> None:
        # Drop clients with no request inside the window
        idle = [key for key, bucket in self._buckets.items() if not bucket or bucket[-1] <= boundary]
        for key in idle:
            del self._buckets[key]

    @property
    def tracked_clients(self) -> int:
        with self._lock:
            return len(self._buckets)

    def reset(self) -> None:
        with self._lock:
            self._buckets.clear()


def _client_key(request: Request) -> str:
    forwarded = request.headers.get("x-forwarded-for")
    if forwarded:
        return forwarded.split(",", 1)[0].strip()
    if request.client:
        return request.client.host or "unknown"
    return "unknown"


_settings = get_settings()
ANALYZE_LIMITER = RateLimiter(
    limit=_settings.rate_limit_analyze_per_minute,
    window_seconds=_settings.rate_limit_window_seconds,
)
AUTH_LIMITER = RateLimiter(
    limit=_settings.rate_limit_auth_per_minute,
    window_seconds=_settings.rate_limit_window_seconds,
)


def limit_analyze(request: Request) -> None:
    """Dependency for routes that call the language model."""
    ANALYZE_LIMITER.check(f"{_client_key(request)}:analyze")


def limit_auth(request: Request) -> None:
    """Dependency for login and registration."""
    AUTH_LIMITER.check(f"{_client_key(request)}:auth")
