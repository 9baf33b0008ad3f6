"""Per-IP fixed-window limits for the auth endpoints."""
from __future__ import annotations

import math
import threading
import time
from typing import Dict, Tuple

from fastapi import HTTPException, Request


class _RateLimiter:
    def __init__(self) -> None:
        self._windows: Dict[str, Tuple[int, float]] = {}
        self._lock = threading.Lock()

    def hit(self, key: str, limit: int, window_seconds: int) -> float:
        """Count one hit; returns 0 when allowed, else seconds until the window resets."""
        now = time.monotonic()
        with self._lock:
            count, resets_at = self._windows.get(key, (0, now + window_seconds))
            if now >= resets_at:
                count, resets_at = 0, now + window_seconds
            count += 1
            self._windows[key] = (count, resets_at)
        return 0.0 if count <= limit else resets_at - now

    def clear(self) -> None:
        with self._lock:
            self._windows.clear()


_limiter = _RateLimiter()


def _client_ip(request: Request) -> str:
    forwarded = request.headers.get("x-forwarded-for")
    if forwarded:
        return forwarded.split(",")[0].strip()
    if request.client and request.client.host:
        return request.client.host
    return "unknown"


def rate_limit_ip(request: Request, scope: str, *, limit: int, window_seconds: int) -> None:
    wait_for = _limiter.hit(f"{scope}:{_client_ip(request)}", limit, window_seconds)
    if wait_for:
        raise HTTPException(
            429,
            "Too many requests, try again shortly.",
            headers={"Retry-After": str(max(1, math.ceil(wait_for)))},
        )


def reset_limits() -> None:
    _limiter.clear()
