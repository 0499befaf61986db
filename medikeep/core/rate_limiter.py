from __future__ import annotations

import threading
import time
from typing import Dict, Tuple

from fastapi import Request

from .config import get_settings
from .errors import RateLimited


class _RateLimiter:
    def __init__(self) -> None:
        self._hits: Dict[str, Tuple[int, float]] = {}
        self._lock = threading.Lock()
        self._next_prune = 0.0

    def _prune(self, now: float) -> None:
        expired = [key for key, (_, reset) in self._hits.items() if reset < now]
        for key in expired:
            del self._hits[key]

    def check(self, key: str, limit: int, window_seconds: int) -> None:
        now = time.time()
        with self._lock:
            if now >= self._next_prune:
                self._prune(now)
                self._next_prune = now + window_seconds
            count, reset = self._hits.get(key, (0, now + window_seconds))
            if now > reset:
                count = 0
                reset = now + window_seconds
            count += 1
            self._hits[key] = (count, reset)
            if count > limit:
                raise RateLimited("Too many requests. Try again in a moment.")

    def reset(self) -> None:
        with self._lock:
            self._hits.clear()
            self._next_prune = 0.0


_limiter = _RateLimiter()


def _client_ip(request: Request, trust_proxy: bool) -> str:
    # X-Forwarded-For is client-controlled unless a proxy in front rewrites it.
    if trust_proxy:
        forwarded = request.headers.get("x-forwarded-for")
        if forwarded:
            return forwarded.split(",")[0].strip()
    if request.client and request.client.host:
        return request.client.host
    return "unknown"


def rate_limit_ip(request: Request, scope: str, *, limit: int, window_seconds: int) -> None:
    if limit <= 0:
        return
    key = f"{scope}:{_client_ip(request, get_settings().trust_proxy_headers)}"
    _limiter.check(key, limit, window_seconds)


def reset_limits() -> None:
    _limiter.reset()
