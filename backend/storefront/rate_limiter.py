"""
In-memory sliding-window rate limiter for the credential endpoints.

Keyed by client IP and path. Limits come from RATE_LIMIT_MAX_REQUESTS per
RATE_LIMIT_WINDOW_S; single-process only.

Usage:
    @router.post("/login", dependencies=[Depends(auth_rate_limit)])
"""
import logging
import threading
import time
from collections import defaultdict, deque
from typing import Deque, Dict, Tuple

from fastapi import Request

from storefront.core.errors import RateLimited
from storefront.core.settings import settings

logger = logging.getLogger(__name__)


class RateLimiter:
    def __init__(self, cleanup_interval: float = 60.0):
        self.requests: Dict[Tuple[str, str], Deque[float]] = defaultdict(deque)
        self.cleanup_interval = cleanup_interval
        self.last_cleanup = time.monotonic()
        self._lock = threading.Lock()

    @staticmethod
    def client_ip(request: Request) -> str:
        forwarded = request.headers.get("x-forwarded-for")
        if forwarded:
            return forwarded.split(",")[0].strip()
        if request.client:
            return request.client.host
        return "unknown"

    def _cleanup(self, now: float, cutoff: float) -> None:
        """Drop keys whose window is empty. Caller holds the lock."""
        if now - self.last_cleanup < self.cleanup_interval:
            return
        stale = [key for key, window in self.requests.items() if not window or window[-1] <= cutoff]
        for key in stale:
            del self.requests[key]
        self.last_cleanup = now
        logger.debug("Rate limiter cleanup: dropped=%s tracked=%s", len(stale), len(self.requests))

    def hit(self, key: Tuple[str, str], max_requests: int, window_seconds: int) -> Tuple[bool, int]:
        """Record one request for ``key``; returns (allowed, retry_after_seconds)."""
        now = time.monotonic()
        cutoff = now - window_seconds
        with self._lock:
            self._cleanup(now, cutoff)
            window = self.requests[key]
            while window and window[0] <= cutoff:
                window.popleft()
            if len(window) >= max_requests:
                retry_after = int(window[0] + window_seconds - now) + 1
                return False, retry_after
            window.append(now)
            return True, 0

    def reset(self) -> None:
        with self._lock:
            self.requests.clear()
            self.last_cleanup = time.monotonic()


rate_limiter = RateLimiter()


def auth_rate_limit(request: Request) -> None:
    if not settings.RATE_LIMIT_ENABLED:
        return
    ip = rate_limiter.client_ip(request)
    allowed, retry_after = rate_limiter.hit(
        (ip, request.url.path),
        settings.RATE_LIMIT_MAX_REQUESTS,
        settings.RATE_LIMIT_WINDOW_S,
    )
    if not allowed:
        logger.warning("Rate limit hit: ip=%s path=%s", ip, request.url.path)
        raise RateLimited(details={"retry_after": retry_after})
