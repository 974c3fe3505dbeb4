"""
Per-IP sliding-window rate limiting.

- All API routes: RATE_LIMIT_MAX_REQUESTS per window
- Auth routes (register/login): AUTH_RATE_LIMIT_MAX_REQUESTS per window

State is in-process; a multi-worker deployment gets one window per worker.
"""
import time
from collections import defaultdict
from typing import Dict, List, Tuple

from fastapi import HTTPException, Request, status

from lockbox.config import settings
from lockbox.utils.logger import get_logger
from lockbox.utils.security_audit import get_client_ip

logger = get_logger("lockbox.ratelimit")


class RateLimiter:
    """Sliding window limiter usable as a FastAPI dependency."""

    def __init__(self, scope: str, limit: int, window_seconds: int, message: str):
        self.scope = scope
        self.limit = limit
        self.window_seconds = window_seconds
        self.message = message
        self._requests: Dict[str, List[float]] = defaultdict(list)
        self._last_cleanup = time.time()

    def _cleanup_old_entries(self, now: float) -> None:
        """Drop keys with no request inside the window, at most once per window."""
        if now - self._last_cleanup < self.window_seconds:
            return

        cutoff = now - self.window_seconds
        for key in list(self._requests.keys()):
            recent = [ts for ts in self._requests[key] if ts > cutoff]
            if recent:
                self._requests[key] = recent
            else:
                del self._requests[key]
        self._last_cleanup = now

    def check(self, key: str) -> Tuple[bool, int]:
        """
        Record one request for key.

        Returns:
            Tuple of (allowed, retry_after_seconds)
        """
        now = time.time()
        self._cleanup_old_entries(now)
        cutoff = now - self.window_seconds

        recent = [ts for ts in self._requests[key] if ts > cutoff]
        self._requests[key] = recent

        if len(recent) >= self.limit:
            retry_after = int((min(recent) + self.window_seconds) - now) + 1
            return False, retry_after

        recent.append(now)
        return True, 0

    def reset(self) -> None:
        self._requests.clear()
        self._last_cleanup = time.time()

    async def __call__(self, request: Request) -> None:
        client_ip = get_client_ip(request)
        allowed, retry_after = self.check(client_ip)
        if not allowed:
            logger.warning(f"Rate limit '{self.scope}' exceeded for {client_ip}")
            raise HTTPException(
                status_code=status.HTTP_429_TOO_MANY_REQUESTS,
                detail=self.message,
                headers={"Retry-After": str(retry_after)},
            )


api_limiter = RateLimiter(
    "api",
    settings.RATE_LIMIT_MAX_REQUESTS,
    settings.RATE_LIMIT_WINDOW_SECONDS,
    "Too many requests. Please try again later.",
)

auth_limiter = RateLimiter(
    "auth",
    settings.AUTH_RATE_LIMIT_MAX_REQUESTS,
    settings.RATE_LIMIT_WINDOW_SECONDS,
    "Too many login attempts. Try again in 15 minutes.",
)
