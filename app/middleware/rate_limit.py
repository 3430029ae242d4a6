"""
Rate Limiting

In-memory fixed-window limits per (limit type, user). Routes declare their
limit type with `Depends(rate_limit('generate'))`.
"""

import logging
import math
import threading
import time
from dataclasses import dataclass
from typing import Callable, Dict, Optional, Tuple

from fastapi import Depends, HTTPException, Response, status

from app.middleware.auth import verify_supabase_jwt

logger = logging.getLogger(__name__)

WINDOW_SECONDS = 60

# Requests per minute
RATE_LIMITS = {
    'transcripts': 20,
    'transcripts_batch': 5,
    'generate': 10,
    'youtube_search': 30,
    'webhooks': 60,
    'webhooks_test': 10,
    'webhooks_trigger': 20,
    'default': 60,
}


@dataclass
class RateLimitResult:
    success: bool
    limit: int
    remaining: int
    reset: float
    retry_after: int = 0

    def headers(self) -> Dict[str, str]:
        headers = {
            'X-RateLimit-Limit': str(self.limit),
            'X-RateLimit-Remaining': str(self.remaining),
            'X-RateLimit-Reset': str(int(self.reset)),
        }
        if not self.success:
            headers['Retry-After'] = str(self.retry_after)
        return headers


class RateLimiter:
    """Fixed-window counter store"""

    def __init__(self, limits: Optional[Dict[str, int]] = None, window_seconds: int = WINDOW_SECONDS,
                 clock: Callable[[], float] = time.time):
        self.limits = limits or RATE_LIMITS
        self.window_seconds = window_seconds
        self.clock = clock
        self._windows: Dict[Tuple[str, str], Tuple[int, float]] = {}
        self._lock = threading.Lock()
        self._last_cleanup = 0.0

    def check(self, identifier: str, limit_type: str = 'default') -> RateLimitResult:
        limit = self.limits.get(limit_type, self.limits['default'])
        key = (limit_type, identifier)
        now = self.clock()

        with self._lock:
            self._cleanup(now)
            count, reset_at = self._windows.get(key, (0, 0.0))

            if now >= reset_at:
                reset_at = now + self.window_seconds
                self._windows[key] = (1, reset_at)
                return RateLimitResult(True, limit, limit - 1, reset_at)

            if count >= limit:
                return RateLimitResult(False, limit, 0, reset_at, max(1, math.ceil(reset_at - now)))

            self._windows[key] = (count + 1, reset_at)
            return RateLimitResult(True, limit, limit - count - 1, reset_at)

    def _cleanup(self, now: float):
        if now - self._last_cleanup < self.window_seconds:
            return
        self._last_cleanup = now
        expired = [key for key, (_, reset_at) in self._windows.items() if now >= reset_at]
        for key in expired:
            del self._windows[key]

    def reset(self):
        with self._lock:
            self._windows.clear()


limiter = RateLimiter()


def rate_limit(limit_type: str = 'default'):
    """
    Dependency factory enforcing a per-user limit

    Returns the authenticated user ID so routes can use it in place of
    verify_supabase_jwt.
    """
    async def dependency(response: Response, user_id: str = Depends(verify_supabase_jwt)) -> str:
        result = limiter.check(user_id, limit_type)
        if not result.success:
            logger.warning(f"🚦 Rate limit exceeded for {user_id} on {limit_type}")
            raise HTTPException(
                status_code=status.HTTP_429_TOO_MANY_REQUESTS,
                detail=f"Rate limit exceeded. Try again in {result.retry_after} seconds.",
                headers=result.headers(),
            )
        for name, value in result.headers().items():
            response.headers[name] = value
        return user_id

    return dependency
