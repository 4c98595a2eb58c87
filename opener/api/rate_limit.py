"""
Fixed-window rate limiter for the edge-function endpoints.

Limits are keyed by (operation, identifier) where the identifier is
"guest:<session>", "user:<id>" or "anonymous". State is in-process.
"""

import logging
import math
import threading
import time

from opener import config
from opener.api.errors import AppError

logger = logging.getLogger("opener.api.rate_limit")

WINDOW_SECONDS = 60

RATE_LIMITS = {
    "generate_message": 10,
    "generate_profile": 5,
    "generate_guest_profile": 5,
    "add_contact_by_bio": 20,
    "add_company_by_name": 20,
    "guest_message_selection": 50,
    "link_guest_profile": 5,
    "enrich_company": 20,
    "generate_company_interaction_overview": 10,
    "generate_contact_interaction_overview": 10,
}

RATE_LIMIT_MESSAGE = "Rate limit exceeded. Please try again later."


class FixedWindowRateLimiter:
    """Allows `limit` hits per key in each `window` seconds."""

    def __init__(self, window: int = WINDOW_SECONDS, clock=time.monotonic):
        self.window = window
        self.clock = clock
        self._windows = {}
        self._last_sweep = clock()
        self._lock = threading.Lock()

    def hit(self, key: str, limit: int) -> tuple:
        """Record one hit. Returns (allowed, retry_after_seconds)."""
        now = self.clock()
        with self._lock:
            if now - self._last_sweep >= self.window:
                self._sweep(now)
            start, count = self._windows.get(key, (now, 0))
            if now - start >= self.window:
                start, count = now, 0
            if count >= limit:
                return False, max(1, math.ceil(self.window - (now - start)))
            self._windows[key] = (start, count + 1)
            return True, 0

    def _sweep(self, now: float):
        # Expired windows would be reset on their next hit anyway
        for key in [k for k, (start, _) in self._windows.items() if now - start >= self.window]:
            del self._windows[key]
        self._last_sweep = now

    def reset(self):
        with self._lock:
            self._windows.clear()

    def __len__(self):
        return len(self._windows)


limiter = FixedWindowRateLimiter()


def identifier_for(user_id: str = None, session_id: str = None) -> str:
    if session_id:
        return f"guest:{session_id}"
    if user_id:
        return f"user:{user_id}"
    return "anonymous"


def enforce_rate_limit(operation: str, identifier: str):
    """Raise a 429 AppError when the identifier is over the operation's limit."""
    if not config.RATE_LIMIT_ENABLED:
        return
    limit = RATE_LIMITS.get(operation)
    if limit is None:
        return
    allowed, retry_after = limiter.hit(f"{operation}:{identifier}", limit)
    if not allowed:
        logger.warning("Rate limit hit for %s by %s", operation, identifier,
                       extra={"function_name": operation})
        raise AppError(429, RATE_LIMIT_MESSAGE, headers={"Retry-After": str(retry_after)},
                       status="error", message=RATE_LIMIT_MESSAGE, retryAfter=retry_after)
