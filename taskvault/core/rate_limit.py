import logging
import math
import threading
import time
from dataclasses import dataclass
from typing import Callable, Dict

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse


logger = logging.getLogger(__name__)


@dataclass
class RateLimitState:
    window_started_at: float
    count: int = 0


@dataclass
class RateLimitDecision:
    allowed: bool
    remaining: int
    retry_after: int


class InMemoryRateLimiter:
    """
    Fixed-window request counter per client key.

    State lives in this process only; it resets on restart and is not
    shared between workers.
    """

    # Prune expired windows once the table grows past this size
    PRUNE_THRESHOLD = 10_000

    def __init__(self, max_requests: int, window_seconds: int, clock: Callable[[], float] = time.monotonic):
        self.max_requests = max_requests
        self.window_seconds = window_seconds
        self._clock = clock
        self._lock = threading.Lock()
        self._entries: Dict[str, RateLimitState] = {}

    def hit(self, key: str) -> RateLimitDecision:
        """Count one request for ``key`` and decide whether it may proceed."""
        now = self._clock()
        with self._lock:
            state = self._entries.get(key)
            if state is None or now - state.window_started_at >= self.window_seconds:
                if len(self._entries) >= self.PRUNE_THRESHOLD:
                    self._prune(now)
                state = RateLimitState(window_started_at=now)
                self._entries[key] = state

            state.count += 1
            remaining = max(self.max_requests - state.count, 0)
            retry_after = math.ceil(state.window_started_at + self.window_seconds - now)
            return RateLimitDecision(
                allowed=state.count <= self.max_requests,
                remaining=remaining,
                retry_after=max(retry_after, 0),
            )

    def _prune(self, now: float) -> None:
        expired = [
            key for key, state in self._entries.items()
            if now - state.window_started_at >= self.window_seconds
        ]
        for key in expired:
            del self._entries[key]


def register_rate_limit(app: FastAPI, limiter: InMemoryRateLimiter) -> None:
    """Reject clients that exceed the per-IP request budget with a 429."""

    @app.middleware("http")
    async def rate_limit(request: Request, call_next):
        client_ip = request.client.host if request.client else "unknown"
        decision = limiter.hit(client_ip)

        if not decision.allowed:
            logger.warning(f"Rate limit exceeded for {client_ip}")
            return JSONResponse(
                status_code=429,
                content={"error": "Too many requests from this IP, please try again later"},
                headers={
                    "Retry-After": str(decision.retry_after),
                    "RateLimit-Limit": str(limiter.max_requests),
                    "RateLimit-Remaining": "0",
                },
            )

        response = await call_next(request)
        response.headers["RateLimit-Limit"] = str(limiter.max_requests)
        response.headers["RateLimit-Remaining"] = str(decision.remaining)
        return response
