"""
Rate Limiting Middleware
Per-client sliding window limits, stricter on authentication endpoints
"""

import time
from collections import defaultdict, deque
from typing import Deque, Dict, Iterable, Optional, Tuple

from fastapi import Request, status
from fastapi.responses import JSONResponse
from starlette.middleware.base import BaseHTTPMiddleware

from r2p.config.settings import settings
from r2p.utils.helpers import get_client_ip
from r2p.utils.logger import setup_logger

logger = setup_logger()

AUTH_PATHS = (
    "/api/auth/login",
    "/api/auth/forgot-password",
    "/api/auth/reset-password",
)


class SlidingWindowLimiter:
    """Allows at most ``max_requests`` hits per key within ``window_seconds``"""

    def __init__(self, max_requests: int, window_seconds: float):
        self.max_requests = max_requests
        self.window_seconds = window_seconds
        self._hits: Dict[str, Deque[float]] = defaultdict(deque)
        self._last_purge: Optional[float] = None

    def __len__(self) -> int:
        return len(self._hits)

    def _purge(self, now: float) -> None:
        """Drop keys whose newest hit has left the window"""
        cutoff = now - self.window_seconds
        stale = [key for key, hits in self._hits.items() if not hits or hits[-1] <= cutoff]
        for key in stale:
            del self._hits[key]
        self._last_purge = now

    def hit(self, key: str, now: Optional[float] = None) -> Tuple[bool, int]:
        """
        Record a hit for key

        Keys idle for a full window are purged at most once per window.

        Returns:
            Tuple of (allowed, retry_after_seconds); rejected hits are not recorded
        """
        now = time.monotonic() if now is None else now
        if self._last_purge is None:
            self._last_purge = now
        elif now - self._last_purge >= self.window_seconds:
            self._purge(now)

        hits = self._hits[key]

        while hits and hits[0] <= now - self.window_seconds:
            hits.popleft()

        if len(hits) >= self.max_requests:
            retry_after = int(hits[0] + self.window_seconds - now) + 1
            return False, max(retry_after, 1)

        hits.append(now)
        return True, 0

    def reset(self):
        self._hits.clear()
        self._last_purge = None


class RateLimitMiddleware(BaseHTTPMiddleware):
    """Middleware returning 429 once a client exceeds its window"""

    def __init__(
        self,
        app,
        enabled: Optional[bool] = None,
        auth_attempts: Optional[int] = None,
        auth_window_seconds: Optional[int] = None,
        per_minute: Optional[int] = None,
        auth_paths: Iterable[str] = AUTH_PATHS
    ):
        super().__init__(app)
        self.enabled = settings.RATE_LIMIT_ENABLED if enabled is None else enabled
        self.auth_paths = tuple(auth_paths)
        self.auth_limiter = SlidingWindowLimiter(
            auth_attempts or settings.AUTH_RATE_LIMIT_ATTEMPTS,
            auth_window_seconds or settings.AUTH_RATE_LIMIT_WINDOW_SECONDS
        )
        self.general_limiter = SlidingWindowLimiter(per_minute or settings.RATE_LIMIT_PER_MINUTE, 60)

    async def dispatch(self, request: Request, call_next):
        """Check the client's window before handing the request on"""
        if not self.enabled or request.method == "OPTIONS":
            return await call_next(request)

        client = get_client_ip(request)
        path = request.url.path

        if path in self.auth_paths:
            allowed, retry_after = self.auth_limiter.hit(f"{client}:{path}")
            message = "Too many authentication attempts, please try again later"
        else:
            allowed, retry_after = self.general_limiter.hit(client)
            message = "Too many requests, please try again later"

        if not allowed:
            logger.warning(f"Rate limit exceeded: {client} {request.method} {path}")
            return JSONResponse(
                status_code=status.HTTP_429_TOO_MANY_REQUESTS,
                content={"success": False, "message": message},
                headers={"Retry-After": str(retry_after)}
            )

        return await call_next(request)
