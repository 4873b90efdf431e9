"""
Rate Limit Tests
Sliding window limiter and the middleware's 429 responses
"""

import sys
import os

sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from fastapi import FastAPI
from fastapi.testclient import TestClient

from r2p.middleware.rate_limit_middleware import RateLimitMiddleware, SlidingWindowLimiter


class TestSlidingWindowLimiter:
    """Window arithmetic with explicit timestamps"""

    def test_allows_up_to_limit(self):
        limiter = SlidingWindowLimiter(max_requests=3, window_seconds=60)

        assert [limiter.hit("a", now=t)[0] for t in (0, 1, 2)] == [True, True, True]
        allowed, retry_after = limiter.hit("a", now=3)
        assert not allowed
        assert retry_after == 58

    def test_window_slides(self):
        limiter = SlidingWindowLimiter(max_requests=2, window_seconds=10)
        limiter.hit("a", now=0)
        limiter.hit("a", now=5)

        assert not limiter.hit("a", now=9)[0]
        assert limiter.hit("a", now=10)[0]
        assert not limiter.hit("a", now=11)[0]

    def test_keys_are_independent(self):
        limiter = SlidingWindowLimiter(max_requests=1, window_seconds=60)

        assert limiter.hit("a", now=0)[0]
        assert limiter.hit("b", now=0)[0]
        assert not limiter.hit("a", now=1)[0]

    def test_idle_keys_are_purged(self):
        """Clients whose window has emptied stop being tracked"""
        limiter = SlidingWindowLimiter(max_requests=5, window_seconds=1)
        for i in range(10000):
            limiter.hit(f"client-{i}", now=0)
        assert len(limiter) == 10000

        limiter.hit("late", now=100)

        assert len(limiter) == 1

    def test_active_keys_survive_purge(self):
        limiter = SlidingWindowLimiter(max_requests=2, window_seconds=10)
        limiter.hit("idle", now=0)
        limiter.hit("busy", now=5)
        limiter.hit("busy", now=9)

        limiter.hit("other", now=12)

        assert len(limiter) == 2
        assert not limiter.hit("busy", now=13)[0]

    def test_reset(self):
        limiter = SlidingWindowLimiter(max_requests=1, window_seconds=60)
        limiter.hit("a", now=0)
        limiter.reset()

        assert limiter.hit("a", now=1)[0]


def build_app(**kwargs):
    app = FastAPI()
    app.add_middleware(RateLimitMiddleware, **kwargs)

    @app.post("/api/auth/login")
    async def login():
        return {"ok": True}

    @app.get("/api/requests")
    async def requests():
        return {"ok": True}

    return app


class TestRateLimitMiddleware:
    """Middleware behaviour on a bare app"""

    def test_auth_attempts_limited(self):
        client = TestClient(build_app(enabled=True, auth_attempts=5, auth_window_seconds=900, per_minute=100))

        codes = [client.post("/api/auth/login").status_code for _ in range(6)]

        assert codes == [200] * 5 + [429]

    def test_429_body_and_retry_after(self):
        client = TestClient(build_app(enabled=True, auth_attempts=1, auth_window_seconds=900, per_minute=100))
        client.post("/api/auth/login")

        response = client.post("/api/auth/login")

        assert response.status_code == 429
        assert response.json()["success"] is False
        assert 0 < int(response.headers["Retry-After"]) <= 900

    def test_auth_limit_does_not_affect_other_paths(self):
        client = TestClient(build_app(enabled=True, auth_attempts=1, auth_window_seconds=900, per_minute=100))
        client.post("/api/auth/login")
        client.post("/api/auth/login")

        assert client.get("/api/requests").status_code == 200

    def test_general_limit(self):
        client = TestClient(build_app(enabled=True, auth_attempts=5, auth_window_seconds=900, per_minute=2))

        codes = [client.get("/api/requests").status_code for _ in range(3)]

        assert codes == [200, 200, 429]

    def test_clients_tracked_separately(self):
        client = TestClient(build_app(enabled=True, auth_attempts=1, auth_window_seconds=900, per_minute=100))

        assert client.post("/api/auth/login", headers={"X-Forwarded-For": "10.0.0.1"}).status_code == 200
        assert client.post("/api/auth/login", headers={"X-Forwarded-For": "10.0.0.2"}).status_code == 200
        assert client.post("/api/auth/login", headers={"X-Forwarded-For": "10.0.0.1"}).status_code == 429

    def test_disabled(self):
        client = TestClient(build_app(enabled=False, auth_attempts=1, auth_window_seconds=900, per_minute=1))

        codes = [client.post("/api/auth/login").status_code for _ in range(3)]

        assert codes == [200, 200, 200]
