"""Rate limiting: sliding window and the middleware in front of the API."""

import pytest
from httpx import AsyncClient

from portal.client.api import PortalClient
from portal.client.errors import RateLimitedError
from portal.middleware.rate_limit import SlidingWindowLimiter
from portal.store import SEED_PASSWORD

LOGIN = {"email": "citizen@portal.gov.ng", "password": SEED_PASSWORD}


class _Clock:
    def __init__(self):
        self.now = 1000.0

    def __call__(self) -> float:
        return self.now


@pytest.mark.unit
class TestSlidingWindowLimiter:
    def test_blocks_past_the_limit_until_the_window_slides(self):
        clock = _Clock()
        limiter = SlidingWindowLimiter(clock=clock)

        results = [limiter.hit("ip:1", limit=3, window=60) for _ in range(3)]
        assert [allowed for allowed, _, _ in results] == [True, True, True]
        assert [remaining for _, remaining, _ in results] == [2, 1, 0]

        allowed, remaining, reset_in = limiter.hit("ip:1", limit=3, window=60)
        assert (allowed, remaining, reset_in) == (False, 0, 60)

        clock.now += 30
        assert limiter.hit("ip:1", limit=3, window=60)[0] is False
        clock.now += 30
        assert limiter.hit("ip:1", limit=3, window=60)[0] is True

    def test_keys_are_independent_and_reset_clears(self):
        limiter = SlidingWindowLimiter(clock=_Clock())
        assert limiter.hit("ip:1", limit=1, window=60)[0] is True
        assert limiter.hit("ip:2", limit=1, window=60)[0] is True
        assert limiter.hit("ip:1", limit=1, window=60)[0] is False

        limiter.reset()
        assert limiter.hit("ip:1", limit=1, window=60)[0] is True


@pytest.mark.api
@pytest.mark.asyncio
class TestRateLimitMiddleware:
    async def test_sixth_login_within_a_minute_is_refused(self, client: AsyncClient):
        for _ in range(5):
            response = await client.post("/api/auth/login", json=LOGIN)
            assert response.status_code == 200

        response = await client.post("/api/auth/login", json=LOGIN)
        assert response.status_code == 429
        body = response.json()
        assert body["success"] is False
        assert body["error"]["code"] == "RATE_LIMITED"
        assert response.headers["X-RateLimit-Limit"] == "5"
        assert response.headers["X-RateLimit-Remaining"] == "0"
        assert int(response.headers["Retry-After"]) >= 1

    async def test_failed_logins_count_too(self, client: AsyncClient):
        for _ in range(5):
            await client.post("/api/auth/login", json={**LOGIN, "password": "wrong"})
        response = await client.post("/api/auth/login", json=LOGIN)
        assert response.status_code == 429

    async def test_limits_are_per_client_address(self, client: AsyncClient):
        for _ in range(5):
            await client.post("/api/auth/login", json=LOGIN, headers={"X-Forwarded-For": "10.0.0.1"})

        blocked = await client.post("/api/auth/login", json=LOGIN, headers={"X-Forwarded-For": "10.0.0.1"})
        other = await client.post("/api/auth/login", json=LOGIN, headers={"X-Forwarded-For": "10.0.0.2"})
        assert blocked.status_code == 429
        assert other.status_code == 200

    async def test_login_limit_does_not_spill_into_other_routes(
        self, client: AsyncClient, auth_headers: dict
    ):
        for _ in range(6):
            await client.post("/api/auth/login", json=LOGIN)

        response = await client.get("/api/profile", headers=auth_headers)
        assert response.status_code == 200
        assert response.headers["X-RateLimit-Limit"] == "500"

    async def test_health_is_exempt(self, client: AsyncClient):
        for _ in range(7):
            response = await client.get("/health")
            assert response.status_code == 200
        assert "X-RateLimit-Limit" not in response.headers

    async def test_client_raises_rate_limited(self, transport):
        async with PortalClient("http://test", transport=transport) as api:
            for _ in range(5):
                await api.login(LOGIN["email"], LOGIN["password"])
            with pytest.raises(RateLimitedError) as exc_info:
                await api.login(LOGIN["email"], LOGIN["password"])

        assert exc_info.value.status_code == 429
        assert exc_info.value.error_code == "RATE_LIMITED"
