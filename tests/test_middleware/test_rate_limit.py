"""Tests for rate limiting."""

from typing import AsyncGenerator
from unittest.mock import AsyncMock, MagicMock

import pytest
import pytest_asyncio
from fastapi import FastAPI
from httpx import ASGITransport, AsyncClient

from contentgen.middleware.rate_limit import (
    InMemoryRateLimiter,
    RateLimitMiddleware,
    RedisRateLimiter,
)


class FakeClock:
    def __init__(self, now: float = 1000.0) -> None:
        self.now = now

    def __call__(self) -> float:
        return self.now


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def limited_app(clock: FakeClock) -> FastAPI:
    """Get an app limited to two reads and one write per window."""
    app = FastAPI()
    app.add_middleware(
        RateLimitMiddleware, path_prefix="/content", read_limit=2, write_limit=1
    )
    app.state.rate_limiter = InMemoryRateLimiter(window=60, clock=clock)

    @app.get("/content/items")
    async def _read() -> dict[str, bool]:
        return {"ok": True}

    @app.post("/content/items")
    async def _write() -> dict[str, bool]:
        return {"ok": True}

    @app.get("/health")
    async def _health() -> dict[str, bool]:
        return {"ok": True}

    return app


@pytest_asyncio.fixture
async def limited_client(limited_app: FastAPI) -> AsyncGenerator[AsyncClient, None]:
    async with AsyncClient(
        transport=ASGITransport(app=limited_app), base_url="http://test"
    ) as client:
        yield client


@pytest.mark.asyncio
async def test_reads_limited_per_window(
    limited_client: AsyncClient, clock: FakeClock
) -> None:
    first = await limited_client.get("/content/items")
    second = await limited_client.get("/content/items")
    third = await limited_client.get("/content/items")

    assert first.status_code == second.status_code == 200
    assert first.headers["X-RateLimit-Remaining"] == "1"
    assert third.status_code == 429
    assert third.json()["error"] == "RateLimitExceeded"
    assert third.headers["Retry-After"] == "60"

    clock.now += 60
    assert (await limited_client.get("/content/items")).status_code == 200


@pytest.mark.asyncio
async def test_writes_have_their_own_limit(limited_client: AsyncClient) -> None:
    assert (await limited_client.post("/content/items")).status_code == 200
    assert (await limited_client.post("/content/items")).status_code == 429
    assert (await limited_client.get("/content/items")).status_code == 200


@pytest.mark.asyncio
async def test_clients_counted_separately(limited_client: AsyncClient) -> None:
    headers_a = {"X-User-ID": "alice"}
    headers_b = {"X-User-ID": "bob"}

    first = await limited_client.post("/content/items", headers=headers_a)
    second = await limited_client.post("/content/items", headers=headers_a)
    other = await limited_client.post("/content/items", headers=headers_b)

    assert first.status_code == 200
    assert second.status_code == 429
    assert other.status_code == 200


@pytest.mark.asyncio
async def test_paths_outside_prefix_not_limited(limited_client: AsyncClient) -> None:
    for _ in range(5):
        response = await limited_client.get("/health")
        assert response.status_code == 200
        assert "X-RateLimit-Limit" not in response.headers


@pytest.mark.asyncio
async def test_no_limiter_means_no_limit(
    limited_app: FastAPI, limited_client: AsyncClient
) -> None:
    limited_app.state.rate_limiter = None
    for _ in range(3):
        assert (await limited_client.post("/content/items")).status_code == 200


@pytest.mark.asyncio
async def test_redis_limiter_sets_expiry_on_first_hit() -> None:
    redis = MagicMock()
    redis.incr = AsyncMock(side_effect=[1, 2, 3])
    redis.expire = AsyncMock()
    limiter = RedisRateLimiter(redis, window=60, clock=lambda: 125.0)

    results = [await limiter.hit("read:ip:1", limit=2) for _ in range(3)]

    assert [r.allowed for r in results] == [True, True, False]
    assert results[0].reset_after == 55
    redis.incr.assert_awaited_with("contentgen:ratelimit:read:ip:1:2")
    redis.expire.assert_awaited_once_with("contentgen:ratelimit:read:ip:1:2", 60)
