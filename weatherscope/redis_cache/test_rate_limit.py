import pytest
from redis.exceptions import ConnectionError

from weatherscope.redis_cache.rate_limit import FixedWindowRateLimiter


class BrokenRedis:
    def pipeline(self):
        raise ConnectionError("redis is down")


@pytest.mark.asyncio
async def test_allows_up_to_limit(fake_redis):
    limiter = FixedWindowRateLimiter(fake_redis, limit=3, window_s=60, clock=lambda: 120.0)
    results = [await limiter.hit("1.2.3.4") for _ in range(4)]
    assert [r.allowed for r in results] == [True, True, True, False]
    assert [r.remaining for r in results] == [2, 1, 0, 0]
    assert results[0].reset_s == 60


@pytest.mark.asyncio
async def test_identities_are_counted_separately(fake_redis):
    limiter = FixedWindowRateLimiter(fake_redis, limit=1, window_s=60, clock=lambda: 0.0)
    assert (await limiter.hit("a")).allowed
    assert (await limiter.hit("b")).allowed
    assert not (await limiter.hit("a")).allowed


@pytest.mark.asyncio
async def test_new_window_resets_the_count(fake_redis):
    now = [10.0]
    limiter = FixedWindowRateLimiter(fake_redis, limit=1, window_s=60, clock=lambda: now[0])
    assert (await limiter.hit("a")).allowed
    assert not (await limiter.hit("a")).allowed
    now[0] = 61.0
    result = await limiter.hit("a")
    assert result.allowed
    assert result.reset_s == 59


@pytest.mark.asyncio
async def test_window_key_expires(fake_redis):
    limiter = FixedWindowRateLimiter(fake_redis, limit=5, window_s=900, clock=lambda: 0.0)
    await limiter.hit("a")
    assert 0 < await fake_redis.ttl("ratelimit:a:0") <= 900


@pytest.mark.asyncio
async def test_headers():
    limiter_result = await FixedWindowRateLimiter(
        BrokenRedis(), limit=100, window_s=900, clock=lambda: 0.0
    ).hit("a")
    assert limiter_result.allowed
    assert limiter_result.headers() == {
        "RateLimit-Limit": "100",
        "RateLimit-Remaining": "100",
        "RateLimit-Reset": "900",
    }
