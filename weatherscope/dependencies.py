"""FastAPI dependencies resolving the shared resources built at startup."""

import random

import httpx
from fastapi import Depends, Request
from redis.asyncio import Redis

from weatherscope.config import Settings
from weatherscope.errors import RateLimitExceededError
from weatherscope.geocoding.breaker import CircuitBreaker
from weatherscope.horoscope.traits import RandomSource
from weatherscope.redis_cache.cache import TTLCache
from weatherscope.redis_cache.rate_limit import FixedWindowRateLimiter


def get_settings(request: Request) -> Settings:
    return request.app.state.settings


def get_redis(request: Request) -> Redis:
    return request.app.state.redis


def get_cache(request: Request) -> TTLCache:
    return request.app.state.cache


def get_http_client(request: Request) -> httpx.AsyncClient:
    return request.app.state.http_client


def get_breaker(request: Request) -> CircuitBreaker:
    return request.app.state.geocoder_breaker


def get_rate_limiter(request: Request) -> FixedWindowRateLimiter:
    return request.app.state.rate_limiter


def get_random() -> RandomSource:
    return random.Random()


def client_identity(request: Request, trusted_hops: int = 0) -> str:
    """Identify the caller behind ``trusted_hops`` reverse proxies.

    Each trusted proxy appends the address it received the request from to
    ``X-Forwarded-For``, so only the last ``trusted_hops`` entries are
    reliable. Anything further left was supplied by the client.
    """
    peer = request.client.host if request.client else "unknown"
    forwarded = request.headers.get("x-forwarded-for")
    if not forwarded or trusted_hops <= 0:
        return peer
    hops = [part.strip() for part in forwarded.split(",") if part.strip()]
    if not hops:
        return peer
    return hops[-min(trusted_hops, len(hops))]


async def enforce_rate_limit(
    request: Request,
    limiter: FixedWindowRateLimiter = Depends(get_rate_limiter),
    settings: Settings = Depends(get_settings),
) -> None:
    """Count the request against the caller's window.

    Raises:
        RateLimitExceededError: When the window budget is spent.
    """
    result = await limiter.hit(client_identity(request, settings.trusted_proxy_hops))
    request.state.rate_limit_headers = result.headers()
    if not result.allowed:
        raise RateLimitExceededError(
            "Too many requests, please try again later.", result.headers()
        )
