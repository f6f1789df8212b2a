import fakeredis
import httpx
import pytest
from fastapi.testclient import TestClient

from weatherscope.config import Settings
from weatherscope.dependencies import (
    get_breaker,
    get_cache,
    get_http_client,
    get_random,
    get_rate_limiter,
    get_redis,
    get_settings,
)
from weatherscope.geocoding.breaker import CircuitBreaker
from weatherscope.main import app
from weatherscope.redis_cache.cache import TTLCache
from weatherscope.redis_cache.rate_limit import FixedWindowRateLimiter


class FirstChoice:
    """Deterministic stand-in for random.Random."""

    def choice(self, seq):
        return seq[0]


class FakeUpstream:
    """Routes mocked HTTP calls by URL prefix and records every request."""

    def __init__(self):
        self.requests = []
        self.routes = {}

    def route(self, url_prefix, responder):
        self.routes[url_prefix] = responder

    def calls_to(self, url_prefix):
        return [r for r in self.requests if str(r.url).startswith(url_prefix)]

    def handler(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        for prefix, responder in self.routes.items():
            if str(request.url).startswith(prefix):
                return responder(request)
        raise AssertionError(f"Unexpected URL: {request.url}")

    def client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(transport=httpx.MockTransport(self.handler))


@pytest.fixture
def fake_redis():
    return fakeredis.FakeAsyncRedis(
        server=fakeredis.FakeServer(), decode_responses=True
    )


@pytest.fixture
def cache(fake_redis):
    return TTLCache(fake_redis, default_ttl_s=1800)


@pytest.fixture
def settings():
    return Settings(opencage_api_key="test-key", rate_limit_max=100)


@pytest.fixture
def upstream():
    return FakeUpstream()


@pytest.fixture
def breaker():
    return CircuitBreaker("geocoder", failure_threshold=2, reset_timeout_s=30)


@pytest.fixture
def make_geocode_result():
    def _make(city=None, country="United States", lat=37.77, lng=-122.42, **components):
        if city is not None:
            components["city"] = city
        components["country"] = country
        return {
            "components": components,
            "geometry": {"lat": lat, "lng": lng},
            "formatted": ", ".join(str(v) for v in components.values()),
        }

    return _make


@pytest.fixture
def make_daily():
    def _make(day="2020-07-01", max_temp=25.0, min_temp=15.0, precipitation=0.0, code=0):
        return {
            "latitude": 37.77,
            "longitude": -122.42,
            "daily_units": {"temperature_2m_max": "°C"},
            "daily": {
                "time": [day],
                "temperature_2m_max": [max_temp],
                "temperature_2m_min": [min_temp],
                "precipitation_sum": [precipitation],
                "weathercode": [code],
            },
        }

    return _make


@pytest.fixture
def api(fake_redis, cache, settings, upstream, breaker):
    limiter = FixedWindowRateLimiter(
        fake_redis, settings.rate_limit_max, settings.rate_limit_window_s
    )
    http_client = upstream.client()
    app.dependency_overrides = {
        get_settings: lambda: settings,
        get_redis: lambda: fake_redis,
        get_cache: lambda: cache,
        get_http_client: lambda: http_client,
        get_breaker: lambda: breaker,
        get_rate_limiter: lambda: limiter,
        get_random: lambda: FirstChoice(),
    }
    # One portal keeps the asyncio Redis connections on a single event loop.
    with TestClient(app) as client:
        yield client
    app.dependency_overrides = {}
