"""FastAPI application routes, middleware, and metrics."""

import calendar
import datetime
import time
import uuid
from contextlib import asynccontextmanager
from pathlib import Path
from typing import List, Optional

import httpx
import uvicorn
from fastapi import Depends, FastAPI, Query, Request, Response
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.middleware.gzip import GZipMiddleware
from fastapi.responses import FileResponse, JSONResponse
from fastapi.staticfiles import StaticFiles
from prometheus_client import CONTENT_TYPE_LATEST, Counter, Histogram, generate_latest
from redis.asyncio import Redis
from structlog.contextvars import bind_contextvars, clear_contextvars

from weatherscope.config import Settings
from weatherscope.dependencies import (
    enforce_rate_limit,
    get_breaker,
    get_cache,
    get_http_client,
    get_random,
    get_redis,
    get_settings,
)
from weatherscope.errors import InvalidParameterError, WeatherscopeError
from weatherscope.geocoding.breaker import CircuitBreaker
from weatherscope.geocoding.service import search_cities
from weatherscope.health.health_check import (
    geocoder_status,
    is_redis_available,
    is_weather_api_available,
)
from weatherscope.horoscope.traits import RandomSource
from weatherscope.logging_config import logger
from weatherscope.models.city import RankedCity
from weatherscope.models.health import Dependencies, HealthResponse, ServiceStatus
from weatherscope.models.weather import TimelineResponse
from weatherscope.redis_cache.cache import TTLCache, build_redis_client
from weatherscope.redis_cache.rate_limit import FixedWindowRateLimiter
from weatherscope.weather_service.timeline import build_timeline
from weatherscope.weather_service.weather import get_shared_result, get_weather_result

STATIC_DIR = Path(__file__).parent / "static"
EARLIEST_ARCHIVE_YEAR = 1940


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Build shared resources on startup and release them on shutdown."""
    settings = Settings.from_env()
    redis_client = build_redis_client(settings)
    app.state.settings = settings
    app.state.redis = redis_client
    app.state.cache = TTLCache(redis_client, settings.cache_ttl_s)
    app.state.rate_limiter = FixedWindowRateLimiter(
        redis_client, settings.rate_limit_max, settings.rate_limit_window_s
    )
    app.state.http_client = httpx.AsyncClient(timeout=settings.upstream_timeout_s)
    app.state.geocoder_breaker = CircuitBreaker(
        "geocoder", settings.breaker_failure_threshold, settings.breaker_reset_s
    )
    if not settings.opencage_api_key:
        logger.warning("OPENCAGE_API_KEY_MISSING")
    logger.info("STARTUP", environment=settings.app_env, port=settings.port)
    try:
        yield
    finally:
        logger.info("SHUTDOWN")
        await app.state.http_client.aclose()
        await redis_client.aclose()


app = FastAPI(lifespan=lifespan)
app.add_middleware(GZipMiddleware, minimum_size=1000)
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_methods=["*"],
    allow_headers=["*"],
)
app.mount("/static", StaticFiles(directory=STATIC_DIR), name="static")

REQUEST_COUNT = Counter(
    "http_requests_total", "Total HTTP requests", ["method", "path", "status_code"]
)
REQUEST_LATENCY = Histogram(
    "http_request_duration_seconds", "HTTP request duration in seconds", ["path"]
)


@app.middleware("http")
async def request_logging(request: Request, call_next):
    """Log request details, attach a request ID, and record metrics.

    Args:
        request: Incoming HTTP request.
        call_next: FastAPI handler for the next middleware/app.

    Returns:
        The response produced by the downstream handler.
    """
    request_id = request.headers.get("x-request-id") or str(uuid.uuid4())
    bind_contextvars(request_id=request_id)
    start = time.perf_counter()
    response = None
    try:
        response = await call_next(request)
        response.headers["x-request-id"] = request_id
        for name, value in getattr(request.state, "rate_limit_headers", {}).items():
            response.headers[name] = value
        return response
    finally:
        duration_s = time.perf_counter() - start
        duration_ms = round(duration_s * 1000, 2)
        status_code = getattr(response, "status_code", 500)
        path = getattr(request.scope.get("route"), "path", request.url.path)
        logger.info(
            "HTTP_REQUEST",
            method=request.method,
            path=request.url.path,
            status_code=status_code,
            duration_ms=duration_ms,
        )
        REQUEST_COUNT.labels(
            method=request.method, path=path, status_code=status_code
        ).inc()
        REQUEST_LATENCY.labels(path=path).observe(duration_s)
        clear_contextvars()


@app.exception_handler(WeatherscopeError)
async def weatherscope_error_handler(request: Request, exc: WeatherscopeError):
    """Convert service errors into ``{"error", "message"}`` responses.

    Args:
        request: Incoming HTTP request.
        exc: Raised service error; its class decides the status code.

    Returns:
        A JSON response with the error label and message.
    """
    return JSONResponse(
        status_code=exc.status_code,
        content={"error": exc.error, "message": str(exc)},
        headers=getattr(exc, "headers", None),
    )


@app.exception_handler(RequestValidationError)
async def validation_error_handler(request: Request, exc: RequestValidationError):
    """Report malformed query parameters as 400 rather than 422."""
    message = "; ".join(
        f"{'.'.join(str(part) for part in error['loc'][1:])}: {error['msg']}"
        for error in exc.errors()
    )
    return JSONResponse(
        status_code=400, content={"error": "Invalid parameters", "message": message}
    )


@app.exception_handler(Exception)
async def unexpected_error_handler(request: Request, exc: Exception):
    """Return a generic 500 for anything not handled elsewhere."""
    logger.exception("UNHANDLED_ERROR", path=request.url.path)
    return JSONResponse(
        status_code=500,
        content={"error": "Server error", "message": "An unexpected error occurred"},
    )


def _parse_float(raw: str, error: str, message: str) -> float:
    try:
        return float(raw)
    except ValueError:
        raise InvalidParameterError(error, message) from None


def _parse_int(raw: Optional[str], name: str) -> int:
    if raw is None or not raw.strip():
        raise InvalidParameterError("Missing parameters", f"{name} is required")
    try:
        return int(raw)
    except ValueError:
        raise InvalidParameterError(
            "Invalid parameters", f"{name} must be an integer"
        ) from None


def parse_coordinates(latitude: Optional[str], longitude: Optional[str]) -> tuple:
    """Validate latitude/longitude query strings.

    Raises:
        InvalidParameterError: If either is missing, not numeric, or out of range.
    """
    if not latitude or not longitude:
        raise InvalidParameterError(
            "Missing parameters", "Latitude and longitude are required"
        )
    message = "Latitude and longitude must be valid numbers"
    lat = _parse_float(latitude, "Invalid coordinates", message)
    lon = _parse_float(longitude, "Invalid coordinates", message)
    if not (-90 <= lat <= 90 and -180 <= lon <= 180):
        raise InvalidParameterError(
            "Invalid coordinates", "Latitude or longitude is out of range"
        )
    return lat, lon


def parse_date(raw: Optional[str]) -> datetime.date:
    if not raw:
        raise InvalidParameterError("Missing parameters", "Date is required")
    try:
        return datetime.date.fromisoformat(raw)
    except ValueError:
        raise InvalidParameterError(
            "Invalid date", "Date must be formatted as YYYY-MM-DD"
        ) from None


@app.get("/")
async def root():
    """Serve the landing page."""
    return FileResponse(STATIC_DIR / "index.html")


@app.get(
    "/cities",
    response_model=List[RankedCity],
    dependencies=[Depends(enforce_rate_limit)],
)
async def get_cities(
    term: Optional[str] = None,
    client: httpx.AsyncClient = Depends(get_http_client),
    cache: TTLCache = Depends(get_cache),
    settings: Settings = Depends(get_settings),
    breaker: CircuitBreaker = Depends(get_breaker),
):
    """Search cities matching a free-text term.

    Args:
        term: Search text from the query string.

    Returns:
        Up to ten ranked cities.
    """
    search_term = (term or "").strip()
    min_length = max(settings.city_search_min_length, 1)
    if len(search_term) < min_length:
        raise InvalidParameterError(
            "Invalid search term",
            f"Search term must be at least {min_length} character(s)",
        )
    cities = await search_cities(search_term, client, cache, settings, breaker)
    return JSONResponse(content=cities)


@app.get("/weather", dependencies=[Depends(enforce_rate_limit)])
async def get_weather(
    latitude: Optional[str] = None,
    longitude: Optional[str] = None,
    date: Optional[str] = None,
    horoscope: bool = True,
    client: httpx.AsyncClient = Depends(get_http_client),
    cache: TTLCache = Depends(get_cache),
    settings: Settings = Depends(get_settings),
    rng: RandomSource = Depends(get_random),
):
    """Fetch one day of weather for a coordinate.

    Returns:
        The upstream daily payload with ``meta`` and an optional ``horoscope``.
    """
    if not latitude or not longitude or not date:
        raise InvalidParameterError(
            "Missing parameters", "Latitude, longitude, and date are required"
        )
    lat, lon = parse_coordinates(latitude, longitude)
    day = parse_date(date)
    return await get_weather_result(
        lat, lon, day, client, cache, settings, rng, include_horoscope=horoscope
    )


@app.get(
    "/weather/timeline",
    response_model=TimelineResponse,
    dependencies=[Depends(enforce_rate_limit)],
)
async def get_weather_timeline(
    latitude: Optional[str] = None,
    longitude: Optional[str] = None,
    month: Optional[str] = None,
    day: Optional[str] = None,
    start_year: Optional[str] = Query(None, alias="startYear"),
    end_year: Optional[str] = Query(None, alias="endYear"),
    client: httpx.AsyncClient = Depends(get_http_client),
    cache: TTLCache = Depends(get_cache),
    settings: Settings = Depends(get_settings),
) -> TimelineResponse:
    """Weather on one calendar day across a range of years."""
    lat, lon = parse_coordinates(latitude, longitude)
    month_value = _parse_int(month, "month")
    day_value = _parse_int(day, "day")
    first = _parse_int(start_year, "startYear")
    last = _parse_int(end_year, "endYear")
    if not 1 <= month_value <= 12:
        raise InvalidParameterError("Invalid date", "month is out of range")
    # 2000 is a leap year, so 29 February is accepted.
    if not 1 <= day_value <= calendar.monthrange(2000, month_value)[1]:
        raise InvalidParameterError("Invalid date", "day is out of range for the month")
    if first > last:
        raise InvalidParameterError(
            "Invalid parameters", "startYear must not be after endYear"
        )
    if first < EARLIEST_ARCHIVE_YEAR:
        raise InvalidParameterError(
            "Invalid parameters", f"startYear must be {EARLIEST_ARCHIVE_YEAR} or later"
        )
    if last - first + 1 > settings.timeline_max_years:
        raise InvalidParameterError(
            "Invalid parameters",
            f"At most {settings.timeline_max_years} years can be requested",
        )

    cache_key = f"timeline_{lat}_{lon}_{month_value}_{day_value}_{first}_{last}"
    if (cached := await cache.get(cache_key)) is not None:
        logger.info("CACHED_TIMELINE_HIT", key=cache_key)
        return TimelineResponse(**cached)
    timeline = await build_timeline(
        lat, lon, month_value, day_value, first, last, client, cache, settings
    )
    await cache.set(cache_key, timeline.model_dump(mode="json"))
    return timeline


@app.get("/result/{result_id}", dependencies=[Depends(enforce_rate_limit)])
async def get_result(result_id: str, cache: TTLCache = Depends(get_cache)):
    """Return a shareable weather result by its id."""
    return await get_shared_result(result_id, cache)


@app.get("/health", response_model=HealthResponse)
async def health(
    redis_client: Redis = Depends(get_redis),
    client: httpx.AsyncClient = Depends(get_http_client),
    settings: Settings = Depends(get_settings),
    breaker: CircuitBreaker = Depends(get_breaker),
) -> HealthResponse:
    """Report API health and dependency availability.

    Returns:
        A HealthResponse containing dependency status.
    """
    weather_api_available = await is_weather_api_available(client, settings)
    return HealthResponse(
        status="ok",
        dependencies=Dependencies(
            weather_api=ServiceStatus.available
            if weather_api_available
            else ServiceStatus.not_available,
            geocoder=geocoder_status(settings, breaker),
            redis=await is_redis_available(redis_client),
        ),
    )


@app.get("/metrics")
async def metrics():
    """Expose Prometheus metrics for scraping."""
    return Response(generate_latest(), media_type=CONTENT_TYPE_LATEST)


def run() -> None:
    """Serve the app with uvicorn on the configured host and port."""
    settings = Settings.from_env()
    uvicorn.run("weatherscope.main:app", host=settings.host, port=settings.port)
