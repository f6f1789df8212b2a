"""Daily weather lookup against Open-Meteo, with caching and shareable results."""

import datetime
import hashlib
import json
from typing import Optional, Tuple

import httpx

from weatherscope.config import Settings
from weatherscope.errors import ResultNotFoundError, WeatherNotFoundError
from weatherscope.horoscope.traits import RandomSource, generate_horoscope
from weatherscope.logging_config import logger
from weatherscope.models.weather import DailyWeather
from weatherscope.redis_cache.cache import TTLCache
from weatherscope.upstream import fetch_json

WEATHER_LOOKUP_ERROR = "Weather API error"
DAILY_FIELDS = "temperature_2m_max,temperature_2m_min,precipitation_sum,weathercode"
REQUIRED_DAILY_FIELDS = ("temperature_2m_max", "temperature_2m_min", "weathercode")
FORECAST = "forecast"
ARCHIVE = "archive"


def choose_source(
    day: datetime.date, settings: Settings, today: Optional[datetime.date] = None
) -> Tuple[str, str]:
    """Pick the forecast API for today onwards and the archive for the past.

    Returns:
        The source name and its URL.
    """
    today = today or datetime.date.today()
    if day >= today:
        return FORECAST, settings.forecast_url
    return ARCHIVE, settings.archive_url


def weather_cache_key(latitude: float, longitude: float, day: datetime.date) -> str:
    return f"weather_{latitude}_{longitude}_{day.isoformat()}"


def has_daily_data(payload: dict) -> bool:
    """True when the payload has temperatures and a weather code for its first day.

    Precipitation may be missing; it is read as zero.
    """
    daily = payload.get("daily")
    if not isinstance(daily, dict):
        return False
    for field in REQUIRED_DAILY_FIELDS:
        values = daily.get(field) or []
        if not values or values[0] is None:
            return False
    return True


async def get_weather_data_from_api(
    latitude: float,
    longitude: float,
    day: datetime.date,
    url: str,
    client: httpx.AsyncClient,
    settings: Settings,
) -> dict:
    """Fetch one day of weather for a coordinate.

    Raises:
        ExternalAPIError: If the weather API call fails.
        WeatherNotFoundError: If the payload holds no data for the day.
    """
    log_context = {"latitude": latitude, "longitude": longitude, "date": day.isoformat()}
    logger.info("CACHED_WEATHER_MISS", **log_context)
    data = await fetch_json(
        client,
        url=url,
        params={
            "latitude": latitude,
            "longitude": longitude,
            "daily": DAILY_FIELDS,
            "timezone": "auto",
            "start_date": day.isoformat(),
            "end_date": day.isoformat(),
        },
        timeout=settings.upstream_timeout_s,
        event_prefix="WEATHER",
        log_context=log_context,
        error=WEATHER_LOOKUP_ERROR,
    )
    if not has_daily_data(data):
        logger.info("WEATHER_NO_DATA", **log_context)
        raise WeatherNotFoundError(
            "No weather data available for this date and location"
        )
    return data


async def get_daily_weather(
    latitude: float,
    longitude: float,
    day: datetime.date,
    client: httpx.AsyncClient,
    cache: TTLCache,
    settings: Settings,
    today: Optional[datetime.date] = None,
) -> Tuple[dict, str]:
    """Return the upstream daily payload for a coordinate and date.

    Args:
        latitude: Latitude in degrees.
        longitude: Longitude in degrees.
        day: Requested date.
        client: Shared async HTTP client.
        cache: TTL cache for upstream payloads.
        settings: Service configuration.
        today: Reference date for choosing forecast or archive.

    Returns:
        The payload, cached or fresh, and the source it came from.
    """
    source, url = choose_source(day, settings, today)
    cache_key = weather_cache_key(latitude, longitude, day)
    if (payload := await cache.get(cache_key)) is not None:
        logger.info("CACHED_WEATHER_HIT", key=cache_key)
        return payload, source
    payload = await get_weather_data_from_api(
        latitude, longitude, day, url, client, settings
    )
    await cache.set(cache_key, payload)
    return payload, source


def result_id(latitude: float, longitude: float, day: datetime.date, daily: dict) -> str:
    """Content hash identifying a shareable weather result."""
    canonical = json.dumps(
        {
            "date": day.isoformat(),
            "latitude": latitude,
            "longitude": longitude,
            "daily": daily,
        },
        sort_keys=True,
        separators=(",", ":"),
    )
    return hashlib.sha256(canonical.encode()).hexdigest()[:16]


async def get_weather_result(
    latitude: float,
    longitude: float,
    day: datetime.date,
    client: httpx.AsyncClient,
    cache: TTLCache,
    settings: Settings,
    rng: RandomSource,
    include_horoscope: bool = True,
    today: Optional[datetime.date] = None,
) -> dict:
    """Build the /weather response and store it as a shareable result.

    Returns:
        The upstream payload plus ``meta`` and, when requested, a freshly
        generated ``horoscope``.
    """
    payload, source = await get_daily_weather(
        latitude, longitude, day, client, cache, settings, today
    )
    share_id = result_id(latitude, longitude, day, payload["daily"])
    response = {
        **payload,
        "meta": {
            "latitude": latitude,
            "longitude": longitude,
            "date": day.isoformat(),
            "source": source,
            "result_id": share_id,
        },
    }
    if include_horoscope:
        weather = DailyWeather.from_api_response(payload)
        response["horoscope"] = generate_horoscope(
            weather.weather_code,
            weather.max_temp,
            weather.min_temp,
            weather.precipitation,
            rng,
        ).model_dump()
    await cache.set(f"result:{share_id}", response, ttl_s=settings.result_ttl_s)
    return response


async def get_shared_result(share_id: str, cache: TTLCache) -> dict:
    """Return a previously stored weather result.

    Raises:
        ResultNotFoundError: If the id is unknown or expired.
    """
    if (result := await cache.get(f"result:{share_id}")) is None:
        raise ResultNotFoundError(f"No result found for id {share_id}")
    return result
