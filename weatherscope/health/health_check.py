"""Health checks for Redis and the external weather API."""

import httpx
from redis.asyncio import Redis
from redis.exceptions import RedisError

from weatherscope.config import Settings
from weatherscope.geocoding.breaker import OPEN, CircuitBreaker
from weatherscope.logging_config import logger
from weatherscope.models.health import ServiceStatus


async def is_redis_available(client: Redis) -> ServiceStatus:
    """Check Redis connectivity.

    Returns:
        ServiceStatus.available when Redis responds, else not_available.
    """
    try:
        await client.ping()
        return ServiceStatus.available
    except RedisError as exc:
        logger.error("REDIS_UNAVAILABLE", error=str(exc))
        return ServiceStatus.not_available


async def is_weather_api_available(client: httpx.AsyncClient, settings: Settings) -> bool:
    """Check the external weather API for availability.

    Returns:
        True if the API responds with daily weather data.
    """
    try:
        response = await client.get(
            settings.forecast_url,
            params={
                "latitude": 51.5,
                "longitude": 0.12,
                "daily": "temperature_2m_max",
                "forecast_days": 1,
            },
            timeout=5,
        )
        return response.status_code == 200 and "daily" in response.json()
    except (httpx.HTTPError, ValueError) as exc:
        logger.error("WEATHER_API_UNAVAILABLE", error=str(exc))
        return False


def geocoder_status(settings: Settings, breaker: CircuitBreaker) -> ServiceStatus:
    """Report the geocoder as usable when it has a key and its circuit is not open."""
    if settings.opencage_api_key and breaker.state != OPEN:
        return ServiceStatus.available
    return ServiceStatus.not_available
