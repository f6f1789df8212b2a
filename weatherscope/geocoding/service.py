"""City search against the OpenCage geocoder, with caching and fallback."""

from typing import List

import httpx

from weatherscope.config import Settings
from weatherscope.errors import ExternalAPIError, ServiceUnavailableError
from weatherscope.geocoding.breaker import CircuitBreaker
from weatherscope.geocoding.ranking import rank_cities
from weatherscope.geocoding.scoring import DEFAULT_WEIGHTS, ScoringWeights
from weatherscope.logging_config import logger
from weatherscope.redis_cache.cache import TTLCache
from weatherscope.upstream import fetch_json

CITY_LOOKUP_ERROR = "Failed to fetch city data"


def cities_cache_key(search_term: str) -> str:
    return f"cities_{search_term.lower()}"


def cities_fallback_key(search_term: str) -> str:
    return f"cities_fallback_{search_term.lower()}"


def geocoder_params(search_term: str, settings: Settings) -> dict:
    """Build OpenCage query parameters for a search term."""
    params = {
        "q": search_term,
        "key": settings.opencage_api_key,
        "limit": settings.geocoder_limit,
        "language": settings.geocoder_language,
    }
    if not settings.geocoder_annotations:
        params["no_annotations"] = 1
    if settings.geocoder_min_confidence is not None:
        params["min_confidence"] = settings.geocoder_min_confidence
    return params


async def get_cities_from_api(
    search_term: str, client: httpx.AsyncClient, settings: Settings
) -> List[dict]:
    """Fetch raw geocoder results for a search term.

    Args:
        search_term: Free text typed by the user.
        client: Shared async HTTP client.
        settings: Geocoder URL, key and limits.

    Returns:
        The geocoder ``results`` array.

    Raises:
        ExternalAPIError: If the call fails or the payload has no results list.
    """
    logger.info("CACHE_CITIES_MISS", term=search_term)
    data = await fetch_json(
        client,
        url=settings.geocoder_url,
        params=geocoder_params(search_term, settings),
        timeout=settings.upstream_timeout_s,
        event_prefix="CITY_LOOKUP",
        log_context={"term": search_term},
        error=CITY_LOOKUP_ERROR,
    )
    results = data.get("results")
    if not isinstance(results, list):
        logger.error("CITY_LOOKUP_BAD_PAYLOAD", term=search_term)
        raise ExternalAPIError(CITY_LOOKUP_ERROR, "Geocoder returned no results list")
    return results


async def search_cities(
    search_term: str,
    client: httpx.AsyncClient,
    cache: TTLCache,
    settings: Settings,
    breaker: CircuitBreaker,
    weights: ScoringWeights = DEFAULT_WEIGHTS,
) -> List[dict]:
    """Return ranked cities for a search term from cache or the geocoder.

    Args:
        search_term: Trimmed free text typed by the user.
        client: Shared async HTTP client.
        cache: TTL cache for ranked lists.
        settings: Service configuration.
        breaker: Circuit breaker guarding the geocoder.
        weights: Scoring constants.

    Returns:
        Ranked cities as JSON ready dictionaries.

    Raises:
        ExternalAPIError: If the geocoder fails and no fallback is cached.
        ServiceUnavailableError: If the circuit is open and no fallback is
            cached.
    """
    cache_key = cities_cache_key(search_term)
    cached = await cache.get(cache_key)
    if cached is not None:
        logger.info("CACHED_CITIES_HIT", term=search_term)
        return cached

    if not breaker.allow_request():
        logger.warning("CITY_LOOKUP_CIRCUIT_OPEN", term=search_term)
        return await _fallback_or_raise(
            search_term,
            cache,
            ServiceUnavailableError("City search is temporarily unavailable"),
        )

    try:
        results = await get_cities_from_api(search_term, client, settings)
    except ExternalAPIError as exc:
        breaker.record_failure()
        return await _fallback_or_raise(search_term, cache, exc)
    breaker.record_success()

    cities = [city.model_dump() for city in rank_cities(results, search_term, weights)]
    await cache.set(cache_key, cities)
    await cache.set(
        cities_fallback_key(search_term), cities, ttl_s=settings.fallback_ttl_s
    )
    return cities


async def _fallback_or_raise(
    search_term: str, cache: TTLCache, error: Exception
) -> List[dict]:
    fallback = await cache.get(cities_fallback_key(search_term))
    if fallback is not None:
        logger.info("CITY_LOOKUP_FALLBACK_HIT", term=search_term)
        return fallback
    raise error
