"""Environment-driven settings."""

import os
from typing import Optional

from dotenv import load_dotenv
from pydantic import BaseModel

PRODUCTION_ENV_PATH = "/etc/secrets/.env"


def load_environment() -> None:
    """Load the dotenv file for the current environment into ``os.environ``."""
    env_path = PRODUCTION_ENV_PATH if os.getenv("APP_ENV") == "production" else ".env"
    load_dotenv(env_path)


def _env_bool(name: str, default: bool) -> bool:
    raw = os.getenv(name)
    if raw is None:
        return default
    return raw.strip().lower() in ("1", "true", "yes", "on")


def _env_optional_int(name: str) -> Optional[int]:
    raw = os.getenv(name)
    return int(raw) if raw else None


class Settings(BaseModel):
    """Runtime configuration for the service."""

    app_env: str = "development"
    host: str = "0.0.0.0"
    port: int = 10000

    opencage_api_key: Optional[str] = None
    geocoder_url: str = "https://api.opencagedata.com/geocode/v1/json"
    geocoder_limit: int = 20
    geocoder_language: str = "en"
    geocoder_min_confidence: Optional[int] = None
    geocoder_annotations: bool = False

    forecast_url: str = "https://api.open-meteo.com/v1/forecast"
    archive_url: str = "https://archive-api.open-meteo.com/v1/era5"
    upstream_timeout_s: float = 10.0

    redis_host: str = "redis"
    redis_port: int = 6379
    redis_db: int = 0
    cache_ttl_s: int = 1800
    fallback_ttl_s: int = 86400
    result_ttl_s: int = 86400

    rate_limit_max: int = 100
    rate_limit_window_s: int = 900
    trusted_proxy_hops: int = 0

    breaker_failure_threshold: int = 5
    breaker_reset_s: float = 30.0

    timeline_batch_size: int = 5
    timeline_max_years: int = 30
    city_search_min_length: int = 1

    @classmethod
    def from_env(cls) -> "Settings":
        """Build settings from environment variables.

        Returns:
            Settings with every unset variable left at its default.
        """
        load_environment()
        defaults = cls()
        return cls(
            app_env=os.getenv("APP_ENV", defaults.app_env),
            host=os.getenv("HOST", defaults.host),
            port=int(os.getenv("PORT", defaults.port)),
            opencage_api_key=os.getenv("OPENCAGE_API_KEY"),
            geocoder_url=os.getenv("GEOCODER_URL", defaults.geocoder_url),
            geocoder_limit=int(os.getenv("GEOCODER_LIMIT", defaults.geocoder_limit)),
            geocoder_language=os.getenv("GEOCODER_LANGUAGE", defaults.geocoder_language),
            geocoder_min_confidence=_env_optional_int("GEOCODER_MIN_CONFIDENCE"),
            geocoder_annotations=_env_bool(
                "GEOCODER_ANNOTATIONS", defaults.geocoder_annotations
            ),
            forecast_url=os.getenv("FORECAST_URL", defaults.forecast_url),
            archive_url=os.getenv("ARCHIVE_URL", defaults.archive_url),
            upstream_timeout_s=float(
                os.getenv("UPSTREAM_TIMEOUT_S", defaults.upstream_timeout_s)
            ),
            redis_host=os.getenv("REDIS_HOST", defaults.redis_host),
            redis_port=int(os.getenv("REDIS_PORT", defaults.redis_port)),
            redis_db=int(os.getenv("REDIS_DB", defaults.redis_db)),
            cache_ttl_s=int(os.getenv("CACHE_TTL_S", defaults.cache_ttl_s)),
            fallback_ttl_s=int(os.getenv("FALLBACK_TTL_S", defaults.fallback_ttl_s)),
            result_ttl_s=int(os.getenv("RESULT_TTL_S", defaults.result_ttl_s)),
            rate_limit_max=int(os.getenv("RATE_LIMIT_MAX", defaults.rate_limit_max)),
            rate_limit_window_s=int(
                os.getenv("RATE_LIMIT_WINDOW_S", defaults.rate_limit_window_s)
            ),
            trusted_proxy_hops=int(
                os.getenv("TRUSTED_PROXY_HOPS", defaults.trusted_proxy_hops)
            ),
            breaker_failure_threshold=int(
                os.getenv("BREAKER_FAILURE_THRESHOLD", defaults.breaker_failure_threshold)
            ),
            breaker_reset_s=float(os.getenv("BREAKER_RESET_S", defaults.breaker_reset_s)),
            timeline_batch_size=int(
                os.getenv("TIMELINE_BATCH_SIZE", defaults.timeline_batch_size)
            ),
            timeline_max_years=int(
                os.getenv("TIMELINE_MAX_YEARS", defaults.timeline_max_years)
            ),
            city_search_min_length=int(
                os.getenv("CITY_SEARCH_MIN_LENGTH", defaults.city_search_min_length)
            ),
        )
