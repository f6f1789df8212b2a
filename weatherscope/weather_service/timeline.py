"""Same-day weather across many years, with a summary and a naive prediction."""

import asyncio
import datetime
from collections import Counter
from statistics import mean
from typing import List, Optional

import httpx

from weatherscope.config import Settings
from weatherscope.errors import WeatherNotFoundError
from weatherscope.logging_config import logger
from weatherscope.models.weather import (
    WEATHER_CODE_MAP,
    DailyWeather,
    TimelineAnalysis,
    TimelineEntry,
    TimelinePrediction,
    TimelineResponse,
)
from weatherscope.redis_cache.cache import TTLCache
from weatherscope.weather_service.weather import get_daily_weather


def timeline_dates(month: int, day: int, start_year: int, end_year: int) -> List[datetime.date]:
    """Every existing ``month/day`` date between the years, inclusive."""
    dates = []
    for year in range(start_year, end_year + 1):
        try:
            dates.append(datetime.date(year, month, day))
        except ValueError:
            continue
    return dates


async def fetch_timeline(
    latitude: float,
    longitude: float,
    dates: List[datetime.date],
    client: httpx.AsyncClient,
    cache: TTLCache,
    settings: Settings,
    today: Optional[datetime.date] = None,
) -> List[TimelineEntry]:
    """Look up each date in parallel batches, skipping dates that fail."""
    entries = []
    batch_size = max(settings.timeline_batch_size, 1)
    for start in range(0, len(dates), batch_size):
        batch = dates[start:start + batch_size]
        results = await asyncio.gather(
            *(
                get_daily_weather(latitude, longitude, day, client, cache, settings, today)
                for day in batch
            ),
            return_exceptions=True,
        )
        for day, result in zip(batch, results):
            if isinstance(result, Exception):
                logger.warning(
                    "TIMELINE_DATE_FAILED", date=day.isoformat(), error=str(result)
                )
                continue
            payload, _ = result
            try:
                weather = DailyWeather.from_api_response(payload)
            except (KeyError, IndexError, TypeError, ValueError) as exc:
                logger.warning(
                    "TIMELINE_DATE_BAD_PAYLOAD", date=day.isoformat(), error=str(exc)
                )
                continue
            entries.append(TimelineEntry(year=day.year, weather=weather))
    return entries


def warming_trend_per_decade(entries: List[TimelineEntry]) -> Optional[float]:
    """Least-squares slope of maximum temperature, scaled to degrees per decade."""
    if len(entries) < 2:
        return None
    years = [entry.year for entry in entries]
    temps = [entry.weather.max_temp for entry in entries]
    year_mean = mean(years)
    temp_mean = mean(temps)
    denominator = sum((year - year_mean) ** 2 for year in years)
    if denominator == 0:
        return None
    slope = (
        sum((year - year_mean) * (temp - temp_mean) for year, temp in zip(years, temps))
        / denominator
    )
    return round(slope * 10, 2)


def analyze_timeline(entries: List[TimelineEntry]) -> TimelineAnalysis:
    days = [entry.weather for entry in entries]
    hottest = max(entries, key=lambda entry: entry.weather.max_temp)
    coldest = min(entries, key=lambda entry: entry.weather.min_temp)
    common_code = Counter(day.weather_code for day in days).most_common(1)[0][0]
    return TimelineAnalysis(
        years_with_data=len(entries),
        average_max_temp=round(mean(day.max_temp for day in days), 1),
        average_min_temp=round(mean(day.min_temp for day in days), 1),
        average_precipitation=round(mean(day.precipitation for day in days), 1),
        hottest_year=hottest.year,
        coldest_year=coldest.year,
        rainy_years=sum(1 for day in days if day.precipitation > 0),
        most_common_condition=WEATHER_CODE_MAP.get(common_code, "Unknown"),
        warming_trend_per_decade=warming_trend_per_decade(entries),
    )


def predict(analysis: TimelineAnalysis) -> TimelinePrediction:
    years = analysis.years_with_data
    if years < 5:
        confidence = "low"
    elif years < 15:
        confidence = "medium"
    else:
        confidence = "high"
    return TimelinePrediction(
        expected_max_temp=analysis.average_max_temp,
        expected_min_temp=analysis.average_min_temp,
        precipitation_chance=round(analysis.rainy_years / years * 100, 1),
        likely_condition=analysis.most_common_condition,
        confidence=confidence,
    )


async def build_timeline(
    latitude: float,
    longitude: float,
    month: int,
    day: int,
    start_year: int,
    end_year: int,
    client: httpx.AsyncClient,
    cache: TTLCache,
    settings: Settings,
    today: Optional[datetime.date] = None,
) -> TimelineResponse:
    """Build the weather history of one calendar day over a range of years.

    Args:
        latitude: Latitude in degrees.
        longitude: Longitude in degrees.
        month: Calendar month, 1-12.
        day: Day of the month.
        start_year: First year, inclusive.
        end_year: Last year, inclusive.
        client: Shared async HTTP client.
        cache: TTL cache for upstream payloads.
        settings: Batch size and upstream configuration.
        today: Reference date for choosing forecast or archive.

    Returns:
        The per-year timeline, its analysis and a prediction.

    Raises:
        WeatherNotFoundError: If no year returned data.
    """
    dates = timeline_dates(month, day, start_year, end_year)
    entries = await fetch_timeline(
        latitude, longitude, dates, client, cache, settings, today
    )
    logger.info(
        "TIMELINE_BUILT", requested=len(dates), returned=len(entries), month=month, day=day
    )
    if not entries:
        raise WeatherNotFoundError(
            "No weather data available for this date and location"
        )
    analysis = analyze_timeline(entries)
    return TimelineResponse(
        timeline=entries, analysis=analysis, prediction=predict(analysis)
    )
