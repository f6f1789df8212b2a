"""Weather models and code mapping helpers."""

import datetime
from typing import List, Optional

from pydantic import BaseModel

WEATHER_CODE_MAP = {
    0: "Clear sky",
    1: "Mainly clear",
    2: "Partly cloudy",
    3: "Overcast",
    45: "Fog",
    48: "Depositing rime fog",
    51: "Light drizzle",
    53: "Moderate drizzle",
    55: "Dense drizzle",
    56: "Light freezing drizzle",
    57: "Dense freezing drizzle",
    61: "Slight rain",
    63: "Moderate rain",
    65: "Heavy rain",
    66: "Light freezing rain",
    67: "Heavy freezing rain",
    71: "Slight snowfall",
    73: "Moderate snowfall",
    75: "Heavy snowfall",
    77: "Snow grains",
    80: "Slight rain showers",
    81: "Moderate rain showers",
    82: "Violent rain showers",
    85: "Slight snow showers",
    86: "Heavy snow showers",
    95: "Thunderstorm (no hail)",
    96: "Thunderstorm with slight hail",
    99: "Thunderstorm with heavy hail",
}


class DailyWeather(BaseModel):
    """A single day taken from the upstream daily series."""

    date: datetime.date
    max_temp: float
    min_temp: float
    precipitation: float
    weather_code: int
    weather_description: str

    @classmethod
    def from_api_response(cls, api_data: dict, index: int = 0) -> "DailyWeather":
        """Create a DailyWeather model from the external API payload.

        Args:
            api_data: API payload containing a ``daily`` series.
            index: Position of the day within the series.

        Returns:
            A populated DailyWeather model. Missing precipitation counts as 0.
        """
        daily = api_data["daily"]
        code = int(daily["weathercode"][index])
        precipitation_series = daily.get("precipitation_sum") or []
        precipitation = (
            precipitation_series[index] if index < len(precipitation_series) else None
        )
        return cls(
            date=datetime.date.fromisoformat(daily["time"][index]),
            max_temp=daily["temperature_2m_max"][index],
            min_temp=daily["temperature_2m_min"][index],
            precipitation=precipitation or 0.0,
            weather_code=code,
            weather_description=WEATHER_CODE_MAP.get(code, "Unknown"),
        )


class TimelineEntry(BaseModel):
    year: int
    weather: DailyWeather


class TimelineAnalysis(BaseModel):
    """Summary statistics over every year that returned data."""

    years_with_data: int
    average_max_temp: float
    average_min_temp: float
    average_precipitation: float
    hottest_year: int
    coldest_year: int
    rainy_years: int
    most_common_condition: str
    warming_trend_per_decade: Optional[float] = None


class TimelinePrediction(BaseModel):
    """Naive expectation for the date derived from its history."""

    expected_max_temp: float
    expected_min_temp: float
    precipitation_chance: float
    likely_condition: str
    confidence: str


class TimelineResponse(BaseModel):
    timeline: List[TimelineEntry]
    analysis: TimelineAnalysis
    prediction: TimelinePrediction
