import datetime

import httpx
import pytest

from weatherscope.errors import ExternalAPIError, ResultNotFoundError, WeatherNotFoundError
from weatherscope.models.weather import DailyWeather
from weatherscope.weather_service.weather import (
    ARCHIVE,
    FORECAST,
    choose_source,
    get_daily_weather,
    get_shared_result,
    get_weather_result,
    has_daily_data,
    result_id,
)

FORECAST_URL = "https://api.open-meteo.com/v1/forecast"
ARCHIVE_URL = "https://archive-api.open-meteo.com/v1/era5"
TODAY = datetime.date(2024, 6, 15)


class FirstChoice:
    def choice(self, seq):
        return seq[0]


def test_choose_source(settings):
    assert choose_source(datetime.date(2024, 6, 20), settings, TODAY) == (
        FORECAST,
        FORECAST_URL,
    )
    assert choose_source(TODAY, settings, TODAY)[0] == FORECAST
    assert choose_source(datetime.date(2001, 1, 1), settings, TODAY) == (
        ARCHIVE,
        ARCHIVE_URL,
    )


def test_daily_weather_from_api_response(make_daily):
    weather = DailyWeather.from_api_response(make_daily(code=61, precipitation=None))
    assert weather.date == datetime.date(2020, 7, 1)
    assert weather.weather_description == "Slight rain"
    assert weather.precipitation == 0.0


@pytest.mark.asyncio
async def test_future_date_uses_forecast(upstream, cache, settings, make_daily):
    upstream.route(FORECAST_URL, lambda request: httpx.Response(200, json=make_daily()))
    payload, source = await get_daily_weather(
        37.7749, -122.4194, datetime.date(2024, 6, 18), upstream.client(), cache, settings, TODAY
    )
    assert source == FORECAST
    request = upstream.calls_to(FORECAST_URL)[0]
    assert request.url.params["start_date"] == "2024-06-18"
    assert request.url.params["end_date"] == "2024-06-18"
    assert request.url.params["timezone"] == "auto"
    assert "weathercode" in request.url.params["daily"]
    assert payload["daily"]["temperature_2m_max"] == [25.0]


@pytest.mark.asyncio
async def test_past_date_uses_archive(upstream, cache, settings, make_daily):
    upstream.route(ARCHIVE_URL, lambda request: httpx.Response(200, json=make_daily()))
    _, source = await get_daily_weather(
        37.7749, -122.4194, datetime.date(2010, 3, 1), upstream.client(), cache, settings, TODAY
    )
    assert source == ARCHIVE
    assert len(upstream.calls_to(ARCHIVE_URL)) == 1
    assert upstream.calls_to(FORECAST_URL) == []


@pytest.mark.asyncio
async def test_repeat_lookup_is_cached(upstream, cache, settings, make_daily):
    upstream.route(ARCHIVE_URL, lambda request: httpx.Response(200, json=make_daily()))
    client = upstream.client()
    day = datetime.date(2010, 3, 1)
    first = await get_daily_weather(1.0, 2.0, day, client, cache, settings, TODAY)
    second = await get_daily_weather(1.0, 2.0, day, client, cache, settings, TODAY)
    assert first == second
    assert len(upstream.requests) == 1


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "payload",
    [
        {"daily": {"temperature_2m_max": []}},
        {"daily": {"temperature_2m_max": [None]}},
        {
            "daily": {
                "temperature_2m_max": [25.0],
                "temperature_2m_min": [15.0],
                "weathercode": [None],
            }
        },
        {
            "daily": {
                "temperature_2m_max": [25.0],
                "temperature_2m_min": [],
                "weathercode": [3],
            }
        },
        {"latitude": 1.0},
    ],
)
async def test_missing_data_is_not_found(upstream, cache, settings, payload):
    upstream.route(ARCHIVE_URL, lambda request: httpx.Response(200, json=payload))
    with pytest.raises(WeatherNotFoundError):
        await get_daily_weather(
            1.0, 2.0, datetime.date(2010, 3, 1), upstream.client(), cache, settings, TODAY
        )


@pytest.mark.asyncio
async def test_upstream_reason_is_passed_through(upstream, cache, settings):
    upstream.route(
        ARCHIVE_URL,
        lambda request: httpx.Response(
            400, json={"error": True, "reason": "Latitude must be in range"}
        ),
    )
    with pytest.raises(ExternalAPIError) as exc_info:
        await get_daily_weather(
            1.0, 2.0, datetime.date(2010, 3, 1), upstream.client(), cache, settings, TODAY
        )
    assert str(exc_info.value) == "Latitude must be in range"


@pytest.mark.asyncio
async def test_timeout_is_an_external_error(upstream, cache, settings):
    def time_out(request):
        raise httpx.ReadTimeout("timed out", request=request)

    upstream.route(ARCHIVE_URL, time_out)
    with pytest.raises(ExternalAPIError) as exc_info:
        await get_daily_weather(
            1.0, 2.0, datetime.date(2010, 3, 1), upstream.client(), cache, settings, TODAY
        )
    assert str(exc_info.value) == "timed out"


@pytest.mark.asyncio
async def test_weather_result_is_shareable(upstream, cache, settings, make_daily):
    payload = make_daily(max_temp=38, min_temp=30, code=0)
    upstream.route(ARCHIVE_URL, lambda request: httpx.Response(200, json=payload))
    day = datetime.date(2020, 7, 1)

    result = await get_weather_result(
        37.77, -122.42, day, upstream.client(), cache, settings, FirstChoice(), today=TODAY
    )

    share_id = result_id(37.77, -122.42, day, payload["daily"])
    assert result["meta"] == {
        "latitude": 37.77,
        "longitude": -122.42,
        "date": "2020-07-01",
        "source": ARCHIVE,
        "result_id": share_id,
    }
    assert result["horoscope"]["summary"].startswith("Clear sky")
    assert result["daily"] == payload["daily"]
    assert await get_shared_result(share_id, cache) == result


@pytest.mark.asyncio
async def test_weather_result_without_horoscope(upstream, cache, settings, make_daily):
    upstream.route(ARCHIVE_URL, lambda request: httpx.Response(200, json=make_daily()))
    result = await get_weather_result(
        1.0,
        2.0,
        datetime.date(2020, 7, 1),
        upstream.client(),
        cache,
        settings,
        FirstChoice(),
        include_horoscope=False,
        today=TODAY,
    )
    assert "horoscope" not in result


def test_result_id_depends_on_content(make_daily):
    day = datetime.date(2020, 7, 1)
    daily = make_daily()["daily"]
    assert result_id(1.0, 2.0, day, daily) == result_id(1.0, 2.0, day, dict(daily))
    assert result_id(1.0, 2.0, day, daily) != result_id(1.0, 2.5, day, daily)
    assert len(result_id(1.0, 2.0, day, daily)) == 16


@pytest.mark.asyncio
async def test_unknown_result(cache):
    with pytest.raises(ResultNotFoundError):
        await get_shared_result("deadbeefdeadbeef", cache)


@pytest.mark.asyncio
async def test_incomplete_day_is_not_cached(upstream, cache, settings, make_daily):
    payload = make_daily()
    payload["daily"]["weathercode"] = [None]
    upstream.route(ARCHIVE_URL, lambda request: httpx.Response(200, json=payload))
    client = upstream.client()
    day = datetime.date(2010, 3, 1)
    for _ in range(2):
        with pytest.raises(WeatherNotFoundError):
            await get_daily_weather(1.0, 2.0, day, client, cache, settings, TODAY)
    assert len(upstream.requests) == 2


def test_missing_precipitation_still_counts_as_data(make_daily):
    payload = make_daily()
    del payload["daily"]["precipitation_sum"]
    assert has_daily_data(payload)
