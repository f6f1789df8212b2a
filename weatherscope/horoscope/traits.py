"""Weather horoscope: personality lines derived from a day's weather."""

import random
from typing import Any, List, Optional, Protocol, Sequence

from weatherscope.models.horoscope import Horoscope


class RandomSource(Protocol):
    def choice(self, seq: Sequence[Any]) -> Any: ...


WEATHER_CATEGORIES = {
    "clear": {
        "title": "Clear sky",
        "codes": [0, 1],
        "traits": [
            "You see things plainly and say them just as plainly.",
            "Your optimism lights up every room you walk into.",
            "People trust you because you have nothing to hide.",
        ],
    },
    "partly_cloudy": {
        "title": "Partly cloudy",
        "codes": [2],
        "traits": [
            "You balance sunny confidence with a touch of mystery.",
            "You adapt easily and rarely commit to a single mood.",
            "Friends value you for knowing when to shine and when to step back.",
        ],
    },
    "overcast": {
        "title": "Overcast",
        "codes": [3],
        "traits": [
            "You are thoughtful and keep your brightest ideas for the right moment.",
            "Calm and steady, you are the shelter others look for.",
            "Your depth is easy to miss and impossible to forget.",
        ],
    },
    "fog": {
        "title": "Fog",
        "codes": [45, 48],
        "traits": [
            "You are a dreamer who prefers intuition over maps.",
            "Mysterious by nature, you reveal yourself slowly.",
            "You notice the details everyone else walks past.",
        ],
    },
    "drizzle": {
        "title": "Drizzle",
        "codes": [51, 53, 55, 56, 57],
        "traits": [
            "You make progress in small, patient steps.",
            "Gentle persistence is your quiet superpower.",
            "You nurture the people around you without asking for credit.",
        ],
    },
    "rain": {
        "title": "Rain",
        "codes": [61, 63, 65, 66, 67, 80, 81, 82],
        "traits": [
            "You feel deeply and help others grow.",
            "Your emotions run strong and wash the slate clean.",
            "You are at your best when life gets messy.",
        ],
    },
    "snow": {
        "title": "Snow",
        "codes": [71, 73, 75, 77, 85, 86],
        "traits": [
            "You are one of a kind, like every snowflake.",
            "Serene on the outside, you hide a playful streak.",
            "You bring a hush of calm wherever you go.",
        ],
    },
    "thunderstorm": {
        "title": "Thunderstorm",
        "codes": [95, 96, 99],
        "traits": [
            "Your energy is electric and impossible to ignore.",
            "You are passionate, bold and sometimes dramatic.",
            "When you make up your mind, the whole room hears about it.",
        ],
    },
}

# (exclusive lower bound in Celsius, headline, traits); checked top down.
TEMPERATURE_BANDS = [
    (
        30,
        "fiery",
        [
            "Your fiery spirit burns brighter than the summer sun.",
            "You thrive under pressure and love being the center of attention.",
        ],
    ),
    (
        20,
        "warm",
        [
            "Your warmth makes strangers feel like old friends.",
            "You are easygoing, generous and quick to laugh.",
        ],
    ),
    (
        10,
        "mild",
        [
            "You keep a cool head and a balanced heart.",
            "Moderation comes naturally to you.",
        ],
    ),
    (
        None,
        "cool",
        [
            "You are cool, collected and fiercely independent.",
            "Others need time to warm up to you, and it is always worth it.",
        ],
    ),
]

# (exclusive lower bound in millimetres, line); first match only.
PRECIPITATION_LINES = [
    (30, "Expect an emotional downpour: let it flow and you will feel renewed."),
    (15, "A steady rain of new ideas is heading your way."),
    (0, "A light sprinkle of luck follows you today."),
]


def find_category(weather_code: int) -> dict:
    """Return the category listing the code, else the one with the closest code."""
    for category in WEATHER_CATEGORIES.values():
        if weather_code in category["codes"]:
            return category
    return min(
        WEATHER_CATEGORIES.values(),
        key=lambda c: min(abs(code - weather_code) for code in c["codes"]),
    )


def temperature_band(max_temp: float, min_temp: float) -> tuple:
    mean = (max_temp + min_temp) / 2
    for threshold, headline, lines in TEMPERATURE_BANDS:
        if threshold is None or mean > threshold:
            break
    return headline, lines


def precipitation_line(precipitation: float) -> Optional[str]:
    for threshold, line in PRECIPITATION_LINES:
        if precipitation > threshold:
            return line
    return None


def generate_horoscope(
    weather_code: int,
    max_temp: float,
    min_temp: float,
    precipitation: float,
    rng: Optional[RandomSource] = None,
) -> Horoscope:
    """Generate a horoscope for a day's weather.

    Args:
        weather_code: WMO weather code for the day.
        max_temp: Daily maximum temperature in Celsius.
        min_temp: Daily minimum temperature in Celsius.
        precipitation: Daily precipitation sum in millimetres.
        rng: Source of random choices; an unseeded ``random.Random`` when
            omitted, so repeated calls may differ.

    Returns:
        A summary plus one line from the weather category, one from the
        temperature band, and an optional precipitation line.
    """
    rng = rng or random.Random()
    category = find_category(weather_code)
    headline, band_lines = temperature_band(max_temp, min_temp)

    traits: List[str] = [rng.choice(category["traits"]), rng.choice(band_lines)]
    extra = precipitation_line(precipitation or 0)
    if extra:
        traits.append(extra)

    return Horoscope(
        summary=f"{category['title']} soul with a {headline} temperament",
        traits=traits,
    )
