"""Country alias normalization."""

COUNTRY_ALIASES = {
    "united states of america": "united states",
    "usa": "united states",
    "u.s.a.": "united states",
    "u.s.": "united states",
    "us": "united states",
    "america": "united states",
    "uk": "united kingdom",
    "u.k.": "united kingdom",
    "great britain": "united kingdom",
    "britain": "united kingdom",
    "england": "united kingdom",
    "uae": "united arab emirates",
}


def normalize_country(country: str) -> str:
    """Map a country alias to its canonical name.

    Unmapped input, including the empty string, is returned unchanged.
    """
    return COUNTRY_ALIASES.get(country.lower(), country)
