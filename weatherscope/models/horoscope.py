"""Weather horoscope model."""

from typing import List

from pydantic import BaseModel


class Horoscope(BaseModel):
    """Cosmetic personality reading generated from a day's weather."""

    summary: str
    traits: List[str]
