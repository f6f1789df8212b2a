"""City models for geocoding results."""

from typing import Optional

from pydantic import BaseModel


class RankedCity(BaseModel):
    """City information returned by the /cities endpoint."""

    city: str
    state: Optional[str] = None
    country: str
    latitude: float
    longitude: float

    def dedup_key(self) -> tuple:
        return (self.city.lower(), (self.state or "").lower(), self.country.lower())


class CityCandidate(BaseModel):
    """One scored geocoder result before ranking."""

    name: str
    state: Optional[str] = None
    country: str
    latitude: float
    longitude: float
    score: int
    match_score: int

    def to_ranked(self) -> RankedCity:
        return RankedCity(
            city=self.name,
            state=self.state,
            country=self.country,
            latitude=self.latitude,
            longitude=self.longitude,
        )
