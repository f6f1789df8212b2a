"""Turn raw geocoder results into a ranked, de-duplicated city list."""

from typing import Iterable, List, Optional

from weatherscope.geocoding.countries import normalize_country
from weatherscope.geocoding.scoring import DEFAULT_WEIGHTS, ScoringWeights, score_match
from weatherscope.models.city import CityCandidate, RankedCity

MAX_RESULTS = 10


def _first_present(components: dict, fields: Iterable[str]) -> Optional[str]:
    for field in fields:
        value = components.get(field)
        if value:
            return value
    return None


def build_candidate(
    result: dict, search_term: str, weights: ScoringWeights = DEFAULT_WEIGHTS
) -> Optional[CityCandidate]:
    """Extract and score one geocoder result.

    Args:
        result: One entry of the geocoder ``results`` array.
        search_term: Free text typed by the user.
        weights: Scoring constants.

    Returns:
        A scored candidate, or None when the result has no city-like name,
        no country, or no coordinates.
    """
    components = result.get("components") or {}
    geometry = result.get("geometry") or {}
    name = _first_present(components, weights.city_fields)
    country = normalize_country(components.get("country") or "")
    if not name or not country:
        return None
    if geometry.get("lat") is None or geometry.get("lng") is None:
        return None

    match_score = score_match(name, search_term, weights)
    score = match_score
    if components.get("capital") == "yes":
        score += weights.capital_bonus
    if components.get("state_capital") == "yes":
        score += weights.state_capital_bonus
    if result.get("annotations"):
        score += weights.annotation_bonus
    if components.get("_type") == "city":
        score += weights.city_type_bonus
    score += weights.major_cities.get(name.lower(), 0)
    score += weights.major_countries.get(country.lower(), 0)

    return CityCandidate(
        name=name,
        state=_first_present(components, weights.state_fields),
        country=country,
        latitude=geometry["lat"],
        longitude=geometry["lng"],
        score=score,
        match_score=match_score,
    )


def score_candidates(
    raw_results: Iterable[dict],
    search_term: str,
    weights: ScoringWeights = DEFAULT_WEIGHTS,
) -> List[CityCandidate]:
    """Score, filter and sort candidates, best first, before de-duplication."""
    candidates = []
    for result in raw_results:
        candidate = build_candidate(result, search_term, weights)
        if candidate is None:
            continue
        if candidate.match_score <= 0 or candidate.score < weights.min_score:
            continue
        candidates.append(candidate)
    return sorted(
        candidates,
        key=lambda c: (-c.score, c.match_score != weights.exact, len(c.name)),
    )


def rank_cities(
    raw_results: Iterable[dict],
    search_term: str,
    weights: ScoringWeights = DEFAULT_WEIGHTS,
    limit: int = MAX_RESULTS,
) -> List[RankedCity]:
    """Rank geocoder results for a search term.

    Args:
        raw_results: The geocoder ``results`` array.
        search_term: Free text typed by the user.
        weights: Scoring constants.
        limit: Maximum number of cities to return.

    Returns:
        At most ``limit`` cities, best first, unique by lower-cased
        city, state and country.
    """
    seen = set()
    ranked = []
    for candidate in score_candidates(raw_results, search_term, weights):
        city = candidate.to_ranked()
        key = city.dedup_key()
        if key in seen:
            continue
        seen.add(key)
        ranked.append(city)
        if len(ranked) == limit:
            break
    return ranked
