"""Match quality scoring for geocoder results."""

from typing import Dict, Tuple

from pydantic import BaseModel


class ScoringWeights(BaseModel):
    """Tunable constants for city match scoring and ranking.

    The match tiers are applied strictly in order; a candidate gets the value
    of the first tier it satisfies. Bonuses are added on top by the ranking
    pipeline.
    """

    exact: int = 100
    prefix: int = 95
    word_prefix: int = 90
    multi_word_prefix: int = 85
    substring: int = 70

    capital_bonus: int = 20
    state_capital_bonus: int = 10
    annotation_bonus: int = 5
    city_type_bonus: int = 5
    major_cities: Dict[str, int] = {}
    major_countries: Dict[str, int] = {}

    min_score: int = 1
    city_fields: Tuple[str, ...] = (
        "city",
        "town",
        "municipality",
        "village",
        "county",
    )
    state_fields: Tuple[str, ...] = ("state", "province", "region")


DEFAULT_WEIGHTS = ScoringWeights()


def score_match(
    candidate_name: str, search_term: str, weights: ScoringWeights = DEFAULT_WEIGHTS
) -> int:
    """Score how well a candidate name matches a search term.

    Args:
        candidate_name: Place name from the geocoder.
        search_term: Free text typed by the user.
        weights: Tier values to return.

    Returns:
        The value of the first satisfied tier (exact, prefix, word prefix,
        substring), or 0 when nothing matches.
    """
    candidate = candidate_name.lower()
    term = search_term.lower()
    if not term:
        return 0

    if candidate == term:
        return weights.exact
    if candidate.startswith(term):
        return weights.prefix

    term_words = term.split()
    candidate_words = candidate.split()
    if term_words and candidate_words and candidate_words[0].startswith(term_words[0]):
        if len(term_words) == 1:
            return weights.word_prefix
        if len(term_words) <= len(candidate_words) and all(
            word.startswith(prefix) for word, prefix in zip(candidate_words, term_words)
        ):
            return weights.multi_word_prefix

    if term in candidate:
        return weights.substring
    return 0
