import pytest

from weatherscope.geocoding.scoring import ScoringWeights, score_match


@pytest.mark.parametrize("name", ["Paris", "San Francisco", "a", "São Paulo"])
def test_exact_match_scores_100(name):
    assert score_match(name, name) == 100
    assert score_match(name.upper(), name.lower()) == 100


def test_prefix_match():
    assert score_match("Cupertino", "cup") == 95


def test_multi_word_prefix_match():
    assert score_match("San Francisco", "sa fran") == 85


def test_multi_word_term_must_prefix_every_word():
    assert score_match("San Francisco", "sa jose") == 0


def test_multi_word_term_longer_than_candidate():
    assert score_match("San", "sa fran") == 0


def test_single_word_prefix_after_whitespace():
    # The leading space defeats the plain prefix check but not the word check.
    assert score_match("Springfield", " spring") == 90


def test_substring_match():
    assert score_match("Port Louis", "louis") == 70


def test_no_match():
    assert score_match("Berlin", "paris") == 0


def test_empty_term_scores_zero():
    assert score_match("Berlin", "") == 0


def test_tiers_are_strictly_ordered():
    scores = [
        score_match("Paris", "paris"),
        score_match("Parisville", "paris"),
        score_match("San Francisco", "sa fran"),
        score_match("Little Paris", "paris"),
        score_match("Rome", "paris"),
    ]
    assert scores == sorted(scores, reverse=True)
    assert len(set(scores)) == len(scores)


def test_custom_weights():
    weights = ScoringWeights(prefix=90)
    assert score_match("Cupertino", "cup", weights) == 90
