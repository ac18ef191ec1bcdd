"""
Tests for institution name normalization and near-duplicate detection
"""

from upskill.institutions.institution_similarity import (
    find_near_duplicate,
    is_near_duplicate,
    levenshtein_distance,
    normalize_name,
)


def test_normalize_name():
    assert normalize_name("  Universidad   Politécnica, de Madrid ") == "universidad politecnica de madrid"
    assert normalize_name("St. John's") == "st john s"
    assert normalize_name("ÉCOLE_Normale") == "ecole normale"
    assert normalize_name("...") == ""


def test_levenshtein_distance():
    assert levenshtein_distance("kitten", "sitting") == 3
    assert levenshtein_distance("", "abc") == 3
    assert levenshtein_distance("same", "same") == 0


def test_near_duplicate_thresholds():
    assert is_near_duplicate("universidad nacional", "universidad nacionall")
    assert is_near_duplicate("stanford university", "stamford universty")
    # two edits on a three-letter name is far above 20%
    assert not is_near_duplicate("mit", "mti")
    assert not is_near_duplicate("harvard university", "stanford university")


def test_find_near_duplicate_returns_display_name():
    existing = [
        ("universidad de chile", "Universidad de Chile"),
        ("universidad de lima", "Universidad de Lima"),
    ]
    assert find_near_duplicate("universidad de chle", existing) == "Universidad de Chile"
    assert find_near_duplicate("pontificia universidad", existing) is None
    # identical names belong to the exact check
    assert find_near_duplicate("universidad de lima", existing) is None
