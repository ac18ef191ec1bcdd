"""
Near-duplicate detection for institution names
Normalization + Levenshtein, linear scan over existing names
"""

import re
import unicodedata
from typing import Iterable, Optional, Tuple

MAX_TYPO_DISTANCE = 2
MAX_TYPO_RATIO = 0.2

_PUNCTUATION = re.compile(r"[^\w\s]|_", re.UNICODE)
_WHITESPACE = re.compile(r"\s+")


def normalize_name(name: str) -> str:
    """Lowercase, strip diacritics and punctuation, collapse whitespace"""
    decomposed = unicodedata.normalize("NFKD", name.lower())
    without_marks = "".join(c for c in decomposed if not unicodedata.combining(c))
    spaced = _PUNCTUATION.sub(" ", without_marks)
    return _WHITESPACE.sub(" ", spaced).strip()


def levenshtein_distance(s1: str, s2: str) -> int:
    """Calculate Levenshtein (edit) distance"""
    if len(s1) < len(s2):
        return levenshtein_distance(s2, s1)

    if len(s2) == 0:
        return len(s1)

    previous_row = list(range(len(s2) + 1))

    for i, c1 in enumerate(s1):
        current_row = [i + 1]

        for j, c2 in enumerate(s2):
            insertions = previous_row[j + 1] + 1
            deletions = current_row[j] + 1
            substitutions = previous_row[j] + (c1 != c2)

            current_row.append(min(insertions, deletions, substitutions))

        previous_row = current_row

    return previous_row[-1]


def is_near_duplicate(a: str, b: str) -> bool:
    """
    Typo heuristic on already normalized names: at most two edits AND at
    most 20% of the longer name. Identical names are handled by the exact
    check, not here.
    """
    longest = max(len(a), len(b))
    if longest == 0:
        return False
    distance = levenshtein_distance(a, b)
    return distance <= MAX_TYPO_DISTANCE and distance <= longest * MAX_TYPO_RATIO


def find_near_duplicate(candidate: str, existing: Iterable[Tuple[str, str]]) -> Optional[str]:
    """
    Return the display name of the first existing institution whose
    normalized name is a near match for ``candidate``.
    ``existing`` yields (normalized_name, display_name) pairs.
    """
    for normalized, display in existing:
        if normalized != candidate and is_near_duplicate(candidate, normalized):
            return display
    return None
