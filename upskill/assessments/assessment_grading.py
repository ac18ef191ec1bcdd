import math
from typing import Union

Answer = Union[int, float, str]


def _is_number(value) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)


def _as_text(value) -> str:
    # 2.0 and 2 read the same to a student
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    return str(value)


def check_answer(given: Answer, expected: Answer) -> bool:
    """
    Type-aware comparison
    numbers numerically, strings case-insensitively after trimming,
    anything mixed by its string form
    """
    if _is_number(given) and _is_number(expected):
        return given == expected
    if isinstance(given, str) and isinstance(expected, str):
        return given.strip().lower() == expected.strip().lower()
    return _as_text(given) == _as_text(expected)


def round_half_up(value: float, digits: int = 2) -> float:
    factor = 10 ** digits
    return math.floor(value * factor + 0.5) / factor


def compute_score(correct: int, total: int) -> float:
    """Percentage of correct answers, two decimals; empty assessments score 0"""
    if total <= 0:
        return 0.0
    return round_half_up(correct / total * 100, 2)


def is_passed(score: float, passing_score: float) -> bool:
    return score >= passing_score


def grade_attempt(correct: int, total: int, passing_score: float) -> tuple:
    """(score, passed); the pass mark is checked against the unrounded score"""
    raw = correct / total * 100 if total > 0 else 0.0
    return compute_score(correct, total), is_passed(raw, passing_score)
