"""
Tests for answer checking and score rounding
"""

import pytest

from upskill.assessments.assessment_grading import (
    check_answer,
    compute_score,
    grade_attempt,
    is_passed,
    round_half_up,
)


class TestCheckAnswer:

    @pytest.mark.parametrize("given,expected", [
        (1, 1),
        (2, 2.0),
        ("  Python ", "python"),
        ("PARIS", "Paris"),
        ("2", 2),
        (2.0, "2"),
    ])
    def test_matches(self, given, expected):
        assert check_answer(given, expected) is True

    @pytest.mark.parametrize("given,expected", [
        (0, 1),
        ("pyton", "python"),
        ("2.5", 2),
        (True, 1),
    ])
    def test_mismatches(self, given, expected):
        assert check_answer(given, expected) is False


class TestScore:

    def test_round_half_up(self):
        assert round_half_up(0.125) == pytest.approx(0.13)
        assert round_half_up(12.5, 0) == 13
        assert round_half_up(0.0) == 0

    def test_compute_score(self):
        assert compute_score(3, 4) == 75.0
        assert compute_score(2, 3) == pytest.approx(66.67)
        assert compute_score(1, 3) == pytest.approx(33.33)
        assert compute_score(0, 0) == 0.0

    def test_is_passed_inclusive(self):
        assert is_passed(70, 70) is True
        assert is_passed(69.99, 70) is False

    def test_grade_attempt_uses_unrounded_score(self):
        # 2/3 = 66.666...% rounds to 66.67 but does not reach 66.67
        score, passed = grade_attempt(2, 3, 66.67)
        assert score == pytest.approx(66.67)
        assert passed is False

        assert grade_attempt(3, 4, 70) == (75.0, True)
        assert grade_attempt(0, 0, 70) == (0.0, False)
