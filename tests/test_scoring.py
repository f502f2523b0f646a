"""Tests for score and grade computation."""

from __future__ import annotations

import pytest

from hostaudit.core.models import ScanTally
from hostaudit.core.scoring import compute_grade, compute_score, score_tally


class TestComputeScore:
    """Tests for compute_score."""

    def test_no_scoreable_checks(self) -> None:
        assert compute_score(0, 0) == 100.0

    def test_all_passed(self) -> None:
        assert compute_score(7, 0) == 100.0

    def test_all_failed(self) -> None:
        assert compute_score(0, 3) == 0.0

    def test_half(self) -> None:
        assert compute_score(1, 1) == 50.0

    def test_fraction(self) -> None:
        assert compute_score(2, 1) == pytest.approx(66.6666, rel=1e-4)


class TestComputeGrade:
    """Grade boundaries are inclusive on the lower bound."""

    @pytest.mark.parametrize(
        ("score", "grade"),
        [
            (100.0, "A"),
            (90.0, "A"),
            (89.999, "B"),
            (80.0, "B"),
            (79.5, "C"),
            (70.0, "C"),
            (60.0, "D"),
            (59.999, "F"),
            (0.0, "F"),
        ],
    )
    def test_boundaries(self, score: float, grade: str) -> None:
        assert compute_grade(score) == grade


class TestScoreTally:
    """Tests for score_tally and ScanTally."""

    def test_skipped_never_in_denominator(self) -> None:
        tally = ScanTally(passed=0, failed=0, skipped=5)

        result = score_tally(tally)

        assert result.score == 100.0
        assert result.grade == "A"

    def test_skipped_with_failures(self) -> None:
        result = score_tally(ScanTally(passed=3, failed=1, skipped=10))

        assert result.score == 75.0
        assert result.grade == "C"

    @pytest.mark.parametrize(
        ("status", "expected"),
        [
            ("PASS", (1, 0, 0)),
            ("FAIL", (0, 1, 0)),
            ("SKIPPED", (0, 0, 1)),
            ("WARN", (0, 1, 0)),
            ("pass", (0, 1, 0)),
        ],
    )
    def test_record(self, status: str, expected: tuple[int, int, int]) -> None:
        tally = ScanTally()

        tally.record(status)

        assert (tally.passed, tally.failed, tally.skipped) == expected
        assert tally.total == 1
