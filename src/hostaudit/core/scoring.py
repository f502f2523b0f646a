"""Score and grade computation."""

from __future__ import annotations

from hostaudit.core.models import ScanTally, ScoreResult

# Lower bounds are inclusive, checked top-down.
GRADE_THRESHOLDS: tuple[tuple[float, str], ...] = (
    (90.0, "A"),
    (80.0, "B"),
    (70.0, "C"),
    (60.0, "D"),
)
FAILING_GRADE = "F"


def compute_score(passed: int, failed: int) -> float:
    """Percentage of scoreable checks that passed.

    Skipped checks are not scoreable. With nothing scoreable the score is 100.
    """
    scoreable = passed + failed
    if scoreable == 0:
        return 100.0
    return passed / scoreable * 100.0


def compute_grade(score: float) -> str:
    """Map a score percentage to a letter grade."""
    for threshold, grade in GRADE_THRESHOLDS:
        if score >= threshold:
            return grade
    return FAILING_GRADE


def score_tally(tally: ScanTally) -> ScoreResult:
    score = compute_score(tally.passed, tally.failed)
    return ScoreResult(score=score, grade=compute_grade(score))
