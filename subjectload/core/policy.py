# subjectload/core/policy.py
import math
from typing import Any, Optional, FrozenSet

from subjectload import config
from subjectload.core.models import Outcome


def as_number(value: Any) -> Optional[float]:
    """Numeric value of a grade cell, or None for blanks and text like "INC"."""
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        number = float(value)
    else:
        try:
            number = float(str(value).strip())
        except ValueError:
            return None
    if math.isnan(number) or math.isinf(number):
        return None
    return number


def is_failing_remark(remarks: Optional[str], failing_remarks: FrozenSet[str] = config.FAILING_REMARKS) -> bool:
    text = (remarks or "").strip().lower()
    if not text:
        return False
    return text in failing_remarks or "fail" in text


def compute_score(midterm: Any, final: Any, grade: Any) -> Optional[float]:
    m = as_number(midterm)
    f = as_number(final)
    if m is not None and f is not None:
        return (m + f) / 2
    return as_number(grade)


def compute_outcome(
    midterm: Any,
    final: Any,
    grade: Any,
    remarks: Optional[str] = None,
    threshold: float = config.PASSING_THRESHOLD,
    failing_remarks: FrozenSet[str] = config.FAILING_REMARKS,
) -> Outcome:
    """
    One attempt's result on the 1.0-5.0 scale (lower is better).

    score = mean(midterm, final) when both are numeric, else the stored grade.
    The attempt is failed when the remarks say failed/incomplete/dropped or the
    score is above the threshold. An attempt with no usable score and no failing
    remark is never failed.
    """
    score = compute_score(midterm, final, grade)
    if is_failing_remark(remarks, failing_remarks):
        return Outcome(score=score, is_failed=True)
    if score is None:
        return Outcome(score=None, is_failed=False)
    return Outcome(score=score, is_failed=score > threshold)


class GradingPolicy:
    """
    Institution grading rules shared by the eligibility preview and the
    commit-time prerequisite gate.
    """
    def __init__(
        self,
        passing_threshold: float = config.PASSING_THRESHOLD,
        failing_remarks: FrozenSet[str] = config.FAILING_REMARKS,
        latest_attempt_only: bool = config.LATEST_ATTEMPT_ONLY,
    ):
        self.passing_threshold = float(passing_threshold)
        self.failing_remarks = frozenset(r.lower() for r in failing_remarks)
        self.latest_attempt_only = bool(latest_attempt_only)

    def outcome(self, midterm: Any, final: Any, grade: Any, remarks: Optional[str] = None) -> Outcome:
        return compute_outcome(
            midterm, final, grade, remarks,
            threshold=self.passing_threshold,
            failing_remarks=self.failing_remarks,
        )

    def __repr__(self) -> str:
        return (f"GradingPolicy(passing_threshold={self.passing_threshold}, "
                f"latest_attempt_only={self.latest_attempt_only})")
