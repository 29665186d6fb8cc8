from typing import Protocol, Dict
from subjectload.core.models import ClassSchedule, RuleResult, StudentHistory
from subjectload.core.policy import GradingPolicy


class LoadRule(Protocol):
    def evaluate(self, history: StudentHistory) -> RuleResult: ...


class PrerequisiteRule:
    """
    Passes when the student's most recent attempt at the prerequisite is not a
    failure. An attempt with no grade yet counts as taken.
    """
    def __init__(
        self,
        prerequisite_id: int,
        title: str,
        schedules: Dict[int, ClassSchedule],
        policy: GradingPolicy,
    ):
        self.prerequisite_id = prerequisite_id
        self.title = title or "Prerequisite"
        self.schedules = schedules
        self.policy = policy

    def evaluate(self, history: StudentHistory) -> RuleResult:
        attempt = history.latest_attempt(self.prerequisite_id, self.schedules)
        if attempt is None:
            return RuleResult(False, f"{self.title} not taken yet")

        record = history.grade_for(attempt.enrollment_id, attempt.class_schedule_id)
        if record is None:
            return RuleResult(True, f"{self.title} OK (no grade yet)")

        outcome = self.policy.outcome(record.midterm, record.final, record.grade, record.remarks)
        if outcome.is_failed:
            return RuleResult(False, f"{self.title} failed")
        if outcome.score is None:
            return RuleResult(True, f"{self.title} OK (no grade yet)")
        return RuleResult(True, f"{self.title} OK (grade={outcome.score:.2f})")


class AndRule:
    def __init__(self, *rules):
        self.rules = list(rules)

    def evaluate(self, history: StudentHistory) -> RuleResult:
        exps = []
        for r in self.rules:
            rr = r.evaluate(history)
            if not rr.passed:
                # only the blocking reason is reported to staff
                return RuleResult(False, rr.explanation)
            exps.append(rr.explanation)
        if not exps:
            return RuleResult(True, "No prerequisites")
        return RuleResult(True, " | ".join(exps))
