from typing import Dict

from subjectload.core.models import ClassSchedule, CurriculumSubject, ReferenceData
from subjectload.core.policy import GradingPolicy
from subjectload.core.rules import AndRule, PrerequisiteRule


class RuleFactory:
    """
    Build the commit-time gate for one curriculum subject.
    Only direct prerequisites are checked; each one becomes a PrerequisiteRule.
    """

    def __init__(
        self,
        reference: ReferenceData,
        schedules: Dict[int, ClassSchedule],
        policy: GradingPolicy,
    ) -> None:
        self.reference = reference
        self.schedules = schedules
        self.policy = policy

    def for_subject(self, curriculum_subject: CurriculumSubject) -> AndRule:
        rules = []
        for prereq_id in curriculum_subject.prerequisite_ids:
            rules.append(PrerequisiteRule(
                prerequisite_id=int(prereq_id),
                title=self.reference.subject_title(int(prereq_id)),
                schedules=self.schedules,
                policy=self.policy,
            ))
        return AndRule(*rules)
