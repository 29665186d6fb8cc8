import logging
from typing import Dict, Iterable, List, Optional, Tuple

from subjectload.core.models import ClassSchedule, GradeRecord
from subjectload.core.policy import GradingPolicy

logger = logging.getLogger(__name__)


def resolve_curriculum_subject(record: GradeRecord, schedules: Dict[int, ClassSchedule]) -> Optional[int]:
    if record.curriculum_subject_id is not None:
        return int(record.curriculum_subject_id)
    sched = schedules.get(record.class_schedule_id)
    if sched is None:
        return None
    return int(sched.curriculum_subject_id)


def _latest_per_subject(
    pairs: Iterable[Tuple[int, GradeRecord]]
) -> List[Tuple[int, GradeRecord]]:
    latest: Dict[int, GradeRecord] = {}
    for cs_id, record in pairs:
        current = latest.get(cs_id)
        if current is None or record.enrollment_id >= current.enrollment_id:
            latest[cs_id] = record
    return list(latest.items())


def classify_failures(
    grade_records: Iterable[GradeRecord],
    schedules: Dict[int, ClassSchedule],
    policy: GradingPolicy,
) -> List[int]:
    """
    Curriculum subject ids the student has failed, ascending and de-duplicated.

    With policy.latest_attempt_only the attempt from the highest enrollment id
    decides per subject; otherwise any failing attempt marks the subject.
    """
    pairs: List[Tuple[int, GradeRecord]] = []
    for record in grade_records:
        cs_id = resolve_curriculum_subject(record, schedules)
        if cs_id is None:
            logger.debug("Grade row for schedule %s has no curriculum subject; ignored", record.class_schedule_id)
            continue
        pairs.append((cs_id, record))

    if policy.latest_attempt_only:
        pairs = _latest_per_subject(pairs)

    failed = set()
    for cs_id, record in pairs:
        outcome = policy.outcome(record.midterm, record.final, record.grade, record.remarks)
        if outcome.is_failed:
            failed.add(cs_id)
    return sorted(failed)
