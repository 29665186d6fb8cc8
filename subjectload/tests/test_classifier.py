from subjectload.core.classifier import classify_failures
from subjectload.core.models import ClassSchedule, GradeRecord
from subjectload.core.policy import GradingPolicy

SCHEDULES = {
    10: ClassSchedule(id=10, curriculum_subject_id=1, section_id=1, semester_id=1, school_year_id=1),
    11: ClassSchedule(id=11, curriculum_subject_id=2, section_id=1, semester_id=1, school_year_id=1),
    12: ClassSchedule(id=12, curriculum_subject_id=2, section_id=2, semester_id=1, school_year_id=2),
}


def test_empty_history_has_no_failures():
    assert classify_failures([], SCHEDULES, GradingPolicy()) == []


def test_resolves_subject_through_schedule():
    records = [
        GradeRecord(enrollment_id=1, class_schedule_id=10, midterm=1.5, final=1.75),
        GradeRecord(enrollment_id=1, class_schedule_id=11, remarks="Failed"),
    ]
    assert classify_failures(records, SCHEDULES, GradingPolicy()) == [2]


def test_direct_curriculum_subject_id_wins():
    records = [GradeRecord(enrollment_id=1, curriculum_subject_id=7, grade=5.0)]
    assert classify_failures(records, SCHEDULES, GradingPolicy()) == [7]


def test_rows_without_subject_are_ignored():
    records = [GradeRecord(enrollment_id=1, class_schedule_id=999, grade=5.0)]
    assert classify_failures(records, SCHEDULES, GradingPolicy()) == []


def test_repeated_failures_are_deduplicated():
    records = [
        GradeRecord(enrollment_id=1, class_schedule_id=11, grade=4.0),
        GradeRecord(enrollment_id=2, class_schedule_id=12, grade=5.0),
    ]
    assert classify_failures(records, SCHEDULES, GradingPolicy()) == [2]


def test_any_failed_attempt_counts_by_default():
    records = [
        GradeRecord(enrollment_id=1, class_schedule_id=11, grade=5.0),
        GradeRecord(enrollment_id=2, class_schedule_id=12, grade=2.0),
    ]
    assert classify_failures(records, SCHEDULES, GradingPolicy(latest_attempt_only=False)) == [2]


def test_latest_attempt_only_uses_highest_enrollment():
    records = [
        GradeRecord(enrollment_id=2, class_schedule_id=12, grade=2.0),
        GradeRecord(enrollment_id=1, class_schedule_id=11, grade=5.0),
    ]
    assert classify_failures(records, SCHEDULES, GradingPolicy(latest_attempt_only=True)) == []

    records.append(GradeRecord(enrollment_id=3, class_schedule_id=12, remarks="Dropped"))
    assert classify_failures(records, SCHEDULES, GradingPolicy(latest_attempt_only=True)) == [2]
