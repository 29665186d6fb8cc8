import pytest

from subjectload.core.exceptions import ConfigurationError, NotFoundError
from subjectload.core.models import CommitResult, Enrollment
from subjectload.core.repositories import JsonEnrollmentRepository


def test_repository_reads_sample(repo):
    assert repo.get_enrollment(1002).student_id == 500
    assert repo.get_student(500).last_name == "Dela Cruz"
    assert repo.get_schedule(400).curriculum_subject_id == 4
    assert sorted(repo.reference.curriculum_subjects) == [1, 2, 3, 4, 5, 6]


def test_unknown_records_raise(repo):
    with pytest.raises(NotFoundError):
        repo.get_enrollment(9999)
    with pytest.raises(NotFoundError):
        repo.get_schedule(9999)
    with pytest.raises(NotFoundError):
        repo.get_curriculum(9999)


def test_active_period(repo):
    period = repo.active_period()
    assert period.semester.id == 1
    assert period.school_year.school_year == "2025-2026"


def test_active_period_missing(snapshot):
    for s in snapshot["semesters"]:
        s["is_active"] = False
    period = JsonEnrollmentRepository(snapshot).active_period()
    assert period.semester is None
    assert period.school_year is not None


def test_curriculum_for_prefers_matching_major(snapshot):
    snapshot["curricula"].append({"id": 2, "course_id": 1, "major_id": 7, "subjects": []})
    repo = JsonEnrollmentRepository(snapshot)
    general = Enrollment(id=1, student_id=1, course_id=1, year_level_id=1, semester_id=1,
                         school_year_id=2, section_id=10)
    major = Enrollment(id=2, student_id=1, course_id=1, year_level_id=1, semester_id=1,
                       school_year_id=2, section_id=10, major_id=7)
    assert repo.curriculum_for(general).id == 1
    assert repo.curriculum_for(major).id == 2


def test_student_history_is_scoped_to_student(repo):
    history = repo.student_history(500)
    assert [e.id for e in history.enrollments] == [1000, 1001, 1002]
    assert len(history.enrollment_subjects) == 3
    assert len(history.grades) == 3
    assert repo.student_history(501).grades == []


def test_prerequisite_cycle_is_rejected(snapshot):
    subjects = snapshot["curricula"][0]["subjects"]
    subjects[0]["prerequisite_ids"] = [4]  # CS101 <- CS201 <- CS101
    with pytest.raises(ConfigurationError) as exc:
        JsonEnrollmentRepository(snapshot)
    assert exc.value.error_code == "prerequisite_cycle"


def test_transaction_rolls_back(repo):
    with pytest.raises(RuntimeError):
        with repo.transaction():
            repo.add_enrollment_subject(1002, 400)
            raise RuntimeError("boom")
    assert repo.has_enrollment_subject(1002, 400) is False


def test_add_enrollment_subject(repo):
    row = repo.add_enrollment_subject(1002, 400)
    assert row.id == 4
    assert repo.has_enrollment_subject(1002, 400) is True


def test_stored_result_dropped_when_fingerprint_changes(repo):
    result = CommitResult(status="success", message="ok")
    repo.remember_result("1002:400", ("before",), result)
    assert repo.recall_result("1002:400", ("before",)) is result
    assert repo.recall_result("1002:400", ("after",)) is None
    assert repo.recall_result("1002:400", ("before",)) is None


def test_stored_results_are_bounded(snapshot):
    repo = JsonEnrollmentRepository(snapshot, result_cache_size=2)
    for key in ("a", "b", "c"):
        repo.remember_result(key, (), CommitResult(status="success", message=key))
    assert repo.recall_result("a", ()) is None
    assert repo.recall_result("c", ()).message == "c"
