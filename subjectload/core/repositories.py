import copy
import logging
import threading
from collections import OrderedDict
from contextlib import contextmanager
from dataclasses import fields
from typing import Any, ContextManager, Dict, Iterator, List, Optional, Protocol, Tuple, Type, TypeVar

from subjectload import config
from subjectload.core.exceptions import NotFoundError
from subjectload.core.loaders import load_snapshot
from subjectload.core.models import (
    AcademicPeriod,
    ClassSchedule,
    Classroom,
    CommitResult,
    Course,
    CreditedSubject,
    Curriculum,
    CurriculumSubject,
    Enrollment,
    EnrollmentSubject,
    Faculty,
    GradeRecord,
    ReferenceData,
    SchoolYear,
    Section,
    Semester,
    Student,
    StudentHistory,
    Subject,
    YearLevel,
)
from subjectload.core.validation import validate_prerequisite_graph

logger = logging.getLogger(__name__)

T = TypeVar("T")


def _build(cls: Type[T], row: Dict[str, Any]) -> T:
    known = {f.name for f in fields(cls)}
    return cls(**{k: v for k, v in row.items() if k in known})


class EnrollmentRepository(Protocol):
    reference: ReferenceData

    def schedules(self) -> List[ClassSchedule]: ...
    def get_enrollment(self, enrollment_id: int) -> Enrollment: ...
    def get_student(self, student_id: int) -> Optional[Student]: ...
    def get_schedule(self, class_schedule_id: int) -> ClassSchedule: ...
    def get_curriculum(self, curriculum_id: int) -> Curriculum: ...
    def curriculum_for(self, enrollment: Enrollment) -> Optional[Curriculum]: ...
    def active_period(self) -> AcademicPeriod: ...
    def student_history(self, student_id: int) -> StudentHistory: ...
    def credited_subjects(self, student_id: int) -> Dict[int, CreditedSubject]: ...
    def has_enrollment_subject(self, enrollment_id: int, class_schedule_id: int) -> bool: ...
    def add_enrollment_subject(self, enrollment_id: int, class_schedule_id: int) -> EnrollmentSubject: ...
    def upsert_credited_subject(self, record: CreditedSubject) -> None: ...
    def transaction(self) -> ContextManager[None]: ...
    def student_lock(self, student_id: int) -> ContextManager[None]: ...
    def recall_result(self, key: str, fingerprint: Any) -> Optional[CommitResult]: ...
    def remember_result(self, key: str, fingerprint: Any, result: CommitResult) -> None: ...


class JsonEnrollmentRepository:
    """
    In-memory store built from a JSON snapshot (see loaders.load_snapshot).

    Reads return the dataclasses from models.py. Writes (loaded subjects,
    credited subjects) go to the in-memory tables; `transaction()` restores
    them if the block raises.
    """

    def __init__(
        self,
        snapshot: Dict[str, List[Dict[str, Any]]],
        result_cache_size: int = config.COMMIT_RESULT_CACHE_SIZE,
    ):
        tables = {k: list(v or []) for k, v in snapshot.items()}

        self.curricula: Dict[int, Curriculum] = {}
        curriculum_subjects: Dict[int, CurriculumSubject] = {}
        for c in tables.get("curricula", []):
            subjects = [_build(CurriculumSubject, s) for s in c.get("subjects", [])]
            validate_prerequisite_graph(subjects)
            curriculum = Curriculum(
                id=c["id"],
                course_id=c["course_id"],
                major_id=c.get("major_id"),
                subjects=subjects,
            )
            self.curricula[curriculum.id] = curriculum
            for s in subjects:
                curriculum_subjects[s.id] = s

        self.reference = ReferenceData(
            subjects={r["id"]: _build(Subject, r) for r in tables.get("subjects", [])},
            year_levels={r["id"]: _build(YearLevel, r) for r in tables.get("year_levels", [])},
            semesters={r["id"]: _build(Semester, r) for r in tables.get("semesters", [])},
            school_years={r["id"]: _build(SchoolYear, r) for r in tables.get("school_years", [])},
            sections={r["id"]: _build(Section, r) for r in tables.get("sections", [])},
            faculty={r["id"]: _build(Faculty, r) for r in tables.get("faculty", [])},
            classrooms={r["id"]: _build(Classroom, r) for r in tables.get("classrooms", [])},
            courses={r["id"]: _build(Course, r) for r in tables.get("courses", [])},
            curriculum_subjects=curriculum_subjects,
        )

        self._schedules: Dict[int, ClassSchedule] = {
            r["id"]: _build(ClassSchedule, r) for r in tables.get("class_schedules", [])
        }
        self._students: Dict[int, Student] = {r["id"]: _build(Student, r) for r in tables.get("students", [])}
        self._enrollments: Dict[int, Enrollment] = {
            r["id"]: _build(Enrollment, r) for r in tables.get("enrollments", [])
        }
        self._enrollment_subjects: List[EnrollmentSubject] = [
            _build(EnrollmentSubject, r) for r in tables.get("enrollment_subjects", [])
        ]
        self._grades: List[GradeRecord] = [_build(GradeRecord, r) for r in tables.get("grades", [])]
        self._credited: List[CreditedSubject] = [
            _build(CreditedSubject, r) for r in tables.get("credited_subjects", [])
        ]

        self._write_lock = threading.RLock()
        self._student_locks: Dict[int, threading.Lock] = {}
        self._results: "OrderedDict[str, Tuple[Any, CommitResult]]" = OrderedDict()
        self._result_cache_size = result_cache_size

    @classmethod
    def from_directory(cls, root: str) -> "JsonEnrollmentRepository":
        return cls(load_snapshot(root))

    # ---------- reads ----------
    def schedules(self) -> List[ClassSchedule]:
        return list(self._schedules.values())

    def get_enrollment(self, enrollment_id: int) -> Enrollment:
        enrollment = self._enrollments.get(enrollment_id)
        if enrollment is None:
            raise NotFoundError(f"Enrollment {enrollment_id} not found", error_code="enrollment_not_found")
        return enrollment

    def get_student(self, student_id: int) -> Optional[Student]:
        return self._students.get(student_id)

    def get_schedule(self, class_schedule_id: int) -> ClassSchedule:
        sched = self._schedules.get(class_schedule_id)
        if sched is None:
            raise NotFoundError(f"Class schedule {class_schedule_id} not found", error_code="schedule_not_found")
        return sched

    def get_curriculum(self, curriculum_id: int) -> Curriculum:
        curriculum = self.curricula.get(curriculum_id)
        if curriculum is None:
            raise NotFoundError(f"Curriculum {curriculum_id} not found", error_code="curriculum_not_found")
        return curriculum

    def curriculum_for(self, enrollment: Enrollment) -> Optional[Curriculum]:
        fallback = None
        for c in sorted(self.curricula.values(), key=lambda x: x.id):
            if c.course_id != enrollment.course_id:
                continue
            if c.major_id == enrollment.major_id:
                return c
            if c.major_id is None and fallback is None:
                fallback = c
        return fallback

    def active_period(self) -> AcademicPeriod:
        semester = next((s for s in self.reference.semesters.values() if s.is_active), None)
        school_year = next((y for y in self.reference.school_years.values() if y.is_active), None)
        return AcademicPeriod(semester=semester, school_year=school_year)

    def student_history(self, student_id: int) -> StudentHistory:
        with self._write_lock:
            enrollments = sorted(
                (e for e in self._enrollments.values() if e.student_id == student_id),
                key=lambda e: e.id,
            )
            ids = {e.id for e in enrollments}
            return StudentHistory(
                student_id=student_id,
                enrollments=enrollments,
                enrollment_subjects=[es for es in self._enrollment_subjects if es.enrollment_id in ids],
                grades=[g for g in self._grades if g.enrollment_id in ids],
            )

    def credited_subjects(self, student_id: int) -> Dict[int, CreditedSubject]:
        with self._write_lock:
            return {c.curriculum_subject_id: c for c in self._credited if c.student_id == student_id}

    # ---------- writes ----------
    def has_enrollment_subject(self, enrollment_id: int, class_schedule_id: int) -> bool:
        with self._write_lock:
            return any(
                es.enrollment_id == enrollment_id and es.class_schedule_id == class_schedule_id
                for es in self._enrollment_subjects
            )

    def add_enrollment_subject(self, enrollment_id: int, class_schedule_id: int) -> EnrollmentSubject:
        with self._write_lock:
            next_id = max((es.id for es in self._enrollment_subjects), default=0) + 1
            row = EnrollmentSubject(id=next_id, enrollment_id=enrollment_id, class_schedule_id=class_schedule_id)
            self._enrollment_subjects.append(row)
            return row

    def upsert_credited_subject(self, record: CreditedSubject) -> None:
        with self._write_lock:
            for i, existing in enumerate(self._credited):
                if (existing.student_id == record.student_id
                        and existing.curriculum_subject_id == record.curriculum_subject_id):
                    self._credited[i] = record
                    return
            self._credited.append(record)

    @contextmanager
    def transaction(self) -> Iterator[None]:
        with self._write_lock:
            saved = (list(self._enrollment_subjects), copy.deepcopy(self._credited))
            try:
                yield
            except Exception:
                self._enrollment_subjects, self._credited = saved
                logger.warning("Transaction rolled back")
                raise

    # ---------- commit coordination ----------
    @contextmanager
    def student_lock(self, student_id: int) -> Iterator[None]:
        with self._write_lock:
            lock = self._student_locks.setdefault(student_id, threading.Lock())
        with lock:
            yield

    def recall_result(self, key: str, fingerprint: Any) -> Optional[CommitResult]:
        """Stored result for `key`, only while the student's records still match `fingerprint`."""
        with self._write_lock:
            entry = self._results.get(key)
            if entry is None:
                return None
            stored_fingerprint, result = entry
            if stored_fingerprint != fingerprint:
                del self._results[key]
                return None
            self._results.move_to_end(key)
            return result

    def remember_result(self, key: str, fingerprint: Any, result: CommitResult) -> None:
        with self._write_lock:
            self._results[key] = (fingerprint, result)
            self._results.move_to_end(key)
            while len(self._results) > self._result_cache_size:
                self._results.popitem(last=False)
