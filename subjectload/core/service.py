import logging
from dataclasses import asdict, astuple
from typing import Any, Dict, Iterable, List, Optional, Tuple

from subjectload import config
from subjectload.core.catalog import build_catalog, build_credit_catalog, build_crediting_sheet
from subjectload.core.engine import EligibilityEngine
from subjectload.core.exceptions import NotFoundError, ValidationError
from subjectload.core.models import CommitResult, CreditedSubject, Enrollment, RuleResult, StudentHistory
from subjectload.core.policy import GradingPolicy, as_number
from subjectload.core.repositories import EnrollmentRepository

logger = logging.getLogger(__name__)


class SubjectLoadService:
    """Program-head operations on one student's enrollment."""

    def __init__(self, repo: EnrollmentRepository, policy: Optional[GradingPolicy] = None):
        self.repo = repo
        self.policy = policy or GradingPolicy()

    def _engine(self) -> EligibilityEngine:
        return EligibilityEngine(self.repo.reference, self.repo.schedules(), self.policy)

    def _enrollment_summary(self, enrollment: Enrollment, semester_name: Optional[str]) -> Dict[str, Any]:
        ref = self.repo.reference
        student = self.repo.get_student(enrollment.student_id)
        course = ref.courses.get(enrollment.course_id)
        section = ref.sections.get(enrollment.section_id)
        return {
            "id": enrollment.id,
            "first_name": student.first_name if student else None,
            "middle_name": student.middle_name if student else None,
            "last_name": student.last_name if student else None,
            "program_name": course.name if course else "N/A",
            "year_level_name": ref.year_level_label(enrollment.year_level_id),
            "semester_name": semester_name or "N/A",
            "section_id": enrollment.section_id,
            "section_name": section.section if section else None,
        }

    # ---------- preview ----------
    def preview(self, enrollment_id: int) -> Dict[str, Any]:
        enrollment = self.repo.get_enrollment(enrollment_id)
        logger.info("Subject load preview for enrollment %s", enrollment_id)

        view: Dict[str, Any] = {
            "enrollment": None,
            "student": None,
            "available_subjects": [],
            "credited_subjects": [],
            "credited_subject_info": {},
            "credit_catalog": [],
            "preselected_subjects": [],
            "load_warning": None,
            "load_error": None,
        }
        try:
            student = self.repo.get_student(enrollment.student_id)
            view["student"] = asdict(student) if student else None

            credited = self.repo.credited_subjects(enrollment.student_id)
            view["credited_subjects"] = sorted(credited)
            view["credited_subject_info"] = {
                cs_id: {"credited_units": c.credited_units, "remarks": c.remarks}
                for cs_id, c in credited.items()
            }

            curriculum = self.repo.curriculum_for(enrollment)
            period = self.repo.active_period()
            warnings: List[str] = []
            if curriculum is None:
                warnings.append(config.NO_CURRICULUM_WARNING)
            if period.semester is None:
                warnings.append(config.NO_ACTIVE_SEMESTER_WARNING)
            view["load_warning"] = " ".join(warnings) or None

            if curriculum is not None and period.semester is not None:
                history = self.repo.student_history(enrollment.student_id)
                result = self._engine().evaluate(enrollment, curriculum, period, history.grades)
                view["available_subjects"] = [asdict(r) for r in result.subjects]
                view["preselected_subjects"] = result.preselected
                view["credit_catalog"] = build_credit_catalog(curriculum, self.repo.reference)

            semester_name = period.semester.semester if period.semester else None
            view["enrollment"] = self._enrollment_summary(enrollment, semester_name)
        except Exception:
            logger.exception("Error building subject load for enrollment %s", enrollment_id)
            view["load_error"] = config.LOAD_ERROR_MESSAGE
        return view

    def catalog(self, curriculum_id: int) -> List[Dict[str, Any]]:
        return build_catalog(self.repo.get_curriculum(curriculum_id), self.repo.reference)

    # ---------- prerequisite gate ----------
    def check_prerequisites(self, student_id: int, curriculum_subject_id: int) -> RuleResult:
        history = self.repo.student_history(student_id)
        return self._engine().check_prerequisites(history, curriculum_subject_id)

    @staticmethod
    def idempotency_key(
        enrollment_id: int, class_schedule_ids: Iterable[int], client_key: Optional[str] = None
    ) -> str:
        """Commit result key, always scoped to the enrollment."""
        if client_key:
            return f"{enrollment_id}:{client_key}"
        ids = ",".join(str(i) for i in sorted({int(i) for i in class_schedule_ids}))
        return f"{enrollment_id}:{ids}"

    @staticmethod
    def _history_fingerprint(history: StudentHistory) -> Tuple[Any, ...]:
        loaded = sorted((es.enrollment_id, es.class_schedule_id) for es in history.enrollment_subjects)
        graded = sorted(repr(astuple(g)) for g in history.grades)
        return tuple(loaded), tuple(graded)

    def commit_subject_load(
        self,
        enrollment_id: int,
        class_schedule_ids: List[int],
        idempotency_key: Optional[str] = None,
    ) -> CommitResult:
        if not class_schedule_ids:
            raise ValidationError("class_schedule_ids must not be empty", error_code="empty_selection")
        enrollment = self.repo.get_enrollment(enrollment_id)
        # unknown ids reject the whole batch before anything is written
        schedules = [self.repo.get_schedule(int(i)) for i in class_schedule_ids]
        key = self.idempotency_key(enrollment_id, class_schedule_ids, idempotency_key)

        with self.repo.student_lock(enrollment.student_id):
            fingerprint = self._history_fingerprint(self.repo.student_history(enrollment.student_id))
            previous = self.repo.recall_result(key, fingerprint)
            if previous is not None:
                logger.info("Duplicate subject load submission %s ignored", key)
                return previous

            engine = self._engine()
            enrolled: List[str] = []
            skipped: List[str] = []
            with self.repo.transaction():
                for sched in schedules:
                    title = self.repo.reference.subject_title(
                        sched.curriculum_subject_id, default=f"Schedule {sched.id}"
                    )
                    history = self.repo.student_history(enrollment.student_id)
                    check = engine.check_prerequisites(history, sched.curriculum_subject_id)
                    if not check.passed:
                        skipped.append(f"{title}: {check.explanation}")
                        continue
                    if self.repo.has_enrollment_subject(enrollment.id, sched.id):
                        continue
                    self.repo.add_enrollment_subject(enrollment.id, sched.id)
                    enrolled.append(title)

            message = "Subjects loaded successfully."
            status = "success"
            if skipped:
                message += " However, some subjects could not be enrolled: " + ", ".join(skipped)
                status = "warning"
            result = CommitResult(status=status, message=message, enrolled=enrolled, skipped=skipped)
            fingerprint = self._history_fingerprint(self.repo.student_history(enrollment.student_id))
            self.repo.remember_result(key, fingerprint, result)

        logger.info(
            "Enrollment %s: loaded %d subject(s), skipped %d", enrollment_id, len(enrolled), len(skipped)
        )
        return result

    # ---------- grades ----------
    def grade_history(self, enrollment_id: int) -> Dict[str, Dict[str, List[Dict[str, Any]]]]:
        enrollment = self.repo.get_enrollment(enrollment_id)
        ref = self.repo.reference
        history = self.repo.student_history(enrollment.student_id)
        schedules = {s.id: s for s in self.repo.schedules()}

        grades: Dict[str, Dict[str, List[Dict[str, Any]]]] = {}
        for e in history.enrollments:
            year = ref.year_level_label(e.year_level_id) or "Unknown Year"
            semester = ref.semester_label(e.semester_id) or "Unknown Semester"
            rows = grades.setdefault(year, {}).setdefault(semester, [])
            for es in history.enrollment_subjects:
                if es.enrollment_id != e.id:
                    continue
                sched = schedules.get(es.class_schedule_id)
                if sched is None:
                    logger.warning("Enrollment subject %s points at missing schedule %s", es.id, es.class_schedule_id)
                    continue
                faculty = ref.faculty.get(sched.faculty_id)
                cs = ref.curriculum_subjects.get(sched.curriculum_subject_id)
                subject = ref.subject_for(cs) if cs is not None else None
                record = history.grade_for(e.id, sched.id)

                midterm = as_number(record.midterm) if record else None
                final = as_number(record.final) if record else None
                cumulative = as_number(record.grade) if record else None
                if cumulative is None and midterm is not None and final is not None:
                    cumulative = (midterm + final) / 2

                rows.append({
                    "enrollment_id": e.id,
                    "faculty_id": faculty.id if faculty else None,
                    "faculty_name": faculty.full_name() if faculty else config.NO_FACULTY_LABEL,
                    "subject_id": subject.id if subject else None,
                    "subject_code": subject.code if subject else None,
                    "subject_title": subject.descriptive_title if subject else None,
                    "midterm": midterm,
                    "final": final,
                    "grade": round(cumulative, 2) if cumulative is not None else None,
                    "remarks": record.remarks if record else None,
                })
        return grades

    # ---------- crediting ----------
    def crediting_view(self, enrollment_id: int) -> Dict[str, Any]:
        enrollment = self.repo.get_enrollment(enrollment_id)
        curriculum = self.repo.curriculum_for(enrollment)
        if curriculum is None:
            raise NotFoundError("This course has no curriculum assigned.", error_code="curriculum_not_found")
        ref = self.repo.reference
        student = self.repo.get_student(enrollment.student_id)
        course = ref.courses.get(enrollment.course_id)
        credited = self.repo.credited_subjects(enrollment.student_id)
        return {
            "student": asdict(student) if student else {},
            "enrollment": {
                "id": enrollment.id,
                "program_name": course.name if course else "N/A",
                "program_code": course.code if course else None,
                "year_level_name": ref.year_level_label(enrollment.year_level_id) or "N/A",
                "semester_name": ref.semester_label(enrollment.semester_id) or "N/A",
            },
            "grouped_subjects": build_crediting_sheet(curriculum, ref, credited),
        }

    def store_credited_subjects(self, enrollment_id: int, items: List[Dict[str, Any]]) -> int:
        enrollment = self.repo.get_enrollment(enrollment_id)
        if not items:
            raise ValidationError("subjects must not be empty", error_code="empty_selection")

        records: List[CreditedSubject] = []
        for item in items:
            cs_id = item.get("curriculum_subject_id")
            if cs_id not in self.repo.reference.curriculum_subjects:
                raise ValidationError(
                    f"Curriculum subject {cs_id} does not exist",
                    error_code="unknown_curriculum_subject",
                    details={"curriculum_subject_id": cs_id},
                )
            units = as_number(item.get("credited_units"))
            if units is None or units < 0:
                raise ValidationError(
                    f"credited_units for curriculum subject {cs_id} must be a number >= 0",
                    error_code="invalid_credited_units",
                    details={"curriculum_subject_id": cs_id},
                )
            records.append(CreditedSubject(
                student_id=enrollment.student_id,
                curriculum_subject_id=cs_id,
                credited_units=units,
                remarks=item.get("remarks"),
            ))

        with self.repo.transaction():
            for record in records:
                self.repo.upsert_credited_subject(record)
        logger.info("Saved %d credited subject(s) for student %s", len(records), enrollment.student_id)
        return len(records)
