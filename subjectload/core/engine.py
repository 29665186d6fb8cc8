import logging
from typing import Dict, Iterable, List, Optional, Set

from subjectload import config
from subjectload.core.classifier import classify_failures
from subjectload.core.models import (
    AcademicPeriod,
    CandidateSubject,
    ClassSchedule,
    Curriculum,
    CurriculumSubject,
    EligibilityResult,
    Enrollment,
    EvaluationResult,
    GradeRecord,
    ReferenceData,
    RuleResult,
    ScheduleView,
    StudentHistory,
)
from subjectload.core.policy import GradingPolicy
from subjectload.core.rule_factory import RuleFactory

logger = logging.getLogger(__name__)


class EligibilityEngine:
    """
    Decides which curriculum subjects a student can load this semester.

    Pipeline: failure classification -> year/semester filter -> annotation
    (failed, cross-section, blocked prerequisites, backtracks) -> preselection.
    Everything is computed from the records handed in; nothing is written back.
    """

    def __init__(self, reference: ReferenceData, schedules: Iterable[ClassSchedule], policy: GradingPolicy):
        self.reference = reference
        self.policy = policy
        self.schedules: Dict[int, ClassSchedule] = {s.id: s for s in schedules}
        self._by_subject: Dict[int, List[ClassSchedule]] = {}
        for s in sorted(self.schedules.values(), key=lambda x: x.id):
            self._by_subject.setdefault(int(s.curriculum_subject_id), []).append(s)

    # ---------- labels ----------
    def schedule_view(self, sched: ClassSchedule) -> ScheduleView:
        faculty = self.reference.faculty.get(sched.faculty_id)
        classroom = self.reference.classrooms.get(sched.classroom_id)
        section = self.reference.sections.get(sched.section_id)
        year = None
        if section is not None:
            year = self.reference.year_level_label(section.year_level_id)
        return ScheduleView(
            id=sched.id,
            curriculum_subject_id=sched.curriculum_subject_id,
            section_id=sched.section_id,
            semester_id=sched.semester_id,
            school_year_id=sched.school_year_id,
            faculty_id=sched.faculty_id,
            classroom_id=sched.classroom_id,
            day=sched.day,
            start_time=sched.start_time,
            end_time=sched.end_time,
            schedule_group=sched.schedule_group,
            faculty_name=faculty.full_name() if faculty is not None else config.NO_FACULTY_LABEL,
            classroom=classroom.room_number if classroom is not None else None,
            section=section.section if section is not None else None,
            year=year,
        )

    def offered_schedules(
        self, curriculum_subject_id: int, enrollment: Enrollment, period: AcademicPeriod
    ) -> List[ScheduleView]:
        """Schedules of the subject in the active semester and the enrollment's school year."""
        if period.semester is None:
            return []
        out: List[ScheduleView] = []
        for sched in self._by_subject.get(int(curriculum_subject_id), []):
            if sched.semester_id != period.semester.id:
                continue
            if sched.school_year_id != enrollment.school_year_id:
                continue
            out.append(self.schedule_view(sched))
        return out

    # ---------- pipeline stages ----------
    def failed_subjects(self, grade_records: Iterable[GradeRecord]) -> List[int]:
        return classify_failures(grade_records, self.schedules, self.policy)

    def filter_candidates(
        self,
        curriculum: Optional[Curriculum],
        enrollment: Enrollment,
        period: AcademicPeriod,
    ) -> List[CandidateSubject]:
        if curriculum is None or period.semester is None:
            return []
        candidates: List[CandidateSubject] = []
        for cs in curriculum.subjects:
            if cs.year_level_id != enrollment.year_level_id:
                continue
            if cs.semester_id != period.semester.id:
                continue
            schedules = self.offered_schedules(cs.id, enrollment, period)
            own = [s for s in schedules if s.section_id == enrollment.section_id]
            candidates.append(CandidateSubject(curriculum_subject=cs, schedules=schedules, section_schedules=own))
        return candidates

    def _result(
        self,
        cs: CurriculumSubject,
        failed: Set[int],
        schedules: List[ScheduleView],
        visible: List[ScheduleView],
        is_backtrack: bool,
        uses_cross_section: bool,
        has_section_schedules: bool,
    ) -> EligibilityResult:
        subject = self.reference.subject_for(cs)
        prerequisite_ids = [int(p) for p in cs.prerequisite_ids]
        failed_prereqs = [p for p in prerequisite_ids if p in failed]
        return EligibilityResult(
            curriculum_subject_id=cs.id,
            subject_id=cs.subject_id,
            code=subject.code if subject is not None else None,
            descriptive_title=subject.descriptive_title if subject is not None else None,
            year_level_id=cs.year_level_id,
            semester_id=cs.semester_id,
            lec_unit=cs.lec_unit,
            lab_unit=cs.lab_unit,
            type=cs.type,
            source_year_level=self.reference.year_level_label(cs.year_level_id),
            source_semester=self.reference.semester_label(cs.semester_id),
            is_failed=cs.id in failed,
            is_backtrack=is_backtrack,
            uses_cross_section=uses_cross_section,
            has_failed_prerequisites=bool(failed_prereqs),
            failed_prerequisite_ids=failed_prereqs,
            prerequisite_ids=prerequisite_ids,
            schedules=visible,
            has_any_schedules=bool(schedules),
            has_section_schedules=has_section_schedules,
        )

    def annotate(self, candidates: List[CandidateSubject], failed_ids: Iterable[int]) -> List[EligibilityResult]:
        failed = set(failed_ids)
        results: List[EligibilityResult] = []
        for cand in candidates:
            cs = cand.curriculum_subject
            visible = list(cand.section_schedules)
            has_section = bool(cand.section_schedules)
            cross = False
            # retakes may join any section offering the subject
            if cs.id in failed and not has_section and cand.schedules:
                visible = list(cand.schedules)
                cross = True
            results.append(self._result(cs, failed, cand.schedules, visible, False, cross, has_section))
        return results

    def backtracks(
        self,
        candidates: List[CandidateSubject],
        failed_ids: Iterable[int],
        enrollment: Enrollment,
        period: AcademicPeriod,
    ) -> List[EligibilityResult]:
        """Failed subjects outside this year/semester, offered for retake from any section."""
        failed = set(failed_ids)
        present = {c.curriculum_subject.id for c in candidates}
        results: List[EligibilityResult] = []
        for cs_id in sorted(failed - present):
            cs = self.reference.curriculum_subjects.get(cs_id)
            if cs is None:
                logger.warning("Failed curriculum subject %s not found in reference data", cs_id)
                continue
            schedules = self.offered_schedules(cs.id, enrollment, period)
            results.append(self._result(cs, failed, schedules, list(schedules), True, True, False))
        return results

    @staticmethod
    def preselect(results: List[EligibilityResult]) -> List[int]:
        """Schedule ids (or the subject id when unscheduled) of subjects with no blockers."""
        selected: List[int] = []
        for r in results:
            if r.has_failed_prerequisites or r.is_failed or r.is_backtrack:
                continue
            r.preselected = True
            if r.schedules:
                selected.extend(s.id for s in r.schedules)
            else:
                selected.append(r.curriculum_subject_id)
        return selected

    def evaluate(
        self,
        enrollment: Enrollment,
        curriculum: Optional[Curriculum],
        period: AcademicPeriod,
        grade_records: Iterable[GradeRecord],
    ) -> EvaluationResult:
        if curriculum is None or period.semester is None:
            return EvaluationResult(subjects=[], preselected=[], failed_subject_ids=[])

        failed = self.failed_subjects(grade_records)
        candidates = self.filter_candidates(curriculum, enrollment, period)
        results = self.annotate(candidates, failed)
        results.extend(self.backtracks(candidates, failed, enrollment, period))
        preselected = self.preselect(results)
        logger.debug(
            "Enrollment %s: %d candidates, %d failed, %d preselected",
            enrollment.id, len(candidates), len(failed), len(preselected),
        )
        return EvaluationResult(subjects=results, preselected=preselected, failed_subject_ids=failed)

    # ---------- commit-time gate ----------
    def check_prerequisites(self, history: StudentHistory, curriculum_subject_id: int) -> RuleResult:
        cs = self.reference.curriculum_subjects.get(int(curriculum_subject_id))
        if cs is None:
            return RuleResult(True, "No prerequisites")
        factory = RuleFactory(self.reference, self.schedules, self.policy)
        return factory.for_subject(cs).evaluate(history)
