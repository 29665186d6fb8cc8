from dataclasses import dataclass, field
from typing import List, Optional, Dict, Any

@dataclass
class Subject:
    id: int
    code: str
    descriptive_title: str

@dataclass
class YearLevel:
    id: int
    year_level: str

@dataclass
class SchoolYear:
    id: int
    school_year: str
    is_active: bool = False

@dataclass
class Semester:
    id: int
    semester: str
    school_year_id: Optional[int] = None
    is_active: bool = False

@dataclass
class Section:
    id: int
    section: str
    year_level_id: Optional[int] = None

@dataclass
class Faculty:
    id: int
    first_name: str
    last_name: str
    middle_name: Optional[str] = None

    def full_name(self) -> str:
        parts = [self.first_name, self.middle_name, self.last_name]
        return " ".join(p for p in parts if p)

@dataclass
class Classroom:
    id: int
    room_number: str

@dataclass
class Course:
    id: int
    name: str
    code: Optional[str] = None

@dataclass
class CurriculumSubject:
    id: int
    subject_id: int
    year_level_id: Optional[int]
    semester_id: Optional[int]
    lec_unit: float = 0
    lab_unit: float = 0
    type: Optional[str] = None
    prerequisite_ids: List[int] = field(default_factory=list)

@dataclass
class Curriculum:
    id: int
    course_id: int
    major_id: Optional[int] = None
    subjects: List[CurriculumSubject] = field(default_factory=list)

    def find(self, curriculum_subject_id: int) -> Optional[CurriculumSubject]:
        for s in self.subjects:
            if s.id == curriculum_subject_id:
                return s
        return None

@dataclass
class ClassSchedule:
    id: int
    curriculum_subject_id: int
    section_id: Optional[int]
    semester_id: Optional[int]
    school_year_id: Optional[int]
    faculty_id: Optional[int] = None
    classroom_id: Optional[int] = None
    day: Optional[str] = None
    start_time: Optional[str] = None
    end_time: Optional[str] = None
    schedule_group: Optional[str] = None

@dataclass
class Student:
    id: int
    id_number: str
    first_name: str
    last_name: str
    middle_name: Optional[str] = None
    suffix: Optional[str] = None

@dataclass
class Enrollment:
    id: int
    student_id: int
    course_id: int
    year_level_id: int
    semester_id: int
    school_year_id: int
    section_id: Optional[int]
    major_id: Optional[int] = None
    status: str = "pending"

@dataclass
class EnrollmentSubject:
    id: int
    enrollment_id: int
    class_schedule_id: int

@dataclass
class GradeRecord:
    enrollment_id: int
    class_schedule_id: Optional[int] = None
    curriculum_subject_id: Optional[int] = None
    midterm: Any = None
    final: Any = None
    grade: Any = None
    remarks: Optional[str] = None

@dataclass
class CreditedSubject:
    student_id: int
    curriculum_subject_id: int
    credited_units: float
    remarks: Optional[str] = None

@dataclass
class AcademicPeriod:
    semester: Optional[Semester] = None
    school_year: Optional[SchoolYear] = None

@dataclass
class Outcome:
    score: Optional[float]
    is_failed: bool

@dataclass
class RuleResult:
    passed: bool
    explanation: str

@dataclass
class ReferenceData:
    """Lookup tables used to label records; missing keys resolve to None."""
    subjects: Dict[int, Subject] = field(default_factory=dict)
    year_levels: Dict[int, YearLevel] = field(default_factory=dict)
    semesters: Dict[int, Semester] = field(default_factory=dict)
    school_years: Dict[int, SchoolYear] = field(default_factory=dict)
    sections: Dict[int, Section] = field(default_factory=dict)
    faculty: Dict[int, Faculty] = field(default_factory=dict)
    classrooms: Dict[int, Classroom] = field(default_factory=dict)
    courses: Dict[int, Course] = field(default_factory=dict)
    curriculum_subjects: Dict[int, CurriculumSubject] = field(default_factory=dict)

    def subject_for(self, cs: CurriculumSubject) -> Optional[Subject]:
        return self.subjects.get(cs.subject_id)

    def subject_title(self, curriculum_subject_id: int, default: str = "Prerequisite") -> str:
        cs = self.curriculum_subjects.get(curriculum_subject_id)
        subject = self.subject_for(cs) if cs is not None else None
        if subject is None or not subject.descriptive_title:
            return default
        return subject.descriptive_title

    def year_level_label(self, year_level_id: Optional[int]) -> Optional[str]:
        yl = self.year_levels.get(year_level_id)
        return yl.year_level if yl is not None else None

    def semester_label(self, semester_id: Optional[int]) -> Optional[str]:
        sem = self.semesters.get(semester_id)
        return sem.semester if sem is not None else None

@dataclass
class StudentHistory:
    student_id: int
    enrollments: List[Enrollment] = field(default_factory=list)
    enrollment_subjects: List[EnrollmentSubject] = field(default_factory=list)
    grades: List[GradeRecord] = field(default_factory=list)

    def grade_for(self, enrollment_id: int, class_schedule_id: int) -> Optional[GradeRecord]:
        for g in self.grades:
            if g.enrollment_id == enrollment_id and g.class_schedule_id == class_schedule_id:
                return g
        return None

    def latest_attempt(
        self, curriculum_subject_id: int, schedules: Dict[int, ClassSchedule]
    ) -> Optional[EnrollmentSubject]:
        latest: Optional[EnrollmentSubject] = None
        for es in self.enrollment_subjects:
            sched = schedules.get(es.class_schedule_id)
            if sched is None or sched.curriculum_subject_id != curriculum_subject_id:
                continue
            if latest is None or es.enrollment_id > latest.enrollment_id:
                latest = es
        return latest

@dataclass
class ScheduleView:
    id: int
    curriculum_subject_id: int
    section_id: Optional[int]
    semester_id: Optional[int]
    school_year_id: Optional[int]
    faculty_id: Optional[int]
    classroom_id: Optional[int]
    day: Optional[str]
    start_time: Optional[str]
    end_time: Optional[str]
    schedule_group: Optional[str]
    faculty_name: str
    classroom: Optional[str]
    section: Optional[str]
    year: Optional[str]

@dataclass
class CandidateSubject:
    curriculum_subject: CurriculumSubject
    schedules: List[ScheduleView] = field(default_factory=list)
    section_schedules: List[ScheduleView] = field(default_factory=list)

@dataclass
class EligibilityResult:
    curriculum_subject_id: int
    subject_id: int
    code: Optional[str]
    descriptive_title: Optional[str]
    year_level_id: Optional[int]
    semester_id: Optional[int]
    lec_unit: float
    lab_unit: float
    type: Optional[str]
    source_year_level: Optional[str]
    source_semester: Optional[str]
    is_failed: bool
    is_backtrack: bool
    uses_cross_section: bool
    has_failed_prerequisites: bool
    failed_prerequisite_ids: List[int]
    prerequisite_ids: List[int]
    schedules: List[ScheduleView]
    has_any_schedules: bool
    has_section_schedules: bool
    preselected: bool = False

@dataclass
class EvaluationResult:
    subjects: List[EligibilityResult]
    preselected: List[int]
    failed_subject_ids: List[int]

@dataclass
class CommitResult:
    status: str  # "success" | "warning"
    message: str
    enrolled: List[str] = field(default_factory=list)
    skipped: List[str] = field(default_factory=list)
