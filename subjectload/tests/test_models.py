from subjectload.core.models import (
    ClassSchedule,
    Curriculum,
    CurriculumSubject,
    Faculty,
    ReferenceData,
    Subject,
)
from subjectload.core.validation import validate_prerequisite_graph


def test_faculty_full_name_skips_blanks():
    assert Faculty(id=1, first_name="Maria", last_name="Reyes").full_name() == "Maria Reyes"
    assert Faculty(id=1, first_name="Maria", middle_name="S.", last_name="Reyes").full_name() == "Maria S. Reyes"


def test_curriculum_find():
    cs = CurriculumSubject(id=3, subject_id=1, year_level_id=1, semester_id=1)
    c = Curriculum(id=1, course_id=1, subjects=[cs])
    assert c.find(3) is cs
    assert c.find(4) is None


def test_subject_title_fallback():
    cs = CurriculumSubject(id=3, subject_id=1, year_level_id=1, semester_id=1)
    ref = ReferenceData(subjects={1: Subject(1, "CS101", "Intro")}, curriculum_subjects={3: cs})
    assert ref.subject_title(3) == "Intro"
    assert ref.subject_title(99) == "Prerequisite"
    assert ref.year_level_label(None) is None


def test_acyclic_graph_passes():
    subjects = [
        CurriculumSubject(id=1, subject_id=1, year_level_id=1, semester_id=1),
        CurriculumSubject(id=2, subject_id=2, year_level_id=1, semester_id=2, prerequisite_ids=[1]),
        CurriculumSubject(id=3, subject_id=3, year_level_id=2, semester_id=1, prerequisite_ids=[1, 2]),
    ]
    validate_prerequisite_graph(subjects)


def test_schedule_defaults():
    s = ClassSchedule(id=1, curriculum_subject_id=2, section_id=None, semester_id=1, school_year_id=1)
    assert s.faculty_id is None
    assert s.classroom_id is None
