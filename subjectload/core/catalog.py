"""
Grouped views of a curriculum: the browse catalog (year level -> semester ->
subject), the credit catalog shown next to the subject load, and the
crediting sheet.
"""

from typing import Any, Dict, List, Mapping, Optional

from subjectload.core.models import CreditedSubject, Curriculum, CurriculumSubject, ReferenceData

UNASSIGNED_YEAR_LEVEL = "Unassigned Year Level"
UNASSIGNED_SEMESTER = "Unassigned Semester"


def _subject_fields(reference: ReferenceData, cs: CurriculumSubject) -> Dict[str, Any]:
    subject = reference.subject_for(cs)
    return {
        "code": subject.code if subject is not None else None,
        "descriptive_title": subject.descriptive_title if subject is not None else None,
    }


def build_catalog(curriculum: Curriculum, reference: ReferenceData) -> List[Dict[str, Any]]:
    def sort_key(cs: CurriculumSubject):
        code = _subject_fields(reference, cs)["code"] or ""
        return (cs.year_level_id or 0, cs.semester_id or 0, code)

    years: Dict[str, Dict[str, Any]] = {}
    for cs in sorted(curriculum.subjects, key=sort_key):
        year_label = reference.year_level_label(cs.year_level_id) or UNASSIGNED_YEAR_LEVEL
        year = years.setdefault(year_label, {
            "year_level_id": cs.year_level_id,
            "year_level_name": year_label,
            "semesters": {},
        })
        sem_label = reference.semester_label(cs.semester_id) or UNASSIGNED_SEMESTER
        semester = year["semesters"].setdefault(sem_label, {
            "semester_id": cs.semester_id if sem_label != UNASSIGNED_SEMESTER else None,
            "semester_name": sem_label,
            "subjects": [],
        })
        item = {"id": cs.id, "subject_id": cs.subject_id}
        item.update(_subject_fields(reference, cs))
        item.update({"lec_unit": cs.lec_unit, "lab_unit": cs.lab_unit, "type": cs.type})
        semester["subjects"].append(item)

    out: List[Dict[str, Any]] = []
    for year in sorted(years.values(), key=lambda y: y["year_level_id"] or 0):
        semesters = sorted(year["semesters"].values(), key=lambda s: s["semester_id"] or 0)
        out.append({
            "year_level_id": year["year_level_id"],
            "year_level_name": year["year_level_name"],
            "semesters": semesters,
        })
    return out


def build_credit_catalog(curriculum: Curriculum, reference: ReferenceData) -> List[Dict[str, Any]]:
    groups: Dict[Optional[int], Dict[str, Any]] = {}
    for cs in curriculum.subjects:
        group = groups.setdefault(cs.year_level_id, {
            "year_level_id": cs.year_level_id,
            "year_level_name": reference.year_level_label(cs.year_level_id) or "N/A",
            "subjects": [],
        })
        item = {
            "id": cs.id,
            "semester_id": cs.semester_id,
            "semester": reference.semester_label(cs.semester_id),
        }
        item.update(_subject_fields(reference, cs))
        item.update({"lec_unit": cs.lec_unit, "lab_unit": cs.lab_unit})
        group["subjects"].append(item)
    return list(groups.values())


def build_crediting_sheet(
    curriculum: Curriculum,
    reference: ReferenceData,
    credited: Mapping[int, CreditedSubject],
) -> List[Dict[str, Any]]:
    groups: Dict[str, Dict[str, Any]] = {}
    for cs in curriculum.subjects:
        fields = _subject_fields(reference, cs)
        lec = cs.lec_unit or 0
        lab = cs.lab_unit or 0
        record = credited.get(cs.id)
        year_label = reference.year_level_label(cs.year_level_id) or "N/A"
        group = groups.setdefault(year_label, {"year_level": year_label, "subjects": []})
        group["subjects"].append({
            "id": cs.id,
            "subject_code": fields["code"] or "",
            "subject_title": fields["descriptive_title"] or "",
            "lec_unit": lec,
            "lab_unit": lab,
            "total_units": lec + lab,
            "semester": reference.semester_label(cs.semester_id) or "N/A",
            "year_level": year_label,
            "is_credited": record is not None,
            "credited_units": record.credited_units if record is not None else None,
            "remarks": record.remarks if record is not None else None,
        })
    return list(groups.values())
