# subjectload/core/loaders.py
import json
import logging
import os
from typing import Any, Dict, List

logger = logging.getLogger(__name__)

# One JSON array per table; files that are absent load as empty tables.
TABLES = (
    "subjects",
    "year_levels",
    "semesters",
    "school_years",
    "sections",
    "faculty",
    "classrooms",
    "courses",
    "curricula",
    "class_schedules",
    "students",
    "enrollments",
    "enrollment_subjects",
    "grades",
    "credited_subjects",
)


def _read_json(path: str) -> Any:
    with open(path, "r", encoding="utf-8") as f:
        return json.load(f)


def load_table(root: str, name: str) -> List[Dict[str, Any]]:
    path = os.path.join(root, f"{name}.json")
    if not os.path.exists(path):
        logger.debug("No %s.json under %s; using an empty table", name, root)
        return []
    rows = _read_json(path)
    if not isinstance(rows, list):
        raise ValueError(f"{path} must contain a JSON array, got {type(rows).__name__}")
    return rows


def load_snapshot(root: str) -> Dict[str, List[Dict[str, Any]]]:
    if not os.path.isdir(root):
        raise FileNotFoundError(f"Data directory not found: {root}")
    snapshot = {name: load_table(root, name) for name in TABLES}
    logger.info(
        "Loaded snapshot from %s (%d enrollments, %d schedules, %d grade rows)",
        root, len(snapshot["enrollments"]), len(snapshot["class_schedules"]), len(snapshot["grades"]),
    )
    return snapshot
