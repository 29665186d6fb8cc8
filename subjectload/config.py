"""
Configuration values for the subject load service.

Everything here can be overridden with a SUBJECTLOAD_* environment variable
read at import time.
"""

import os

PROJECT_ROOT = os.path.dirname(os.path.dirname(os.path.abspath(__file__)))


def _env_flag(name: str, default: bool) -> bool:
    raw = os.environ.get(name)
    if raw is None:
        return default
    return raw.strip().lower() in ("1", "true", "yes", "on")


# Directory holding the JSON snapshot (subjects.json, curricula.json, ...)
DATA_DIR = os.environ.get("SUBJECTLOAD_DATA_DIR", os.path.join(PROJECT_ROOT, "data", "sample"))

# Grades run 1.0 (best) to 5.0; anything above the threshold is a failure.
PASSING_THRESHOLD = float(os.environ.get("SUBJECTLOAD_PASSING_THRESHOLD", "3.0"))

FAILING_REMARKS = frozenset({"failed", "incomplete", "dropped"})

# False keeps the historical reading: any failed attempt means a retake.
LATEST_ATTEMPT_ONLY = _env_flag("SUBJECTLOAD_LATEST_ATTEMPT_ONLY", False)

LOG_LEVEL = os.environ.get("SUBJECTLOAD_LOG_LEVEL", "INFO").upper()

NO_FACULTY_LABEL = "No Faculty Assigned"

NO_CURRICULUM_WARNING = "No curriculum assigned to this program yet. Subject list may be empty."
NO_ACTIVE_SEMESTER_WARNING = "No active semester configured. Subject list may be empty."
LOAD_ERROR_MESSAGE = "Failed to load subjects. Please try again or contact support."

# Commit results kept for repeated submissions; oldest entries are evicted first
COMMIT_RESULT_CACHE_SIZE = int(os.environ.get("SUBJECTLOAD_COMMIT_RESULT_CACHE_SIZE", "1024"))
