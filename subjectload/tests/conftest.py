import copy
import os

import pytest

from subjectload import config
from subjectload.core.engine import EligibilityEngine
from subjectload.core.loaders import load_snapshot
from subjectload.core.policy import GradingPolicy
from subjectload.core.repositories import JsonEnrollmentRepository
from subjectload.core.service import SubjectLoadService

SAMPLE_DIR = os.path.join(config.PROJECT_ROOT, "data", "sample")

_SNAPSHOT = None


@pytest.fixture
def snapshot():
    """
    The sample snapshot: student 500 passed CS101 and ENG101 in 1st year,
    failed MATH101, and is now a 2nd year in section BSCS 2A (enrollment 1002).
    Student 501 (enrollment 1003) has no history.
    """
    global _SNAPSHOT
    if _SNAPSHOT is None:
        _SNAPSHOT = load_snapshot(SAMPLE_DIR)
    return copy.deepcopy(_SNAPSHOT)


@pytest.fixture
def repo(snapshot):
    return JsonEnrollmentRepository(snapshot)


@pytest.fixture
def policy():
    return GradingPolicy(passing_threshold=3.0, latest_attempt_only=False)


@pytest.fixture
def engine(repo, policy):
    return EligibilityEngine(repo.reference, repo.schedules(), policy)


@pytest.fixture
def service(repo, policy):
    return SubjectLoadService(repo, policy)
