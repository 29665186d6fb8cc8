import pytest

from subjectload.core.policy import GradingPolicy, as_number, compute_outcome, is_failing_remark


@pytest.mark.parametrize("remarks", ["Failed", "FAILED", " failed ", "Incomplete", "dropped", "Fail - absences"])
def test_failing_remarks_fail_regardless_of_numbers(remarks):
    outcome = compute_outcome(1.0, 1.0, 1.0, remarks)
    assert outcome.is_failed is True


def test_passed_remark_is_not_failure():
    assert is_failing_remark("Passed") is False
    assert is_failing_remark(None) is False
    assert is_failing_remark("") is False


@pytest.mark.parametrize("grade,failed", [(3.25, True), (5.0, True), (3.0, False), (1.0, False)])
def test_grade_only(grade, failed):
    outcome = compute_outcome(None, None, grade)
    assert outcome.score == grade
    assert outcome.is_failed is failed


def test_midterm_and_final_are_averaged():
    passing = compute_outcome(2.0, 2.0, None)
    assert passing.score == 2.0
    assert passing.is_failed is False

    failing = compute_outcome(4.0, 4.0, None)
    assert failing.score == 4.0
    assert failing.is_failed is True


def test_average_takes_precedence_over_grade():
    outcome = compute_outcome(1.5, 1.75, 5.0)
    assert outcome.score == pytest.approx(1.625)
    assert outcome.is_failed is False


def test_single_term_falls_back_to_grade():
    outcome = compute_outcome(1.5, None, 3.5)
    assert outcome.score == 3.5
    assert outcome.is_failed is True


def test_undecidable_score_never_fails():
    outcome = compute_outcome(None, "", "INC")
    assert outcome.score is None
    assert outcome.is_failed is False


def test_as_number_parses_numeric_strings():
    assert as_number("2.25") == 2.25
    assert as_number(" 3 ") == 3.0
    assert as_number("n/a") is None
    assert as_number(True) is None
    assert as_number(float("nan")) is None


def test_policy_threshold_is_configurable():
    lenient = GradingPolicy(passing_threshold=3.5)
    assert lenient.outcome(None, None, 3.25).is_failed is False
    assert GradingPolicy(passing_threshold=3.0).outcome(None, None, 3.25).is_failed is True
