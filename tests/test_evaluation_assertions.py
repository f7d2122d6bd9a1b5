"""Tests for toolprobe.evaluation.assertions - predicates and failure strings."""

from __future__ import annotations

from toolprobe.evaluation.assertions import (
    apply_captures,
    compare_arguments,
    evaluate_assertion,
    run_assertions,
)
from toolprobe.evaluation.paths import MISSING
from toolprobe.models.scenario import Assertion


def _assertion(**kwargs) -> Assertion:
    return Assertion.model_validate({"path": "p", **kwargs})


class TestEquals:
    """Test the equals predicate."""

    def test_equals_passes(self):
        """Matching values produce no failure."""
        assert evaluate_assertion(_assertion(equals=5), 5, {}) is None

    def test_equals_failure_message(self):
        """Mismatches render both sides as JSON."""
        failure = evaluate_assertion(_assertion(equals="a"), "b", {})
        assert failure == 'expected p to equal "a" but received "b"'

    def test_equals_against_missing(self):
        """An unresolved value renders as undefined."""
        failure = evaluate_assertion(_assertion(equals=1), MISSING, {})
        assert failure == "expected p to equal 1 but received undefined"

    def test_equals_explicit_null(self):
        """equals: null is a real check, not an absent key."""
        assertion = _assertion(equals=None)
        assert assertion.has_equals
        assert evaluate_assertion(assertion, None, {}) is None
        assert evaluate_assertion(assertion, MISSING, {}) is not None

    def test_equals_resolves_capture(self):
        """An exact {{token}} compares against the captured value."""
        failure = evaluate_assertion(_assertion(equals="{{cid}}"), "cust-marcus", {"cid": "cust-marcus"})
        assert failure is None


class TestContainsAndLength:
    """Test contains and minLength predicates."""

    def test_contains_substring(self):
        """contains checks for a substring."""
        assert evaluate_assertion(_assertion(contains="Mar"), "Marcus", {}) is None

    def test_contains_non_string(self):
        """contains on a non-string fails."""
        failure = evaluate_assertion(_assertion(contains="1"), 1, {})
        assert failure == 'expected p to contain "1" but received 1'

    def test_min_length_ok(self):
        """minLength passes for long-enough lists."""
        assert evaluate_assertion(_assertion(minLength=2), [1, 2], {}) is None

    def test_min_length_too_short(self):
        """Short lists report their length."""
        failure = evaluate_assertion(_assertion(minLength=2), [1], {})
        assert failure == "expected p to have length >= 2 but received 1"

    def test_min_length_not_a_list(self):
        """Non-lists report their type."""
        failure = evaluate_assertion(_assertion(minLength=1), "abc", {})
        assert failure == "expected p to have length >= 1 but received string"


class TestExistsAndNull:
    """Test exists and isNull predicates."""

    def test_exists_true(self):
        """Non-empty values exist."""
        assert evaluate_assertion(_assertion(exists=True), 0, {}) is None

    def test_blank_string_does_not_exist(self):
        """Whitespace-only strings do not exist."""
        failure = evaluate_assertion(_assertion(exists=True), "  ", {})
        assert failure == "expected p existence to be true but received false"

    def test_exists_false_for_missing(self):
        """MISSING satisfies exists: false."""
        assert evaluate_assertion(_assertion(exists=False), MISSING, {}) is None

    def test_is_null(self):
        """isNull distinguishes None from MISSING."""
        assert evaluate_assertion(_assertion(isNull=True), None, {}) is None
        failure = evaluate_assertion(_assertion(isNull=True), MISSING, {})
        assert failure == "expected p null state to be true but received false"

    def test_first_failure_wins(self):
        """Only the first violated predicate is reported."""
        assertion = _assertion(equals="x", contains="zzz")
        failure = evaluate_assertion(assertion, "y", {})
        assert failure is not None and "to equal" in failure


class TestRunAssertionsAndCaptures:
    """Test assertion batches and capture recording."""

    def test_run_assertions_collects_failures(self):
        """Each violated assertion yields one line."""
        response = {"customer": {"id": "c1"}, "history": []}
        assertions = [
            Assertion(path="customer.id", equals="c1"),
            Assertion.model_validate({"path": "history", "minLength": 1}),
            Assertion(path="customer.email", exists=True),
        ]
        failures = run_assertions(assertions, response, {})
        assert len(failures) == 2

    def test_apply_captures(self):
        """Captured paths are written into the capture set."""
        captures: dict = {}
        apply_captures({"cid": "customer.id", "gone": "nope"}, {"customer": {"id": "c1"}}, captures)
        assert captures["cid"] == "c1"
        assert captures["gone"] is MISSING


class TestCompareArguments:
    """Test expected-vs-actual argument comparison."""

    def test_extra_actual_arguments_ignored(self):
        """Only expected keys are checked."""
        assert compare_arguments({"a": 1}, {"a": 1, "b": 2}) == []

    def test_missing_and_mismatched(self):
        """Missing keys and unequal values are both reported."""
        issues = compare_arguments({"a": 1, "b": "x"}, {"b": "y"})
        assert issues == [
            "missing argument a",
            'argument b expected "x" but received "y"',
        ]
