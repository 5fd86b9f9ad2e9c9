from __future__ import annotations

import math

import pytest

from pingwatch.schemas.script import Assertion
from pingwatch.services.assertions import evaluate_assertion, strict_equals, to_number


CONTEXT = {
    "status": 200,
    "body": '{"ok": true, "version": "2.4.1"}',
    "json": {"ok": True, "version": "2.4.1", "items": [1, 2, 3], "count": "17", "meta": {"id": 1}},
    "headers": {"content-type": "application/json"},
    "responseTime": 120,
}


def run(document: dict):
    return evaluate_assertion(Assertion.model_validate(document), CONTEXT)


@pytest.mark.parametrize(
    "document",
    [
        {"check": "status", "equals": 200},
        {"check": "status", "notEquals": 500},
        {"check": "body", "contains": "version"},
        {"check": "body", "notContains": "error"},
        {"check": "json.version", "matches": r"^\d+\.\d+\.\d+$"},
        {"check": "responseTime", "lessThan": 500},
        {"check": "json.count", "greaterThan": 10},
        {"check": "json.count", "greaterOrEqual": "17"},
        {"check": "json.items.length", "lessOrEqual": 3},
        {"check": "json.meta", "exists": True},
        {"check": "json.missing", "exists": False},
        {"check": "json.meta", "hasKey": "id"},
        {"check": "json.items", "hasLength": 3},
        {"check": "json.items", "minLength": 2},
        {"check": "json.version", "maxLength": 10},
        {"check": "json.ok", "equals": True},
        {"check": "json.meta", "equals": {"id": 1}},
    ],
)
def test_passing_assertions(document: dict) -> None:
    result = run(document)
    assert result.passed, result.message


@pytest.mark.parametrize(
    "document, message",
    [
        ({"check": "status", "equals": 201}, "Expected status to equal 201, got 200"),
        ({"check": "status", "equals": "200"}, 'Expected status to equal "200", got 200'),
        ({"check": "body", "contains": "nope"}, 'Expected body to contain "nope"'),
        ({"check": "json.missing", "exists": True}, "Expected json.missing to exist"),
        ({"check": "json.meta", "hasKey": "name"}, 'Expected json.meta to have key "name"'),
        ({"check": "json.items", "hasLength": 2}, "Expected json.items to have length 2, got 3"),
        ({"check": "status", "lessThan": 100}, "Expected status < 100, got 200"),
    ],
)
def test_failing_assertions_explain_themselves(document: dict, message: str) -> None:
    result = run(document)
    assert not result.passed
    assert result.message == message


def test_first_operator_in_fixed_order_wins() -> None:
    # equals is evaluated before lessThan regardless of key order in the document
    result = run({"check": "status", "lessThan": 100, "equals": 200})
    assert result.passed


def test_assertion_without_operator_passes() -> None:
    assert run({"check": "status"}).passed


def test_operator_with_null_value_is_still_evaluated() -> None:
    result = run({"check": "status", "equals": None})
    assert not result.passed


def test_severity_defaults_to_degraded() -> None:
    assert run({"check": "status", "equals": 500}).severity == "degraded"
    assert run({"check": "status", "equals": 500, "severity": "down"}).severity == "down"


def test_numeric_comparison_against_non_number_fails() -> None:
    result = run({"check": "json.version", "greaterThan": 1})
    assert not result.passed
    assert "to be a number" in result.message


def test_length_of_non_sequence_fails() -> None:
    result = run({"check": "status", "minLength": 1})
    assert not result.passed
    assert result.message.endswith("but it has no length")


def test_invalid_regex_fails_instead_of_raising() -> None:
    result = run({"check": "body", "matches": "("})
    assert not result.passed
    assert result.message.startswith('Invalid pattern "("')


def test_to_number_and_strict_equals() -> None:
    assert to_number("42") == 42
    assert to_number(" 1e3 ") == 1000
    assert to_number("0x10") == 16
    assert to_number("") == 0
    assert math.isnan(to_number("abc"))
    assert math.isnan(to_number({"a": 1}))
    assert strict_equals(1, 1.0)
    assert not strict_equals(1, "1")
    assert not strict_equals(True, 1)
