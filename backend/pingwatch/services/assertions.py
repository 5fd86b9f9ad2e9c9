"""Assertion evaluator - one predicate against one extracted value."""
import json
import math
import re
from typing import Any, Callable, Dict

from ..schemas.script import Assertion
from .extractor import UNDEFINED, extract_value, is_missing, to_text
from .results import AssertionResult


# Same grammar as a JavaScript numeric string: decimal, exponent, hex, Infinity
_NUMBER_RE = re.compile(r"^[+-]?(?:\d+\.?\d*(?:[eE][+-]?\d+)?|\.\d+(?:[eE][+-]?\d+)?|Infinity)$")
_HEX_RE = re.compile(r"^0[xX][0-9a-fA-F]+$")


def to_number(value: Any) -> float:
    """Numeric coercion. Returns NaN when the value is not numeric."""
    if isinstance(value, bool):
        return 1.0 if value else 0.0
    if isinstance(value, (int, float)):
        return float(value)
    if value is None:
        return 0.0
    if isinstance(value, str):
        text = value.strip()
        if not text:
            return 0.0
        if _HEX_RE.match(text):
            return float(int(text, 16))
        if _NUMBER_RE.match(text):
            return float(text.replace("Infinity", "inf"))
    return math.nan


def strict_equals(actual: Any, expected: Any) -> bool:
    """Equality without cross-type coercion (1 != "1", True != 1)."""
    if actual is UNDEFINED or expected is UNDEFINED:
        return actual is expected
    if isinstance(actual, bool) or isinstance(expected, bool):
        return isinstance(actual, bool) and isinstance(expected, bool) and actual == expected
    if isinstance(actual, (int, float)) and isinstance(expected, (int, float)):
        return actual == expected
    if type(actual) is not type(expected):
        return False
    return actual == expected


def describe(value: Any) -> str:
    """Render a value for assertion messages."""
    if value is UNDEFINED:
        return "undefined"
    if isinstance(value, str):
        return json.dumps(value, ensure_ascii=False)
    text = to_text(value)
    return text if len(text) <= 100 else text[:97] + "..."


def value_length(value: Any) -> int:
    """Length of a list or string; -1 for anything else."""
    if isinstance(value, (list, str)):
        return len(value)
    return -1


def _equals(check, value, expected):
    if strict_equals(value, expected):
        return True, f"{check} equals {describe(expected)}"
    return False, f"Expected {check} to equal {describe(expected)}, got {describe(value)}"


def _not_equals(check, value, expected):
    if not strict_equals(value, expected):
        return True, f"{check} does not equal {describe(expected)}"
    return False, f"Expected {check} to not equal {describe(expected)}"


def _contains(check, value, expected):
    haystack = "" if is_missing(value) else to_text(value)
    needle = to_text(expected)
    if needle in haystack:
        return True, f"{check} contains {describe(needle)}"
    return False, f"Expected {check} to contain {describe(needle)}"


def _not_contains(check, value, expected):
    haystack = "" if is_missing(value) else to_text(value)
    needle = to_text(expected)
    if needle not in haystack:
        return True, f"{check} does not contain {describe(needle)}"
    return False, f"Expected {check} to not contain {describe(needle)}"


def _matches(check, value, expected):
    pattern = to_text(expected)
    try:
        regex = re.compile(pattern)
    except re.error as e:
        return False, f"Invalid pattern {describe(pattern)} for {check}: {e}"
    subject = "" if is_missing(value) else to_text(value)
    if regex.search(subject):
        return True, f"{check} matches /{pattern}/"
    return False, f"Expected {check} to match /{pattern}/, got {describe(value)}"


def _numeric(symbol: str, compare: Callable[[float, float], bool]):
    def evaluate(check, value, expected):
        actual = to_number(value)
        limit = to_number(expected)
        if math.isnan(actual) or math.isnan(limit):
            return False, f"Expected {check} to be a number {symbol} {describe(expected)}, got {describe(value)}"
        if compare(actual, limit):
            return True, f"{check} is {symbol} {describe(expected)}"
        return False, f"Expected {check} {symbol} {describe(expected)}, got {describe(value)}"
    return evaluate


def _exists(check, value, expected):
    present = not is_missing(value)
    if present == bool(expected):
        return True, f"{check} {'exists' if present else 'does not exist'}"
    if expected:
        return False, f"Expected {check} to exist"
    return False, f"Expected {check} to not exist, got {describe(value)}"


def _has_key(check, value, expected):
    key = to_text(expected)
    if isinstance(value, dict) and key in value:
        return True, f"{check} has key {describe(key)}"
    return False, f"Expected {check} to have key {describe(key)}"


def _length(label: str, compare: Callable[[int, float], bool]):
    def evaluate(check, value, expected):
        length = value_length(value)
        limit = to_number(expected)
        if length >= 0 and not math.isnan(limit) and compare(length, limit):
            return True, f"{check} has {label} {describe(expected)}"
        if length < 0:
            return False, f"Expected {check} to have {label} {describe(expected)}, but it has no length"
        return False, f"Expected {check} to have {label} {describe(expected)}, got {length}"
    return evaluate


_EVALUATORS: Dict[str, Callable[[str, Any, Any], tuple]] = {
    "equals": _equals,
    "not_equals": _not_equals,
    "contains": _contains,
    "not_contains": _not_contains,
    "matches": _matches,
    "greater_than": _numeric(">", lambda a, b: a > b),
    "less_than": _numeric("<", lambda a, b: a < b),
    "greater_or_equal": _numeric(">=", lambda a, b: a >= b),
    "less_or_equal": _numeric("<=", lambda a, b: a <= b),
    "exists": _exists,
    "has_key": _has_key,
    "has_length": _length("length", lambda n, limit: n == limit),
    "min_length": _length("min length", lambda n, limit: n >= limit),
    "max_length": _length("max length", lambda n, limit: n <= limit),
}


def evaluate_assertion(assertion: Assertion, context: dict) -> AssertionResult:
    """Evaluate one assertion against a step's response context.
    
    Only the first operator present (in ASSERTION_OPERATORS order) is
    evaluated. An assertion without an operator passes.
    """
    severity = assertion.effective_severity
    operator = assertion.operator()
    if operator is None:
        return AssertionResult(
            check=assertion.check,
            passed=True,
            severity=severity,
            message=f"{assertion.check}: no operator specified",
        )
    
    value = extract_value(context, assertion.check)
    expected = getattr(assertion, operator)
    passed, message = _EVALUATORS[operator](assertion.check, value, expected)
    return AssertionResult(
        check=assertion.check,
        passed=passed,
        severity=severity,
        message=message,
    )
