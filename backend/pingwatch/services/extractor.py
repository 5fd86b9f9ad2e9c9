"""Dot-path value extraction and ${var} interpolation for script steps."""
import json
import math
import re
from typing import Any, Mapping


class _Undefined:
    """Marker for a value that could not be resolved (distinct from JSON null)."""
    
    _instance = None
    
    def __new__(cls):
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance
    
    def __repr__(self) -> str:
        return "undefined"
    
    def __bool__(self) -> bool:
        return False


UNDEFINED = _Undefined()

# name, then any number of [N] suffixes: "items[0][2]"
_SEGMENT_RE = re.compile(r"^([^\[\]]*)((?:\[\d+\])*)$")
_INDEX_RE = re.compile(r"\[(\d+)\]")
_VARIABLE_RE = re.compile(r"\$\{([^}]+)\}")


def is_missing(value: Any) -> bool:
    """True for None and UNDEFINED."""
    return value is None or value is UNDEFINED


def _get_key(current: Any, key: str) -> Any:
    if isinstance(current, Mapping):
        return current.get(key, UNDEFINED)
    if key == "length" and isinstance(current, (list, str)):
        return len(current)
    if isinstance(current, list) and key.isdigit():
        return _get_index(current, int(key))
    return UNDEFINED


def _get_index(current: Any, index: int) -> Any:
    if isinstance(current, (list, str)):
        if 0 <= index < len(current):
            return current[index]
        return UNDEFINED
    if isinstance(current, Mapping):
        return current.get(str(index), UNDEFINED)
    return UNDEFINED


def extract_value(result: Any, path: str) -> Any:
    """Resolve a path like ``json.items[0].id`` against a step result context.
    
    Never raises: the first unresolvable segment, or a null/undefined
    intermediate, yields UNDEFINED.
    """
    if not path:
        return UNDEFINED
    
    current = result
    for segment in path.split("."):
        if is_missing(current):
            return UNDEFINED
        match = _SEGMENT_RE.match(segment)
        if not match:
            return UNDEFINED
        key, indexes = match.groups()
        if key:
            current = _get_key(current, key)
        for index in _INDEX_RE.findall(indexes):
            if is_missing(current):
                return UNDEFINED
            current = _get_index(current, int(index))
    return current


def to_text(value: Any) -> str:
    """Render a value the way it appears when substituted into a string."""
    if isinstance(value, str):
        return value
    if value is UNDEFINED:
        return "undefined"
    if value is None:
        return "null"
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, float):
        if math.isnan(value):
            return "NaN"
        if math.isinf(value):
            return "Infinity" if value > 0 else "-Infinity"
        if value.is_integer():
            return str(int(value))
        return repr(value)
    if isinstance(value, (dict, list)):
        return json.dumps(value, separators=(",", ":"), ensure_ascii=False)
    return str(value)


def interpolate(template: str, variables: Mapping[str, Any]) -> str:
    """Replace every ``${name}`` with its variable value.
    
    Unknown or unresolved names are left as ``${name}`` so a broken chain
    shows up in the request instead of silently producing an empty string.
    """
    def replace(match: re.Match) -> str:
        name = match.group(1).strip()
        value = variables.get(name, UNDEFINED)
        if value is UNDEFINED:
            return match.group(0)
        return to_text(value)
    
    return _VARIABLE_RE.sub(replace, template)


def interpolate_value(value: Any, variables: Mapping[str, Any]) -> Any:
    """Interpolate string leaves of a nested dict/list structure."""
    if isinstance(value, str):
        return interpolate(value, variables)
    if isinstance(value, dict):
        return {key: interpolate_value(item, variables) for key, item in value.items()}
    if isinstance(value, list):
        return [interpolate_value(item, variables) for item in value]
    return value
