from __future__ import annotations

from pingwatch.services.extractor import (
    UNDEFINED,
    extract_value,
    interpolate,
    interpolate_value,
    is_missing,
    to_text,
)


CONTEXT = {
    "status": 200,
    "headers": {"content-type": "application/json"},
    "json": {
        "user": {"id": 42, "name": "ada", "tags": ["a", "b", "c"]},
        "items": [{"id": "first"}, {"id": "second", "nested": [[1, 2], [3, 4]]}],
        "empty": None,
    },
}


def test_extract_dotted_paths_and_indexes() -> None:
    assert extract_value(CONTEXT, "status") == 200
    assert extract_value(CONTEXT, "json.user.name") == "ada"
    assert extract_value(CONTEXT, "json.items[1].id") == "second"
    assert extract_value(CONTEXT, "json.items[1].nested[1][0]") == 3
    assert extract_value(CONTEXT, "json.user.tags.1") == "b"


def test_extract_length_of_lists_and_strings() -> None:
    assert extract_value(CONTEXT, "json.user.tags.length") == 3
    assert extract_value(CONTEXT, "json.user.name.length") == 3


def test_unresolvable_paths_are_undefined_not_none() -> None:
    assert extract_value(CONTEXT, "json.missing") is UNDEFINED
    assert extract_value(CONTEXT, "json.items[9].id") is UNDEFINED
    assert extract_value(CONTEXT, "json.empty.deeper") is UNDEFINED
    assert extract_value(CONTEXT, "json.user.id.more") is UNDEFINED
    assert extract_value(CONTEXT, "") is UNDEFINED
    # A present null stays null
    assert extract_value(CONTEXT, "json.empty") is None


def test_undefined_is_falsy_and_missing() -> None:
    assert not UNDEFINED
    assert is_missing(UNDEFINED)
    assert is_missing(None)
    assert not is_missing(0)
    assert repr(UNDEFINED) == "undefined"


def test_to_text_renders_like_string_substitution() -> None:
    assert to_text("plain") == "plain"
    assert to_text(True) == "true"
    assert to_text(None) == "null"
    assert to_text(3.0) == "3"
    assert to_text(2.5) == "2.5"
    assert to_text({"a": [1, 2]}) == '{"a":[1,2]}'


def test_interpolate_replaces_known_and_keeps_unknown() -> None:
    variables = {"token": "abc", "count": 3, "flag": False, "nothing": UNDEFINED}
    assert interpolate("Bearer ${token}", variables) == "Bearer abc"
    assert interpolate("${count} items, ${flag}", variables) == "3 items, false"
    assert interpolate("id=${missing}", variables) == "id=${missing}"
    assert interpolate("x=${nothing}", variables) == "x=${nothing}"


def test_interpolate_value_walks_nested_bodies() -> None:
    body = {"user": "${name}", "ids": ["${id}", 7], "keep": None}
    result = interpolate_value(body, {"name": "ada", "id": 42})
    assert result == {"user": "ada", "ids": ["42", 7], "keep": None}
