"""Tests for the dot/bracket path resolver."""

import copy
import pickle

import pytest

from playground.paths import (
    ITERATE,
    UNDEFINED,
    is_defined,
    parse_path,
    resolve_all,
    resolve_path,
)


class TestUndefined:
    def test_is_falsy_and_distinct_from_none(self) -> None:
        assert not UNDEFINED
        assert UNDEFINED is not None
        assert repr(UNDEFINED) == "UNDEFINED"

    def test_survives_copies(self) -> None:
        assert copy.copy(UNDEFINED) is UNDEFINED
        assert copy.deepcopy({"a": UNDEFINED})["a"] is UNDEFINED

    def test_survives_pickle(self) -> None:
        assert pickle.loads(pickle.dumps(UNDEFINED)) is UNDEFINED

    def test_is_defined(self) -> None:
        assert is_defined(None)
        assert is_defined(0)
        assert not is_defined(UNDEFINED)


class TestParsePath:
    @pytest.mark.parametrize(
        "path,expected",
        [
            ("field.nested", ["field", "nested"]),
            ("array[0]", ["array", 0]),
            ("obj.arr[1].field", ["obj", "arr", 1, "field"]),
            ('headers["content-type"]', ["headers", "content-type"]),
            ("items[-1]", ["items", -1]),
            ("", []),
        ],
    )
    def test_segments(self, path, expected) -> None:
        assert parse_path(path) == expected

    def test_iteration_marker(self) -> None:
        parts = parse_path("items[].name")
        assert parts[0] == "items"
        assert parts[1] is ITERATE
        assert parts[2] == "name"

    def test_unclosed_bracket_returns_none(self) -> None:
        assert parse_path("items[0") is None


class TestResolvePath:
    def test_empty_path_returns_input(self) -> None:
        data = {"a": 1}
        assert resolve_path(data, "") is data
        assert resolve_path(data, None) is data

    def test_nested_keys(self) -> None:
        assert resolve_path({"a": {"b": 5}}, "a.b") == 5

    def test_bracket_index(self) -> None:
        assert resolve_path({"a": [{"b": 7}]}, "a[0].b") == 7

    def test_numeric_dot_segment_indexes_lists(self) -> None:
        assert resolve_path({"items": [{"name": "x"}]}, "items.0.name") == "x"

    def test_missing_key_is_undefined(self) -> None:
        assert resolve_path({}, "missing.x") is UNDEFINED

    def test_null_value_is_defined(self) -> None:
        assert resolve_path({"a": None}, "a") is None
        assert resolve_path({"a": None}, "a.b") is UNDEFINED

    @pytest.mark.parametrize("path", ["items[5]", "items[-1]", "items.name"])
    def test_bad_indexes_are_undefined(self, path) -> None:
        assert resolve_path({"items": [1, 2]}, path) is UNDEFINED

    def test_indexing_scalar_is_undefined(self) -> None:
        assert resolve_path({"a": 3}, "a.b") is UNDEFINED
        assert resolve_path("text", "0") is UNDEFINED

    def test_length(self) -> None:
        assert resolve_path({"items": [1, 2, 3]}, "items.length") == 3
        assert resolve_path({"name": "abcd"}, "name.length") == 4

    def test_leading_dot_is_ignored(self) -> None:
        assert resolve_path({"a": {"b": 1}}, ".a.b") == 1

    def test_iteration_marker_is_undefined_for_single_lookup(self) -> None:
        assert resolve_path({"items": [1]}, "items[]") is UNDEFINED

    @pytest.mark.parametrize(
        "data,path",
        [
            (None, "a"),
            ([1, 2], "x.y.z"),
            ({"a": 1}, "a[[]"),
            ({"a": 1}, "]]"),
            (42, "[0]"),
            ({"a": {"b": [1]}}, "a.b[not-a-number]"),
            ({"a": [1]}, "a[" + "9" * 5000 + "]"),
            ({"a": [1]}, "a." + "9" * 5000),
        ],
    )
    def test_never_raises(self, data, path) -> None:
        resolve_path(data, path)
        resolve_all(data, path)

    @pytest.mark.parametrize("path", ["a[" + "9" * 5000 + "]", "a." + "9" * 5000])
    def test_huge_index_is_undefined(self, path) -> None:
        assert resolve_path({"a": [1]}, path) is UNDEFINED


class TestResolveAll:
    def test_fan_out(self) -> None:
        data = {"abilities": [{"ability": {"name": "a"}}, {"ability": {"name": "b"}}]}
        assert resolve_all(data, "abilities[].ability.name") == ["a", "b"]

    def test_failing_elements_are_dropped(self) -> None:
        data = {"items": [{"name": "a"}, {}, {"name": "c"}]}
        assert resolve_all(data, "items[].name") == ["a", "c"]

    def test_trailing_marker_returns_copy_of_list(self) -> None:
        items = [1, 2]
        result = resolve_all({"items": items}, "items[]")
        assert result == [1, 2]
        assert result is not items

    def test_nested_markers_are_flattened(self) -> None:
        data = {"groups": [{"tags": ["a", "b"]}, {"tags": ["c"]}]}
        assert resolve_all(data, "groups[].tags[]") == ["a", "b", "c"]

    def test_prefix_failure_is_undefined(self) -> None:
        assert resolve_all({"items": {}}, "items[].name") is UNDEFINED
        assert resolve_all({}, "items[].name") is UNDEFINED

    def test_without_marker_behaves_like_resolve_path(self) -> None:
        assert resolve_all({"a": {"b": 2}}, "a.b") == 2
