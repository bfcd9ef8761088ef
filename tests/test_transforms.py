"""Tests for jq-style context transforms."""

import pytest

from playground.errors import ExpressionError
from playground.transforms import ContextTransform, apply_transform


@pytest.fixture
def engine() -> ContextTransform:
    return ContextTransform()


@pytest.fixture
def data():
    return {
        "results": [
            {"name": "bulbasaur", "active": True, "level": 5},
            {"name": "charmander", "active": False, "level": 9},
            {"name": "squirtle", "active": True, "level": 7},
        ],
        "meta": {"count": 3, "page": 1},
    }


class TestPaths:
    def test_identity(self, engine: ContextTransform, data) -> None:
        assert engine.apply(data, ".") is data

    def test_empty_query_returns_data(self, engine: ContextTransform, data) -> None:
        assert engine.apply(data, "") is data
        assert engine.apply(data, "   ") is data

    def test_nested_path(self, engine: ContextTransform, data) -> None:
        assert engine.apply(data, ".meta.count") == 3

    def test_index(self, engine: ContextTransform, data) -> None:
        assert engine.apply(data, ".results[1].name") == "charmander"

    def test_iteration_maps_following_stages(self, engine: ContextTransform, data) -> None:
        assert engine.apply(data, ".results[] | .name") == ["bulbasaur", "charmander", "squirtle"]

    def test_fan_out_path(self, engine: ContextTransform, data) -> None:
        assert engine.apply(data, ".results[].level") == [5, 9, 7]

    def test_missing_path_raises(self, engine: ContextTransform, data) -> None:
        with pytest.raises(ExpressionError, match="not found"):
            engine.apply(data, ".nope")


class TestPipelines:
    def test_select(self, engine: ContextTransform, data) -> None:
        result = engine.apply(data, ".results | select(item.active) | length")
        assert result == 2

    def test_select_with_or_operator(self, engine: ContextTransform, data) -> None:
        result = engine.apply(data, ".results[] | select(item.level > 8 || item.name == 'squirtle') | .name")
        assert result == ["charmander", "squirtle"]

    def test_array_construction(self, engine: ContextTransform, data) -> None:
        assert engine.apply(data, "[.meta.count]") == [3]
        assert engine.apply(data, "[.results[] | .level] | sort") == [5, 7, 9]

    def test_select_syntax_error_fails_transform(self, engine: ContextTransform, data) -> None:
        with pytest.raises(ExpressionError):
            engine.apply(data, ".results | select(item.active ===)")

    def test_unbalanced_query(self, engine: ContextTransform, data) -> None:
        with pytest.raises(ExpressionError):
            engine.apply(data, ".results | select(item.active")

    def test_empty_stage(self, engine: ContextTransform, data) -> None:
        with pytest.raises(ExpressionError, match="Empty pipeline stage"):
            engine.apply(data, ".results | | length")


class TestBuiltins:
    @pytest.mark.parametrize(
        "query,expected",
        [
            (".meta | keys", ["count", "page"]),
            (".meta | values", [3, 1]),
            (".results | first | .name", "bulbasaur"),
            (".results | last | .name", "squirtle"),
            (".results[] | .level | reverse", [7, 9, 5]),
            (".results | length", 3),
            (".meta | length", 2),
        ],
    )
    def test_builtins(self, engine: ContextTransform, data, query, expected) -> None:
        assert engine.apply(data, query) == expected

    def test_unique_and_flatten(self, engine: ContextTransform) -> None:
        assert engine.apply([[3, 1], [1, 2]], "flatten | unique") == [1, 2, 3]

    def test_sort_mixed_types(self, engine: ContextTransform) -> None:
        assert engine.apply(["b", 2, None, "a", 1], "sort") == [None, 1, 2, "a", "b"]

    def test_builtin_type_error(self, engine: ContextTransform) -> None:
        with pytest.raises(ExpressionError, match="keys requires an object"):
            engine.apply([1, 2], "keys")


class TestFailOpen:
    def test_failure_returns_data_and_warns(self, engine: ContextTransform, data, mock_display) -> None:
        assert engine.run(data, ".nope.deeper") is data
        mock_display.print_warning.assert_called_once()
        assert "Context transform" in mock_display.print_warning.call_args[0][0]

    def test_no_query_is_identity(self, data) -> None:
        assert apply_transform(data, None) is data

    def test_success(self, data) -> None:
        assert apply_transform(data, ".meta.page") == 1
