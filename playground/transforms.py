"""Context transforms: jq-style queries reshaping a node's data before iteration.

Supports:
- Identity and paths: ``.``, ``.results``, ``.items[0].name``
- Array iteration: ``.items[]`` (later path stages apply to each element)
- Pipelines: ``.items[] | .name``
- Filtering: ``select(item.active)`` using the condition language
- Array construction: ``[.items[] | .name]``
- Built-ins: length, keys, values, first, last, reverse, sort, unique, flatten

A failing transform leaves the data unchanged and is reported as a warning.
"""

from typing import Any, Callable, Dict, List, Optional

from .conditions import get_evaluator
from .display import get_display
from .errors import ExpressionError
from .paths import ITERATE, UNDEFINED, parse_path, resolve_all


class ContextTransform:
    """Evaluates transform queries against JSON data."""

    def apply(self, data: Any, query: str) -> Any:
        """Run a query.

        Raises:
            ExpressionError: If the query is malformed or a stage fails
        """
        query = (query or "").strip()
        if not query:
            return data
        try:
            return self._execute_query(data, query)
        except RecursionError:
            raise ExpressionError("Transform nested too deeply", query)

    def run(self, data: Any, query: Optional[str]) -> Any:
        """Run a query, returning the input unchanged on failure."""
        if not query or not query.strip():
            return data
        try:
            return self.apply(data, query)
        except ExpressionError as e:
            get_display().print_warning(
                f"Context transform '{query}' failed: {e}. Using untransformed data."
            )
            return data

    # =========================================================================
    # Query engine
    # =========================================================================

    def _execute_query(self, data: Any, query: str) -> Any:
        query = query.strip()

        # Handle array constructor: [...]
        if query.startswith("[") and query.endswith("]") and self._is_enclosed(query):
            result = self._execute_query(data, query[1:-1])
            if not isinstance(result, list):
                return [result]
            return result

        current = data
        streaming = False
        for stage in self._split_pipeline(query):
            current, streaming = self._execute_stage(current, stage, streaming)

        return current

    def _is_enclosed(self, query: str) -> bool:
        """Whether the opening bracket at 0 closes at the very end."""
        depth = 0
        for idx, char in enumerate(query):
            if char == "[":
                depth += 1
            elif char == "]":
                depth -= 1
                if depth == 0 and idx != len(query) - 1:
                    return False
        return depth == 0

    def _split_pipeline(self, query: str) -> List[str]:
        """Split query on pipe operators, respecting parentheses and quotes."""
        stages: List[str] = []
        current = ""
        depth = 0
        in_string = False
        string_char = None
        i = 0

        while i < len(query):
            char = query[i]

            # Handle string delimiters
            if char in ('"', "'") and (i == 0 or query[i - 1] != "\\"):
                if not in_string:
                    in_string = True
                    string_char = char
                elif char == string_char:
                    in_string = False
                    string_char = None

            elif not in_string:
                if char in "([":
                    depth += 1
                elif char in ")]":
                    depth -= 1
                elif char == "|" and depth == 0:
                    # "||" belongs to a condition, not the pipeline
                    if i + 1 < len(query) and query[i + 1] == "|":
                        current += "||"
                        i += 2
                        continue
                    if not current.strip():
                        raise ExpressionError("Empty pipeline stage", query)
                    stages.append(current.strip())
                    current = ""
                    i += 1
                    continue

            current += char
            i += 1

        if in_string or depth != 0:
            raise ExpressionError("Unbalanced quotes or brackets", query)
        if not current.strip():
            raise ExpressionError("Empty pipeline stage", query)
        stages.append(current.strip())

        return stages

    def _execute_stage(self, data: Any, stage: str, streaming: bool) -> "tuple[Any, bool]":
        """Execute a single pipeline stage.

        Returns:
            (result, streaming) where streaming means the result is a list of
            elements produced by iteration that later path stages map over
        """
        if stage.startswith("[") and stage.endswith("]") and self._is_enclosed(stage):
            result = self._execute_query(data, stage[1:-1])
            return (result if isinstance(result, list) else [result]), False

        if stage.startswith("select(") and stage.endswith(")"):
            condition = stage[7:-1].strip()
            if not condition:
                raise ExpressionError("select() requires a condition", stage)
            # Syntax errors fail the whole transform; per-item errors keep the item
            get_evaluator().compile(condition)
            if isinstance(data, list):
                return get_evaluator().filter(data, condition), streaming
            if get_evaluator().matches(condition, data):
                return data, streaming
            return [], streaming

        transform = self._get_transform(stage)
        if transform is not None:
            return transform(data), False

        return self._traverse(data, stage, streaming)

    def _traverse(self, data: Any, path: str, streaming: bool) -> "tuple[Any, bool]":
        """Apply a path stage, mapping over elements when streaming."""
        parts = parse_path(path.lstrip("."))
        if parts is None:
            raise ExpressionError(f"Invalid path '{path}'", path)
        fans_out = any(part is ITERATE for part in parts)

        if streaming and isinstance(data, list):
            results: List[Any] = []
            for item in data:
                value = resolve_all(item, path)
                if value is UNDEFINED:
                    continue
                if fans_out and isinstance(value, list):
                    results.extend(value)
                else:
                    results.append(value)
            return results, True

        value = resolve_all(data, path)
        if value is UNDEFINED:
            raise ExpressionError(f"Path '{path}' not found", path)
        return value, streaming or fans_out

    # =========================================================================
    # Built-in Transforms
    # =========================================================================

    def _get_transform(self, name: str) -> Optional[Callable[[Any], Any]]:
        """Get a built-in transform function by name."""
        transforms: Dict[str, Callable[[Any], Any]] = {
            "length": self._transform_length,
            "keys": self._transform_keys,
            "values": self._transform_values,
            "first": self._transform_first,
            "last": self._transform_last,
            "reverse": self._transform_reverse,
            "sort": self._transform_sort,
            "unique": self._transform_unique,
            "flatten": self._transform_flatten,
        }
        return transforms.get(name)

    def _transform_length(self, data: Any) -> int:
        """Return length of array, object (key count), or string."""
        if isinstance(data, (list, dict, str)):
            return len(data)
        raise ExpressionError(f"Cannot get length of {type(data).__name__}")

    def _transform_keys(self, data: Any) -> List[str]:
        if not isinstance(data, dict):
            raise ExpressionError("keys requires an object")
        return list(data.keys())

    def _transform_values(self, data: Any) -> List[Any]:
        if not isinstance(data, dict):
            raise ExpressionError("values requires an object")
        return list(data.values())

    def _transform_first(self, data: Any) -> Any:
        if not isinstance(data, list):
            raise ExpressionError("first requires an array")
        return data[0] if data else None

    def _transform_last(self, data: Any) -> Any:
        if not isinstance(data, list):
            raise ExpressionError("last requires an array")
        return data[-1] if data else None

    def _transform_reverse(self, data: Any) -> Any:
        if isinstance(data, str):
            return data[::-1]
        if not isinstance(data, list):
            raise ExpressionError("reverse requires an array")
        return list(reversed(data))

    def _transform_sort(self, data: Any) -> List[Any]:
        """Sort array elements; mixed types order by type name first."""
        if not isinstance(data, list):
            raise ExpressionError("sort requires an array")
        return sorted(data, key=self._sort_key)

    def _transform_unique(self, data: Any) -> List[Any]:
        if not isinstance(data, list):
            raise ExpressionError("unique requires an array")
        result: List[Any] = []
        for item in sorted(data, key=self._sort_key):
            if not result or result[-1] != item:
                result.append(item)
        return result

    def _transform_flatten(self, data: Any) -> List[Any]:
        """Flatten one level of nested arrays."""
        if not isinstance(data, list):
            raise ExpressionError("flatten requires an array")
        result: List[Any] = []
        for item in data:
            if isinstance(item, list):
                result.extend(item)
            else:
                result.append(item)
        return result

    def _sort_key(self, value: Any) -> "tuple[int, Any]":
        # null < false/true < numbers < strings < arrays < objects
        if value is None:
            return (0, 0)
        if isinstance(value, bool):
            return (1, int(value))
        if isinstance(value, (int, float)):
            return (2, value)
        if isinstance(value, str):
            return (3, value)
        if isinstance(value, list):
            return (4, len(value))
        return (5, len(value) if isinstance(value, dict) else 0)


# Global transform engine
_engine: Optional[ContextTransform] = None


def get_transform_engine() -> ContextTransform:
    """Get the global ContextTransform instance."""
    global _engine
    if _engine is None:
        _engine = ContextTransform()
    return _engine


def apply_transform(data: Any, query: Optional[str]) -> Any:
    """Fail-open transform of data. Convenience wrapper over the global engine."""
    return get_transform_engine().run(data, query)
