"""Dot/bracket path resolution against JSON values.

Supported syntax:
- Dot notation: ``user.address.city``
- Array indexing: ``results[0].name`` or ``results.0.name``
- Quoted keys: ``headers["content-type"]``
- Fan-out marker: ``abilities[].ability.name`` (see ``resolve_all``)

Every lookup is total: a failed segment produces ``UNDEFINED`` instead of
raising, regardless of how malformed the path or the data is.
"""

from typing import Any, List, Optional, Union


class _Undefined:
    """Sentinel for "no value", distinct from JSON null."""

    _instance: Optional["_Undefined"] = None

    def __new__(cls) -> "_Undefined":
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def __repr__(self) -> str:
        return "UNDEFINED"

    def __bool__(self) -> bool:
        return False

    def __copy__(self) -> "_Undefined":
        return self

    def __deepcopy__(self, memo: Any) -> "_Undefined":
        return self

    def __reduce__(self) -> str:
        return "UNDEFINED"


UNDEFINED = _Undefined()


# Sentinel for array iteration
class _IterateMarker:
    """Marker for array iteration in path parsing."""

    def __repr__(self) -> str:
        return "[]"


ITERATE = _IterateMarker()

Segment = Union[str, int, _IterateMarker]

# Longer digit runs are treated as plain keys; no list is that long
MAX_INDEX_DIGITS = 18


def is_defined(value: Any) -> bool:
    """Whether a resolver result carries a value."""
    return value is not UNDEFINED


def parse_path(path: str) -> Optional[List[Segment]]:
    """Parse path into list of keys, indices, and iteration markers.

    Examples:
    - "field.nested" -> ["field", "nested"]
    - "array[0]" -> ["array", 0]
    - "obj.arr[1].field" -> ["obj", "arr", 1, "field"]
    - "items[]" -> ["items", ITERATE]
    - "items[].name" -> ["items", ITERATE, "name"]

    Returns:
        The segments, or None if the path has an unclosed bracket.
    """
    parts: List[Segment] = []
    current = ""
    i = 0

    while i < len(path):
        char = path[i]

        if char == ".":
            if current.strip():
                parts.append(current.strip())
            current = ""
            i += 1

        elif char == "[":
            if current.strip():
                parts.append(current.strip())
            current = ""
            end = path.find("]", i)
            if end == -1:
                return None
            index_str = path[i + 1 : end].strip()

            if index_str == "":
                parts.append(ITERATE)
            elif _is_int(index_str):
                parts.append(int(index_str))
            else:
                # String key in brackets
                parts.append(index_str.strip("'\""))
            i = end + 1

        else:
            current += char
            i += 1

    if current.strip():
        parts.append(current.strip())

    return parts


def resolve_path(data: Any, path: Optional[str]) -> Any:
    """Resolve a single value at ``path`` inside ``data``.

    An empty path returns ``data`` itself. A ``[]`` marker cannot produce a
    single value and therefore yields ``UNDEFINED``; use ``resolve_all``.

    Args:
        data: Any JSON value
        path: Dot/bracket path expression

    Returns:
        The resolved value, or UNDEFINED when any segment fails
    """
    if path is None:
        return data
    path = _normalize(str(path))
    if not path:
        return data

    parts = parse_path(path)
    if parts is None:
        return UNDEFINED

    current = data
    for part in parts:
        if isinstance(part, _IterateMarker):
            return UNDEFINED
        current = _step(current, part)
        if current is UNDEFINED:
            return UNDEFINED

    return current


def resolve_all(data: Any, path: Optional[str]) -> Any:
    """Resolve a path that may fan out over arrays.

    Each ``[]`` marker continues the remaining path against every element
    of the array it follows. Elements where the remainder fails are dropped,
    and nested markers are flattened into one list. Paths without a marker
    behave like ``resolve_path``.

    Returns:
        A list for fan-out paths, the single value otherwise, or UNDEFINED
        when the part before the first marker fails or is not an array
    """
    if path is None:
        return data
    path = _normalize(str(path))
    if not path:
        return data

    parts = parse_path(path)
    if parts is None:
        return UNDEFINED

    return _traverse(data, parts)


def _traverse(data: Any, parts: List[Segment]) -> Any:
    """Recursively traverse path parts, handling iteration."""
    current = data
    for position, part in enumerate(parts):
        if isinstance(part, _IterateMarker):
            if not isinstance(current, list):
                return UNDEFINED
            remaining = parts[position + 1 :]
            if not remaining:
                return list(current)

            results: List[Any] = []
            nested = any(isinstance(p, _IterateMarker) for p in remaining)
            for item in current:
                value = _traverse(item, remaining)
                if value is UNDEFINED:
                    continue
                # Flatten nested iterations
                if nested and isinstance(value, list):
                    results.extend(value)
                else:
                    results.append(value)
            return results

        current = _step(current, part)
        if current is UNDEFINED:
            return UNDEFINED

    return current


def _step(current: Any, part: Union[str, int]) -> Any:
    """Apply one key or index segment."""
    if isinstance(current, dict):
        key = str(part)
        if key in current:
            return current[key]
        return UNDEFINED

    if isinstance(current, list):
        if isinstance(part, int):
            idx = part
        elif _is_int(part):
            idx = int(part)
        elif part == "length":
            return len(current)
        else:
            return UNDEFINED
        if 0 <= idx < len(current):
            return current[idx]
        return UNDEFINED

    if isinstance(current, str) and part == "length":
        return len(current)

    return UNDEFINED


def _normalize(path: str) -> str:
    """Strip whitespace and a leading jq-style dot."""
    path = path.strip()
    if path.startswith("."):
        path = path[1:]
    return path


def _is_int(text: Any) -> bool:
    if not isinstance(text, str):
        return False
    stripped = text[1:] if text.startswith("-") else text
    return len(stripped) <= MAX_INDEX_DIGITS and stripped.isascii() and stripped.isdigit()
