"""Template interpolation for string props.

Supports:
- Mustache tokens: {{name}}, {{ user.address.city }}
- Dollar tokens: ${name}, ${results[0].title}

Tokens resolve against a data value with the path resolver. Unresolved
tokens render as the empty string.
"""

import json
import re
from typing import Any, Dict

from .paths import UNDEFINED, resolve_path

# Pattern matches {{path}} or ${path}
_INTERPOLATION_PATTERN = re.compile(r"\{\{\s*([^{}]*?)\s*\}\}|\$\{\s*([^{}]*?)\s*\}")


def has_tokens(text: Any) -> bool:
    """Whether a value is a string containing interpolation tokens."""
    return isinstance(text, str) and _INTERPOLATION_PATTERN.search(text) is not None


def format_value(value: Any) -> str:
    """Render a resolved value for insertion into text."""
    if value is UNDEFINED or value is None:
        return ""
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    # If resolved value is a dict or list, serialize it
    if isinstance(value, (dict, list)):
        return json.dumps(value, separators=(",", ":"))
    return str(value)


def interpolate(template: str, data: Any) -> str:
    """Replace {{path}} and ${path} placeholders with values from data.

    Args:
        template: String containing placeholders
        data: The value paths are resolved against

    Returns:
        String with placeholders replaced
    """

    def replace_match(match: "re.Match[str]") -> str:
        path = match.group(1) if match.group(1) is not None else match.group(2)
        return format_value(resolve_path(data, path))

    return _INTERPOLATION_PATTERN.sub(replace_match, template)


def interpolate_value(value: Any, data: Any) -> Any:
    """Interpolate strings inside an arbitrary prop value, recursively."""
    if isinstance(value, str):
        if not has_tokens(value):
            return value
        return interpolate(value, data)
    if isinstance(value, dict):
        return {key: interpolate_value(item, data) for key, item in value.items()}
    if isinstance(value, list):
        return [interpolate_value(item, data) for item in value]
    return value


def interpolate_props(props: Dict[str, Any], data: Any) -> Dict[str, Any]:
    """Return a new props dict with every string prop interpolated."""
    return {key: interpolate_value(value, data) for key, value in props.items()}
