"""Export and import of component trees as JSON documents.

Document format::

    {
      "version": "1.0",
      "metadata": {"exportedAt": "<ISO-8601>", "componentCount": 2},
      "techStack": "react",
      "components": [ {"id", "type", "props", "children"?, "contextData"?,
                       "contextTransform"?, "apiConfig"?}, ... ],
      "apiConfigs": [ {"id", "url", "method", "headers", "payload", "dataPath"} ]
    }

A bare list of components is accepted on import as well.
"""

from __future__ import annotations

import json
from dataclasses import dataclass, field
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict, List, Optional, Sequence, Set

from jsonschema import Draft7Validator

from .catalog import ensure_unique_ids
from .config import TECH_STACKS
from .errors import ImportFormatError
from .nodes import HTTP_METHODS, Node, iter_nodes

DOCUMENT_VERSION = "1.0"

NODE_SCHEMA_DEFINITIONS: Dict[str, Any] = {
    "node": {
        "type": "object",
        "required": ["id", "type"],
        "properties": {
            "id": {"type": "string", "minLength": 1},
            "type": {"type": "string", "minLength": 1},
            "props": {"type": "object"},
            "children": {"type": "array", "items": {"$ref": "#/definitions/node"}},
            "contextTransform": {"type": ["string", "null"]},
            "apiConfig": {
                "type": ["object", "null"],
                "properties": {
                    "url": {"type": "string"},
                    "method": {"type": "string", "enum": list(HTTP_METHODS)},
                    "headers": {"type": "object", "additionalProperties": {"type": "string"}},
                    "payload": {"type": "string"},
                    "body": {"type": "string"},
                    "enabled": {"type": "boolean"},
                },
            },
        },
    },
    "components": {"type": "array", "items": {"$ref": "#/definitions/node"}},
}

DOCUMENT_SCHEMA: Dict[str, Any] = {
    "$schema": "http://json-schema.org/draft-07/schema#",
    "definitions": NODE_SCHEMA_DEFINITIONS,
    "type": "object",
    "required": ["components"],
    "properties": {
        "version": {"type": "string"},
        "metadata": {"type": "object"},
        "techStack": {"type": "string", "enum": list(TECH_STACKS)},
        "components": {"$ref": "#/definitions/components"},
        "apiConfigs": {"type": "array", "items": {"type": "object"}},
    },
}

# Legacy form: a bare list of components
COMPONENTS_SCHEMA: Dict[str, Any] = {
    "$schema": "http://json-schema.org/draft-07/schema#",
    "definitions": NODE_SCHEMA_DEFINITIONS,
    "$ref": "#/definitions/components",
}


@dataclass
class ImportedDocument:
    """Result of parsing a serialized document."""

    tree: List[Node]
    tech_stack: Optional[str] = None
    version: Optional[str] = None
    remapped_ids: Dict[str, str] = field(default_factory=dict)


def _api_configs(tree: Sequence[Node]) -> List[Dict[str, Any]]:
    """Summaries of every enabled API binding in the forest."""
    configs: List[Dict[str, Any]] = []
    for node in iter_nodes(tree):
        binding = node.api_binding
        if binding is None or not binding.enabled:
            continue
        configs.append(
            {
                "id": node.id,
                "url": binding.url,
                "method": binding.method,
                "headers": dict(binding.headers),
                "payload": binding.body,
                "dataPath": node.props.get("dataPath") or "",
            }
        )
    return configs


def export_document(tree: Sequence[Node], tech_stack: str = "react") -> Dict[str, Any]:
    """Serialize a forest into the export document."""
    document: Dict[str, Any] = {
        "version": DOCUMENT_VERSION,
        "metadata": {
            "exportedAt": datetime.now(timezone.utc).isoformat(),
            "componentCount": len(tree),
        },
        "techStack": tech_stack,
        "components": [node.to_dict() for node in tree],
    }
    api_configs = _api_configs(tree)
    if api_configs:
        document["apiConfigs"] = api_configs
    return document


def _format_validation_error(error: Any) -> str:
    path = ".".join(str(p) for p in error.absolute_path) if error.absolute_path else "root"
    return f"{path}: {error.message}"


def validate_document(document: Any) -> List[str]:
    """Check a parsed document against the schema.

    Returns:
        Validation messages; empty when the document is valid
    """
    schema = COMPONENTS_SCHEMA if isinstance(document, list) else DOCUMENT_SCHEMA
    validator = Draft7Validator(schema)
    errors = sorted(validator.iter_errors(document), key=lambda e: list(map(str, e.absolute_path)))
    return [_format_validation_error(error) for error in errors]


def parse_document(document: Any, taken: Optional[Set[str]] = None) -> ImportedDocument:
    """Validate a document and build its forest.

    Args:
        document: Parsed JSON (document object or bare component list)
        taken: Ids already in use; colliding ids are remapped

    Raises:
        ImportFormatError: If the document does not match the schema
    """
    errors = validate_document(document)
    if errors:
        raise ImportFormatError("Invalid playground document", errors)

    if isinstance(document, list):
        components = document
        tech_stack = None
        version = None
    else:
        components = document["components"]
        tech_stack = document.get("techStack")
        version = document.get("version")

    tree = [Node.from_dict(node_data) for node_data in components]
    tree, remapped = ensure_unique_ids(tree, set(taken or ()))

    return ImportedDocument(
        tree=tree,
        tech_stack=tech_stack,
        version=version,
        remapped_ids=remapped,
    )


def read_document(path: Path) -> Any:
    """Read a JSON document from disk.

    Raises:
        ImportFormatError: If the file cannot be read or is not valid JSON
    """
    try:
        with open(path, "r", encoding="utf-8") as f:
            return json.load(f)
    except (json.JSONDecodeError, UnicodeDecodeError) as e:
        raise ImportFormatError(f"Invalid JSON in {path}", [str(e)])
    except OSError as e:
        raise ImportFormatError(f"Cannot read {path}", [str(e)])


def write_document(path: Path, document: Dict[str, Any]) -> None:
    """Write a document as indented JSON."""
    path.parent.mkdir(parents=True, exist_ok=True)
    with open(path, "w", encoding="utf-8") as f:
        json.dump(document, f, indent=2)
        f.write("\n")
