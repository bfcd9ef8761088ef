"""Custom exceptions for the playground core."""

from pathlib import Path
from typing import List, Optional, Union


class PlaygroundError(Exception):
    """Base exception for all playground errors."""

    pass


class NodeNotFoundError(PlaygroundError):
    """Raised when a referenced node id is not present in the tree.

    Attributes:
        node_id: The id that failed to resolve
    """

    def __init__(self, node_id: str, message: Optional[str] = None):
        self.node_id = node_id
        super().__init__(message or f"Node not found: {node_id}")


class InvalidMoveError(PlaygroundError):
    """Raised when a move would place a node inside itself.

    Attributes:
        source_id: The node being moved
        target_id: The requested drop target
    """

    def __init__(self, source_id: str, target_id: str):
        self.source_id = source_id
        self.target_id = target_id
        if source_id == target_id:
            message = f"Cannot move node '{source_id}' onto itself"
        else:
            message = (
                f"Cannot move node '{source_id}' into its own descendant '{target_id}'"
            )
        super().__init__(message)


class ExpressionError(PlaygroundError):
    """Raised when a condition or transform fails to compile or evaluate.

    Attributes:
        expression: The expression text that failed
    """

    def __init__(self, message: str, expression: Optional[str] = None):
        self.expression = expression
        super().__init__(message)


class ImportFormatError(PlaygroundError):
    """Raised when a serialized tree document is malformed.

    Attributes:
        errors: Individual validation messages
    """

    def __init__(self, message: str, errors: Optional[List[str]] = None):
        self.errors = errors or []
        if self.errors:
            details = "\n  - ".join(self.errors)
            message = f"{message}:\n  - {details}"
        super().__init__(message)


class ConfigError(PlaygroundError):
    """Raised when the editor configuration file is invalid.

    Attributes:
        file_path: Path of the offending file, when known
    """

    def __init__(self, message: str, file_path: Optional[Union[str, Path]] = None):
        self.file_path = file_path
        if file_path:
            message = f"{file_path}: {message}"
        super().__init__(message)
