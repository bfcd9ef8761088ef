"""Component-tree editor core: tree mutations, context propagation and data binding."""

from .catalog import COMPONENTS, EMPTY_STATE, ComponentDefinition, create_node, get_definition
from .cli import main
from .conditions import ConditionEvaluator, ConditionResult, get_evaluator
from .config import (
    IterationConfig,
    PlaygroundConfig,
    PropagationConfig,
    load_config,
)
from .display import Display, console, get_display
from .errors import (
    ConfigError,
    ExpressionError,
    ImportFormatError,
    InvalidMoveError,
    NodeNotFoundError,
    PlaygroundError,
)
from .iteration import MapExpander, expand_tree
from .nodes import ApiBinding, DropCursor, DropPosition, Node, is_descendant, validate_tree
from .paths import ITERATE, UNDEFINED, parse_path, resolve_all, resolve_path
from .persistence import SnapshotFile
from .propagation import propagate_context, propagate_tree
from .serialization import export_document, parse_document, validate_document
from .store import EditorState, StoreResult, TreeStore
from .templates import interpolate, interpolate_props
from .transforms import ContextTransform, apply_transform

__all__ = [
    # CLI
    "main",
    # Catalog
    "COMPONENTS",
    "EMPTY_STATE",
    "ComponentDefinition",
    "create_node",
    "get_definition",
    # Conditions
    "ConditionEvaluator",
    "ConditionResult",
    "get_evaluator",
    # Config
    "IterationConfig",
    "PlaygroundConfig",
    "PropagationConfig",
    "load_config",
    # Display
    "Display",
    "console",
    "get_display",
    # Errors
    "ConfigError",
    "ExpressionError",
    "ImportFormatError",
    "InvalidMoveError",
    "NodeNotFoundError",
    "PlaygroundError",
    # Iteration
    "MapExpander",
    "expand_tree",
    # Nodes
    "ApiBinding",
    "DropCursor",
    "DropPosition",
    "Node",
    "is_descendant",
    "validate_tree",
    # Paths
    "ITERATE",
    "UNDEFINED",
    "parse_path",
    "resolve_all",
    "resolve_path",
    # Persistence
    "SnapshotFile",
    # Propagation
    "propagate_context",
    "propagate_tree",
    # Serialization
    "export_document",
    "parse_document",
    "validate_document",
    # Store
    "EditorState",
    "StoreResult",
    "TreeStore",
    # Templates
    "interpolate",
    "interpolate_props",
    # Transforms
    "ContextTransform",
    "apply_transform",
]
