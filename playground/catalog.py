"""Component catalog: the fixed set of component kinds and their defaults."""

from __future__ import annotations

import copy
import uuid
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Sequence, Set, Tuple

from .nodes import Node

# Kind produced by the iteration expander when no element survives
EMPTY_STATE = "EmptyState"


@dataclass(frozen=True)
class ComponentDefinition:
    """A palette entry: kind, category and default props."""

    id: str
    name: str
    category: str
    allows_children: bool
    default_props: Dict[str, Any] = field(default_factory=dict)


COMPONENTS: Dict[str, ComponentDefinition] = {
    definition.id: definition
    for definition in (
        ComponentDefinition(
            id="MapComponent",
            name="Map Component",
            category="data",
            allows_children=True,
            default_props={
                "dataPath": "items",
                "emptyText": "No items to display",
                "condition": "",
                "stringProcessing": "none",
                "separator": ",",
            },
        ),
        ComponentDefinition(
            id="Section",
            name="Section",
            category="container",
            allows_children=True,
            default_props={
                "padding": 2,
                "margin": 1,
                "backgroundColor": "#ffffff",
                "borderRadius": 0,
                "border": "none",
            },
        ),
        ComponentDefinition(
            id="Flexbox",
            name="Flexbox",
            category="layout",
            allows_children=True,
            default_props={
                "direction": "row",
                "justifyContent": "flex-start",
                "alignItems": "stretch",
                "wrap": "nowrap",
                "gap": 2,
                "padding": 2,
            },
        ),
        ComponentDefinition(
            id="Stack",
            name="Stack",
            category="layout",
            allows_children=True,
            default_props={"direction": "column", "spacing": 2, "padding": 2},
        ),
        ComponentDefinition(
            id="ScrollableContainer",
            name="Scrollable Container",
            category="container",
            allows_children=True,
            default_props={"height": 200, "width": "100%", "padding": 2},
        ),
        ComponentDefinition(
            id="Card",
            name="Card",
            category="container",
            allows_children=True,
            default_props={
                "title": "Card Title",
                "subtitle": "Card Subtitle",
                "elevation": 1,
                "padding": 2,
            },
        ),
        ComponentDefinition(
            id="Image",
            name="Image",
            category="content",
            allows_children=False,
            default_props={
                "src": "https://via.placeholder.com/150",
                "alt": "Image",
                "width": 150,
                "height": 150,
            },
        ),
        ComponentDefinition(
            id="Typography",
            name="Typography",
            category="content",
            allows_children=False,
            default_props={
                "variant": "body1",
                "children": "Text Content",
                "fontSize": 16,
            },
        ),
        ComponentDefinition(
            id="Button",
            name="Button",
            category="input",
            allows_children=False,
            default_props={
                "variant": "contained",
                "color": "primary",
                "children": "Button",
            },
        ),
        ComponentDefinition(
            id="TagList",
            name="Tag List",
            category="content",
            allows_children=False,
            default_props={
                "tags": "",
                "separator": ",",
                "condition": "",
                "emptyText": "No tags to display",
            },
        ),
    )
}


def get_definition(kind: str) -> Optional[ComponentDefinition]:
    """Look up a catalog entry by kind."""
    return COMPONENTS.get(kind)


def list_kinds(category: Optional[str] = None) -> List[str]:
    """Kinds in catalog order, optionally restricted to one category."""
    return [
        definition.id
        for definition in COMPONENTS.values()
        if category is None or definition.category == category
    ]


def new_node_id(kind: str) -> str:
    """Fresh id of the form ``{kind}-{8 hex chars}``."""
    return f"{kind}-{uuid.uuid4().hex[:8]}"


def ensure_unique_ids(
    nodes: Sequence[Node], taken: Set[str]
) -> Tuple[List[Node], Dict[str, str]]:
    """Give fresh ids to nodes whose id is already taken.

    ``taken`` is updated with every id kept or assigned, so duplicates within
    ``nodes`` are remapped too. Untouched subtrees are returned as-is.

    Returns:
        (nodes, mapping of old id -> new id for every remapped node)
    """
    remapped: Dict[str, str] = {}

    def visit(node: Node) -> Node:
        new_id = node.id
        if new_id in taken:
            new_id = new_node_id(node.type)
            while new_id in taken:
                new_id = new_node_id(node.type)
            remapped[node.id] = new_id
        taken.add(new_id)
        children = [visit(child) for child in node.children]
        if new_id == node.id and all(a is b for a, b in zip(children, node.children)):
            return node
        return node.evolve(id=new_id, children=children)

    return [visit(node) for node in nodes], remapped


def create_node(kind: str, **props: Any) -> Node:
    """Instantiate a catalog kind with a fresh id and a copy of its defaults.

    Args:
        kind: Catalog kind, e.g. "Typography"
        **props: Prop overrides applied over the defaults

    Raises:
        KeyError: If kind is not in the catalog
    """
    definition = COMPONENTS.get(kind)
    if definition is None:
        raise KeyError(f"Unknown component kind '{kind}'. Available: {', '.join(COMPONENTS)}")
    merged = copy.deepcopy(definition.default_props)
    merged.update(props)
    return Node(id=new_node_id(kind), type=kind, props=merged)
