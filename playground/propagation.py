"""Context propagation: distribute a node's data down to its descendants.

For each child of a node carrying context data, the inherited value is the
first that applies of:

1. The child's ``contextPath`` resolved against the parent's data (a blank
   path means the whole parent data).
2. The parent's data verbatim, when the parent is a pass-through container.
3. The first element of the parent's ``dataPath`` array, when the parent is
   an iteration (Map) node.
4. The parent's data verbatim, when the child has no data of its own
   (disabled with ``propagation.inherit_fallback: false``).

Nodes are rebuilt, never mutated. Subtrees where nothing changes are returned
as the very same objects.
"""

from __future__ import annotations

import copy
from typing import Any, List, Optional, Sequence

from .config import PropagationConfig
from .display import get_display
from .nodes import Node
from .paths import UNDEFINED, resolve_all, resolve_path
from .transforms import apply_transform


def propagate_context(node: Node, config: Optional[PropagationConfig] = None) -> Node:
    """Propagate context data from node through its whole subtree.

    Args:
        node: Subtree root
        config: Kind sets and fallback switch (defaults when None)

    Returns:
        The rebuilt node, or ``node`` itself when nothing changed
    """
    config = config or PropagationConfig()
    if not node.children:
        return node

    if node.has_context:
        get_display().print_debug(
            f"Propagating context from {node.type}:{node.id} to {len(node.children)} children"
        )

    changed = False
    children: List[Node] = []
    for child in node.children:
        updated = child
        if node.has_context:
            inherited = _inherited_data(node, child, config)
            if inherited is not UNDEFINED:
                updated = child.evolve(context_data=copy.deepcopy(inherited))
        updated = propagate_context(updated, config)
        if updated is not child:
            changed = True
        children.append(updated)

    if not changed:
        return node
    return node.evolve(children=children)


def propagate_tree(tree: Sequence[Node], config: Optional[PropagationConfig] = None) -> List[Node]:
    """Propagate context through every root of a forest."""
    return [propagate_context(root, config) for root in tree]


def _inherited_data(parent: Node, child: Node, config: PropagationConfig) -> Any:
    """Pick the value a child inherits from its parent, or UNDEFINED."""
    display = get_display()
    data = parent.context_data

    # 1. Explicit path binding
    path = child.context_path
    if path is not None:
        if not path.strip():
            display.print_debug(f"{child.id}: full context from {parent.id}")
            return data
        value = resolve_path(data, path)
        if value is not UNDEFINED:
            display.print_debug(f"{child.id}: context from {parent.id} via path '{path}'")
            return value
        display.print_debug(f"{child.id}: path '{path}' did not resolve in {parent.id}")

    # 2. Pass-through containers
    if parent.type in config.pass_through_kinds:
        display.print_debug(f"{parent.type} {parent.id} passing context to {child.id}")
        return data

    # 3. Iteration nodes expose their first element
    if parent.type in config.iteration_kinds:
        first = _first_element(parent)
        if first is not UNDEFINED:
            display.print_debug(f"{parent.type} {parent.id} passing item context to {child.id}")
            return first

    # 4. Fallback
    if config.inherit_fallback and not child.has_context:
        display.print_debug(f"Fallback: {child.id} inheriting full context from {parent.id}")
        return data

    return UNDEFINED


def _first_element(parent: Node) -> Any:
    data_path = parent.props.get("dataPath")
    if not data_path:
        return UNDEFINED

    data = apply_transform(parent.context_data, parent.context_transform)
    if isinstance(data, list):
        items = data
    elif "[]" in str(data_path):
        items = resolve_all(data, str(data_path))
    else:
        items = resolve_path(data, str(data_path))

    if isinstance(items, list) and items:
        return items[0]
    return UNDEFINED
