"""Iteration expansion: clone Map templates once per data element.

A Map node's children are templates. Expanding the node resolves its data
array, filters it with the node's condition and produces one deep clone of
each template per surviving element, with the element attached as the
clone's context data and every string prop interpolated against it.
"""

from __future__ import annotations

import copy
import json
from typing import Any, List, Optional, Sequence

from .catalog import EMPTY_STATE
from .conditions import get_evaluator
from .config import PlaygroundConfig
from .display import get_display
from .nodes import Node
from .paths import UNDEFINED, resolve_all, resolve_path
from .templates import interpolate_props
from .transforms import apply_transform

STRING_PROCESSING_MODES = ("none", "split", "lines", "json")

TAG_LIST = "TagList"


class MapExpander:
    """Expands iteration nodes and computes tag lists for a render tree."""

    def __init__(self, config: Optional[PlaygroundConfig] = None):
        self.config = config or PlaygroundConfig()

    # =========================================================================
    # Data resolution
    # =========================================================================

    def resolve_items(self, node: Node, data: Any = UNDEFINED) -> List[Any]:
        """Resolve the list of elements a Map node iterates over (unfiltered).

        Args:
            node: The Map node
            data: Data to use when the node carries none of its own
        """
        if node.has_context:
            data = node.context_data
        if data is UNDEFINED or data is None:
            return []

        data = apply_transform(data, node.context_transform)

        data_path = str(node.props.get("dataPath") or "").strip()
        if not data_path:
            result = data
        elif "[]" in data_path:
            result = resolve_all(data, data_path)
        else:
            result = resolve_path(data, data_path)

        if result is UNDEFINED or result is None:
            get_display().print_debug(f"{node.id}: data path '{data_path}' did not resolve")
            return []

        if isinstance(result, str):
            return self._process_string(node, result)
        if isinstance(result, list):
            return list(result)
        return [result]

    def _process_string(self, node: Node, text: str) -> List[Any]:
        mode = node.props.get("stringProcessing") or "none"

        if mode == "split":
            separator = node.props.get("separator") or ","
            return [part.strip() for part in text.split(separator) if part.strip()]

        if mode == "lines":
            return [line.strip() for line in text.splitlines() if line.strip()]

        if mode == "json":
            try:
                parsed = json.loads(text)
            except json.JSONDecodeError as e:
                get_display().print_warning(f"{node.id}: cannot parse data as JSON: {e}")
                return [text]
            if parsed is None:
                return []
            return parsed if isinstance(parsed, list) else [parsed]

        if mode != "none":
            get_display().print_warning(
                f"{node.id}: unknown string processing '{mode}'. "
                f"Expected one of: {', '.join(STRING_PROCESSING_MODES)}"
            )
        return [text]

    # =========================================================================
    # Expansion
    # =========================================================================

    def expand(self, node: Node, data: Any = UNDEFINED) -> List[Node]:
        """Expand one Map node into its clones (or a single empty placeholder).

        Nested Map nodes inside the clones are left unexpanded; see expand_tree.
        """
        items = self.resolve_items(node, data)
        condition = node.props.get("condition")
        if condition:
            items = get_evaluator().filter(items, condition)

        clones: List[Node] = []
        for index, element in enumerate(items):
            for template in node.children:
                clones.append(self.clone_template(template, element, index))

        if clones:
            return clones
        if items and not node.children:
            get_display().print_debug(f"{node.id}: {len(items)} items but no template children")

        empty_text = node.props.get("emptyText") or self.config.iteration.default_empty_text
        return [
            Node(
                id=f"{node.id}{self.config.iteration.id_separator}empty",
                type=EMPTY_STATE,
                props={"emptyText": empty_text},
            )
        ]

    def clone_template(self, template: Node, element: Any, index: int, bind: bool = True) -> Node:
        """Deep-clone a template subtree bound to one element.

        Templates of a nested Map are copied unbound; they belong to the
        nested Map's own elements and are bound when it expands.
        """
        separator = self.config.iteration.id_separator
        nested = template.type in self.config.propagation.iteration_kinds
        props = copy.deepcopy(template.props)
        if bind:
            props = interpolate_props(props, element)
        return Node(
            id=f"{template.id}{separator}{index}",
            type=template.type,
            props=props,
            children=[
                self.clone_template(child, element, index, bind and not nested)
                for child in template.children
            ],
            context_data=copy.deepcopy(element if bind else template.context_data),
            context_transform=template.context_transform,
            api_binding=copy.deepcopy(template.api_binding),
        )

    def tag_items(self, node: Node, data: Any = UNDEFINED) -> List[str]:
        """Compute the visible tags of a TagList node.

        Tags come from the ``tags`` prop, else a ``tags`` field of the data,
        else the value at ``dataPath``. They are split by ``separator``,
        trimmed, and filtered with ``condition`` evaluated against ``tag``.
        """
        if node.has_context:
            data = node.context_data

        source: Any = node.props.get("tags")
        if not source and isinstance(data, dict):
            source = data.get("tags")
        if not source and data is not UNDEFINED and node.props.get("dataPath"):
            source = resolve_path(data, str(node.props["dataPath"]))

        if isinstance(source, list):
            tags = [str(tag).strip() for tag in source if tag is not None]
        elif isinstance(source, str):
            separator = node.props.get("separator") or ","
            tags = [tag.strip() for tag in source.split(separator)]
        else:
            tags = []
        tags = [tag for tag in tags if tag]

        condition = node.props.get("condition")
        if condition:
            tags = get_evaluator("tag").filter(tags, condition)
        return tags

    def expand_tree(self, tree: Sequence[Node]) -> List[Node]:
        """Produce the render-ready forest.

        Map nodes are replaced by their expansion (nested ones against their
        clone data), and TagList nodes gain a ``tagItems`` prop.
        """
        result: List[Node] = []
        for node in tree:
            result.extend(self._expand_node(node, UNDEFINED))
        return result

    def _expand_node(self, node: Node, inherited: Any) -> List[Node]:
        data = node.context_data if node.has_context else inherited

        if node.type in self.config.propagation.iteration_kinds:
            expanded: List[Node] = []
            for clone in self.expand(node, data):
                expanded.append(
                    clone.evolve(children=self._expand_children(clone.children, clone.context_data))
                )
            return expanded

        if node.type == TAG_LIST:
            props = dict(node.props)
            props["tagItems"] = self.tag_items(node, data)
            return [node.evolve(props=props)]

        return [node.evolve(children=self._expand_children(node.children, data))]

    def _expand_children(self, children: Sequence[Node], data: Any) -> List[Node]:
        result: List[Node] = []
        for child in children:
            result.extend(self._expand_node(child, data))
        return result


def expand_tree(tree: Sequence[Node], config: Optional[PlaygroundConfig] = None) -> List[Node]:
    """Render-ready expansion of a forest. Convenience wrapper over MapExpander."""
    return MapExpander(config).expand_tree(tree)
