"""Component tree data model: nodes, API bindings and drop cursors."""

from __future__ import annotations

import copy
from dataclasses import dataclass, field, replace
from enum import Enum
from typing import Any, Dict, Iterator, List, Optional, Sequence

from .paths import UNDEFINED

HTTP_METHODS = ("GET", "POST", "PUT", "DELETE")


class DropPosition(str, Enum):
    """Edge of a drop target where a node lands."""

    BEFORE = "before"
    AFTER = "after"
    INSIDE = "inside"


@dataclass(frozen=True)
class DropCursor:
    """Pending insertion/move target."""

    target_id: str
    position: DropPosition = DropPosition.INSIDE

    @classmethod
    def parse(cls, target_id: str, position: str) -> "DropCursor":
        """Build a cursor from a raw position string.

        Raises:
            ValueError: If position is not before, after or inside
        """
        return cls(target_id=target_id, position=DropPosition(position))


@dataclass
class ApiBinding:
    """Fetch descriptor attached to a node. Consumed, never executed, by the core."""

    url: str = ""
    method: str = "GET"
    headers: Dict[str, str] = field(default_factory=dict)
    body: str = ""
    enabled: bool = False

    def to_dict(self) -> Dict[str, Any]:
        return {
            "url": self.url,
            "method": self.method,
            "headers": dict(self.headers),
            "payload": self.body,
            "enabled": self.enabled,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "ApiBinding":
        """Parse a binding, accepting both 'payload' and 'body' for the request body.

        Raises:
            ValueError: If the method is not one of GET, POST, PUT, DELETE
        """
        method = str(data.get("method", "GET")).upper()
        if method not in HTTP_METHODS:
            raise ValueError(
                f"Invalid method '{method}'. Must be one of: {', '.join(HTTP_METHODS)}"
            )
        body = data.get("payload")
        if body is None:
            body = data.get("body", "")
        return cls(
            url=data.get("url", ""),
            method=method,
            headers={str(k): str(v) for k, v in (data.get("headers") or {}).items()},
            body=body or "",
            enabled=bool(data.get("enabled", False)),
        )


@dataclass
class Node:
    """One component instance in the tree.

    ``context_data`` is ``UNDEFINED`` when the node carries no data, so that a
    JSON ``null`` payload is still distinguishable from "nothing attached".
    """

    id: str
    type: str
    props: Dict[str, Any] = field(default_factory=dict)
    children: List["Node"] = field(default_factory=list)
    context_data: Any = UNDEFINED
    context_transform: Optional[str] = None
    api_binding: Optional[ApiBinding] = None

    @property
    def has_context(self) -> bool:
        """Whether the node carries usable context data."""
        return self.context_data is not UNDEFINED and self.context_data is not None

    @property
    def context_path(self) -> Optional[str]:
        """The bound path into the parent's data, if any."""
        value = self.props.get("contextPath")
        if value is None:
            return None
        return str(value)

    def evolve(self, **changes: Any) -> "Node":
        """Return a shallow copy with the given fields replaced."""
        return replace(self, **changes)

    def clone(self) -> "Node":
        """Deep copy of the whole subtree."""
        return copy.deepcopy(self)

    def walk(self) -> Iterator["Node"]:
        """Yield this node and all descendants, depth-first pre-order."""
        yield self
        for child in self.children:
            yield from child.walk()

    def to_dict(self) -> Dict[str, Any]:
        """Serialize to the JSON shape used for export and snapshots."""
        data: Dict[str, Any] = {
            "id": self.id,
            "type": self.type,
            "props": copy.deepcopy(self.props),
        }
        if self.children:
            data["children"] = [child.to_dict() for child in self.children]
        if self.context_data is not UNDEFINED:
            data["contextData"] = copy.deepcopy(self.context_data)
        if self.context_transform:
            data["contextTransform"] = self.context_transform
        if self.api_binding is not None:
            data["apiConfig"] = self.api_binding.to_dict()
        return data

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Node":
        """Build a node (and its subtree) from its serialized form."""
        api_data = data.get("apiConfig")
        return cls(
            id=str(data["id"]),
            type=str(data["type"]),
            props=copy.deepcopy(data.get("props") or {}),
            children=[cls.from_dict(child) for child in data.get("children") or []],
            context_data=copy.deepcopy(data["contextData"])
            if "contextData" in data
            else UNDEFINED,
            context_transform=data.get("contextTransform") or None,
            api_binding=ApiBinding.from_dict(api_data) if api_data else None,
        )


# =============================================================================
# Tree helpers
# =============================================================================


def iter_nodes(tree: Sequence[Node]) -> Iterator[Node]:
    """Yield every node of a forest, depth-first pre-order."""
    for root in tree:
        yield from root.walk()


def find_node(tree: Sequence[Node], node_id: str) -> Optional[Node]:
    """Find a node by id anywhere in the forest."""
    for node in iter_nodes(tree):
        if node.id == node_id:
            return node
    return None


def find_parent(tree: Sequence[Node], node_id: str) -> Optional[Node]:
    """Find the node whose direct children include node_id (None for roots)."""
    for node in iter_nodes(tree):
        if any(child.id == node_id for child in node.children):
            return node
    return None


def collect_ids(tree: Sequence[Node]) -> List[str]:
    """All ids in the forest, in pre-order (duplicates preserved)."""
    return [node.id for node in iter_nodes(tree)]


def is_descendant(tree: Sequence[Node], ancestor_id: str, node_id: str) -> bool:
    """Whether node_id lies strictly below ancestor_id.

    Returns False when either id is absent.
    """
    ancestor = find_node(tree, ancestor_id)
    if ancestor is None:
        return False
    return any(node.id == node_id for node in ancestor.walk() if node is not ancestor)


def validate_tree(tree: Any) -> List[str]:
    """Check structural well-formedness of a forest.

    Returns:
        List of problems; empty when the forest is a list of Nodes with unique ids
        and no node reachable twice.
    """
    if not isinstance(tree, list):
        return [f"Tree must be a list of nodes, got {type(tree).__name__}"]

    problems: List[str] = []
    seen_ids: set = set()
    seen_objects: set = set()

    def visit(node: Any, where: str) -> None:
        if not isinstance(node, Node):
            problems.append(f"{where}: expected Node, got {type(node).__name__}")
            return
        if id(node) in seen_objects:
            problems.append(f"{where}: node '{node.id}' appears more than once")
            return
        seen_objects.add(id(node))
        if node.id in seen_ids:
            problems.append(f"{where}: duplicate id '{node.id}'")
        seen_ids.add(node.id)
        if not isinstance(node.children, list):
            problems.append(f"{where}: children of '{node.id}' must be a list")
            return
        for idx, child in enumerate(node.children):
            visit(child, f"{where}.children[{idx}]")

    for idx, root in enumerate(tree):
        visit(root, f"tree[{idx}]")

    return problems
