"""Tree store: the editor state and every mutation on the component tree.

The store owns one ``EditorState``. Each mutation rebuilds the touched path of
the tree (copy-on-write), refreshes ``last_updated``, clears the drop cursor
and notifies change listeners with a persistable snapshot. Invalid requests
never raise; they come back as a failed ``StoreResult``. A rejected insert,
move, reorder or import only drops the pending drop cursor and leaves the
rest of the state untouched.
"""

from __future__ import annotations

import time
from dataclasses import dataclass, field, replace
from typing import Any, Callable, Dict, List, Optional, Sequence, Tuple, Union

from .catalog import ensure_unique_ids
from .config import TECH_STACKS, PlaygroundConfig
from .display import get_display
from .errors import ImportFormatError, InvalidMoveError, NodeNotFoundError
from .nodes import (
    ApiBinding,
    DropCursor,
    DropPosition,
    Node,
    collect_ids,
    find_node,
    find_parent,
    is_descendant,
    validate_tree,
)
from .propagation import propagate_context
from .serialization import DOCUMENT_VERSION, parse_document

ChangeListener = Callable[[Dict[str, Any]], None]

# Props whose change re-runs context propagation
BINDING_PROPS = ("contextPath", "dataPath")


def _now_ms() -> int:
    return int(time.time() * 1000)


@dataclass
class EditorState:
    """Complete editor state."""

    tree: List[Node] = field(default_factory=list)
    selected_id: Optional[str] = None
    drop_cursor: Optional[DropCursor] = None
    tech_stack: str = "react"
    preview_mode: bool = False
    last_updated: int = field(default_factory=_now_ms)


@dataclass
class StoreResult:
    """Outcome of a store mutation."""

    success: bool
    error: Optional[str] = None
    node_id: Optional[str] = None  # Id of the node affected (inserted ids may be remapped)


class TreeStore:
    """Single owner of the editor state."""

    def __init__(
        self,
        state: Optional[EditorState] = None,
        config: Optional[PlaygroundConfig] = None,
    ):
        self.config = config or PlaygroundConfig()
        self._state = state or EditorState(tech_stack=self.config.tech_stack)
        self._listeners: List[ChangeListener] = []

    @property
    def state(self) -> EditorState:
        return self._state

    @property
    def tree(self) -> List[Node]:
        return self._state.tree

    # =========================================================================
    # Change listeners
    # =========================================================================

    def subscribe(self, listener: ChangeListener) -> Callable[[], None]:
        """Register a listener called with a snapshot after every mutation.

        Returns:
            A function that unregisters the listener
        """
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def _commit(self, **changes: Any) -> None:
        changes.setdefault("drop_cursor", None)
        changes["last_updated"] = _now_ms()
        self._state = replace(self._state, **changes)
        if self._listeners:
            snapshot = self.snapshot()
            for listener in list(self._listeners):
                listener(snapshot)

    def _abandon(self) -> None:
        """Clear the drop cursor of a rejected operation without notifying listeners."""
        self._state = replace(self._state, drop_cursor=None)

    def _not_found(self, node_id: Optional[str]) -> StoreResult:
        return StoreResult(success=False, error=str(NodeNotFoundError(str(node_id))), node_id=node_id)

    # =========================================================================
    # Queries
    # =========================================================================

    def find(self, node_id: str) -> Optional[Node]:
        return find_node(self._state.tree, node_id)

    def is_descendant(self, ancestor_id: str, node_id: str) -> bool:
        """Whether node_id lies strictly inside ancestor_id's subtree."""
        return is_descendant(self._state.tree, ancestor_id, node_id)

    @property
    def selected(self) -> Optional[Node]:
        if self._state.selected_id is None:
            return None
        return self.find(self._state.selected_id)

    # =========================================================================
    # Structural mutations
    # =========================================================================

    def insert(
        self, node: Node, target: Union[None, str, DropCursor] = None
    ) -> StoreResult:
        """Insert a node (with its subtree) and select it.

        Args:
            node: The node to insert; ids already in the tree are replaced
            target: None appends a root, a parent id appends inside that
                parent, a DropCursor splices before/after or appends inside
                its target
        """
        if isinstance(target, str):
            target = DropCursor(target_id=target, position=DropPosition.INSIDE)

        if target is not None and self.find(target.target_id) is None:
            self._abandon()
            return self._not_found(target.target_id)

        (node,), _ = ensure_unique_ids([node], set(collect_ids(self._state.tree)))

        if target is None:
            tree = self._state.tree + [node]
        elif target.position == DropPosition.INSIDE:
            tree = _append_child(self._state.tree, target.target_id, node, self.config)
        else:
            offset = 0 if target.position == DropPosition.BEFORE else 1
            tree = _splice_sibling(self._state.tree, target.target_id, node, offset)

        self._commit(tree=tree, selected_id=node.id)
        get_display().print_debug(f"Inserted {node.type} {node.id}")
        return StoreResult(success=True, node_id=node.id)

    def add_child(self, parent_id: str, node: Node) -> StoreResult:
        """Append a node inside parent_id."""
        return self.insert(node, parent_id)

    def update(self, node_id: str, props: Dict[str, Any]) -> StoreResult:
        """Shallow-merge props into a node.

        Changing ``contextPath`` re-resolves the node from its parent's data;
        changing ``dataPath``, or updating a node that carries data, re-runs
        propagation below it.
        """
        node = self.find(node_id)
        if node is None:
            return self._not_found(node_id)

        merged = dict(node.props)
        merged.update(props)
        updated = node.evolve(props=merged)
        tree = _replace_node(self._state.tree, node_id, lambda _: updated)

        binding_changed = any(
            key in props and node.props.get(key) != props[key] for key in BINDING_PROPS
        )
        parent = find_parent(tree, node_id)
        if "contextPath" in props and binding_changed and parent is not None and parent.has_context:
            tree = _replace_node(
                tree, parent.id, lambda p: propagate_context(p, self.config.propagation)
            )
        elif binding_changed or updated.has_context:
            tree = _replace_node(
                tree, node_id, lambda n: propagate_context(n, self.config.propagation)
            )

        self._commit(tree=tree)
        return StoreResult(success=True, node_id=node_id)

    def delete(self, node_id: str) -> StoreResult:
        """Remove a node and its whole subtree. Deleting an absent id is a no-op."""
        node = self.find(node_id)
        if node is None:
            return StoreResult(success=True, node_id=node_id)

        removed_ids = {n.id for n in node.walk()}
        tree, _ = _remove_node(self._state.tree, node_id)
        selected_id = self._state.selected_id
        if selected_id in removed_ids:
            selected_id = None

        self._commit(tree=tree, selected_id=selected_id)
        get_display().print_debug(f"Deleted {node.type} {node_id} ({len(removed_ids)} nodes)")
        return StoreResult(success=True, node_id=node_id)

    def move(
        self,
        source_id: str,
        target_id: str,
        position: Union[DropPosition, str] = DropPosition.INSIDE,
    ) -> StoreResult:
        """Move a subtree before, after or inside another node.

        Moving a node onto itself or into its own descendant is rejected
        before anything is removed.
        """
        try:
            position = DropPosition(position)
        except ValueError:
            self._abandon()
            return StoreResult(success=False, error=f"Invalid drop position '{position}'")

        if source_id == target_id or self.is_descendant(source_id, target_id):
            error = InvalidMoveError(source_id, target_id)
            get_display().print_debug(str(error))
            self._abandon()
            return StoreResult(success=False, error=str(error), node_id=source_id)

        source = self.find(source_id)
        if source is None:
            self._abandon()
            return self._not_found(source_id)
        if self.find(target_id) is None:
            self._abandon()
            return self._not_found(target_id)

        moved = source.clone()
        tree, _ = _remove_node(self._state.tree, source_id)
        if position == DropPosition.INSIDE:
            tree = _append_child(tree, target_id, moved, self.config)
        else:
            offset = 0 if position == DropPosition.BEFORE else 1
            tree = _splice_sibling(tree, target_id, moved, offset)

        self._commit(tree=tree)
        return StoreResult(success=True, node_id=source_id)

    def reorder_all(self, new_tree: Sequence[Node]) -> StoreResult:
        """Replace the whole tree after a structural well-formedness check."""
        problems = validate_tree(new_tree)
        if problems:
            self._abandon()
            return StoreResult(success=False, error="; ".join(problems))

        tree = list(new_tree)
        selected_id = self._state.selected_id
        if selected_id is not None and find_node(tree, selected_id) is None:
            selected_id = None
        self._commit(tree=tree, selected_id=selected_id)
        return StoreResult(success=True)

    # =========================================================================
    # Data binding
    # =========================================================================

    def update_context_data(self, node_id: str, data: Any) -> StoreResult:
        """Attach fetched data to a node and propagate it to its subtree.

        Passing ``UNDEFINED`` detaches the data.
        """
        if self.find(node_id) is None:
            get_display().print_debug(f"Discarding context data for missing node {node_id}")
            return self._not_found(node_id)

        tree = _replace_node(
            self._state.tree,
            node_id,
            lambda n: propagate_context(n.evolve(context_data=data), self.config.propagation),
        )
        self._commit(tree=tree)
        return StoreResult(success=True, node_id=node_id)

    def update_api_binding(
        self, node_id: str, binding: Union[None, ApiBinding, Dict[str, Any]]
    ) -> StoreResult:
        """Attach, replace or (with None) remove a node's API binding."""
        if self.find(node_id) is None:
            return self._not_found(node_id)
        if isinstance(binding, dict):
            try:
                binding = ApiBinding.from_dict(binding)
            except ValueError as e:
                return StoreResult(success=False, error=str(e), node_id=node_id)

        tree = _replace_node(self._state.tree, node_id, lambda n: n.evolve(api_binding=binding))
        self._commit(tree=tree)
        return StoreResult(success=True, node_id=node_id)

    def update_context_transform(self, node_id: str, transform: Optional[str]) -> StoreResult:
        """Set the transform query applied to a node's data before iteration."""
        if self.find(node_id) is None:
            return self._not_found(node_id)

        def apply(node: Node) -> Node:
            updated = node.evolve(context_transform=transform or None)
            if updated.has_context:
                return propagate_context(updated, self.config.propagation)
            return updated

        tree = _replace_node(self._state.tree, node_id, apply)
        self._commit(tree=tree)
        return StoreResult(success=True, node_id=node_id)

    # =========================================================================
    # Editor state
    # =========================================================================

    def select(self, node_id: Optional[str]) -> StoreResult:
        if node_id is not None and self.find(node_id) is None:
            return self._not_found(node_id)
        self._commit(selected_id=node_id)
        return StoreResult(success=True, node_id=node_id)

    def set_drop_cursor(self, cursor: Optional[DropCursor]) -> StoreResult:
        """Record (or clear) the pending drop target. Does not notify listeners."""
        if cursor is not None and self.find(cursor.target_id) is None:
            return self._not_found(cursor.target_id)
        self._state = replace(self._state, drop_cursor=cursor)
        return StoreResult(success=True, node_id=cursor.target_id if cursor else None)

    def set_tech_stack(self, tech_stack: str) -> StoreResult:
        if tech_stack not in TECH_STACKS:
            return StoreResult(
                success=False,
                error=f"Invalid tech stack '{tech_stack}'. Must be one of: {', '.join(TECH_STACKS)}",
            )
        self._commit(tech_stack=tech_stack)
        return StoreResult(success=True)

    def set_preview_mode(self, enabled: bool) -> StoreResult:
        self._commit(preview_mode=bool(enabled))
        return StoreResult(success=True)

    # =========================================================================
    # Import / snapshots
    # =========================================================================

    def import_document(self, document: Any) -> StoreResult:
        """Replace the tree with a serialized document.

        Ids colliding with the current tree are remapped. Selection and drop
        cursor are reset. An invalid document leaves the store unchanged.
        """
        try:
            imported = parse_document(document, taken=set(collect_ids(self._state.tree)))
        except ImportFormatError as e:
            get_display().print_error(str(e))
            self._abandon()
            return StoreResult(success=False, error=str(e))

        if imported.remapped_ids:
            get_display().print_debug(f"Remapped {len(imported.remapped_ids)} colliding ids")

        self._commit(
            tree=imported.tree,
            tech_stack=imported.tech_stack or self._state.tech_stack,
            selected_id=None,
        )
        return StoreResult(success=True)

    def snapshot(self) -> Dict[str, Any]:
        """Persistable view of the state (selection and drop cursor excluded)."""
        return {
            "version": DOCUMENT_VERSION,
            "components": [node.to_dict() for node in self._state.tree],
            "techStack": self._state.tech_stack,
            "previewMode": self._state.preview_mode,
            "lastUpdated": self._state.last_updated,
        }

    @classmethod
    def from_snapshot(
        cls, snapshot: Optional[Dict[str, Any]], config: Optional[PlaygroundConfig] = None
    ) -> "TreeStore":
        """Rebuild a store from a snapshot, falling back to defaults field by field."""
        store = cls(config=config)
        if not isinstance(snapshot, dict):
            return store

        defaults = store.state
        tree: List[Node] = []
        components = snapshot.get("components")
        if components is not None:
            try:
                tree = parse_document(components).tree
            except ImportFormatError as e:
                get_display().print_warning(f"Ignoring saved components: {e}")

        tech_stack = snapshot.get("techStack")
        if tech_stack not in TECH_STACKS:
            tech_stack = defaults.tech_stack

        last_updated = snapshot.get("lastUpdated")
        if not isinstance(last_updated, int) or isinstance(last_updated, bool):
            last_updated = defaults.last_updated

        store._state = EditorState(
            tree=tree,
            tech_stack=tech_stack,
            preview_mode=bool(snapshot.get("previewMode", False)),
            last_updated=last_updated,
        )
        return store


# =============================================================================
# Copy-on-write tree helpers
# =============================================================================


def _replace_node(
    nodes: Sequence[Node], node_id: str, fn: Callable[[Node], Node]
) -> List[Node]:
    """Return a forest where node_id is replaced by fn(node); only its ancestors are rebuilt."""
    result: List[Node] = []
    for node in nodes:
        if node.id == node_id:
            result.append(fn(node))
        elif node.children:
            children = _replace_node(node.children, node_id, fn)
            if any(a is not b for a, b in zip(children, node.children)):
                node = node.evolve(children=children)
            result.append(node)
        else:
            result.append(node)
    return result


def _remove_node(nodes: Sequence[Node], node_id: str) -> Tuple[List[Node], bool]:
    """Filter node_id out of the forest at any depth."""
    result: List[Node] = []
    removed = False
    for node in nodes:
        if node.id == node_id:
            removed = True
            continue
        if node.children:
            children, child_removed = _remove_node(node.children, node_id)
            if child_removed:
                node = node.evolve(children=children)
                removed = True
        result.append(node)
    return result, removed


def _splice_sibling(nodes: Sequence[Node], target_id: str, new_node: Node, offset: int) -> List[Node]:
    """Insert new_node next to target_id (offset 0: before, 1: after)."""
    for idx, node in enumerate(nodes):
        if node.id == target_id:
            result = list(nodes)
            result.insert(idx + offset, new_node)
            return result

    result = []
    for node in nodes:
        if node.children and find_node(node.children, target_id) is not None:
            node = node.evolve(children=_splice_sibling(node.children, target_id, new_node, offset))
        result.append(node)
    return result


def _append_child(
    nodes: Sequence[Node], parent_id: str, new_node: Node, config: PlaygroundConfig
) -> List[Node]:
    """Append new_node inside parent_id, propagating the parent's data into it."""

    def append(parent: Node) -> Node:
        updated = parent.evolve(children=parent.children + [new_node])
        if updated.has_context:
            return propagate_context(updated, config.propagation)
        return updated

    return _replace_node(nodes, parent_id, append)
