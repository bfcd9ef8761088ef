"""Tests for context propagation."""

import pytest

from playground.config import PropagationConfig
from playground.paths import UNDEFINED
from playground.propagation import propagate_context, propagate_tree


@pytest.fixture
def user_data():
    return {
        "user": {
            "name": "Ada",
            "address": {"city": "London", "zip": "N1"},
        },
        "items": [{"title": "first"}, {"title": "second"}],
    }


class TestPriority:
    def test_path_binding(self, make_node, user_data) -> None:
        child = make_node("c", props={"contextPath": "user.name"})
        parent = make_node("p", "Section", children=[child], context_data=user_data)
        result = propagate_context(parent)
        assert result.children[0].context_data == "Ada"

    def test_blank_path_means_whole_data(self, make_node, user_data) -> None:
        child = make_node("c", props={"contextPath": "  "})
        parent = make_node("p", "Typography", children=[child], context_data=user_data)
        result = propagate_context(parent, PropagationConfig(inherit_fallback=False))
        assert result.children[0].context_data == user_data

    def test_pass_through_container(self, make_node, user_data) -> None:
        child = make_node("c")
        parent = make_node("p", "Card", children=[child], context_data=user_data)
        assert propagate_context(parent).children[0].context_data == user_data

    def test_pass_through_overrides_child_data(self, make_node, user_data) -> None:
        child = make_node("c", context_data={"own": True})
        parent = make_node("p", "Stack", children=[child], context_data=user_data)
        assert propagate_context(parent).children[0].context_data == user_data

    def test_unresolved_path_falls_through_to_pass_through(self, make_node, user_data) -> None:
        child = make_node("c", props={"contextPath": "nope"})
        parent = make_node("p", "Flexbox", children=[child], context_data=user_data)
        assert propagate_context(parent).children[0].context_data == user_data

    def test_map_exposes_first_element(self, make_node, user_data) -> None:
        child = make_node("c")
        parent = make_node(
            "m", "MapComponent", props={"dataPath": "items"}, children=[child], context_data=user_data
        )
        assert propagate_context(parent).children[0].context_data == {"title": "first"}

    def test_map_with_array_data(self, make_node) -> None:
        child = make_node("c")
        parent = make_node(
            "m", "MapComponent", props={"dataPath": "items"}, children=[child], context_data=["x", "y"]
        )
        assert propagate_context(parent).children[0].context_data == "x"

    def test_map_applies_transform(self, make_node) -> None:
        child = make_node("c")
        parent = make_node(
            "m",
            "MapComponent",
            props={"dataPath": "items"},
            children=[child],
            context_data={"payload": {"items": [1, 2]}},
            context_transform=".payload",
        )
        assert propagate_context(parent).children[0].context_data == 1

    def test_map_with_empty_array_uses_fallback(self, make_node) -> None:
        child = make_node("c")
        data = {"items": []}
        parent = make_node(
            "m", "MapComponent", props={"dataPath": "items"}, children=[child], context_data=data
        )
        assert propagate_context(parent).children[0].context_data == data

    def test_fallback_inherits_parent_data(self, make_node, user_data) -> None:
        child = make_node("c")
        parent = make_node("p", "Typography", children=[child], context_data=user_data)
        assert propagate_context(parent).children[0].context_data == user_data

    def test_fallback_keeps_existing_child_data(self, make_node, user_data) -> None:
        child = make_node("c", context_data={"own": True})
        parent = make_node("p", "Typography", children=[child], context_data=user_data)
        assert propagate_context(parent).children[0].context_data == {"own": True}

    def test_fallback_can_be_disabled(self, make_node, user_data) -> None:
        child = make_node("c")
        parent = make_node("p", "Typography", children=[child], context_data=user_data)
        result = propagate_context(parent, PropagationConfig(inherit_fallback=False))
        assert result.children[0].context_data is UNDEFINED

    def test_configured_pass_through_kinds(self, make_node, user_data) -> None:
        child = make_node("c", context_data={"own": True})
        parent = make_node("p", "Panel", children=[child], context_data=user_data)
        config = PropagationConfig(pass_through_kinds=["Panel"])
        assert propagate_context(parent, config).children[0].context_data == user_data


class TestDepthFirst:
    def test_leaf_resolves_against_narrowed_data(self, make_node, user_data) -> None:
        leaf = make_node("leaf", props={"contextPath": "address.city"})
        mid = make_node("mid", "Card", props={"contextPath": "user"}, children=[leaf])
        root = make_node("root", "Section", children=[mid], context_data=user_data)

        result = propagate_context(root)
        assert result.children[0].context_data == user_data["user"]
        assert result.children[0].children[0].context_data == "London"

    def test_nested_node_with_own_data_propagates(self, make_node) -> None:
        leaf = make_node("leaf")
        inner = make_node("inner", "Card", children=[leaf], context_data={"k": 1})
        outer = make_node("outer", "Typography", children=[inner])

        result = propagate_context(outer)
        assert result is not outer
        assert result.children[0].children[0].context_data == {"k": 1}


class TestCopyOnWrite:
    def test_input_is_not_mutated(self, make_node, user_data) -> None:
        child = make_node("c")
        parent = make_node("p", "Card", children=[child], context_data=user_data)
        propagate_context(parent)
        assert child.context_data is UNDEFINED

    def test_children_receive_independent_copies(self, make_node, user_data) -> None:
        first = make_node("a")
        second = make_node("b")
        parent = make_node("p", "Card", children=[first, second], context_data=user_data)

        result = propagate_context(parent)
        a_data = result.children[0].context_data
        b_data = result.children[1].context_data
        assert a_data is not user_data
        assert a_data is not b_data
        a_data["user"]["name"] = "changed"
        assert user_data["user"]["name"] == "Ada"
        assert b_data["user"]["name"] == "Ada"

    def test_untouched_subtree_keeps_identity(self, make_node) -> None:
        root = make_node("root", "Card", children=[make_node("c", children=[make_node("g")])])
        assert propagate_context(root) is root

    def test_leaf_is_returned_unchanged(self, make_node) -> None:
        leaf = make_node("leaf", context_data={"a": 1})
        assert propagate_context(leaf) is leaf

    def test_propagate_tree(self, make_node) -> None:
        plain = make_node("plain")
        with_data = make_node("card", "Card", children=[make_node("c")], context_data=[1])
        result = propagate_tree([plain, with_data])
        assert result[0] is plain
        assert result[1].children[0].context_data == [1]
