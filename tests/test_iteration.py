"""Tests for Map expansion, tag lists and render-tree expansion."""

import pytest

from playground.catalog import EMPTY_STATE
from playground.config import IterationConfig, PlaygroundConfig
from playground.iteration import MapExpander, expand_tree
from playground.nodes import Node
from playground.paths import resolve_path


@pytest.fixture
def expander() -> MapExpander:
    return MapExpander()


def map_node(children, data=None, **props) -> Node:
    merged = {"dataPath": "items", "emptyText": "No items to display"}
    merged.update(props)
    fields = {} if data is None else {"context_data": data}
    return Node(id="map", type="MapComponent", props=merged, children=children, **fields)


class TestResolveItems:
    def test_data_path(self, expander: MapExpander) -> None:
        node = map_node([], {"items": ["a", "b"]})
        assert expander.resolve_items(node) == ["a", "b"]

    def test_empty_path_uses_data(self, expander: MapExpander) -> None:
        node = map_node([], [1, 2], dataPath="")
        assert expander.resolve_items(node) == [1, 2]

    def test_bare_object_is_wrapped(self, expander: MapExpander) -> None:
        node = map_node([], {"items": {"a": 1}})
        assert expander.resolve_items(node) == [{"a": 1}]

    def test_scalar_is_wrapped(self, expander: MapExpander) -> None:
        node = map_node([], {"items": 7})
        assert expander.resolve_items(node) == [7]

    @pytest.mark.parametrize("data", [{"other": []}, {"items": None}])
    def test_unresolved_is_empty(self, expander: MapExpander, data) -> None:
        assert expander.resolve_items(map_node([], data)) == []

    def test_no_data_is_empty(self, expander: MapExpander) -> None:
        assert expander.resolve_items(map_node([])) == []

    def test_parent_data_used_when_node_has_none(self, expander: MapExpander) -> None:
        assert expander.resolve_items(map_node([]), {"items": [1]}) == [1]

    def test_fan_out_path(self, expander: MapExpander) -> None:
        data = {"abilities": [{"ability": {"name": "blaze"}}, {"ability": {"name": "solar"}}]}
        node = map_node([], data, dataPath="abilities[].ability.name")
        assert expander.resolve_items(node) == ["blaze", "solar"]

    def test_split(self, expander: MapExpander) -> None:
        node = map_node([], {"items": " a, b ,,c "}, stringProcessing="split", separator=",")
        assert expander.resolve_items(node) == ["a", "b", "c"]

    def test_lines(self, expander: MapExpander) -> None:
        node = map_node([], {"items": "one\n\ntwo\r\nthree"}, stringProcessing="lines")
        assert expander.resolve_items(node) == ["one", "two", "three"]

    def test_json(self, expander: MapExpander) -> None:
        node = map_node([], {"items": '[{"a": 1}, {"a": 2}]'}, stringProcessing="json")
        assert expander.resolve_items(node) == [{"a": 1}, {"a": 2}]

    def test_invalid_json_warns(self, expander: MapExpander, mock_display) -> None:
        node = map_node([], {"items": "{nope"}, stringProcessing="json")
        assert expander.resolve_items(node) == ["{nope"]
        mock_display.print_warning.assert_called_once()

    def test_string_without_processing_is_one_item(self, expander: MapExpander) -> None:
        node = map_node([], {"items": "a,b"})
        assert expander.resolve_items(node) == ["a,b"]

    def test_transform_runs_first(self, expander: MapExpander) -> None:
        node = map_node([], {"payload": {"items": [1, 2]}})
        node = node.evolve(context_transform=".payload")
        assert expander.resolve_items(node) == [1, 2]


class TestExpand:
    def test_one_clone_per_element(self, expander: MapExpander) -> None:
        template = Node(id="t", type="Typography", props={"children": "{{}}"})
        clones = expander.expand(map_node([template], {"items": ["a", "b"]}))

        assert [c.id for c in clones] == ["t-0", "t-1"]
        assert [c.context_data for c in clones] == ["a", "b"]
        assert [c.props["children"] for c in clones] == ["a", "b"]

    def test_condition_filters(self, expander: MapExpander) -> None:
        template = Node(id="t", type="Typography", props={"children": "{{name}}"})
        data = {"items": [{"name": "A", "active": True}, {"name": "B", "active": False}]}
        clones = expander.expand(map_node([template], data, condition="item.active"))

        assert len(clones) == 1
        assert clones[0].props["children"] == "A"

    def test_throwing_condition_keeps_items(self, expander: MapExpander, mock_display) -> None:
        template = Node(id="t", type="Typography")
        clones = expander.expand(map_node([template], {"items": [1, 2]}, condition="item.x.y"))
        assert len(clones) == 2
        assert mock_display.print_warning.called

    def test_nested_template_children(self, expander: MapExpander) -> None:
        title = Node(id="title", type="Typography", props={"children": "${title}"})
        card = Node(id="card", type="Card", props={"title": "#{{id}}"}, children=[title])
        data = {"items": [{"id": 1, "title": "x"}, {"id": 2, "title": "y"}]}

        clones = expander.expand(map_node([card], data))
        assert [c.id for c in clones] == ["card-0", "card-1"]
        assert clones[1].props["title"] == "#2"
        assert clones[1].children[0].id == "title-1"
        assert clones[1].children[0].props["children"] == "y"
        assert clones[1].children[0].context_data == {"id": 2, "title": "y"}

    def test_multiple_templates_interleave_per_element(self, expander: MapExpander) -> None:
        a = Node(id="a", type="Typography")
        b = Node(id="b", type="Button")
        clones = expander.expand(map_node([a, b], {"items": [1, 2]}))
        assert [c.id for c in clones] == ["a-0", "b-0", "a-1", "b-1"]

    def test_clones_do_not_share_state(self, expander: MapExpander) -> None:
        template = Node(id="t", type="Typography", props={"style": {"color": "red"}})
        data = {"items": [{"k": 1}]}
        clones = expander.expand(map_node([template], data))
        clones[0].props["style"]["color"] = "blue"
        clones[0].context_data["k"] = 2
        assert template.props["style"]["color"] == "red"
        assert data["items"][0]["k"] == 1

    def test_condition_with_oversized_literal_keeps_items(
        self, expander: MapExpander, mock_display
    ) -> None:
        template = Node(id="t", type="Typography")
        node = map_node([template], {"items": [1, 2]}, condition="item > " + "9" * 5000)
        assert [c.context_data for c in expander.expand(node)] == [1, 2]
        assert mock_display.print_warning.called

    def test_condition_against_huge_number(self, expander: MapExpander) -> None:
        template = Node(id="t", type="Typography")
        node = map_node([template], {"items": [1, 10 ** 500]}, condition="item > " + "9" * 400)
        assert [c.context_data for c in expander.expand(node)] == [10 ** 500]

    def test_empty_state(self, expander: MapExpander) -> None:
        template = Node(id="t", type="Typography")
        result = expander.expand(map_node([template], {"items": []}, emptyText="Nothing here"))
        assert len(result) == 1
        assert result[0].type == EMPTY_STATE
        assert result[0].props["emptyText"] == "Nothing here"

    def test_empty_state_default_text(self) -> None:
        config = PlaygroundConfig(iteration=IterationConfig(default_empty_text="Empty!"))
        node = map_node([Node(id="t", type="Typography")], {"items": []}, emptyText="")
        assert MapExpander(config).expand(node)[0].props["emptyText"] == "Empty!"

    def test_custom_id_separator(self) -> None:
        config = PlaygroundConfig(iteration=IterationConfig(id_separator="_"))
        template = Node(id="t", type="Typography")
        clones = MapExpander(config).expand(map_node([template], {"items": [1]}))
        assert clones[0].id == "t_0"


class TestTagItems:
    def test_split_and_trim(self, expander: MapExpander) -> None:
        node = Node(id="tags", type="TagList", props={"tags": "a, b ,c", "separator": ","})
        assert expander.tag_items(node) == ["a", "b", "c"]

    def test_condition_uses_tag_variable(self, expander: MapExpander) -> None:
        node = Node(
            id="tags",
            type="TagList",
            props={"tags": "new;old;hot", "separator": ";", "condition": "tag !== 'old'"},
        )
        assert expander.tag_items(node) == ["new", "hot"]

    def test_tags_from_data(self, expander: MapExpander) -> None:
        node = Node(id="tags", type="TagList", props={"tags": ""})
        assert expander.tag_items(node, {"tags": ["x", "y"]}) == ["x", "y"]

    def test_tags_from_data_path(self, expander: MapExpander) -> None:
        node = Node(id="tags", type="TagList", props={"dataPath": "meta.keywords"})
        assert expander.tag_items(node, {"meta": {"keywords": "p,q"}}) == ["p", "q"]


class TestExpandTree:
    def test_end_to_end_filtered_map(self) -> None:
        template = Node(id="t", type="Typography", props={"children": "{{name}}"})
        data = {"items": [{"name": "A", "active": True}, {"name": "B", "active": False}]}
        root = Node(
            id="section",
            type="Section",
            children=[map_node([template], condition="item.active")],
            context_data=data,
        )

        result = expand_tree([root])
        assert len(result) == 1
        instances = result[0].children
        assert len(instances) == 1
        assert instances[0].type == "Typography"
        assert instances[0].props["children"] == "A"

    def test_root_map_with_path_bound_template(self) -> None:
        template = Node(id="label", type="Typography", props={"contextPath": "name"})
        root = Node(
            id="results",
            type="MapComponent",
            props={"dataPath": "results", "condition": "item.active"},
            children=[template],
            context_data={"results": [{"name": "A", "active": True}, {"name": "B", "active": False}]},
        )

        result = expand_tree([root])
        assert len(result) == 1
        assert result[0].id == "label-0"
        assert resolve_path(result[0].context_data, result[0].props["contextPath"]) == "A"

    def test_nested_maps_expand_against_clone_data(self) -> None:
        leaf = Node(id="leaf", type="Typography", props={"children": "{{}}"})
        inner = Node(id="inner", type="MapComponent", props={"dataPath": "tags"}, children=[leaf])
        card = Node(id="card", type="Card", children=[inner])
        data = {"items": [{"tags": ["a", "b"]}, {"tags": ["c"]}]}

        result = expand_tree([map_node([card], data)])
        assert [c.id for c in result] == ["card-0", "card-1"]
        assert [n.props["children"] for n in result[0].children] == ["a", "b"]
        assert [n.id for n in result[0].children] == ["leaf-0-0", "leaf-0-1"]
        assert [n.props["children"] for n in result[1].children] == ["c"]
        assert [n.id for n in result[1].children] == ["leaf-1-0"]

    def test_tag_list_gets_items(self) -> None:
        tags = Node(id="tags", type="TagList", props={"tags": "x,y"})
        result = expand_tree([Node(id="s", type="Section", children=[tags])])
        assert result[0].children[0].props["tagItems"] == ["x", "y"]

    def test_input_tree_is_not_mutated(self) -> None:
        tags = Node(id="tags", type="TagList", props={"tags": "x"})
        expand_tree([tags])
        assert "tagItems" not in tags.props
