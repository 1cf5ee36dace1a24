import pytest

from dotedit import GRAPH, EdgeId, InvalidState, NotFound, SubgraphId, new_graph, parse_dot, serialize
from dotedit.config import Settings
from dotedit.errors import ErrorKind
from dotedit.model import Provenance

SIMPLE = "digraph {\n    a [color=red];\n    a -> b;\n}\n"


@pytest.fixture
def graph():
    return parse_dot(SIMPLE)


class TestAddNode:
    def test_id_from_label(self):
        g = new_graph()
        assert g.add_node({"label": "Hello World"}) == "hello_world"
        assert g.add_node({"label": "Hello  world!"}) == "hello_world_2"
        assert g.add_node() == "n"

    def test_removed_ids_are_not_reused(self, graph):
        graph.remove_node("b")
        assert graph.add_node({"label": "b"}) == "b_2"

    def test_new_node_is_dirty(self, graph):
        node_id = graph.add_node({"label": "New"}, position=(3, 4))
        node = graph.get_node(node_id)
        assert node.provenance is Provenance.DIRTY
        assert node.position == (3.0, 4.0)
        assert node.attributes == {"label": "New", "pos": "3,4"}

    def test_into_subgraph(self):
        g = parse_dot("digraph {\n    subgraph cluster_a {\n        x;\n    }\n}\n")
        sub = g.subgraphs()[0]
        node_id = g.add_node({"label": "y"}, subgraph=sub.id)
        assert g.members(sub.id) == ["x", "y"]
        assert serialize(g) == "digraph {\n    subgraph cluster_a {\n        x;\n        y [label=y];\n    }\n}\n"
        assert node_id == "y"

    def test_into_empty_braces(self):
        g = parse_dot("digraph {}")
        g.add_node({"label": "a"})
        assert serialize(g) == "digraph {\n    a [label=a];\n}"

    def test_unknown_subgraph(self, graph):
        with pytest.raises(NotFound):
            graph.add_node(subgraph=SubgraphId(42))

    def test_operand_subgraph_is_rejected(self):
        g = parse_dot("digraph { a -> {b} }")
        with pytest.raises(InvalidState):
            g.add_node(subgraph=g.subgraphs()[0].id)

    def test_bad_attributes(self, graph):
        with pytest.raises(InvalidState):
            graph.add_node({"": "x"})
        with pytest.raises(InvalidState):
            graph.add_node(["label"])


class TestRemoveNode:
    def test_cascades_to_edges(self, graph):
        edge = graph.edges()[0]
        graph.remove_node("b")
        assert edge.removed
        assert graph.edges() == []
        assert [n.id for n in graph.nodes()] == ["a"]
        assert serialize(graph) == "digraph {\n    a [color=red];\n}\n"

    def test_missing_node(self, graph):
        before = serialize(graph)
        with pytest.raises(NotFound) as exc:
            graph.remove_node("zz")
        assert exc.value.kind is ErrorKind.NOT_FOUND
        assert serialize(graph) == before

    def test_twice(self, graph):
        graph.remove_node("a")
        with pytest.raises(NotFound):
            graph.remove_node("a")


class TestMoveNode:
    def test_updates_the_owning_statement(self):
        g = parse_dot('digraph {\n    a [pos="1,1"];\n    a [color=red];\n}\n')
        g.move_node("a", (2.5, -3))
        assert serialize(g) == 'digraph {\n    a [pos="2.5,-3"];\n    a [color=red];\n}\n'

    def test_implicit_node_gets_a_statement(self, graph):
        graph.move_node("b", (0, 7))
        assert serialize(graph) == 'digraph {\n    a [color=red];\n    b [pos="0,7"];\n    a -> b;\n}\n'

    def test_only_position_is_dirty(self, graph):
        graph.move_node("a", (1, 2))
        node = graph.get_node("a")
        assert node.dirty_fields == {"position"}
        assert graph.edges()[0].provenance is Provenance.CLEAN

    def test_ignore_mode_keeps_text(self):
        g = parse_dot(SIMPLE, settings=Settings(position_mode="ignore"))
        g.move_node("a", (5, 5))
        assert g.position_of("a") == (5.0, 5.0)
        assert serialize(g) == SIMPLE

    def test_precision(self):
        g = parse_dot(SIMPLE, settings=Settings(position_precision=1))
        g.move_node("a", (1.26, 2.0))
        assert g.get_node("a").attributes["pos"] == "1.3,2"

    @pytest.mark.parametrize("position", [None, "bad", "12", b"12", (1,), ("x", 1)])
    def test_invalid_position(self, graph, position):
        before = serialize(graph)
        with pytest.raises(InvalidState):
            graph.move_node("a", position)
        assert serialize(graph) == before

    def test_missing_node(self, graph):
        with pytest.raises(NotFound):
            graph.move_node("zz", (1, 1))


class TestAttributes:
    def test_node_attribute_goes_to_the_statement_that_sets_it(self):
        g = parse_dot("digraph {\n    a [label=x];\n    a [color=red];\n}\n")
        g.set_attribute("a", "color", "blue")
        assert serialize(g) == "digraph {\n    a [label=x];\n    a [color=blue];\n}\n"

    def test_new_node_attribute_goes_to_the_first_statement(self):
        g = parse_dot("digraph {\n    a [label=x];\n    a [color=red];\n}\n")
        g.set_attribute("a", "shape", "box")
        assert serialize(g) == "digraph {\n    a [label=x, shape=box];\n    a [color=red];\n}\n"

    def test_values_are_quoted_when_needed(self, graph):
        graph.set_attribute("a", "label", 'He said "hi"')
        assert 'label="He said \\"hi\\""' in serialize(graph)

    @pytest.mark.parametrize("value", ["C:\\dir\\", 'say \\"x', "trailing\\\nnewline"])
    def test_value_with_dangling_backslash_is_rejected(self, graph, value):
        before = serialize(graph)
        with pytest.raises(InvalidState):
            graph.set_attribute("a", "label", value)
        assert serialize(graph) == before

    def test_edge_attribute(self, graph):
        edge_id = graph.edges()[0].id
        graph.set_attribute(edge_id, "style", "dashed")
        assert serialize(graph) == "digraph {\n    a [color=red];\n    a -> b [style=dashed];\n}\n"
        assert graph.get_edge(edge_id).dirty_fields == {"style"}

    def test_graph_attribute_update_and_insert(self):
        g = parse_dot("digraph {\n    rankdir=LR;\n    a;\n}\n")
        g.set_attribute(GRAPH, "rankdir", "TB")
        g.set_attribute(GRAPH, "bgcolor", "white")
        assert g.attributes == {"rankdir": "TB", "bgcolor": "white"}
        assert serialize(g) == "digraph {\n    rankdir=TB;\n    bgcolor=white;\n    a;\n}\n"

    def test_graph_attribute_in_defaults_statement(self):
        g = parse_dot("digraph {\n    graph [rankdir=LR, splines=true];\n}\n")
        g.set_attribute(GRAPH, "rankdir", "TB")
        assert serialize(g) == "digraph {\n    graph [rankdir=TB, splines=true];\n}\n"

    def test_subgraph_attribute(self):
        g = parse_dot('digraph {\n    subgraph cluster_a {\n        label="A";\n        x;\n    }\n}\n')
        sub = g.subgraphs()[0]
        g.set_attribute(sub.id, "label", "B")
        assert 'label=B;' in serialize(g)
        assert g.get_subgraph(sub.id).attributes == {"label": "B"}

    def test_unset(self):
        g = parse_dot("digraph {\n    a [color=red, shape=box];\n    rankdir=LR;\n}\n")
        g.unset_attribute("a", "color")
        g.unset_attribute(GRAPH, "rankdir")
        assert serialize(g) == "digraph {\n    a [shape=box];\n}\n"
        g.unset_attribute("a", "shape")
        assert serialize(g) == "digraph {\n    a;\n}\n"

    def test_unset_missing_key(self, graph):
        with pytest.raises(NotFound):
            graph.unset_attribute("a", "shape")
        with pytest.raises(NotFound):
            graph.unset_attribute(GRAPH, "rankdir")

    def test_missing_entities(self, graph):
        with pytest.raises(NotFound):
            graph.set_attribute("zz", "color", "red")
        with pytest.raises(NotFound):
            graph.set_attribute(EdgeId(99), "color", "red")
        with pytest.raises(InvalidState):
            graph.set_attribute(3.5, "color", "red")

    def test_none_value_is_rejected(self, graph):
        with pytest.raises(InvalidState):
            graph.set_attribute("a", "color", None)
        assert graph.get_node("a").attributes == {"color": "red"}


class TestEdges:
    def test_add_edge(self, graph):
        edge_id = graph.add_edge("b", "a", {"label": "back"})
        assert graph.get_edge(edge_id).source == "b"
        assert serialize(graph).endswith("    a -> b;\n    b -> a [label=back];\n}\n")

    def test_add_edge_undirected(self):
        g = new_graph(directed=False)
        a, b = g.add_node({"label": "a"}), g.add_node({"label": "b"})
        g.add_edge(a, b)
        assert "    a -- b;\n" in serialize(g)

    def test_add_edge_to_missing_node(self, graph):
        before = serialize(graph)
        with pytest.raises(NotFound):
            graph.add_edge("a", "zz")
        assert len(graph.edges()) == 1
        assert graph._next_edge == 1
        assert serialize(graph) == before

    def test_remove_edge(self, graph):
        edge_id = graph.edges()[0].id
        graph.remove_edge(edge_id)
        # b was first mentioned by the edge, so it is still declared there
        assert serialize(graph) == "digraph {\n    a [color=red];\n    b;\n}\n"
        assert [n.id for n in graph.nodes()] == ["a", "b"]
        with pytest.raises(NotFound):
            graph.remove_edge(edge_id)

    def test_set_directed_is_a_no_op_when_unchanged(self, graph):
        graph.set_directed(True)
        assert serialize(graph) == SIMPLE

    def test_set_directed_needs_a_boolean(self, graph):
        with pytest.raises(InvalidState):
            graph.set_directed("false")
        assert graph.directed
        assert serialize(graph) == SIMPLE


def test_compact_drops_tombstones(graph):
    graph.remove_node("b")
    assert graph.compact() == 2
    assert graph.lookup("b") is None
    assert graph.scope().statements[-1].raw == "a [color=red];"
    assert graph.compact() == 0
