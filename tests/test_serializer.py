"""
Export tests: unedited documents come back byte for byte, edits stay local.
"""

import pytest

from dotedit import EdgeId, SerializeError, export_dot, new_graph, parse_dot, serialize
from dotedit.serializer import SerializerOptions

RICH_DOT = """// leading comment
strict digraph "My Graph" {
    graph [rankdir=LR]
    node [shape=box, style="rounded"];
    /* block
       comment */
    a [label="Alpha"];
    a -> b -> c [color=red]
#line 12
    subgraph cluster_0 {
        label = "Cluster";
        d; e
    }
    {rank=same; b c}
    f:p1:n -> g
    x -> {y z} [arrowhead=none] ;
    h [label=<<i>html</i>>, tooltip="a" + "b"]
    subgraph empty {}
}
"""


def lines_changed(before, after):
    old, new = before.splitlines(), after.splitlines()
    assert len(old) == len(new)
    return [i for i, (x, y) in enumerate(zip(old, new)) if x != y]


@pytest.mark.parametrize("text", [
    RICH_DOT,
    "digraph{a->b}",
    "graph {}",
    "  \n digraph G {\n}\n\n// trailing\n",
    "digraph {\r\n  a -> b;\r\n}\r\n",
])
def test_unedited_round_trip_is_exact(text):
    assert serialize(parse_dot(text)) == text


def test_move_node_touches_only_its_statement():
    graph = parse_dot("digraph{ a->b; a[color=red]; }")
    graph.move_node("a", (10, 20))
    assert serialize(graph) == 'digraph{ a->b; a [color=red, pos="10,20"]; }'


def test_edit_is_local():
    graph = parse_dot(RICH_DOT)
    graph.set_attribute("a", "label", "First")
    out = serialize(graph)
    changed = lines_changed(RICH_DOT, out)
    assert len(changed) == 1
    assert out.splitlines()[changed[0]] == "    a [label=First];"


def test_export_is_idempotent():
    graph = parse_dot(RICH_DOT)
    graph.move_node("d", (1.5, 2))
    graph.add_edge("a", "g", {"style": "dotted"})
    graph.remove_node("y")
    once = serialize(graph)
    twice = serialize(parse_dot(once))
    assert once == twice


def test_edited_document_keeps_its_semantics():
    graph = parse_dot(RICH_DOT)
    graph.set_attribute(graph.edges()[0].id, "color", "blue")
    reparsed = parse_dot(serialize(graph))
    assert reparsed.to_dict() == graph.to_dict()


def test_removed_node_keeps_its_comment():
    text = "digraph {\n    a -> b;\n    // about c\n    c;\n    b -> c;\n}\n"
    graph = parse_dot(text)
    graph.remove_node("c")
    out = serialize(graph)
    assert "// about c" in out
    assert "c;" not in out
    assert "b -> c" not in out
    assert [n.id for n in parse_dot(out).nodes()] == ["a", "b"]


def test_compaction_does_not_change_output():
    text = "digraph {\n    a -> b;\n    // about c\n    c;\n    b -> c;\n}\n"
    graph = parse_dot(text)
    graph.remove_node("c")
    first = export_dot(graph)
    assert graph.lookup("c") is None
    assert serialize(graph) == first


def test_removing_one_edge_splits_the_chain():
    graph = parse_dot("digraph {\n    a -> b -> c;\n}\n")
    graph.remove_edge(graph.edges()[0].id)
    assert serialize(graph) == "digraph {\n    a;\n    b -> c;\n}\n"


@pytest.mark.parametrize("value", ["C:\\dir\\\\", 'say \\\\"x', 'a "quoted" word', "two\\nlines"])
def test_backslashes_and_quotes_read_back_unchanged(value):
    graph = parse_dot("digraph { a; }")
    graph.set_attribute("a", "label", value)
    text = serialize(graph)
    assert parse_dot(text).get_node("a").attributes["label"] == value
    assert serialize(parse_dot(text)) == text


def test_new_statements_follow_crlf_line_endings():
    graph = parse_dot("digraph {\r\n    a;\r\n}\r\n")
    graph.add_node({"label": "b"})
    assert serialize(graph) == "digraph {\r\n    a;\r\n    b [label=b];\r\n}\r\n"


def test_first_statement_in_empty_crlf_body():
    graph = parse_dot("digraph {}\r\n")
    graph.add_node({"label": "b"})
    assert serialize(graph) == "digraph {\r\n    b [label=b];\r\n}\r\n"


def test_split_chain_keeps_crlf_line_endings():
    graph = parse_dot("digraph {\r\n    a -> b -> c;\r\n}\r\n")
    graph.remove_edge(graph.edges()[0].id)
    assert serialize(graph) == "digraph {\r\n    a;\r\n    b -> c;\r\n}\r\n"


def test_editing_one_edge_of_a_fan_out():
    graph = parse_dot("digraph {\n    a -> {b c};\n}\n")
    ab = graph.edges()[0].id
    graph.set_attribute(ab, "color", "blue")
    out = serialize(graph)
    assert out == "digraph {\n    {b c}\n    a -> b [color=blue];\n    a -> c;\n}\n"
    reparsed = parse_dot(out)
    assert [(e.source, e.target, e.attributes) for e in reparsed.edges()] == [
        ("a", "b", {"color": "blue"}),
        ("a", "c", {}),
    ]


def test_emptied_subgraph_is_omitted():
    text = "digraph {\n    subgraph cluster_a {\n        x;\n    }\n    y;\n}\n"
    graph = parse_dot(text)
    graph.remove_node("x")
    assert serialize(graph) == "digraph {\n    y;\n}\n"
    assert "cluster_a" not in graph.to_dict()["subgraphs"]


def test_originally_empty_subgraph_survives_edits():
    graph = parse_dot("digraph {\n    subgraph keep {}\n    a;\n}\n")
    graph.set_attribute("a", "color", "red")
    assert serialize(graph) == "digraph {\n    subgraph keep {}\n    a [color=red];\n}\n"


def test_set_directed_rewrites_header_and_edges():
    graph = parse_dot("digraph {\n    a -> b [color=red];\n    c;\n}\n")
    graph.set_directed(False)
    assert serialize(graph) == "graph {\n    a -- b [color=red];\n    c;\n}\n"


def test_new_graph_output():
    graph = new_graph(name="G")
    a = graph.add_node({"label": "Hello World"})
    b = graph.add_node(position=(1.5, 2))
    graph.add_edge(a, b)
    assert serialize(graph) == (
        "digraph G {\n"
        '    hello_world [label="Hello World"];\n'
        '    n [pos="1.5,2"];\n'
        "    hello_world -> n;\n"
        "}\n"
    )


def test_terminator_option():
    graph = new_graph(directed=False)
    graph.add_node({"label": "x"})
    assert serialize(graph, SerializerOptions(terminator="")) == "graph {\n    x [label=x]\n}\n"


def test_dangling_edge_is_reported():
    graph = parse_dot("digraph { a -> b }")
    graph.get_node("b").tombstone()
    with pytest.raises(SerializeError):
        serialize(graph)


def test_unknown_edge_reference_is_reported():
    graph = parse_dot("digraph { a -> b }")
    stmt = graph.scope().statements[0]
    stmt.edge_ids.append(EdgeId(99))
    with pytest.raises(SerializeError):
        serialize(graph)
