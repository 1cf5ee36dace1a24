import pytest

from dotedit import EditSession, EdgeId, NotFound, parse_dot, serialize

SOURCE = "digraph {\n    a;\n    a -> b;\n}\n"


@pytest.fixture
def session():
    return EditSession(parse_dot(SOURCE), max_history=3)


def test_undo_restores_previous_text(session):
    session.move_node("a", (1, 2))
    assert serialize(session.graph) != SOURCE
    assert session.undo() is True
    assert serialize(session.graph) == SOURCE
    assert session.redo() is True
    assert 'a [pos="1,2"];' in serialize(session.graph)


def test_nothing_to_undo(session):
    assert session.can_undo() is False
    assert session.undo() is False
    assert session.redo() is False


def test_new_operation_clears_redo(session):
    session.add_node({"label": "c"})
    session.undo()
    assert session.can_redo()
    session.add_node({"label": "d"})
    assert not session.can_redo()


def test_history_is_bounded(session):
    for i in range(5):
        session.move_node("a", (i, i))
    assert len(session.undo_stack) == 3


def test_failed_operation_records_nothing(session):
    with pytest.raises(NotFound):
        session.remove_node("zz")
    assert not session.can_undo()


class TestApply:
    def test_move_node(self, session):
        assert session.apply({"action": "move_node", "node_id": "a", "position": [10, 20]}) == "a"
        assert session.graph.position_of("a") == (10.0, 20.0)

    def test_add_node_and_edge(self, session):
        node_id = session.apply({"action": "add_node", "attributes": {"label": "C"}, "position": [0, 0]})
        assert node_id == "c"
        edge_id = session.apply({"action": "add_edge", "source": "b", "target": "c"})
        assert isinstance(edge_id, EdgeId)
        assert serialize(session.graph).endswith('    c [label=C, pos="0,0"];\n    b -> c;\n}\n')

    def test_set_and_unset_attribute(self, session):
        session.apply({"action": "set_attribute", "graph": True, "key": "rankdir", "value": "LR"})
        assert session.graph.attributes == {"rankdir": "LR"}
        edge_id = str(session.graph.edges()[0].id)
        session.apply({"action": "set_attribute", "edge_id": edge_id, "key": "color", "value": "red"})
        assert session.graph.edges()[0].attributes == {"color": "red"}
        session.apply({"action": "unset_attribute", "edge_id": edge_id, "key": "color"})
        assert session.graph.edges()[0].attributes == {}

    def test_remove_edge_and_node(self, session):
        edge_id = session.graph.edges()[0].id
        assert session.apply({"action": "remove_edge", "edge_id": edge_id.index}) == edge_id
        assert session.apply({"action": "remove_node", "node_id": "a"}) == "a"
        assert [n.id for n in session.graph.nodes()] == ["b"]

    def test_set_directed(self, session):
        session.apply({"action": "set_directed", "directed": False})
        assert serialize(session.graph) == "graph {\n    a;\n    a -- b;\n}\n"

    def test_set_directed_rejects_strings(self, session):
        assert session.apply({"action": "set_directed", "directed": "false"}) is None
        assert session.graph.directed
        assert not session.can_undo()

    def test_rejected_action_returns_none(self, session):
        assert session.apply({"action": "remove_node", "node_id": "zz"}) is None
        assert session.apply({"action": "move_node", "node_id": "a"}) is None
        assert session.apply({"action": "set_attribute", "key": "color", "value": "red"}) is None
        assert session.apply({"action": "remove_edge", "edge_id": "bogus"}) is None
        assert not session.can_undo()
        assert serialize(session.graph) == SOURCE

    def test_unknown_action(self, session):
        assert session.apply({"action": "explode"}) is None


def test_export_compacts_and_resets_history(session):
    session.remove_node("b")
    text = session.export()
    assert text == "digraph {\n    a;\n}\n"
    assert not session.can_undo()
    assert session.graph.lookup("b") is None
    assert serialize(session.graph) == text
