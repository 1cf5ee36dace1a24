import shutil

import pytest

from dotedit import parse_dot, serialize
from dotedit.preview import render_svg, to_source

TEXT = "digraph {\n    a -> b;\n}\n"


def test_source_matches_export():
    graph = parse_dot(TEXT)
    graph.move_node("a", (1, 2))
    source = to_source(graph, engine="neato")
    assert source.source == serialize(graph)
    assert source.engine == "neato"


@pytest.mark.skipif(shutil.which("dot") is None, reason="Graphviz executables not installed")
def test_render_svg():
    svg = render_svg(parse_dot(TEXT))
    assert "<svg" in svg
