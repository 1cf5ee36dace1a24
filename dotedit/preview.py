"""
Hand the current graph to the graphviz library for display.

The editing surface that shows the graph is not part of dotedit. It needs a
graphviz object (or rendered SVG) built from exactly the text that export
would write, and that is all this module produces.
"""

import logging
from typing import Optional

from graphviz import Source

from dotedit.model.graph import Graph
from dotedit.serializer import SerializerOptions, serialize

logger = logging.getLogger(__name__)

DEFAULT_ENGINE = "dot"


def to_source(graph: Graph, options: Optional[SerializerOptions] = None,
              engine: str = DEFAULT_ENGINE) -> Source:
    """A graphviz.Source for the serialized graph."""
    return Source(serialize(graph, options), engine=engine)


def render_svg(graph: Graph, options: Optional[SerializerOptions] = None,
               engine: str = DEFAULT_ENGINE) -> str:
    """
    Render the graph to SVG markup.

    Requires the Graphviz executables on PATH; graphviz raises
    ExecutableNotFound otherwise.
    """
    svg = to_source(graph, options, engine).pipe(format="svg", encoding="utf-8")
    logger.debug(f"Rendered {len(svg)} characters of SVG with {engine}")
    return svg
