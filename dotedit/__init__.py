"""
dotedit: import, edit and export Graphviz DOT without losing formatting.

Usage:
    from dotedit import parse_dot, serialize

    graph = parse_dot(text)
    graph.move_node("a", (10, 20))
    text = serialize(graph)
"""

from dotedit.config import Settings, load_settings
from dotedit.edit import EditSession
from dotedit.errors import (
    DotEditError,
    ErrorKind,
    InvalidState,
    NotFound,
    OperationError,
    ParseError,
    SerializeError,
)
from dotedit.layout import assign_default_positions
from dotedit.model import GRAPH, EdgeId, Graph, SubgraphId, new_graph, parse_dot
from dotedit.serializer import SerializerOptions, export_dot, serialize

__version__ = "0.1.0"

__all__ = [
    'parse_dot',
    'new_graph',
    'serialize',
    'export_dot',
    'Graph',
    'EdgeId',
    'SubgraphId',
    'GRAPH',
    'EditSession',
    'assign_default_positions',
    'Settings',
    'load_settings',
    'SerializerOptions',
    'DotEditError',
    'ErrorKind',
    'ParseError',
    'OperationError',
    'NotFound',
    'InvalidState',
    'SerializeError',
]
