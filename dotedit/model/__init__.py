"""
Editable graph model.

- Graph: entities, statement skeleton and the edit operations
- parse_dot / new_graph: build a Graph from source text or from scratch

Usage:
    from dotedit.model import parse_dot, EdgeId, GRAPH
"""

from dotedit.model.builder import GraphBuilder, new_graph, parse_dot
from dotedit.model.entities import Edge, Node, Subgraph
from dotedit.model.graph import Graph, format_position, parse_position
from dotedit.model.ids import GRAPH, EdgeId, EntityId, GraphId, Position, Provenance, SubgraphId

__all__ = [
    'Graph',
    'GraphBuilder',
    'parse_dot',
    'new_graph',
    'Node',
    'Edge',
    'Subgraph',
    'EdgeId',
    'SubgraphId',
    'GraphId',
    'GRAPH',
    'EntityId',
    'Position',
    'Provenance',
    'format_position',
    'parse_position',
]
