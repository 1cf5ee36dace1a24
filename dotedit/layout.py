"""
Default positions for nodes that have none.

Imported graphs usually carry no coordinates, but an editing surface needs
somewhere to draw every node. Nodes are arranged in layers:
- acyclic directed graphs: topological generations, sources on top
- anything else: breadth-first layers per connected component

Positions are placed without marking nodes dirty, so exporting a graph that
was only laid out still reproduces the input text.
"""

import logging
from typing import Dict, List, Tuple

import networkx as nx

from dotedit.model.graph import Graph
from dotedit.model.ids import Position

logger = logging.getLogger(__name__)

DEFAULT_SPACING: Tuple[float, float] = (120.0, 100.0)


def layer_nodes(graph: Graph) -> List[List[str]]:
    """Group live node ids into layers, each layer in first-mention order."""
    G = graph.to_networkx()
    order = {node_id: i for i, node_id in enumerate(G.nodes)}
    simple = nx.DiGraph(G) if graph.directed else nx.Graph(G)

    if graph.directed and nx.is_directed_acyclic_graph(simple):
        return [sorted(layer, key=order.get) for layer in nx.topological_generations(simple)]

    undirected = simple.to_undirected() if graph.directed else simple
    components = sorted(nx.connected_components(undirected), key=lambda c: min(order[n] for n in c))

    layers: List[List[str]] = []
    for component in components:
        roots = []
        if graph.directed:
            roots = [n for n in component if simple.in_degree(n) == 0]
        if not roots:
            roots = [min(component, key=order.get)]
        roots.sort(key=order.get)
        for depth, layer in enumerate(nx.bfs_layers(undirected.subgraph(component), roots)):
            while len(layers) <= depth:
                layers.append([])
            layers[depth].extend(sorted(layer, key=order.get))
    return layers


def assign_default_positions(
    graph: Graph,
    spacing: Tuple[float, float] = DEFAULT_SPACING,
    overwrite: bool = False,
) -> Dict[str, Position]:
    """Give unpositioned nodes a layered position; return what was assigned."""
    dx, dy = spacing
    assigned: Dict[str, Position] = {}
    for depth, layer in enumerate(layer_nodes(graph)):
        for index, node_id in enumerate(layer):
            if not overwrite and graph.position_of(node_id) is not None:
                continue
            position = (index * dx, depth * dy)
            graph.place_node(node_id, position)
            assigned[node_id] = position
    logger.debug(f"Assigned default positions to {len(assigned)} node(s)")
    return assigned
