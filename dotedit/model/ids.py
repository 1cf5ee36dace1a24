"""
Identifiers and provenance markers shared by the model.

Nodes are addressed by their DOT name (a plain str). Edges and subgraphs get
small typed ids, so a node that happens to be called "e1" can never be
confused with an edge.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Optional, Tuple, Union

Position = Tuple[float, float]


class Provenance(str, Enum):
    CLEAN = "clean"          # raw source text can be reused
    DIRTY = "dirty"          # must be re-synthesized from structured fields
    TOMBSTONE = "tombstone"  # removed, kept until compaction


@dataclass(frozen=True)
class EdgeId:
    index: int

    def __str__(self) -> str:
        return f"e{self.index}"


@dataclass(frozen=True)
class SubgraphId:
    index: int

    def __str__(self) -> str:
        return f"s{self.index}"


@dataclass(frozen=True)
class GraphId:
    def __str__(self) -> str:
        return "graph"


GRAPH = GraphId()

EntityId = Union[str, EdgeId, SubgraphId, GraphId]

# None stands for the root scope
ScopeKey = Optional[SubgraphId]
