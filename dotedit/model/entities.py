"""
Graph entities: nodes, edges and subgraphs.

Entities store only their own attributes. Defaults coming from ``node [...]``
and ``edge [...]`` statements or enclosing subgraphs are resolved on read
through the scope chain (see Graph.effective_attributes), using ``scope``
and ``anchor``: the scope the entity was created in and the statement that
created it.
"""

from dataclasses import dataclass, field
from typing import Dict, Optional, Set

from dotedit.model.ids import EdgeId, Position, Provenance, ScopeKey, SubgraphId
from dotedit.model.statements import Scope


class _Tracked:
    provenance: Provenance
    dirty_fields: Set[str]

    @property
    def removed(self) -> bool:
        return self.provenance is Provenance.TOMBSTONE

    @property
    def dirty(self) -> bool:
        return self.provenance is Provenance.DIRTY

    def mark_dirty(self, *fields: str) -> None:
        if not self.removed:
            self.provenance = Provenance.DIRTY
        self.dirty_fields.update(fields)

    def tombstone(self) -> None:
        self.provenance = Provenance.TOMBSTONE


@dataclass
class Node(_Tracked):
    id: str
    attributes: Dict[str, str] = field(default_factory=dict)
    position: Optional[Position] = None
    scope: ScopeKey = None
    anchor: Optional[int] = None
    provenance: Provenance = Provenance.CLEAN
    dirty_fields: Set[str] = field(default_factory=set)


@dataclass
class Edge(_Tracked):
    id: EdgeId
    source: str
    target: str
    directed: bool = True
    source_port: Optional[str] = None
    target_port: Optional[str] = None
    attributes: Dict[str, str] = field(default_factory=dict)
    scope: ScopeKey = None
    anchor: Optional[int] = None
    provenance: Provenance = Provenance.CLEAN
    dirty_fields: Set[str] = field(default_factory=set)

    @property
    def kind(self) -> str:
        return "directed" if self.directed else "undirected"


@dataclass
class Subgraph(_Tracked):
    id: SubgraphId
    name: Optional[str] = None
    attributes: Dict[str, str] = field(default_factory=dict)
    body: Scope = field(default_factory=Scope)
    header: Optional[str] = None
    parent: ScopeKey = None
    anchor: Optional[int] = None
    operand: bool = False  # written inline as an edge endpoint
    provenance: Provenance = Provenance.CLEAN
    dirty_fields: Set[str] = field(default_factory=set)
