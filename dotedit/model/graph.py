"""
The editable graph model.

A Graph holds two views of one document:

- entities (nodes, edges, subgraphs) that the editing surface reads and
  mutates through the operations below, and
- the statement skeleton of the source text, so that export can write back
  every statement that no edit touched byte for byte.

Every operation validates its arguments before changing anything. A failed
operation raises NotFound or InvalidState and leaves the graph untouched.
Removals never delete: entities and statements are tombstoned, and only
``compact`` drops them for good.
"""

import copy
import logging
import re
from typing import Any, Dict, Iterator, List, Mapping, Optional, Set, Tuple

import networkx as nx

from dotedit.dot.quoting import HtmlString, is_quotable
from dotedit.errors import InvalidState, NotFound, SerializeError
from dotedit.model.entities import Edge, Node, Subgraph
from dotedit.model.ids import (
    GRAPH,
    EdgeId,
    EntityId,
    GraphId,
    Position,
    Provenance,
    ScopeKey,
    SubgraphId,
)
from dotedit.model.statements import (
    AssignmentStatement,
    AttributeEntry,
    AttributeList,
    DefaultsStatement,
    EdgeStatement,
    NodeOperand,
    NodeStatement,
    Scope,
    Statement,
    SubgraphOperand,
    SubgraphStatement,
    has_comment,
)

logger = logging.getLogger(__name__)

DEFAULT_INDENT = "    "
DEFAULT_POSITION_ATTRIBUTE = "pos"


def normalize_name(name: str) -> str:
    """Normalize a label into an identifier: lowercase, runs of other characters become '_'."""
    return re.sub(r"[^a-z0-9]+", "_", name.lower()).strip("_")


def parse_position(value: str) -> Optional[Position]:
    """Read a Graphviz ``pos`` value such as ``"10,20"`` or ``"10,20!"``."""
    parts = str(value).strip().rstrip("!").split(",")
    if len(parts) != 2:
        return None
    try:
        return (float(parts[0]), float(parts[1]))
    except ValueError:
        return None


def _format_coordinate(value: float, precision: int) -> str:
    text = f"{value:.{precision}f}"
    if "." in text:
        text = text.rstrip("0").rstrip(".")
    return "0" if text in ("-0", "") else text


def format_position(position: Position, precision: int = 2) -> str:
    return ",".join(_format_coordinate(v, precision) for v in position)


class Graph:
    """A DOT graph with provenance-tracked entities and statements."""

    def __init__(
        self,
        directed: bool = True,
        strict: bool = False,
        name: Optional[str] = None,
        position_attribute: Optional[str] = DEFAULT_POSITION_ATTRIBUTE,
        position_precision: int = 2,
        indent: str = DEFAULT_INDENT,
    ):
        self.directed = directed
        self.strict = strict
        self.name = name
        self.attributes: Dict[str, str] = {}
        self.dirty_fields: Set[str] = set()

        # None disables mirroring positions into an attribute
        self.position_attribute = position_attribute
        self.position_precision = position_precision
        self.indent = indent
        # line ending for synthesized text, "\r\n" when the source used it
        self.newline = "\n"

        # Source text around the body. A graph created from scratch has no
        # header, so the serializer writes one.
        self.header_prefix = ""
        self.header: Optional[str] = None
        self.header_dirty = False
        self.trailer = "\n"
        self.body = Scope(closing="\n}")

        self._nodes: Dict[str, Node] = {}
        self._edges: Dict[EdgeId, Edge] = {}
        self._subgraphs: Dict[SubgraphId, Subgraph] = {}
        self._statements: Dict[int, Statement] = {}
        self._next_edge = 0
        self._next_subgraph = 0
        self._next_statement = 0

    # ------------------------------------------------------------------
    # Id allocation and registration
    # ------------------------------------------------------------------

    def _new_statement_id(self) -> int:
        self._next_statement += 1
        return self._next_statement

    def _new_edge_id(self) -> EdgeId:
        self._next_edge += 1
        return EdgeId(self._next_edge)

    def _new_subgraph_id(self) -> SubgraphId:
        self._next_subgraph += 1
        return SubgraphId(self._next_subgraph)

    def _register_statement(self, stmt: Statement) -> None:
        self._statements[stmt.id] = stmt

    # ------------------------------------------------------------------
    # Read access
    # ------------------------------------------------------------------

    def scope(self, key: ScopeKey = None) -> Scope:
        """Statement list of the root (None) or of a subgraph."""
        if key is None:
            return self.body
        return self._subgraphs[key].body

    def lookup(self, entity_id: EntityId) -> Any:
        """Entity record for an id, tombstoned or not; None when unknown."""
        if isinstance(entity_id, EdgeId):
            return self._edges.get(entity_id)
        if isinstance(entity_id, SubgraphId):
            return self._subgraphs.get(entity_id)
        if isinstance(entity_id, str):
            return self._nodes.get(entity_id)
        return None

    def statement(self, statement_id: int) -> Statement:
        return self._statements[statement_id]

    def has_node(self, node_id: str) -> bool:
        node = self._nodes.get(node_id)
        return node is not None and not node.removed

    def get_node(self, node_id: str) -> Node:
        if not isinstance(node_id, str):
            raise InvalidState(f"node ids are strings, got {node_id!r}")
        node = self._nodes.get(node_id)
        if node is None or node.removed:
            raise NotFound(f"node {node_id!r} does not exist")
        return node

    def get_edge(self, edge_id: EdgeId) -> Edge:
        if not isinstance(edge_id, EdgeId):
            raise InvalidState(f"expected an edge id, got {edge_id!r}")
        edge = self._edges.get(edge_id)
        if edge is None or edge.removed:
            raise NotFound(f"edge {edge_id} does not exist")
        return edge

    def get_subgraph(self, subgraph_id: SubgraphId) -> Subgraph:
        if not isinstance(subgraph_id, SubgraphId):
            raise InvalidState(f"expected a subgraph id, got {subgraph_id!r}")
        subgraph = self._subgraphs.get(subgraph_id)
        if subgraph is None or subgraph.removed:
            raise NotFound(f"subgraph {subgraph_id} does not exist")
        return subgraph

    def nodes(self) -> List[Node]:
        """Live nodes in first-mention order."""
        return [n for n in self._nodes.values() if not n.removed]

    def edges(self) -> List[Edge]:
        """Live edges in document order."""
        result = []
        for _, stmt in self.iter_statements():
            if isinstance(stmt, EdgeStatement):
                for edge_id in stmt.edge_ids:
                    edge = self._edges[edge_id]
                    if not edge.removed:
                        result.append(edge)
        return result

    def subgraphs(self) -> List[Subgraph]:
        return [s for s in self._subgraphs.values() if not s.removed]

    def edges_of(self, node_id: str) -> List[Edge]:
        self.get_node(node_id)
        return [e for e in self.edges() if node_id in (e.source, e.target)]

    def position_of(self, node_id: str) -> Optional[Position]:
        return self.get_node(node_id).position

    def find_node(self, id_or_label: str) -> str:
        """Resolve a node by id, or failing that by its ``label`` attribute."""
        if self.has_node(id_or_label):
            return id_or_label
        for node in self.nodes():
            if node.attributes.get("label") == id_or_label:
                return node.id
        raise NotFound(f"no node with id or label {id_or_label!r}")

    def iter_statements(self, key: ScopeKey = None) -> Iterator[Tuple[ScopeKey, Statement]]:
        """Every statement in document order, descending into subgraphs.

        Statements inside an edge operand subgraph come before the edge
        statement that holds them, matching the order they are parsed in.
        """
        for stmt in self.scope(key).statements:
            if isinstance(stmt, EdgeStatement):
                for operand in stmt.operands:
                    if isinstance(operand, SubgraphOperand):
                        yield from self.iter_statements(operand.subgraph_id)
            yield key, stmt
            if isinstance(stmt, SubgraphStatement):
                yield from self.iter_statements(stmt.subgraph_id)

    def _node_statements(self, node_id: str) -> List[NodeStatement]:
        return [
            stmt for _, stmt in self.iter_statements()
            if isinstance(stmt, NodeStatement) and stmt.node_id == node_id and not stmt.removed
        ]

    def members(self, subgraph_id: SubgraphId) -> List[str]:
        """Live nodes mentioned inside a subgraph, nested subgraphs included."""
        self.get_subgraph(subgraph_id)
        found: List[str] = []
        self._collect_members(subgraph_id, found)
        return found

    def _collect_members(self, key: SubgraphId, found: List[str]) -> None:
        def add(node_id: str) -> None:
            if node_id not in found and self.has_node(node_id):
                found.append(node_id)

        for stmt in self.scope(key).statements:
            if stmt.removed:
                continue
            if isinstance(stmt, NodeStatement):
                add(stmt.node_id)
            elif isinstance(stmt, EdgeStatement):
                for operand in stmt.operands:
                    if isinstance(operand, NodeOperand):
                        add(operand.node_id)
                    else:
                        self._collect_members(operand.subgraph_id, found)
            elif isinstance(stmt, SubgraphStatement):
                self._collect_members(stmt.subgraph_id, found)

    def effective_attributes(self, entity_id: EntityId) -> Dict[str, str]:
        """Own attributes merged over the defaults in force where the entity was created."""
        if isinstance(entity_id, GraphId):
            return dict(self.attributes)
        if isinstance(entity_id, EdgeId):
            edge = self.get_edge(entity_id)
            merged = self._inherited("edge", edge.scope, edge.anchor)
            merged.update(edge.attributes)
            return merged
        if isinstance(entity_id, SubgraphId):
            subgraph = self.get_subgraph(entity_id)
            merged = self._inherited("graph", subgraph.parent, subgraph.anchor)
            merged.update(subgraph.attributes)
            return merged
        node = self.get_node(entity_id)
        merged = self._inherited("node", node.scope, node.anchor)
        merged.update(node.attributes)
        return merged

    def _inherited(self, kind: str, key: ScopeKey, anchor: Optional[int]) -> Dict[str, str]:
        chain = [(key, anchor)]
        while key is not None:
            parent = self._subgraphs[key]
            key, anchor = parent.parent, parent.anchor
            chain.append((key, anchor))

        merged: Dict[str, str] = {}
        for key, anchor in reversed(chain):
            for stmt in self.scope(key).statements:
                if stmt.id == anchor:
                    break
                if stmt.removed:
                    continue
                if isinstance(stmt, DefaultsStatement) and stmt.target == kind:
                    merged.update(stmt.attributes.to_dict())
                elif kind == "graph" and isinstance(stmt, AssignmentStatement):
                    merged[stmt.entry.key] = stmt.entry.value
        return merged

    # ------------------------------------------------------------------
    # Validation helpers
    # ------------------------------------------------------------------

    @staticmethod
    def _check_position(position: Any) -> Position:
        # "12" unpacks into two characters
        if isinstance(position, (str, bytes)):
            raise InvalidState(f"position must be an (x, y) pair of numbers, got {position!r}")
        try:
            x, y = position
            return (float(x), float(y))
        except (TypeError, ValueError):
            raise InvalidState(f"position must be an (x, y) pair of numbers, got {position!r}")

    @staticmethod
    def _check_attribute(key: Any, value: Any) -> Tuple[str, str]:
        if not isinstance(key, str) or not key:
            raise InvalidState(f"attribute keys must be non-empty strings, got {key!r}")
        if value is None:
            raise InvalidState(f"attribute {key!r} needs a value")
        if not isinstance(value, str):
            value = str(value)
        for text in (key, value):
            if not isinstance(text, HtmlString) and not is_quotable(text):
                raise InvalidState(f"{text!r} ends a backslash escape that DOT cannot write back")
        return key, value

    def _check_attributes(self, attrs: Optional[Mapping[str, Any]]) -> Dict[str, str]:
        if attrs is None:
            return {}
        if not isinstance(attrs, Mapping):
            raise InvalidState(f"attributes must be a mapping, got {type(attrs).__name__}")
        return dict(self._check_attribute(k, v) for k, v in attrs.items())

    def _target_scope(self, subgraph_id: Optional[SubgraphId]) -> ScopeKey:
        if subgraph_id is None:
            return None
        subgraph = self.get_subgraph(subgraph_id)
        if subgraph.operand:
            raise InvalidState(f"subgraph {subgraph_id} is an edge endpoint and cannot take new statements")
        return subgraph_id

    def _derive_node_id(self, label: Optional[str]) -> str:
        base = normalize_name(label) if label else ""
        base = base or "n"
        candidate, n = base, 1
        # tombstoned ids stay reserved until compaction
        while candidate in self._nodes:
            n += 1
            candidate = f"{base}_{n}"
        return candidate

    # ------------------------------------------------------------------
    # Statement placement
    # ------------------------------------------------------------------

    def _depth(self, key: ScopeKey) -> int:
        depth = 1
        while key is not None:
            depth += 1
            key = self._subgraphs[key].parent
        return depth

    def _infer_prefix(self, scope: Scope, index: int, depth: int) -> str:
        """Leading whitespace for a new statement, copied from its nearest sibling."""
        neighbours = scope.statements[:index][::-1] + scope.statements[index:]
        for stmt in neighbours:
            prefix = stmt.prefix
            if "\n" in prefix:
                head, tail = prefix.rsplit("\n", 1)
                newline = "\r\n" if head.endswith("\r") else "\n"
                return newline + (tail if not tail.strip() else self.indent * depth)
            if prefix and not prefix.strip():
                return prefix
        return self.newline + self.indent * depth

    def _insert_statement(self, key: ScopeKey, index: int, stmt: Statement) -> None:
        scope = self.scope(key)
        depth = self._depth(key)
        stmt.prefix = self._infer_prefix(scope, index, depth)
        live = [s for s in scope.statements if not s.removed]
        if not live and "\n" not in scope.closing:
            scope.closing = self.newline + self.indent * (depth - 1) + scope.closing.lstrip()
        scope.statements.insert(index, stmt)
        self._register_statement(stmt)

    def _append_statement(self, key: ScopeKey, stmt: Statement) -> None:
        self._insert_statement(key, len(self.scope(key).statements), stmt)

    def _write_node_attribute(self, node: Node, key: str, value: str) -> None:
        """Store key=value on the statement that owns it, adding one only when needed."""
        statements = self._node_statements(node.id)
        owner = None
        for stmt in statements:
            if key in stmt.attributes:
                owner = stmt
        if owner is None and statements:
            owner = statements[0]
        if owner is None:
            owner = NodeStatement(self._new_statement_id(), "", None, Provenance.DIRTY, node_id=node.id)
            scope = self.scope(node.scope)
            try:
                index = scope.index_of(node.anchor)
            except ValueError:
                index = len(scope.statements)
            self._insert_statement(node.scope, index, owner)
            node.anchor = owner.id
        owner.attributes.set(key, value)
        owner.touch()
        node.attributes[key] = value

    def _tombstone_edge(self, edge: Edge) -> None:
        edge.tombstone()
        stmt = self._statements[edge.anchor]
        if isinstance(stmt, EdgeStatement):
            stmt.split = True
        stmt.touch()

    # ------------------------------------------------------------------
    # Operations
    # ------------------------------------------------------------------

    def add_node(
        self,
        attrs: Optional[Mapping[str, Any]] = None,
        position: Optional[Position] = None,
        subgraph: Optional[SubgraphId] = None,
    ) -> str:
        """
        Create a node with a new statement at the end of its scope.

        Args:
            attrs: Attributes for the node statement; ``label`` also seeds the id
            position: Optional (x, y), mirrored into the position attribute
            subgraph: Scope to add the statement to, or None for the root body

        Returns:
            The new node id, derived from the label when there is one
        """
        attrs = self._check_attributes(attrs)
        key = self._target_scope(subgraph)
        if position is not None:
            position = self._check_position(position)

        node_id = self._derive_node_id(attrs.get("label"))
        if position is not None and self.position_attribute:
            attrs[self.position_attribute] = format_position(position, self.position_precision)
        elif position is None and self.position_attribute and self.position_attribute in attrs:
            position = parse_position(attrs[self.position_attribute])

        stmt = NodeStatement(
            self._new_statement_id(), "", None, Provenance.DIRTY,
            node_id=node_id, attributes=AttributeList.from_dict(attrs),
        )
        self._append_statement(key, stmt)
        self._nodes[node_id] = Node(
            node_id, dict(attrs), position, key, stmt.id,
            provenance=Provenance.DIRTY, dirty_fields=set(attrs),
        )
        logger.debug(f"Added node {node_id}")
        return node_id

    def remove_node(self, node_id: str) -> str:
        """
        Tombstone a node, every statement declaring it and every edge touching it.

        Args:
            node_id: Node to remove

        Returns:
            The node id
        """
        node = self.get_node(node_id)
        doomed = [e for e in self._edges.values() if not e.removed and node_id in (e.source, e.target)]
        node.tombstone()
        for stmt in self._node_statements(node_id):
            stmt.remove()
        for edge in doomed:
            self._tombstone_edge(edge)
        # edge statements can name the node without producing an edge (a -> {})
        for _, stmt in self.iter_statements():
            if isinstance(stmt, EdgeStatement) and any(
                isinstance(o, NodeOperand) and o.node_id == node_id for o in stmt.operands
            ):
                stmt.split = True
                stmt.touch()
        logger.debug(f"Removed node {node_id} and {len(doomed)} edge(s)")
        return node_id

    def move_node(self, node_id: str, position: Position) -> str:
        """
        Move a node. Only the statement that carries its position is rewritten.

        Args:
            node_id: Node to move
            position: New (x, y); strings and anything that is not a numeric pair are rejected

        Returns:
            The node id
        """
        node = self.get_node(node_id)
        position = self._check_position(position)
        if self.position_attribute:
            value = format_position(position, self.position_precision)
            self._write_node_attribute(node, self.position_attribute, value)
        node.position = position
        node.mark_dirty("position")
        logger.debug(f"Moved node {node_id} to {position}")
        return node_id

    def place_node(self, node_id: str, position: Position) -> None:
        """Set a display position without marking anything dirty (used by layout)."""
        self.get_node(node_id).position = self._check_position(position)

    def set_attribute(self, entity_id: EntityId, key: str, value: Any) -> EntityId:
        """
        Set one attribute on a node, edge, subgraph or the graph itself.

        Setting an attribute on one edge of a multi-edge statement splits that
        statement at export. Values are stored as strings.

        Args:
            entity_id: Node id, EdgeId, SubgraphId or GRAPH
            key: Attribute name
            value: New value; None and values DOT cannot quote are rejected

        Returns:
            The entity id
        """
        key, value = self._check_attribute(key, value)

        if isinstance(entity_id, EdgeId):
            edge = self.get_edge(entity_id)
            stmt = self._statements[edge.anchor]
            if len(stmt.edge_ids) == 1:
                stmt.attributes.set(key, value)
            else:
                stmt.split = True
            stmt.touch()
            edge.attributes[key] = value
            edge.mark_dirty(key)
        elif isinstance(entity_id, (SubgraphId, GraphId)):
            self._set_scope_attribute(entity_id, key, value)
        elif isinstance(entity_id, str):
            node = self.get_node(entity_id)
            self._write_node_attribute(node, key, value)
            node.mark_dirty(key)
            if key == self.position_attribute:
                position = parse_position(value)
                if position is not None:
                    node.position = position
        else:
            raise InvalidState(f"unsupported entity id {entity_id!r}")

        logger.debug(f"Set {key}={value!r} on {entity_id}")
        return entity_id

    def _scope_owner(self, entity_id: EntityId) -> Tuple[ScopeKey, Dict[str, str]]:
        if isinstance(entity_id, GraphId):
            return None, self.attributes
        subgraph = self.get_subgraph(entity_id)
        return subgraph.id, subgraph.attributes

    def _mark_scope_dirty(self, key: ScopeKey, attribute: str) -> None:
        if key is None:
            self.dirty_fields.add(attribute)
        else:
            self._subgraphs[key].mark_dirty(attribute)

    def _set_scope_attribute(self, entity_id: EntityId, key: str, value: str) -> None:
        scope_key, owned = self._scope_owner(entity_id)
        scope = self.scope(scope_key)

        target = None
        last_slot = -1
        for index, stmt in enumerate(scope.statements):
            if stmt.removed:
                continue
            if isinstance(stmt, AssignmentStatement):
                last_slot = index
                if stmt.entry.key == key:
                    target = stmt
            elif isinstance(stmt, DefaultsStatement) and stmt.target == "graph":
                last_slot = index
                if key in stmt.attributes:
                    target = stmt

        if target is None:
            stmt = AssignmentStatement(
                self._new_statement_id(), "", None, Provenance.DIRTY,
                entry=AttributeEntry(key, value),
            )
            self._insert_statement(scope_key, last_slot + 1, stmt)
        elif isinstance(target, AssignmentStatement):
            target.entry.value = value
            target.entry.value_text = None
            target.entry.bare = False
            target.touch()
        else:
            target.attributes.set(key, value)
            target.touch()

        owned[key] = value
        self._mark_scope_dirty(scope_key, key)

    def unset_attribute(self, entity_id: EntityId, key: str) -> EntityId:
        """Remove an attribute; raises NotFound when the entity does not carry it."""
        if isinstance(entity_id, EdgeId):
            edge = self.get_edge(entity_id)
            if key not in edge.attributes:
                raise NotFound(f"edge {edge.id} has no attribute {key!r}")
            stmt = self._statements[edge.anchor]
            if len(stmt.edge_ids) == 1:
                stmt.attributes.remove(key)
            else:
                stmt.split = True
            stmt.touch()
            del edge.attributes[key]
            edge.mark_dirty(key)
        elif isinstance(entity_id, (SubgraphId, GraphId)):
            scope_key, owned = self._scope_owner(entity_id)
            if key not in owned:
                raise NotFound(f"{entity_id} has no attribute {key!r}")
            for stmt in self.scope(scope_key).statements:
                if stmt.removed:
                    continue
                if isinstance(stmt, AssignmentStatement) and stmt.entry.key == key:
                    stmt.remove()
                elif isinstance(stmt, DefaultsStatement) and stmt.target == "graph" and stmt.attributes.remove(key):
                    if len(stmt.attributes):
                        stmt.touch()
                    else:
                        stmt.remove()
            del owned[key]
            self._mark_scope_dirty(scope_key, key)
        elif isinstance(entity_id, str):
            node = self.get_node(entity_id)
            if key not in node.attributes:
                raise NotFound(f"node {node.id!r} has no attribute {key!r}")
            for stmt in self._node_statements(node.id):
                if stmt.attributes.remove(key):
                    stmt.touch()
            del node.attributes[key]
            node.mark_dirty(key)
        else:
            raise InvalidState(f"unsupported entity id {entity_id!r}")

        logger.debug(f"Unset {key} on {entity_id}")
        return entity_id

    def add_edge(
        self,
        source: str,
        target: str,
        attrs: Optional[Mapping[str, Any]] = None,
        subgraph: Optional[SubgraphId] = None,
    ) -> EdgeId:
        """
        Connect two existing nodes with a new single-edge statement.

        Args:
            source: Tail node id
            target: Head node id
            attrs: Attributes written on the edge statement
            subgraph: Scope to add the statement to, or None for the root body

        Returns:
            The new EdgeId
        """
        attrs = self._check_attributes(attrs)
        for endpoint in (source, target):
            self.get_node(endpoint)
        key = self._target_scope(subgraph)

        stmt = EdgeStatement(
            self._new_statement_id(), "", None, Provenance.DIRTY,
            operands=[NodeOperand(source), NodeOperand(target)],
            attributes=AttributeList.from_dict(attrs),
        )
        edge = Edge(
            self._new_edge_id(), source, target,
            directed=self.directed, attributes=dict(attrs), scope=key, anchor=stmt.id,
            provenance=Provenance.DIRTY, dirty_fields=set(attrs),
        )
        stmt.edge_ids.append(edge.id)
        self._append_statement(key, stmt)
        self._edges[edge.id] = edge
        logger.debug(f"Added edge {edge.id}: {source} -> {target}")
        return edge.id

    def remove_edge(self, edge_id: EdgeId) -> EdgeId:
        """
        Tombstone one edge. Its endpoints stay in the graph.

        Args:
            edge_id: Edge to remove

        Returns:
            The edge id
        """
        edge = self.get_edge(edge_id)
        self._tombstone_edge(edge)
        logger.debug(f"Removed edge {edge_id}")
        return edge_id

    def set_directed(self, directed: bool) -> GraphId:
        """
        Switch between ``graph`` and ``digraph``; every edge statement is rewritten.

        Args:
            directed: True for ``digraph``. Only real booleans are accepted.

        Returns:
            GRAPH
        """
        if not isinstance(directed, bool):
            raise InvalidState(f"directed must be True or False, got {directed!r}")
        if directed == self.directed:
            return GRAPH
        self.directed = directed
        self.header_dirty = True
        self.dirty_fields.add("directed")
        for edge in self._edges.values():
            edge.directed = directed
            if not edge.removed:
                edge.mark_dirty("directed")
        for _, stmt in self.iter_statements():
            if isinstance(stmt, EdgeStatement):
                stmt.touch()
        logger.info(f"Graph is now {'directed' if directed else 'undirected'}")
        return GRAPH

    # ------------------------------------------------------------------
    # Consistency, compaction, snapshots
    # ------------------------------------------------------------------

    def check_integrity(self) -> None:
        """Raise SerializeError if edges or statements point at things that are gone."""
        for edge in self._edges.values():
            if edge.removed:
                continue
            for endpoint in (edge.source, edge.target):
                if not self.has_node(endpoint):
                    raise SerializeError(f"edge {edge.id} references missing node {endpoint!r}")
            if edge.directed != self.directed:
                raise SerializeError(f"edge {edge.id} is {edge.kind} in a graph that is not")
        for _, stmt in self.iter_statements():
            if stmt.removed:
                continue
            if isinstance(stmt, NodeStatement) and not self.has_node(stmt.node_id):
                raise SerializeError(f"statement declares missing node {stmt.node_id!r}")
            if isinstance(stmt, EdgeStatement):
                for edge_id in stmt.edge_ids:
                    if edge_id not in self._edges:
                        raise SerializeError(f"statement references unknown edge {edge_id}")

    def _is_void(self, stmt: Statement) -> bool:
        """True when a statement would contribute no text on export."""
        if stmt.removed:
            return True
        if isinstance(stmt, SubgraphStatement):
            body = self._subgraphs[stmt.subgraph_id].body
            return not body.statements and not body.was_empty
        if isinstance(stmt, EdgeStatement) and not stmt.clean:
            if stmt.edge_ids:
                return False
            for operand in stmt.operands:
                if (isinstance(operand, NodeOperand) and self.has_node(operand.node_id)
                        and self._nodes[operand.node_id].anchor == stmt.id):
                    return False
                if isinstance(operand, SubgraphOperand):
                    body = self._subgraphs[operand.subgraph_id].body
                    if body.statements or body.was_empty:
                        return False
            return True
        return False

    def _compact_scope(self, scope: Scope) -> None:
        kept: List[Statement] = []
        carry = ""
        for stmt in scope.statements:
            if isinstance(stmt, EdgeStatement):
                for operand in stmt.operands:
                    if isinstance(operand, SubgraphOperand):
                        self._compact_scope(self._subgraphs[operand.subgraph_id].body)
                stmt.edge_ids = [e for e in stmt.edge_ids if not self._edges[e].removed]
            elif isinstance(stmt, SubgraphStatement):
                self._compact_scope(self._subgraphs[stmt.subgraph_id].body)

            if self._is_void(stmt):
                if has_comment(stmt.prefix):
                    carry += stmt.prefix
                self._drop_statement(stmt)
                continue
            if carry:
                stmt.prefix = carry + stmt.prefix
                carry = ""
            kept.append(stmt)
        if carry:
            scope.closing = carry + scope.closing
        scope.statements = kept

    def _drop_statement(self, stmt: Statement) -> None:
        self._statements.pop(stmt.id, None)
        nested: List[SubgraphId] = []
        if isinstance(stmt, SubgraphStatement):
            nested.append(stmt.subgraph_id)
        elif isinstance(stmt, EdgeStatement):
            nested.extend(o.subgraph_id for o in stmt.operands if isinstance(o, SubgraphOperand))
        for subgraph_id in nested:
            subgraph = self._subgraphs.pop(subgraph_id, None)
            if subgraph is not None:
                for inner in subgraph.body.statements:
                    self._drop_statement(inner)

    def compact(self) -> int:
        """Drop tombstoned entities and statements; return how many entities went."""
        self._compact_scope(self.body)
        dead_edges = [k for k, e in self._edges.items() if e.removed]
        dead_nodes = [k for k, n in self._nodes.items() if n.removed]
        for edge_id in dead_edges:
            del self._edges[edge_id]
        for node_id in dead_nodes:
            del self._nodes[node_id]
        count = len(dead_edges) + len(dead_nodes)
        if count:
            logger.info(f"Compacted {len(dead_nodes)} node(s) and {len(dead_edges)} edge(s)")
        return count

    def snapshot(self) -> "Graph":
        return copy.deepcopy(self)

    # ------------------------------------------------------------------
    # Export views
    # ------------------------------------------------------------------

    def to_dict(self, include_positions: bool = False) -> Dict[str, Any]:
        """Semantic content of the graph, independent of formatting."""
        nodes: Dict[str, Any] = {}
        for node in self.nodes():
            entry: Dict[str, Any] = {"attributes": dict(node.attributes)}
            if include_positions:
                entry["position"] = node.position
            nodes[node.id] = entry

        edges = [
            {
                "source": e.source,
                "target": e.target,
                "source_port": e.source_port,
                "target_port": e.target_port,
                "attributes": dict(e.attributes),
            }
            for e in self.edges()
        ]

        subgraphs: Dict[str, Any] = {}
        for subgraph in self.subgraphs():
            if subgraph.name is None:
                continue
            body = subgraph.body
            if not body.was_empty and all(s.removed for s in body.statements):
                continue
            entry = subgraphs.setdefault(subgraph.name, {"attributes": {}, "nodes": []})
            entry["attributes"].update(subgraph.attributes)
            for member in self.members(subgraph.id):
                if member not in entry["nodes"]:
                    entry["nodes"].append(member)

        return {
            "directed": self.directed,
            "strict": self.strict,
            "name": self.name,
            "attributes": dict(self.attributes),
            "nodes": nodes,
            "edges": edges,
            "subgraphs": subgraphs,
        }

    def to_networkx(self, effective: bool = False) -> nx.MultiGraph:
        """Live nodes and edges as a networkx multigraph keyed by edge id."""
        graph = nx.MultiDiGraph() if self.directed else nx.MultiGraph()
        graph.graph.update(self.attributes)
        for node in self.nodes():
            graph.add_node(node.id)
            attrs = self.effective_attributes(node.id) if effective else dict(node.attributes)
            graph.nodes[node.id].update(attrs)
            if node.position is not None:
                graph.nodes[node.id]["position"] = node.position
        for edge in self.edges():
            key = graph.add_edge(edge.source, edge.target, key=str(edge.id))
            attrs = self.effective_attributes(edge.id) if effective else dict(edge.attributes)
            graph[edge.source][edge.target][key].update(attrs)
        return graph

    def __repr__(self) -> str:
        kind = "digraph" if self.directed else "graph"
        return f"<Graph {kind} {self.name or ''} nodes={len(self.nodes())} edges={len(self.edges())}>"
