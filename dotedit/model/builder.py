"""
Import: turn DOT source text into a Graph.

The builder walks the syntax tree once. For every statement it records the
text that preceded it and its raw source, so an unedited document serializes
back to exactly the input. Nodes are created on first mention, whether that
is a node statement, an edge endpoint or a member of an edge's subgraph.
"""

import logging
from typing import List, Optional, Tuple

from dotedit.config import Settings, load_settings
from dotedit.dot import syntax
from dotedit.dot.parser import parse_document
from dotedit.dot.quoting import HtmlString
from dotedit.model.entities import Edge, Node, Subgraph
from dotedit.model.graph import Graph, parse_position
from dotedit.model.ids import Provenance, ScopeKey
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
)

logger = logging.getLogger(__name__)


def _attribute_list(attributes: List[syntax.Attribute]) -> AttributeList:
    return AttributeList([
        AttributeEntry(
            a.key,
            HtmlString(a.value) if a.html else a.value,
            a.key_text,
            a.value_text,
            bare=a.value_text is None,
        )
        for a in attributes
    ])


class GraphBuilder:
    def __init__(self, text: str, document: syntax.Document, graph: Graph):
        self.text = text
        self.document = document
        self.graph = graph

    def build(self) -> Graph:
        doc, text, graph = self.document, self.text, self.graph
        if "\r\n" in text:
            graph.newline = "\r\n"
        graph.header_prefix = text[:doc.start]
        graph.header = text[doc.start:doc.body_start]
        graph.trailer = text[doc.close_end:]
        graph.body = self._scope(None, doc.statements, doc.body_start, doc.close_end)
        self._resolve_positions()
        return graph

    def _scope(self, key: ScopeKey, statements: List[syntax.Statement], body_start: int, close_end: int) -> Scope:
        scope = Scope(was_empty=not statements)
        if key is not None:
            self.graph._subgraphs[key].body = scope

        cursor = body_start
        for node in statements:
            prefix = self.text[cursor:node.start]
            scope.statements.append(self._statement(key, node, prefix))
            cursor = node.end
        scope.closing = self.text[cursor:close_end]
        return scope

    def _statement(self, key: ScopeKey, node: syntax.Statement, prefix: str) -> Statement:
        graph = self.graph
        statement_id = graph._new_statement_id()
        raw = self.text[node.start:node.end]

        if isinstance(node, syntax.NodeStmt):
            stmt = NodeStatement(
                statement_id, prefix, raw, Provenance.CLEAN,
                node_id=node.node.name, port=node.node.port, node_text=node.node.text,
                attributes=_attribute_list(node.attributes),
            )
            entity = self._ensure_node(node.node.name, key, statement_id)
            entity.attributes.update(stmt.attributes.to_dict())
        elif isinstance(node, syntax.EdgeStmt):
            stmt = self._edge_statement(key, node, statement_id, prefix, raw)
        elif isinstance(node, syntax.AttrStmt):
            stmt = DefaultsStatement(
                statement_id, prefix, raw, Provenance.CLEAN,
                target=node.target,
                keyword=self.text[node.start:node.start + len(node.target)],
                attributes=_attribute_list(node.attributes),
            )
            if node.target == "graph":
                self._scope_attributes(key).update(stmt.attributes.to_dict())
        elif isinstance(node, syntax.Assignment):
            entry = _attribute_list([node.attribute]).entries[0]
            stmt = AssignmentStatement(statement_id, prefix, raw, Provenance.CLEAN, entry=entry)
            self._scope_attributes(key)[entry.key] = entry.value
        else:
            subgraph = self._subgraph(node, key, statement_id, operand=False)
            stmt = SubgraphStatement(
                statement_id, prefix, raw, Provenance.CLEAN,
                subgraph_id=subgraph.id, suffix=self.text[node.close_end:node.end],
            )

        graph._register_statement(stmt)
        return stmt

    def _edge_statement(self, key: ScopeKey, node: syntax.EdgeStmt, statement_id: int,
                        prefix: str, raw: str) -> EdgeStatement:
        graph = self.graph
        stmt = EdgeStatement(
            statement_id, prefix, raw, Provenance.CLEAN,
            attributes=_attribute_list(node.attributes),
        )

        groups: List[List[Tuple[str, Optional[str]]]] = []
        for operand in node.operands:
            if isinstance(operand, syntax.NodeRef):
                self._ensure_node(operand.name, key, statement_id)
                stmt.operands.append(NodeOperand(operand.name, operand.port, operand.text))
                groups.append([(operand.name, operand.port)])
            else:
                subgraph = self._subgraph(operand, key, statement_id, operand=True)
                stmt.operands.append(SubgraphOperand(subgraph.id))
                groups.append([(member, None) for member in graph.members(subgraph.id)])

        # a -> {b c} -> d yields a->b, a->c, b->d, c->d
        attributes = stmt.attributes.to_dict()
        for tails, heads in zip(groups, groups[1:]):
            for tail, tail_port in tails:
                for head, head_port in heads:
                    edge = Edge(
                        graph._new_edge_id(), tail, head,
                        directed=graph.directed, source_port=tail_port, target_port=head_port,
                        attributes=dict(attributes), scope=key, anchor=statement_id,
                    )
                    graph._edges[edge.id] = edge
                    stmt.edge_ids.append(edge.id)
        return stmt

    def _subgraph(self, node: syntax.Subgraph, parent: ScopeKey, anchor: int, operand: bool) -> Subgraph:
        graph = self.graph
        subgraph = Subgraph(
            graph._new_subgraph_id(),
            name=node.name,
            header=self.text[node.start:node.body_start],
            parent=parent,
            anchor=anchor,
            operand=operand,
        )
        graph._subgraphs[subgraph.id] = subgraph
        self._scope(subgraph.id, node.statements, node.body_start, node.close_end)
        return subgraph

    def _ensure_node(self, node_id: str, key: ScopeKey, anchor: int) -> Node:
        node = self.graph._nodes.get(node_id)
        if node is None:
            node = Node(node_id, scope=key, anchor=anchor)
            self.graph._nodes[node_id] = node
        return node

    def _scope_attributes(self, key: ScopeKey):
        if key is None:
            return self.graph.attributes
        return self.graph._subgraphs[key].attributes

    def _resolve_positions(self) -> None:
        attribute = self.graph.position_attribute
        if not attribute:
            return
        for node in self.graph.nodes():
            value = node.attributes.get(attribute)
            if value is None:
                continue
            position = parse_position(value)
            if position is None:
                logger.warning(f"Ignoring malformed {attribute} value {value!r} on node {node.id}")
                continue
            node.position = position


def parse_dot(text: str, settings: Optional[Settings] = None) -> Graph:
    """Parse DOT source into an editable Graph. Raises ParseError on malformed input."""
    settings = settings or load_settings()
    document = parse_document(text)
    graph = Graph(
        directed=document.directed,
        strict=document.strict,
        name=document.name,
        position_attribute=settings.mirrored_position_attribute,
        position_precision=settings.position_precision,
        indent=settings.indent,
    )
    GraphBuilder(text, document, graph).build()
    logger.info(
        f"Imported graph {graph.name or '(anonymous)'}: "
        f"{len(graph.nodes())} nodes, {len(graph.edges())} edges, {len(graph.subgraphs())} subgraphs"
    )
    return graph


def new_graph(directed: bool = True, strict: bool = False, name: Optional[str] = None,
              settings: Optional[Settings] = None) -> Graph:
    """An empty graph with no source text behind it."""
    settings = settings or load_settings()
    return Graph(
        directed=directed,
        strict=strict,
        name=name,
        position_attribute=settings.mirrored_position_attribute,
        position_precision=settings.position_precision,
        indent=settings.indent,
    )
