"""
Export: write a Graph back to DOT text.

The writer walks the statement skeleton in order. A statement that no edit
touched is written as the exact text it was parsed from, together with the
whitespace and comments that preceded it. Only dirty statements are
re-synthesized, so the diff of an export against its input stays confined to
what was edited.
"""

import logging
from dataclasses import dataclass
from typing import List, Optional

from dotedit.config import Settings, load_settings
from dotedit.dot.quoting import quote_id
from dotedit.errors import SerializeError
from dotedit.model.entities import Edge
from dotedit.model.graph import Graph
from dotedit.model.ids import ScopeKey, SubgraphId
from dotedit.model.statements import (
    AssignmentStatement,
    AttributeList,
    DefaultsStatement,
    EdgeStatement,
    NodeStatement,
    Statement,
    SubgraphOperand,
    SubgraphStatement,
    has_comment,
)

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class SerializerOptions:
    terminator: str = ";"
    attribute_separator: str = ", "

    @classmethod
    def from_settings(cls, settings: Settings) -> "SerializerOptions":
        return cls(terminator=settings.terminator)


def _continuation(prefix: str) -> str:
    """Separator between the pieces of a statement that had to be split up."""
    if "\n" in prefix:
        head, tail = prefix.rsplit("\n", 1)
        newline = "\r\n" if head.endswith("\r") else "\n"
        return newline + (tail if not tail.strip() else "")
    return " "


class DotWriter:
    def __init__(self, graph: Graph, options: SerializerOptions):
        self.graph = graph
        self.options = options

    def render(self) -> str:
        out: List[str] = [self.graph.header_prefix, self._header()]
        self._write_scope(None, out)
        out.append(self.graph.trailer)
        return "".join(out)

    def _header(self) -> str:
        graph = self.graph
        if graph.header is not None and not graph.header_dirty:
            return graph.header
        parts = []
        if graph.strict:
            parts.append("strict")
        parts.append("digraph" if graph.directed else "graph")
        if graph.name is not None:
            parts.append(quote_id(graph.name))
        parts.append("{")
        return " ".join(parts)

    def _write_scope(self, key: ScopeKey, out: List[str]) -> int:
        scope = self.graph.scope(key)
        emitted = 0
        for stmt in scope.statements:
            text = self._statement(stmt)
            if text is None:
                # the statement goes, a comment in front of it stays
                if has_comment(stmt.prefix):
                    out.append(stmt.prefix)
                continue
            out.append(stmt.prefix + text)
            emitted += 1
        out.append(scope.closing)
        return emitted

    def _statement(self, stmt: Statement) -> Optional[str]:
        if stmt.removed:
            return None
        if isinstance(stmt, SubgraphStatement):
            text = self._subgraph(stmt.subgraph_id)
            return None if text is None else text + stmt.suffix
        if isinstance(stmt, EdgeStatement):
            return self._edge_statement(stmt)
        if stmt.clean:
            return stmt.raw
        if isinstance(stmt, NodeStatement):
            return self._node_statement(stmt)
        if isinstance(stmt, DefaultsStatement):
            keyword = stmt.keyword or stmt.target
            return f"{keyword} [{self._attributes(stmt.attributes)}]{self.options.terminator}"
        if isinstance(stmt, AssignmentStatement):
            return stmt.entry.render() + self.options.terminator
        raise SerializeError(f"cannot write statement of type {type(stmt).__name__}")

    def _attributes(self, attributes: AttributeList) -> str:
        return attributes.render(self.options.attribute_separator)

    @staticmethod
    def _endpoint(node_id: str, port: Optional[str]) -> str:
        text = quote_id(node_id)
        return f"{text}:{port}" if port else text

    def _node_statement(self, stmt: NodeStatement) -> str:
        text = stmt.node_text if stmt.node_text is not None else self._endpoint(stmt.node_id, stmt.port)
        if len(stmt.attributes):
            text += f" [{self._attributes(stmt.attributes)}]"
        return text + self.options.terminator

    def _subgraph(self, subgraph_id: SubgraphId) -> Optional[str]:
        """Header, body and closing brace; None when every statement inside was removed."""
        subgraph = self.graph.lookup(subgraph_id)
        if subgraph is None:
            raise SerializeError(f"statement references unknown subgraph {subgraph_id}")
        inner: List[str] = []
        emitted = self._write_scope(subgraph_id, inner)
        if emitted == 0 and not subgraph.body.was_empty:
            return None
        header = subgraph.header
        if header is None:
            header = f"subgraph {quote_id(subgraph.name)} {{" if subgraph.name is not None else "{"
        return header + "".join(inner)

    def _pristine(self, subgraph_id: SubgraphId) -> bool:
        for stmt in self.graph.scope(subgraph_id).statements:
            if not stmt.clean:
                return False
            if isinstance(stmt, SubgraphStatement) and not self._pristine(stmt.subgraph_id):
                return False
            if isinstance(stmt, EdgeStatement) and not self._operands_pristine(stmt):
                return False
        return True

    def _operands_pristine(self, stmt: EdgeStatement) -> bool:
        return all(
            self._pristine(o.subgraph_id) for o in stmt.operands if isinstance(o, SubgraphOperand)
        )

    def _edge_statement(self, stmt: EdgeStatement) -> Optional[str]:
        if stmt.clean and self._operands_pristine(stmt):
            return stmt.raw

        edges: List[Edge] = []
        for edge_id in stmt.edge_ids:
            edge = self.graph.lookup(edge_id)
            if edge is None:
                raise SerializeError(f"statement references unknown edge {edge_id}")
            edges.append(edge)
        live = [e for e in edges if not e.removed]
        op = "->" if self.graph.directed else "--"

        shared = stmt.attributes.to_dict()
        if not stmt.split and len(live) == len(edges) and all(e.attributes == shared for e in live):
            chained = self._chain(stmt, op)
            if chained is not None:
                return chained
        return self._split(stmt, live, op)

    def _chain(self, stmt: EdgeStatement, op: str) -> Optional[str]:
        """The statement in its original ``a -> b -> {c d}`` shape."""
        parts = []
        for operand in stmt.operands:
            if isinstance(operand, SubgraphOperand):
                text = self._subgraph(operand.subgraph_id)
                if text is None:
                    return None
                parts.append(text)
            elif operand.text is not None:
                parts.append(operand.text)
            else:
                parts.append(self._endpoint(operand.node_id, operand.port))
        text = f" {op} ".join(parts)
        if len(stmt.attributes):
            text += f" [{self._attributes(stmt.attributes)}]"
        return text + self.options.terminator

    def _split(self, stmt: EdgeStatement, live: List[Edge], op: str) -> Optional[str]:
        """One statement per surviving edge, plus whatever the operands still declare."""
        terminator = self.options.terminator
        endpoints = {e.source for e in live} | {e.target for e in live}
        pieces = []
        declared = set()
        for operand in stmt.operands:
            if isinstance(operand, SubgraphOperand):
                text = self._subgraph(operand.subgraph_id)
                if text is not None:
                    pieces.append(text)
                continue
            node_id = operand.node_id
            node = self.graph.lookup(node_id)
            if node is None or node.removed or node_id in endpoints or node_id in declared:
                continue
            # a node first mentioned here must still be declared here
            if node.anchor != stmt.id:
                continue
            declared.add(node_id)
            pieces.append(self._endpoint(node_id, None) + terminator)

        for edge in live:
            text = f"{self._endpoint(edge.source, edge.source_port)} {op} {self._endpoint(edge.target, edge.target_port)}"
            if edge.attributes:
                text += f" [{self._attributes(AttributeList.from_dict(edge.attributes))}]"
            pieces.append(text + terminator)

        if not pieces:
            return None
        return _continuation(stmt.prefix).join(pieces)


def serialize(graph: Graph, options: Optional[SerializerOptions] = None) -> str:
    """Write the graph as DOT text. Raises SerializeError if the model is inconsistent."""
    if options is None:
        options = SerializerOptions.from_settings(load_settings())
    graph.check_integrity()
    text = DotWriter(graph, options).render()
    logger.debug(f"Serialized graph {graph.name or '(anonymous)'} ({len(text)} characters)")
    return text


def export_dot(graph: Graph, options: Optional[SerializerOptions] = None) -> str:
    """Serialize, then drop tombstones now that they are no longer needed for output."""
    text = serialize(graph, options)
    graph.compact()
    logger.info(f"Exported graph {graph.name or '(anonymous)'}")
    return text
