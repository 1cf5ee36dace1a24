"""
Recursive-descent parser for DOT.

Grammar (Graphviz, with a few tolerances):

    graph     : [strict] (graph | digraph) [ID] '{' stmt_list '}'
    stmt_list : (stmt [';'])*
    stmt      : node_stmt | edge_stmt | attr_stmt | ID '=' ID | subgraph
    attr_stmt : (graph | node | edge) attr_list
    attr_list : '[' [a_list] ']' [attr_list]
    a_list    : ID ['=' ID] [(';' | ',')] [a_list]
    edge_stmt : (node_id | subgraph) edgeRHS [attr_list]
    edgeRHS   : edgeop (node_id | subgraph) [edgeRHS]
    node_stmt : node_id [attr_list]
    node_id   : ID [':' ID [':' ID]]
    subgraph  : [subgraph [ID]] '{' stmt_list '}'

Tolerances: a bare attribute key (``[bold]``) is read as ``bold=true`` and
stray semicolons between statements are skipped (they stay in the trivia
that precedes the next statement).
"""

from typing import List, Optional, Tuple, Union

from dotedit.dot.lexer import EDGEOP, EOF, ID, Token, tokenize
from dotedit.dot.syntax import (
    Assignment,
    Attribute,
    AttrStmt,
    Document,
    EdgeStmt,
    NodeRef,
    NodeStmt,
    Statement,
    Subgraph,
)
from dotedit.errors import ParseError


class Parser:
    def __init__(self, text: str):
        self.text = text
        self.tokens = tokenize(text)
        self.index = 0
        self.directed = True

    # --- Token helpers ---

    @property
    def token(self) -> Token:
        return self.tokens[self.index]

    def _peek(self, offset: int = 1) -> Token:
        return self.tokens[min(self.index + offset, len(self.tokens) - 1)]

    def _advance(self) -> Token:
        tok = self.tokens[self.index]
        if tok.kind != EOF:
            self.index += 1
        return tok

    def _accept(self, kind: str) -> Optional[Token]:
        if self.token.kind == kind:
            return self._advance()
        return None

    def _expect(self, kind: str, expectation: str) -> Token:
        if self.token.kind != kind:
            raise self._unexpected(self.token, expectation)
        return self._advance()

    def _unexpected(self, tok: Token, expectation: Optional[str] = None) -> ParseError:
        if tok.kind == EOF:
            message = "unexpected end of input"
        else:
            message = f"unexpected token {tok.text!r}"
        if expectation:
            message = f"{message}, {expectation}"
        return ParseError.at(self.text, tok.start, message)

    # --- Grammar ---

    def parse(self) -> Document:
        first = self.token
        strict = self._accept("strict") is not None
        kind = self.token
        if kind.kind not in ("graph", "digraph"):
            raise self._unexpected(kind, "expected 'graph' or 'digraph'")
        self._advance()
        self.directed = kind.kind == "digraph"

        name = None
        if self.token.kind == ID:
            name = self._advance().value

        open_brace = self._expect("{", "expected '{'")
        statements = self._statement_list()
        close = self._close_brace(open_brace)
        if self.token.kind != EOF:
            raise self._unexpected(self.token, "expected end of input after the graph")

        return Document(
            strict=strict,
            directed=self.directed,
            name=name,
            start=first.start,
            body_start=open_brace.end,
            close_start=close.start,
            close_end=close.end,
            statements=statements,
        )

    def _close_brace(self, open_brace: Token) -> Token:
        if self.token.kind == EOF:
            raise ParseError.at(self.text, open_brace.start, "unbalanced braces: '{' is never closed")
        return self._expect("}", "expected '}'")

    def _statement_list(self) -> List[Statement]:
        statements: List[Statement] = []
        while self.token.kind not in ("}", EOF):
            if self.token.kind == ";":
                self._advance()
                continue
            stmt = self._statement()
            semi = self._accept(";")
            if semi is not None:
                stmt.end = semi.end
            statements.append(stmt)
        return statements

    def _statement(self) -> Statement:
        tok = self.token

        if tok.kind in ("graph", "node", "edge"):
            self._advance()
            if self.token.kind != "[":
                raise self._unexpected(self.token, f"expected '[' after '{tok.text}'")
            attributes, end = self._attribute_lists()
            return AttrStmt(tok.kind, attributes, tok.start, end)

        if tok.kind in ("subgraph", "{"):
            subgraph = self._subgraph()
            if self.token.kind == EDGEOP:
                return self._edge_statement(subgraph)
            return subgraph

        if tok.kind == ID:
            if self._peek().kind == "=":
                key = self._advance()
                self._advance()
                value = self._expect(ID, f"expected a value for '{key.value}'")
                attribute = Attribute(key.value, value.value, key.text, value.text,
                                      key.start, value.end, value.is_html)
                return Assignment(attribute, key.start, value.end)
            node = self._node_ref()
            if self.token.kind == EDGEOP:
                return self._edge_statement(node)
            attributes: List[Attribute] = []
            end = node.end
            if self.token.kind == "[":
                attributes, end = self._attribute_lists()
            return NodeStmt(node, attributes, node.start, end)

        raise self._unexpected(tok, "unknown statement form")

    def _node_ref(self) -> NodeRef:
        tok = self._expect(ID, "expected a node identifier")
        end = tok.end
        port = None
        if self.token.kind == ":":
            colon = self._advance()
            end = self._expect(ID, "expected a port name").end
            if self.token.kind == ":":
                self._advance()
                end = self._expect(ID, "expected a compass point").end
            port = self.text[colon.end:end]
        return NodeRef(tok.value, port, self.text[tok.start:end], tok.start, end)

    def _edge_statement(self, first: Union[NodeRef, Subgraph]) -> EdgeStmt:
        expected = "->" if self.directed else "--"
        operands: List[Union[NodeRef, Subgraph]] = [first]
        while self.token.kind == EDGEOP:
            op = self._advance()
            if op.text != expected:
                kind = "a directed" if self.directed else "an undirected"
                raise ParseError.at(self.text, op.start,
                                    f"edge operator '{op.text}' is not allowed in {kind} graph")
            nxt = self.token
            if nxt.kind in ("subgraph", "{"):
                operands.append(self._subgraph())
            elif nxt.kind == ID:
                operands.append(self._node_ref())
            else:
                raise self._unexpected(nxt, "expected a node or subgraph after the edge operator")

        end = operands[-1].end
        attributes: List[Attribute] = []
        if self.token.kind == "[":
            attributes, end = self._attribute_lists()
        return EdgeStmt(operands, expected, attributes, first.start, end)

    def _subgraph(self) -> Subgraph:
        start = self.token.start
        name = None
        if self._accept("subgraph") is not None and self.token.kind == ID:
            name = self._advance().value
        open_brace = self._expect("{", "expected '{' to open the subgraph body")
        statements = self._statement_list()
        close = self._close_brace(open_brace)
        return Subgraph(
            name=name,
            start=start,
            body_start=open_brace.end,
            statements=statements,
            close_start=close.start,
            close_end=close.end,
            end=close.end,
        )

    def _attribute_lists(self) -> Tuple[List[Attribute], int]:
        attributes: List[Attribute] = []
        end = self.token.end
        while self.token.kind == "[":
            open_bracket = self._advance()
            while self.token.kind != "]":
                if self.token.kind == EOF:
                    raise ParseError.at(self.text, open_bracket.start,
                                        "unbalanced brackets: '[' is never closed")
                key = self._expect(ID, "expected an attribute name")
                if self._accept("=") is not None:
                    value = self._expect(ID, f"expected a value for '{key.value}'")
                    attributes.append(Attribute(key.value, value.value, key.text, value.text,
                                                key.start, value.end, value.is_html))
                else:
                    attributes.append(Attribute(key.value, "true", key.text, None, key.start, key.end))
                if self.token.kind in (",", ";"):
                    self._advance()
            end = self._advance().end
        return attributes, end


def parse_document(text: str) -> Document:
    """Parse DOT source into a syntax tree. Raises ParseError on malformed input."""
    return Parser(text).parse()
