"""
Syntax tree produced by the DOT parser.

Every node records character offsets into the source text. A statement's
end includes its optional trailing ';'. Bodies (the document and every
subgraph) record where their '{' ends and where their '}' starts and ends,
so the text between statements can be recovered exactly.
"""

from dataclasses import dataclass, field
from typing import List, Optional, Union


@dataclass
class Attribute:
    key: str
    value: str
    key_text: str
    value_text: Optional[str]  # None for a bare key such as [bold]
    start: int
    end: int
    html: bool = False


@dataclass
class NodeRef:
    name: str
    port: Optional[str]  # raw text after the first ':' (e.g. "p1" or "p1:ne")
    text: str
    start: int
    end: int


@dataclass
class NodeStmt:
    node: NodeRef
    attributes: List[Attribute]
    start: int
    end: int


@dataclass
class AttrStmt:
    target: str  # "graph", "node" or "edge"
    attributes: List[Attribute]
    start: int
    end: int


@dataclass
class Assignment:
    attribute: Attribute
    start: int
    end: int


@dataclass
class Subgraph:
    name: Optional[str]
    start: int
    body_start: int
    statements: List["Statement"]
    close_start: int
    close_end: int
    end: int


@dataclass
class EdgeStmt:
    operands: List[Union[NodeRef, Subgraph]]
    op: str
    attributes: List[Attribute]
    start: int
    end: int


Statement = Union[NodeStmt, EdgeStmt, AttrStmt, Assignment, Subgraph]


@dataclass
class Document:
    strict: bool
    directed: bool
    name: Optional[str]
    start: int
    body_start: int
    close_start: int
    close_end: int
    statements: List[Statement] = field(default_factory=list)
