"""
Statement records: the textual skeleton of a parsed document.

Each scope (the graph body or a subgraph body) is an ordered list of
statements. A statement remembers the exact text that preceded it
(whitespace and comments) and its own raw source text. As long as it stays
CLEAN the serializer writes that raw text back; once an edit touches it the
raw snapshot is ignored and the statement is re-synthesized.
"""

from dataclasses import dataclass, field
from typing import Dict, Iterator, List, Optional, Union

from dotedit.dot.quoting import quote_id
from dotedit.model.ids import EdgeId, Provenance, SubgraphId

_COMMENT_MARKERS = ("//", "/*", "#")


def has_comment(trivia: str) -> bool:
    """True when a run of inter-statement trivia carries a comment."""
    return any(marker in trivia for marker in _COMMENT_MARKERS)


@dataclass
class AttributeEntry:
    key: str
    value: str
    key_text: Optional[str] = None
    value_text: Optional[str] = None
    bare: bool = False

    def render(self) -> str:
        key = self.key_text if self.key_text is not None else quote_id(self.key)
        if self.bare:
            return key
        value = self.value_text if self.value_text is not None else quote_id(self.value)
        return f"{key}={value}"


@dataclass
class AttributeList:
    """Ordered attribute entries as written in one statement (duplicates allowed)."""
    entries: List[AttributeEntry] = field(default_factory=list)

    def __len__(self) -> int:
        return len(self.entries)

    def __iter__(self) -> Iterator[AttributeEntry]:
        return iter(self.entries)

    def __contains__(self, key: str) -> bool:
        return any(e.key == key for e in self.entries)

    def get(self, key: str, default: Optional[str] = None) -> Optional[str]:
        for entry in reversed(self.entries):
            if entry.key == key:
                return entry.value
        return default

    def to_dict(self) -> Dict[str, str]:
        """Keys in first-set order, values last-write-wins."""
        result: Dict[str, str] = {}
        for entry in self.entries:
            result[entry.key] = entry.value
        return result

    def set(self, key: str, value: str) -> None:
        for entry in reversed(self.entries):
            if entry.key == key:
                entry.value = value
                entry.value_text = None
                entry.bare = False
                return
        self.entries.append(AttributeEntry(key, value))

    def remove(self, key: str) -> bool:
        kept = [e for e in self.entries if e.key != key]
        changed = len(kept) != len(self.entries)
        self.entries = kept
        return changed

    def render(self, separator: str = ", ") -> str:
        return separator.join(e.render() for e in self.entries)

    @classmethod
    def from_dict(cls, attrs: Dict[str, str]) -> "AttributeList":
        return cls([AttributeEntry(k, v) for k, v in attrs.items()])


@dataclass
class Statement:
    id: int
    prefix: str
    raw: Optional[str]
    provenance: Provenance

    @property
    def clean(self) -> bool:
        return self.provenance is Provenance.CLEAN and self.raw is not None

    @property
    def removed(self) -> bool:
        return self.provenance is Provenance.TOMBSTONE

    def touch(self) -> None:
        if not self.removed:
            self.provenance = Provenance.DIRTY

    def remove(self) -> None:
        self.provenance = Provenance.TOMBSTONE


@dataclass
class NodeStatement(Statement):
    node_id: str = ""
    port: Optional[str] = None
    node_text: Optional[str] = None
    attributes: AttributeList = field(default_factory=AttributeList)


@dataclass
class NodeOperand:
    node_id: str
    port: Optional[str] = None
    text: Optional[str] = None


@dataclass
class SubgraphOperand:
    subgraph_id: SubgraphId


Operand = Union[NodeOperand, SubgraphOperand]


@dataclass
class EdgeStatement(Statement):
    operands: List[Operand] = field(default_factory=list)
    edge_ids: List[EdgeId] = field(default_factory=list)
    attributes: AttributeList = field(default_factory=AttributeList)
    # set once one of the edges was edited or removed on its own
    split: bool = False


@dataclass
class DefaultsStatement(Statement):
    """``graph [...]``, ``node [...]`` or ``edge [...]``."""
    target: str = "node"
    keyword: Optional[str] = None
    attributes: AttributeList = field(default_factory=AttributeList)


@dataclass
class AssignmentStatement(Statement):
    """``key = value`` at statement level (a graph or subgraph attribute)."""
    entry: AttributeEntry = field(default_factory=lambda: AttributeEntry("", ""))


@dataclass
class SubgraphStatement(Statement):
    subgraph_id: Optional[SubgraphId] = None
    suffix: str = ""


@dataclass
class Scope:
    statements: List[Statement] = field(default_factory=list)
    closing: str = "}"
    was_empty: bool = True

    def index_of(self, statement_id: int) -> int:
        for i, stmt in enumerate(self.statements):
            if stmt.id == statement_id:
                return i
        raise ValueError(f"statement {statement_id} is not in this scope")
