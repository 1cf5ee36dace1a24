"""
Tokenizer for the DOT language.

Tokens keep their exact source span. Whitespace and comments are skipped
rather than emitted, but since every token knows where it starts and ends,
the parser can slice the trivia between statements back out of the original
text and the serializer can reproduce it verbatim.
"""

import re
from dataclasses import dataclass
from typing import List, Tuple

from dotedit.errors import ParseError

ID = "ID"
EDGEOP = "EDGEOP"
EOF = "EOF"

KEYWORDS = frozenset(["strict", "graph", "digraph", "node", "edge", "subgraph"])
PUNCTUATION = frozenset("{}[];,=:")

_NAME_RE = re.compile(r"[A-Za-z_\u0080-\U0010ffff][A-Za-z_0-9\u0080-\U0010ffff]*")
_NUMERAL_RE = re.compile(r"-?(?:\.[0-9]+|[0-9]+(?:\.[0-9]*)?)")


@dataclass(frozen=True)
class Token:
    """
    A lexical token.

    kind is ID, EDGEOP, EOF, a lower-case keyword, or the punctuation
    character itself. value holds the decoded identifier (quotes and escapes
    resolved, HTML brackets stripped).
    """
    kind: str
    text: str
    value: str
    start: int
    end: int
    quote: str = ""

    @property
    def is_html(self) -> bool:
        return self.quote == "<"


class Lexer:
    def __init__(self, text: str):
        self.text = text
        self.length = len(text)
        self.pos = 0

    def tokenize(self) -> List[Token]:
        tokens: List[Token] = []
        while True:
            self._skip_trivia()
            if self.pos >= self.length:
                tokens.append(Token(EOF, "", "", self.length, self.length))
                return tokens
            tokens.append(self._next_token())

    def _error(self, offset: int, message: str) -> ParseError:
        return ParseError.at(self.text, offset, message)

    def _at_line_start(self, pos: int) -> bool:
        line_start = self.text.rfind("\n", 0, pos) + 1
        return self.text[line_start:pos].strip() == ""

    def _skip_line(self) -> None:
        end = self.text.find("\n", self.pos)
        self.pos = self.length if end < 0 else end

    def _skip_trivia(self) -> None:
        text = self.text
        while self.pos < self.length:
            ch = text[self.pos]
            if ch.isspace():
                self.pos += 1
            elif text.startswith("//", self.pos):
                self._skip_line()
            elif text.startswith("/*", self.pos):
                end = text.find("*/", self.pos + 2)
                if end < 0:
                    raise self._error(self.pos, "unterminated comment")
                self.pos = end + 2
            elif ch == "#" and self._at_line_start(self.pos):
                # C preprocessor output lines
                self._skip_line()
            else:
                return

    def _next_token(self) -> Token:
        text = self.text
        start = self.pos
        ch = text[start]

        if ch == '"':
            return self._quoted()
        if ch == "<":
            return self._html()
        if ch == "-" and text[start + 1:start + 2] in ("-", ">"):
            self.pos = start + 2
            op = text[start:self.pos]
            return Token(EDGEOP, op, op, start, self.pos)
        if ch in PUNCTUATION:
            self.pos = start + 1
            return Token(ch, ch, ch, start, self.pos)

        match = _NAME_RE.match(text, start)
        if match:
            self.pos = match.end()
            word = match.group(0)
            if word.lower() in KEYWORDS:
                return Token(word.lower(), word, word.lower(), start, self.pos)
            return Token(ID, word, word, start, self.pos)

        match = _NUMERAL_RE.match(text, start)
        if match:
            self.pos = match.end()
            return Token(ID, match.group(0), match.group(0), start, self.pos)

        raise self._error(start, f"unexpected character {ch!r}")

    def _scan_string(self, start: int) -> Tuple[str, int]:
        """Scan one double-quoted string starting at start; return (value, end)."""
        text = self.text
        chunks: List[str] = []
        i = start + 1
        while i < self.length:
            ch = text[i]
            if ch == '"':
                return "".join(chunks), i + 1
            if ch == "\\" and i + 1 < self.length:
                nxt = text[i + 1]
                if nxt == '"':
                    chunks.append('"')
                    i += 2
                elif nxt == "\n":
                    i += 2
                elif nxt == "\r" and text.startswith("\n", i + 2):
                    i += 3
                else:
                    # \n, \l, \N and friends are Graphviz escapes, kept as written
                    chunks.append(ch + nxt)
                    i += 2
                continue
            chunks.append(ch)
            i += 1
        raise self._error(start, "unterminated string")

    def _quoted(self) -> Token:
        start = self.pos
        value, self.pos = self._scan_string(start)
        parts = [value]
        # "abc" + "def" is a single identifier
        while True:
            saved = self.pos
            self._skip_trivia()
            if self.pos < self.length and self.text[self.pos] == "+":
                self.pos += 1
                self._skip_trivia()
                if self.pos < self.length and self.text[self.pos] == '"':
                    value, self.pos = self._scan_string(self.pos)
                    parts.append(value)
                    continue
                raise self._error(self.pos, "expected a quoted string after '+'")
            self.pos = saved
            break
        return Token(ID, self.text[start:self.pos], "".join(parts), start, self.pos, quote='"')

    def _html(self) -> Token:
        text = self.text
        start = self.pos
        depth = 0
        for i in range(start, self.length):
            ch = text[i]
            if ch == "<":
                depth += 1
            elif ch == ">":
                depth -= 1
                if depth == 0:
                    self.pos = i + 1
                    return Token(ID, text[start:self.pos], text[start + 1:i], start, self.pos, quote="<")
        raise self._error(start, "unterminated HTML string")


def tokenize(text: str) -> List[Token]:
    """Split DOT source into tokens, ending with a single EOF token."""
    return Lexer(text).tokenize()
