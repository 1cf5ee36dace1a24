"""Helpers for writing DOT identifiers and attribute values."""

import re

from dotedit.dot.lexer import KEYWORDS
from dotedit.errors import SerializeError

_PLAIN_ID_RE = re.compile(r"[A-Za-z_\u0080-\U0010ffff][A-Za-z_0-9\u0080-\U0010ffff]*\Z")
_NUMERAL_RE = re.compile(r"-?(?:\.[0-9]+|[0-9]+(?:\.[0-9]*)?)\Z")
# an odd run of backslashes would pair with the quote, line break or closing quote after it
_DANGLING_ESCAPE_RE = re.compile(r'(?<!\\)\\(?:\\\\)*(?="|\n|\r\n|\Z)')


class HtmlString(str):
    """A value written as an HTML-like string (``<...>``) rather than quoted."""


def is_plain_id(text: str) -> bool:
    """True when text can be written without quotes."""
    if not text or text.lower() in KEYWORDS:
        return False
    return bool(_PLAIN_ID_RE.match(text) or _NUMERAL_RE.match(text))


def is_quotable(text: str) -> bool:
    """
    True when text survives being written as a quoted string and read back.

    Backslash pairs inside quotes are kept as written (``\\n`` stays a Graphviz
    escape), so a backslash can only precede a quote, a line break or the end
    of the string as part of an even run.
    """
    return _DANGLING_ESCAPE_RE.search(text) is None


def escape(text: str) -> str:
    if not is_quotable(text):
        raise SerializeError(f"{text!r} has a backslash that cannot be written inside DOT quotes")
    return text.replace('"', '\\"')


def quote_id(value: str) -> str:
    if isinstance(value, HtmlString):
        return f"<{value}>"
    text = str(value)
    if is_plain_id(text):
        return text
    return f'"{escape(text)}"'
