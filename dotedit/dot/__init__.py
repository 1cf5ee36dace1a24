"""
DOT language front end.

- lexer: tokens with exact source spans
- parser: syntax tree that keeps statement, attribute and brace offsets
- quoting: identifier quoting for synthesized text

Usage:
    from dotedit.dot import parse_document, quote_id
"""

from dotedit.dot.lexer import Token, tokenize
from dotedit.dot.parser import Parser, parse_document
from dotedit.dot.quoting import HtmlString, is_plain_id, is_quotable, quote_id

__all__ = [
    'Token',
    'tokenize',
    'Parser',
    'parse_document',
    'HtmlString',
    'is_plain_id',
    'is_quotable',
    'quote_id',
]
