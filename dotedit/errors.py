"""
Error types for dotedit.

Every failure the core reports derives from DotEditError, so a host
application can catch one class and show a recoverable diagnostic:

- ParseError: malformed DOT source (carries offset, line and column)
- OperationError: an edit referenced a missing entity or an illegal state
- SerializeError: an internal invariant was broken at export time
"""

from enum import Enum
from typing import Optional


class DotEditError(Exception):
    """Base class for all dotedit errors."""


class ParseError(DotEditError):
    """Raised when DOT source cannot be parsed."""

    def __init__(self, message: str, offset: int, line: int = 1, column: int = 1):
        self.message = message
        self.offset = offset
        self.line = line
        self.column = column
        super().__init__(f"{message} (line {line}, column {column})")

    @classmethod
    def at(cls, text: str, offset: int, message: str) -> "ParseError":
        """Build an error for a character offset into text, computing line and column."""
        offset = max(0, min(offset, len(text)))
        line = text.count("\n", 0, offset) + 1
        line_start = text.rfind("\n", 0, offset) + 1
        return cls(message, offset, line, offset - line_start + 1)


class ErrorKind(str, Enum):
    NOT_FOUND = "NotFound"
    INVALID_STATE = "InvalidState"


class OperationError(DotEditError):
    """
    Raised by a graph operation that was rejected.

    A rejected operation never leaves a partial change behind.
    """

    kind: ErrorKind = ErrorKind.INVALID_STATE

    def __init__(self, detail: str, kind: Optional[ErrorKind] = None):
        if kind is not None:
            self.kind = kind
        self.detail = detail
        super().__init__(f"{self.kind.value}: {detail}")


class NotFound(OperationError):
    kind = ErrorKind.NOT_FOUND


class InvalidState(OperationError):
    kind = ErrorKind.INVALID_STATE


class SerializeError(DotEditError):
    """Raised when the model is internally inconsistent at export time."""

    def __init__(self, detail: str):
        self.detail = detail
        super().__init__(detail)
