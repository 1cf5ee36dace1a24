"""
Editing support for a DOT graph.

- EditSession: operations with undo/redo and an action-dictionary dispatcher

Usage:
    from dotedit.edit import EditSession
"""

from dotedit.edit.session import EditSession

__all__ = [
    'EditSession',
]
