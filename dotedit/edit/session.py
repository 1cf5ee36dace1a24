"""
Edit session for an editing surface.

Wraps a Graph with undo/redo and a dispatcher for action dictionaries, the
form in which a UI reports what the user did:

    session.apply({"action": "move_node", "node_id": "a", "position": [10, 20]})

Undo works on whole-model snapshots taken before each successful operation.
After undo() or redo() the session holds a different Graph object, so callers
should always read ``session.graph`` rather than keep their own reference.
"""

import logging
from typing import Any, Dict, List, Optional

from dotedit.config import load_settings
from dotedit.errors import InvalidState, OperationError
from dotedit.model import GRAPH, EdgeId, EntityId, Graph, SubgraphId
from dotedit.serializer import SerializerOptions, serialize

logger = logging.getLogger(__name__)


def _edge_id(value: Any) -> EdgeId:
    if isinstance(value, EdgeId):
        return value
    if isinstance(value, str) and value.startswith("e"):
        value = value[1:]
    try:
        return EdgeId(int(value))
    except (TypeError, ValueError):
        raise InvalidState(f"not an edge id: {value!r}")


def _subgraph_id(value: Any) -> Optional[SubgraphId]:
    if value is None or isinstance(value, SubgraphId):
        return value
    if isinstance(value, str) and value.startswith("s"):
        value = value[1:]
    try:
        return SubgraphId(int(value))
    except (TypeError, ValueError):
        raise InvalidState(f"not a subgraph id: {value!r}")


def _entity_id(action: Dict[str, Any]) -> EntityId:
    if "edge_id" in action:
        return _edge_id(action["edge_id"])
    if "subgraph_id" in action:
        return _subgraph_id(action["subgraph_id"])
    if "node_id" in action:
        return action["node_id"]
    if action.get("graph"):
        return GRAPH
    raise InvalidState("action does not name a node, edge, subgraph or the graph")


def _require(action: Dict[str, Any], key: str) -> Any:
    if key not in action:
        raise InvalidState(f"action {action.get('action')!r} is missing {key!r}")
    return action[key]


class EditSession:
    """A Graph plus its undo history."""

    def __init__(self, graph: Graph, max_history: Optional[int] = None,
                 options: Optional[SerializerOptions] = None):
        settings = None
        if max_history is None or options is None:
            settings = load_settings()
        self.graph = graph
        self.max_history = max_history if max_history is not None else settings.max_history
        self.options = options if options is not None else SerializerOptions.from_settings(settings)
        self.undo_stack: List[Graph] = []
        self.redo_stack: List[Graph] = []

    def _run(self, operation: str, *args, **kwargs):
        snapshot = self.graph.snapshot()
        result = getattr(self.graph, operation)(*args, **kwargs)
        # only reached when the operation succeeded
        self.undo_stack.append(snapshot)
        self.redo_stack.clear()
        if len(self.undo_stack) > self.max_history:
            self.undo_stack.pop(0)
        return result

    # --- Operations ---

    def add_node(self, attrs=None, position=None, subgraph=None) -> str:
        """
        Add a node as one undoable step.

        Args:
            attrs: Attributes for the new node statement
            position: Optional (x, y)
            subgraph: SubgraphId to add it to, or None for the root body

        Returns:
            The new node id
        """
        return self._run("add_node", attrs, position=position, subgraph=subgraph)

    def remove_node(self, node_id: str) -> str:
        """Remove a node and its edges as one undoable step."""
        return self._run("remove_node", node_id)

    def move_node(self, node_id: str, position) -> str:
        """
        Move a node as one undoable step.

        Args:
            node_id: Node to move
            position: New (x, y) pair

        Returns:
            The node id
        """
        return self._run("move_node", node_id, position)

    def set_attribute(self, entity_id: EntityId, key: str, value: Any) -> EntityId:
        """
        Set an attribute as one undoable step.

        Args:
            entity_id: Node id, EdgeId, SubgraphId or GRAPH
            key: Attribute name
            value: New value

        Returns:
            The entity id
        """
        return self._run("set_attribute", entity_id, key, value)

    def unset_attribute(self, entity_id: EntityId, key: str) -> EntityId:
        return self._run("unset_attribute", entity_id, key)

    def add_edge(self, source: str, target: str, attrs=None, subgraph=None) -> EdgeId:
        """
        Connect two nodes as one undoable step.

        Args:
            source: Tail node id
            target: Head node id
            attrs: Edge attributes
            subgraph: SubgraphId to add it to, or None for the root body

        Returns:
            The new EdgeId
        """
        return self._run("add_edge", source, target, attrs, subgraph=subgraph)

    def remove_edge(self, edge_id: EdgeId) -> EdgeId:
        return self._run("remove_edge", edge_id)

    def set_directed(self, directed: bool):
        """
        Switch between ``graph`` and ``digraph`` as one undoable step.

        Args:
            directed: True or False; strings such as "false" are rejected

        Returns:
            GRAPH
        """
        return self._run("set_directed", directed)

    # --- History ---

    def undo(self) -> bool:
        if not self.undo_stack:
            return False
        self.redo_stack.append(self.graph)
        self.graph = self.undo_stack.pop()
        logger.debug(f"Undo ({len(self.undo_stack)} left)")
        return True

    def redo(self) -> bool:
        if not self.redo_stack:
            return False
        self.undo_stack.append(self.graph)
        self.graph = self.redo_stack.pop()
        logger.debug(f"Redo ({len(self.redo_stack)} left)")
        return True

    def can_undo(self) -> bool:
        return len(self.undo_stack) > 0

    def can_redo(self) -> bool:
        return len(self.redo_stack) > 0

    def clear(self) -> None:
        self.undo_stack.clear()
        self.redo_stack.clear()

    # --- Surface entry points ---

    def apply(self, action: Dict[str, Any]) -> Optional[EntityId]:
        """Execute an action dictionary; return the affected id, or None if it was rejected."""
        kind = action.get('action')
        try:
            if kind == 'add_node':
                return self.add_node(
                    action.get('attributes'),
                    position=action.get('position'),
                    subgraph=_subgraph_id(action.get('subgraph_id')),
                )

            elif kind == 'remove_node':
                return self.remove_node(_require(action, 'node_id'))

            elif kind == 'move_node':
                return self.move_node(_require(action, 'node_id'), _require(action, 'position'))

            elif kind == 'set_attribute':
                return self.set_attribute(_entity_id(action), _require(action, 'key'), _require(action, 'value'))

            elif kind == 'unset_attribute':
                return self.unset_attribute(_entity_id(action), _require(action, 'key'))

            elif kind == 'add_edge':
                return self.add_edge(
                    _require(action, 'source'),
                    _require(action, 'target'),
                    action.get('attributes'),
                    subgraph=_subgraph_id(action.get('subgraph_id')),
                )

            elif kind == 'remove_edge':
                return self.remove_edge(_edge_id(_require(action, 'edge_id')))

            elif kind == 'set_directed':
                return self.set_directed(_require(action, 'directed'))

        except OperationError as e:
            logger.warning(f"Rejected {kind}: {e}")
            return None

        logger.warning(f"Unknown edit action: {kind!r}")
        return None

    def export(self) -> str:
        """Serialize the current graph, then compact it and start a fresh history."""
        text = serialize(self.graph, self.options)
        self.graph.compact()
        self.clear()
        logger.info(f"Exported session graph {self.graph.name or '(anonymous)'}")
        return text
