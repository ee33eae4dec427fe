"""
Edge Protocol - How nodes connect in a flow diagram.

An edge is a directed dependency: its target runs after its source. The
model enforces nothing about self-loops or duplicates; those are editing
policies (see Diagram.connect).

FlowGraph is a point-in-time snapshot of nodes and edges that answers the
two questions the scheduler needs:
- which nodes have no incoming edge (the roots)
- which nodes a given node points at

Edges whose source or target is not in the snapshot are dangling and are
dropped from both queries.
"""

from collections.abc import Iterable, Mapping
from typing import Any

from pydantic import BaseModel, Field, ValidationError

from flowdiagram.errors import GraphValidationError
from flowdiagram.graph.node import Node


class Edge(BaseModel):
    """
    A directed edge, serialized as ``{"from": ..., "to": ...}``.

    Example:
        Edge(source="load", target="transform")
        Edge.model_validate({"from": "load", "to": "transform"})
    """

    source: str = Field(alias="from", description="Source node ID")
    target: str = Field(alias="to", description="Target node ID")

    model_config = {"extra": "allow", "populate_by_name": True, "frozen": True}


def _coerce(model: type[BaseModel], items: Iterable[Any], what: str) -> list[Any]:
    coerced = []
    for item in items:
        if isinstance(item, model):
            coerced.append(item.model_copy(deep=True))
            continue
        if not isinstance(item, Mapping):
            raise GraphValidationError(f"Invalid {what}: expected a mapping, got {type(item).__name__}")
        try:
            coerced.append(model.model_validate(item))
        except ValidationError as e:
            raise GraphValidationError(f"Invalid {what} {dict(item)!r}: {e}") from e
    return coerced


class FlowGraph:
    """
    Read-only snapshot of a flow diagram.

    Nodes and edges are copied on construction, so later edits to the
    caller's collections never leak into a run that is using this snapshot.
    Node order is preserved; it decides the order of roots.
    """

    def __init__(self, nodes: Iterable[Node | Mapping[str, Any]], edges: Iterable[Edge | Mapping[str, Any]] = ()):
        self._nodes: tuple[Node, ...] = tuple(_coerce(Node, nodes, "node"))
        self._edges: tuple[Edge, ...] = tuple(_coerce(Edge, edges, "edge"))

        self._by_id: dict[str, Node] = {}
        for node in self._nodes:
            if node.id in self._by_id:
                raise GraphValidationError(f"Duplicate node id: {node.id}")
            self._by_id[node.id] = node

        # Adjacency in edge order, dangling edges excluded
        self._outgoing: dict[str, list[str]] = {node.id: [] for node in self._nodes}
        self._indegree: dict[str, int] = {node.id: 0 for node in self._nodes}
        for edge in self._edges:
            if edge.source not in self._by_id or edge.target not in self._by_id:
                continue
            self._outgoing[edge.source].append(edge.target)
            self._indegree[edge.target] += 1

    @property
    def nodes(self) -> tuple[Node, ...]:
        return self._nodes

    @property
    def edges(self) -> tuple[Edge, ...]:
        return self._edges

    def __len__(self) -> int:
        return len(self._nodes)

    def __contains__(self, node_id: object) -> bool:
        return node_id in self._by_id

    def get_node(self, node_id: str) -> Node | None:
        return self._by_id.get(node_id)

    def indegree(self, node_id: str) -> int:
        return self._indegree.get(node_id, 0)

    def nodes_with_zero_indegree(self) -> list[Node]:
        """Nodes with no incoming edge, in collection order."""
        return [node for node in self._nodes if self._indegree[node.id] == 0]

    def outgoing(self, node_id: str) -> list[str]:
        """Ids of nodes one outgoing edge away from ``node_id``, in edge order."""
        return list(self._outgoing.get(node_id, ()))

    def dangling_edges(self) -> list[Edge]:
        """Edges that reference a node missing from this snapshot."""
        return [
            edge
            for edge in self._edges
            if edge.source not in self._by_id or edge.target not in self._by_id
        ]
