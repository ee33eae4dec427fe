"""
Diagram Schema - The editable, persisted form of a flow.

A Diagram is what the editor manipulates and what gets saved:

    {"nodes": [...], "edges": [...]}

It owns the editing policies the engine does not care about: duplicate
edges are refused, deleting a node deletes its edges, and nodes cannot be
dragged off the top-left edge of the canvas. to_graph() hands a snapshot to
the engine.
"""

from typing import Any

from pydantic import BaseModel, Field

from flowdiagram.errors import DuplicateEdgeError, NodeNotFoundError
from flowdiagram.graph.edge import Edge, FlowGraph
from flowdiagram.graph.node import Node, NodeKind

# Smallest x / y a node can be moved to
CANVAS_MARGIN = 14


class Diagram(BaseModel):
    """A flow diagram as edited and persisted."""

    nodes: list[Node] = Field(default_factory=list)
    edges: list[Edge] = Field(default_factory=list)

    model_config = {"extra": "ignore"}

    def get_node(self, node_id: str) -> Node:
        for node in self.nodes:
            if node.id == node_id:
                return node
        raise NodeNotFoundError(node_id)

    def add_node(
        self,
        kind: NodeKind | str,
        label: str | None = None,
        code: str = "",
        x: float = 0,
        y: float = 0,
        node_id: str | None = None,
    ) -> Node:
        """Create a node and append it to the diagram."""
        data: dict[str, Any] = {"type": kind, "label": label, "code": code, "x": x, "y": y}
        if node_id is not None:
            data["id"] = node_id
        node = Node.model_validate(data)
        self.nodes.append(node)
        return node

    def update_node(self, node_id: str, **changes: Any) -> Node:
        """Replace a node with a copy carrying ``changes`` (label, code, ...)."""
        if "id" in changes:
            raise ValueError("Node ids cannot be changed")
        for index, node in enumerate(self.nodes):
            if node.id == node_id:
                data = {**node.model_dump(by_alias=True), **changes}
                if "kind" in changes:
                    data["type"] = data.pop("kind")
                updated = Node.model_validate(data)
                self.nodes[index] = updated
                return updated
        raise NodeNotFoundError(node_id)

    def move_node(self, node_id: str, x: float, y: float) -> Node:
        """Move a node, clamped to the canvas margin."""
        return self.update_node(node_id, x=max(x, CANVAS_MARGIN), y=max(y, CANVAS_MARGIN))

    def remove_node(self, node_id: str) -> Node:
        """Delete a node together with every edge touching it."""
        node = self.get_node(node_id)
        self.nodes = [n for n in self.nodes if n.id != node_id]
        self.edges = [e for e in self.edges if e.source != node_id and e.target != node_id]
        return node

    def connect(self, source: str, target: str) -> Edge:
        """
        Add an edge from ``source`` to ``target``.

        Raises:
            NodeNotFoundError: if either end is not in the diagram
            DuplicateEdgeError: if the same edge already exists
        """
        self.get_node(source)
        self.get_node(target)
        if any(e.source == source and e.target == target for e in self.edges):
            raise DuplicateEdgeError(source, target)
        edge = Edge(source=source, target=target)
        self.edges.append(edge)
        return edge

    def disconnect(self, source: str, target: str) -> bool:
        """Remove the edge ``source -> target``; returns False if there was none."""
        remaining = [e for e in self.edges if not (e.source == source and e.target == target)]
        removed = len(remaining) != len(self.edges)
        self.edges = remaining
        return removed

    def to_graph(self) -> FlowGraph:
        """Snapshot for the engine."""
        return FlowGraph(self.nodes, self.edges)

    def to_payload(self) -> dict[str, Any]:
        """The persisted ``{"nodes": [...], "edges": [...]}`` shape."""
        return self.model_dump(mode="json", by_alias=True)
