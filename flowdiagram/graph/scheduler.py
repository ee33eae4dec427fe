"""
Scheduler - Decides the order in which a flow's nodes run.

Ordering is a depth-first reverse postorder seeded from every root (node
with no incoming edge). A visited set keyed by node id guarantees each node
is visited once, which also breaks cycles: the traversal always stops after
at most len(graph) visits.

Roots are walked back to front so that, once the postorder is reversed,
independent roots keep their collection order. Outgoing neighbours are
walked in edge order, so the last target of a fan-out runs first:

    nodes A, B, C with no edges      -> [A, B, C]
    A -> B -> C                      -> [A, B, C]
    A -> B, A -> C                   -> [A, C, B]
    A -> B -> A (no root)            -> []

A graph whose every node sits on a cycle has no root and therefore an empty
order. That is not treated as an error here; callers that want cycles
reported use find_cycle() / require_acyclic().
"""

from flowdiagram.errors import CycleDetectedError
from flowdiagram.graph.edge import FlowGraph
from flowdiagram.graph.node import Node


def order_nodes(graph: FlowGraph) -> list[Node]:
    """Return one valid execution order for ``graph``."""
    visited: set[str] = set()
    postorder: list[str] = []

    for root in reversed(graph.nodes_with_zero_indegree()):
        if root.id in visited:
            continue
        visited.add(root.id)
        stack = [(root.id, iter(graph.outgoing(root.id)))]
        while stack:
            node_id, targets = stack[-1]
            for target in targets:
                if target not in visited:
                    visited.add(target)
                    stack.append((target, iter(graph.outgoing(target))))
                    break
            else:
                stack.pop()
                postorder.append(node_id)

    postorder.reverse()
    return [graph.get_node(node_id) for node_id in postorder]


def unreachable_nodes(graph: FlowGraph, order: list[Node]) -> list[Node]:
    """Nodes of ``graph`` missing from ``order`` (only reachable through a cycle)."""
    scheduled = {node.id for node in order}
    return [node for node in graph.nodes if node.id not in scheduled]


def find_cycle(graph: FlowGraph) -> list[str] | None:
    """
    Find one cycle in ``graph``.

    Returns the node ids along the cycle with the first id repeated at the
    end (``["a", "b", "a"]``), or None when the graph is acyclic. Dangling
    edges never take part in a cycle. A self-loop is reported as
    ``["a", "a"]``.
    """
    WHITE, GRAY, BLACK = 0, 1, 2
    color = {node.id: WHITE for node in graph.nodes}

    for start in graph.nodes:
        if color[start.id] != WHITE:
            continue
        color[start.id] = GRAY
        path = [start.id]
        stack = [iter(graph.outgoing(start.id))]
        while stack:
            for target in stack[-1]:
                if color[target] == GRAY:
                    return path[path.index(target) :] + [target]
                if color[target] == WHITE:
                    color[target] = GRAY
                    path.append(target)
                    stack.append(iter(graph.outgoing(target)))
                    break
            else:
                stack.pop()
                color[path.pop()] = BLACK

    return None


def require_acyclic(graph: FlowGraph) -> None:
    """Raise CycleDetectedError if ``graph`` contains a cycle."""
    cycle = find_cycle(graph)
    if cycle is not None:
        raise CycleDetectedError(cycle)
