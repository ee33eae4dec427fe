"""Graph structures: Nodes, Edges, ordering and execution."""

from flowdiagram.graph.code_sandbox import PythonScriptRunner
from flowdiagram.graph.edge import Edge, FlowGraph
from flowdiagram.graph.executor import FlowExecutor, run_flow
from flowdiagram.graph.node import CodeRunner, Node, NodeExecutor, NodeKind, NodeResult
from flowdiagram.graph.scheduler import (
    find_cycle,
    order_nodes,
    require_acyclic,
    unreachable_nodes,
)

__all__ = [
    # Node
    "Node",
    "NodeKind",
    "NodeResult",
    "NodeExecutor",
    "CodeRunner",
    # Edge
    "Edge",
    "FlowGraph",
    # Scheduler
    "order_nodes",
    "find_cycle",
    "require_acyclic",
    "unreachable_nodes",
    # Executor
    "FlowExecutor",
    "run_flow",
    # Code Sandbox
    "PythonScriptRunner",
]
