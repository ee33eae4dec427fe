"""flowdiagram - order, run and trace flow diagrams of input, output and script nodes."""

from flowdiagram.graph import (
    Edge,
    FlowExecutor,
    FlowGraph,
    Node,
    NodeKind,
    PythonScriptRunner,
    order_nodes,
    run_flow,
)
from flowdiagram.schemas.diagram import Diagram
from flowdiagram.schemas.run import LogEntry, LogSeverity, RunResult, RunStatus

__all__ = [
    "Node",
    "NodeKind",
    "Edge",
    "FlowGraph",
    "order_nodes",
    "FlowExecutor",
    "run_flow",
    "PythonScriptRunner",
    "Diagram",
    "LogEntry",
    "LogSeverity",
    "RunResult",
    "RunStatus",
]
