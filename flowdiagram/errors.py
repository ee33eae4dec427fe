"""Exception types raised by the flowdiagram engine and its collaborators."""


class FlowDiagramError(Exception):
    """Base class for all flowdiagram errors."""


class GraphValidationError(FlowDiagramError, ValueError):
    """Raised when a node/edge payload cannot form a graph."""


class NodeNotFoundError(FlowDiagramError, KeyError):
    """Raised when an editing operation references an unknown node."""

    def __init__(self, node_id: str):
        super().__init__(node_id)
        self.node_id = node_id

    def __str__(self) -> str:
        return f"Node not found: {self.node_id}"


class DuplicateEdgeError(FlowDiagramError):
    """Raised when connecting two nodes that are already connected."""

    def __init__(self, source: str, target: str):
        super().__init__(f"Edge already exists: {source} -> {target}")
        self.source = source
        self.target = target


class CycleDetectedError(FlowDiagramError):
    """Raised when a graph must be acyclic but contains a cycle."""

    def __init__(self, cycle: list[str]):
        super().__init__(f"Cycle detected: {' -> '.join(cycle)}")
        self.cycle = cycle


class ScriptExecutionError(FlowDiagramError):
    """Raised by a code runner when a user script fails to compile or run."""


class DiagramNotFoundError(FlowDiagramError):
    """Raised when loading a diagram that was never saved."""
