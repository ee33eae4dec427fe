"""
Flow Executor - Runs a flow diagram once.

The executor:
1. Takes a snapshot of the nodes and edges
2. Computes the execution order
3. Threads a fresh context through each node in order
4. Stops at the first failing node
5. Returns a RunResult with the full step-by-step log

Every log entry is also streamed to the event bus as it is produced, and
each run publishes exactly one summary event (succeeded / failed / empty).
"""

import asyncio
import logging
import uuid
from collections.abc import Iterable, Mapping
from datetime import UTC, datetime
from typing import Any

from flowdiagram.config import CyclePolicy, RuntimeConfig
from flowdiagram.graph.edge import Edge, FlowGraph
from flowdiagram.graph.node import CodeRunner, Node, NodeExecutor
from flowdiagram.graph.scheduler import find_cycle, order_nodes, unreachable_nodes
from flowdiagram.observability import get_trace_context, set_trace_context
from flowdiagram.observability.logging import trace_context
from flowdiagram.runtime.event_bus import EventBus, EventType
from flowdiagram.schemas.run import LogEntry, LogSeverity, RunResult, RunStatus

NO_NODES_MESSAGE = "No nodes to execute. Add nodes to the diagram before running."
START_BANNER = "================== Flow execution started =================="
COMPLETE_BANNER = "✅ Flow execution complete."
END_BANNER = "=" * 60
CANCELLED_MESSAGE = "Flow execution cancelled"


class _RunTrace:
    """Accumulates the log of one run and streams each entry to the bus."""

    def __init__(self, run_id: str, event_bus: EventBus | None):
        self.run_id = run_id
        self.entries: list[LogEntry] = []
        self._event_bus = event_bus

    async def append(
        self,
        text: str,
        severity: LogSeverity = LogSeverity.INFO,
        node_id: str | None = None,
    ) -> LogEntry:
        entry = LogEntry(text=text, severity=severity, node_id=node_id)
        self.entries.append(entry)
        if self._event_bus is not None:
            await self._event_bus.emit_log_appended(self.run_id, entry)
        return entry


class FlowExecutor:
    """
    Executes flow diagrams.

    Example:
        executor = FlowExecutor(code_runner=PythonScriptRunner())

        result = await executor.run(
            nodes=[{"id": "a", "type": "input"}, {"id": "b", "type": "script", "code": "..."}],
            edges=[{"from": "a", "to": "b"}],
        )
        for entry in result.entries:
            print(entry.format())
    """

    def __init__(
        self,
        code_runner: CodeRunner | None = None,
        event_bus: EventBus | None = None,
        config: RuntimeConfig | None = None,
        node_executor: NodeExecutor | None = None,
    ):
        """
        Initialize the executor.

        Args:
            code_runner: Capability that runs a script node's code against the context
            event_bus: Optional bus for streaming log entries and the run summary
            config: Runtime configuration (cycle policy)
            node_executor: Custom node executor; built from code_runner if omitted
        """
        self.config = config or RuntimeConfig()
        self.node_executor = node_executor or NodeExecutor(code_runner)
        self.logger = logging.getLogger(__name__)
        self._event_bus = event_bus
        self._running = False
        self._cancel_requested = False

    @property
    def is_running(self) -> bool:
        return self._running

    def cancel(self) -> None:
        """Ask the current run to stop before its next step."""
        if self._running:
            self._cancel_requested = True

    async def run(
        self,
        nodes: Iterable[Node | Mapping[str, Any]],
        edges: Iterable[Edge | Mapping[str, Any]] = (),
    ) -> RunResult:
        """
        Run the flow once and return its result.

        Raises:
            RuntimeError: if a run is already in progress on this executor
            GraphValidationError: if the nodes/edges cannot form a graph
        """
        if self._running:
            raise RuntimeError("A run is already in progress on this executor")
        self._running = True
        self._cancel_requested = False
        previous_context = get_trace_context()
        try:
            return await self._run(list(nodes), list(edges))
        finally:
            self._running = False
            self._cancel_requested = False
            trace_context.set(previous_context or None)

    def run_sync(
        self,
        nodes: Iterable[Node | Mapping[str, Any]],
        edges: Iterable[Edge | Mapping[str, Any]] = (),
    ) -> RunResult:
        """Blocking variant of run() for callers without an event loop."""
        return asyncio.run(self.run(nodes, edges))

    async def _run(self, nodes: list[Any], edges: list[Any]) -> RunResult:
        run_id = uuid.uuid4().hex
        started_at = datetime.now(UTC)
        set_trace_context(run_id=run_id)
        trace = _RunTrace(run_id, self._event_bus)

        if not nodes:
            self.logger.error("No nodes to execute")
            await trace.append(NO_NODES_MESSAGE, LogSeverity.ERROR)
            await self._emit_summary(EventType.RUN_EMPTY, run_id, "No nodes to execute", "error")
            return RunResult(
                run_id=run_id,
                status=RunStatus.EMPTY,
                entries=trace.entries,
                error=NO_NODES_MESSAGE,
                started_at=started_at,
                completed_at=datetime.now(UTC),
            )

        graph = FlowGraph(nodes, edges)

        if self._event_bus is not None:
            await self._event_bus.emit_run_started(run_id, len(graph))
        self.logger.info(f"🚀 Starting flow execution: {len(graph)} nodes, {len(graph.edges)} edges")
        await trace.append(START_BANNER, LogSeverity.BANNER)

        if self.config.cycle_policy == CyclePolicy.ERROR:
            cycle = find_cycle(graph)
            if cycle is not None:
                message = f"Cycle detected: {' -> '.join(cycle)}"
                self.logger.error(f"✗ {message}")
                await trace.append(message, LogSeverity.ERROR, node_id=cycle[0])
                return await self._finish_failed(
                    trace, started_at, steps=0, node_id=cycle[0], error=message, context={}
                )

        order = order_nodes(graph)
        skipped = unreachable_nodes(graph, order)
        if skipped:
            self.logger.warning(
                f"⚠ {len(skipped)} node(s) only reachable through a cycle will not run: "
                f"{[node.id for node in skipped]}"
            )

        context: dict[str, Any] = {}
        step = 1
        for node in order:
            if self._cancel_requested:
                self.logger.info("⏸ Cancellation requested - stopping at node boundary")
                await trace.append(CANCELLED_MESSAGE, LogSeverity.ERROR, node_id=node.id)
                return await self._finish_failed(
                    trace,
                    started_at,
                    steps=step - 1,
                    node_id=None,
                    error=CANCELLED_MESSAGE,
                    context=context,
                )

            set_trace_context(node_id=node.id)
            self.logger.debug(f"▶ Step {step}: {node.display_name} ({node.kind})")
            result = await self.node_executor.execute(node, context, step)

            if not result.success:
                self.logger.error(f"✗ Failed at node {node.id}: {result.error}")
                await trace.append(result.message, LogSeverity.ERROR, node_id=node.id)
                return await self._finish_failed(
                    trace,
                    started_at,
                    steps=step - 1,
                    node_id=node.id,
                    error=result.error,
                    context=context,
                )

            await trace.append(result.message, LogSeverity.INFO, node_id=node.id)
            context = result.context
            step += 1

        set_trace_context(node_id=None)
        await trace.append(COMPLETE_BANNER, LogSeverity.BANNER)
        await trace.append(END_BANNER, LogSeverity.BANNER)
        self.logger.info(f"✓ Flow execution complete: {step - 1} steps")
        await self._emit_summary(EventType.RUN_SUCCEEDED, run_id, "Execution complete", "success")

        return RunResult(
            run_id=run_id,
            status=RunStatus.SUCCESS,
            entries=trace.entries,
            steps_executed=step - 1,
            final_context=context,
            started_at=started_at,
            completed_at=datetime.now(UTC),
        )

    async def _finish_failed(
        self,
        trace: _RunTrace,
        started_at: datetime,
        steps: int,
        node_id: str | None,
        error: str | None,
        context: dict[str, Any],
    ) -> RunResult:
        set_trace_context(node_id=None)
        await trace.append(END_BANNER, LogSeverity.BANNER)
        await self._emit_summary(
            EventType.RUN_FAILED, trace.run_id, "Execution error", "error", node_id=node_id
        )
        return RunResult(
            run_id=trace.run_id,
            status=RunStatus.FAILED,
            entries=trace.entries,
            steps_executed=steps,
            failed_node_id=node_id,
            error=error,
            final_context=context,
            started_at=started_at,
            completed_at=datetime.now(UTC),
        )

    async def _emit_summary(
        self,
        event_type: EventType,
        run_id: str,
        message: str,
        level: str,
        node_id: str | None = None,
    ) -> None:
        if self._event_bus is None:
            return
        await self._event_bus.emit_run_summary(event_type, run_id, message, level, node_id=node_id)


async def run_flow(
    nodes: Iterable[Node | Mapping[str, Any]],
    edges: Iterable[Edge | Mapping[str, Any]] = (),
    code_runner: CodeRunner | None = None,
    event_bus: EventBus | None = None,
    config: RuntimeConfig | None = None,
) -> RunResult:
    """Run a flow once with a throwaway FlowExecutor."""
    executor = FlowExecutor(code_runner=code_runner, event_bus=event_bus, config=config)
    return await executor.run(nodes, edges)
