"""
Command-line interface for flowdiagram.

Usage:
    flowdiagram run diagram.json
    flowdiagram run diagram.json --cycle-policy error --json
    flowdiagram order diagram.json
    flowdiagram validate diagram.json

Diagram files use the editor's saved shape: {"nodes": [...], "edges": [...]}.
"""

import argparse
import asyncio
import json
import sys
from pathlib import Path

from flowdiagram.config import CyclePolicy, RuntimeConfig
from flowdiagram.errors import DiagramNotFoundError, GraphValidationError
from flowdiagram.graph.code_sandbox import PythonScriptRunner
from flowdiagram.graph.executor import FlowExecutor
from flowdiagram.graph.scheduler import find_cycle, order_nodes, unreachable_nodes
from flowdiagram.observability import configure_logging
from flowdiagram.runtime.event_bus import EventBus, EventType, FlowEvent
from flowdiagram.schemas.run import LogSeverity
from flowdiagram.storage.diagram_store import load_diagram_file


def _load(path: str):
    try:
        return load_diagram_file(Path(path))
    except (DiagramNotFoundError, GraphValidationError) as e:
        print(f"Error: {e}", file=sys.stderr)
        return None


def cmd_run(args: argparse.Namespace) -> int:
    diagram = _load(args.diagram)
    if diagram is None:
        return 2

    config = RuntimeConfig()
    if args.cycle_policy:
        config.cycle_policy = CyclePolicy(args.cycle_policy)

    bus = EventBus()
    if not args.json:

        async def print_entry(event: FlowEvent) -> None:
            entry = event.data["entry"]
            stream = sys.stderr if entry.severity == LogSeverity.ERROR else sys.stdout
            print(entry.format(), file=stream)

        bus.subscribe([EventType.LOG_APPENDED], print_entry)

    executor = FlowExecutor(
        code_runner=PythonScriptRunner(restrict_builtins=config.restrict_builtins),
        event_bus=bus,
        config=config,
    )
    try:
        result = asyncio.run(executor.run(diagram.nodes, diagram.edges))
    except GraphValidationError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 2

    if args.json:
        print(result.model_dump_json(indent=2))
    return 0 if result.success else 1


def cmd_order(args: argparse.Namespace) -> int:
    diagram = _load(args.diagram)
    if diagram is None:
        return 2
    try:
        graph = diagram.to_graph()
    except GraphValidationError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 2

    for index, node in enumerate(order_nodes(graph), start=1):
        print(f"{index}. {node.display_name} ({node.kind}) [{node.id}]")
    return 0


def cmd_validate(args: argparse.Namespace) -> int:
    diagram = _load(args.diagram)
    if diagram is None:
        return 2
    try:
        graph = diagram.to_graph()
    except GraphValidationError as e:
        print(f"✗ {e}")
        return 1

    problems = []
    for edge in graph.dangling_edges():
        problems.append(f"dangling edge {edge.source} -> {edge.target}")
    cycle = find_cycle(graph)
    if cycle is not None:
        problems.append(f"cycle {' -> '.join(cycle)}")
    skipped = unreachable_nodes(graph, order_nodes(graph))
    if skipped:
        problems.append(f"unreachable nodes {', '.join(node.id for node in skipped)}")

    report = {
        "nodes": len(graph),
        "edges": len(graph.edges),
        "roots": [node.id for node in graph.nodes_with_zero_indegree()],
        "problems": problems,
    }
    if args.json:
        print(json.dumps(report, indent=2))
    elif problems:
        for problem in problems:
            print(f"⚠ {problem}")
    else:
        print(f"✓ {report['nodes']} nodes, {report['edges']} edges, no problems")
    return 1 if problems else 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="flowdiagram",
        description="flowdiagram - order and run flow diagrams",
    )
    parser.add_argument("--log-level", default="WARNING", help="Engine log level")
    parser.add_argument(
        "--log-format", default="auto", choices=["auto", "human", "json"], help="Engine log format"
    )

    subparsers = parser.add_subparsers(dest="command", required=True)

    run_parser = subparsers.add_parser("run", help="Run a diagram once")
    run_parser.add_argument("diagram", help="Path to a diagram JSON file")
    run_parser.add_argument(
        "--cycle-policy",
        choices=[policy.value for policy in CyclePolicy],
        help="Override the configured cycle policy",
    )
    run_parser.add_argument("--json", action="store_true", help="Print the RunResult as JSON")
    run_parser.set_defaults(func=cmd_run)

    order_parser = subparsers.add_parser("order", help="Print the execution order")
    order_parser.add_argument("diagram", help="Path to a diagram JSON file")
    order_parser.set_defaults(func=cmd_order)

    validate_parser = subparsers.add_parser("validate", help="Check a diagram for problems")
    validate_parser.add_argument("diagram", help="Path to a diagram JSON file")
    validate_parser.add_argument("--json", action="store_true", help="Print the report as JSON")
    validate_parser.set_defaults(func=cmd_validate)

    return parser


def main(argv: list[str] | None = None):
    parser = build_parser()
    args = parser.parse_args(argv)
    configure_logging(level=args.log_level, format=args.log_format)

    if hasattr(args, "func"):
        sys.exit(args.func(args))


if __name__ == "__main__":
    main()
