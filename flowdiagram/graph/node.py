"""
Node Protocol - The building blocks of a flow diagram.

A node is one unit of work in the flow:
- input:  marks where a flow starts; never changes the context
- output: marks where a flow ends; never changes the context
- script: runs user-authored code against the shared context

Execution of a single node is handled by NodeExecutor, which never lets a
script failure escape. Failures come back as NodeResult(success=False) so the
FlowExecutor can stop the run and keep the partial trace.
"""

import inspect
import logging
import uuid
from collections.abc import Awaitable, Callable, Mapping
from dataclasses import dataclass, field
from enum import StrEnum
from typing import Any

from pydantic import BaseModel, Field, field_validator, model_validator

logger = logging.getLogger(__name__)


class NodeKind(StrEnum):
    """What a node does when executed."""

    INPUT = "input"
    OUTPUT = "output"
    SCRIPT = "script"


# Kind names written by older diagram files
_KIND_ALIASES = {"js": NodeKind.SCRIPT, "code": NodeKind.SCRIPT}


class Node(BaseModel):
    """
    A node in a flow diagram.

    Serialized with the key ``type`` for its kind so that files written by the
    diagram editor load unchanged:

        Node.model_validate({"id": "a1", "type": "js", "label": "Add", "code": "..."})
    """

    id: str = Field(default_factory=lambda: str(uuid.uuid4()), frozen=True)
    kind: NodeKind = Field(alias="type")
    label: str | None = None
    code: str = ""

    # Canvas position, owned by the editor
    x: float = 0
    y: float = 0

    model_config = {"extra": "allow", "populate_by_name": True}

    @field_validator("kind", mode="before")
    @classmethod
    def _normalize_kind(cls, value: Any) -> Any:
        if isinstance(value, str):
            value = value.strip().lower()
            return _KIND_ALIASES.get(value, value)
        return value

    @field_validator("code", mode="before")
    @classmethod
    def _coerce_code(cls, value: Any) -> str:
        return "" if value is None else value

    @model_validator(mode="after")
    def _default_label(self) -> "Node":
        if self.label is None:
            self.label = self.kind.value
        return self

    @property
    def display_name(self) -> str:
        """Label used in log messages, falling back to the id."""
        return self.label or self.id

    @property
    def script_code(self) -> str:
        """Source to execute; always empty for non-script nodes."""
        if self.kind != NodeKind.SCRIPT:
            return ""
        return self.code


# (code, context) -> new context, or None (any falsy non-mapping) to keep the
# current one, or an awaitable of either
CodeRunner = Callable[[str, dict[str, Any]], dict[str, Any] | None | Awaitable[Any]]


@dataclass
class NodeResult:
    """
    The outcome of executing one node.

    On success ``context`` holds the context to hand to the next node. On
    failure ``error`` holds the underlying error message verbatim and
    ``context`` is the context the node was given.
    """

    node_id: str
    success: bool
    message: str
    context: dict[str, Any] = field(default_factory=dict)
    error: str | None = None


class NodeExecutor:
    """
    Executes exactly one node against the current context.

    Stateless: the same executor can be shared across runs. Only script nodes
    can fail, and their failures are returned, never raised.

    Example:
        executor = NodeExecutor(code_runner=PythonScriptRunner())
        result = await executor.execute(node, context={}, step=1)
    """

    def __init__(self, code_runner: CodeRunner | None = None):
        self.code_runner = code_runner
        self._handlers = {
            NodeKind.INPUT: self._execute_input,
            NodeKind.OUTPUT: self._execute_output,
            NodeKind.SCRIPT: self._execute_script,
        }

    async def execute(self, node: Node, context: dict[str, Any], step: int) -> NodeResult:
        handler = self._handlers[node.kind]
        return await handler(node, context, step)

    async def _execute_input(self, node: Node, context: dict[str, Any], step: int) -> NodeResult:
        return NodeResult(
            node_id=node.id,
            success=True,
            message=f'Step {step}: Input node "{node.display_name}"',
            context=context,
        )

    async def _execute_output(self, node: Node, context: dict[str, Any], step: int) -> NodeResult:
        return NodeResult(
            node_id=node.id,
            success=True,
            message=f'Step {step}: Output node "{node.display_name}"',
            context=context,
        )

    async def _execute_script(self, node: Node, context: dict[str, Any], step: int) -> NodeResult:
        code = node.script_code
        if not code.strip():
            return NodeResult(
                node_id=node.id,
                success=True,
                message=f'Step {step}: Skipped empty script node "{node.display_name}"',
                context=context,
            )

        try:
            if self.code_runner is None:
                raise RuntimeError("no code runner configured")
            returned = self.code_runner(code, context)
            if inspect.isawaitable(returned):
                returned = await returned
            if not isinstance(returned, Mapping):
                if returned:
                    raise TypeError(
                        f"script must return a mapping or None, got {type(returned).__name__}"
                    )
                returned = None
        except Exception as e:
            logger.debug(f"Script node {node.id} raised {type(e).__name__}: {e}")
            return NodeResult(
                node_id=node.id,
                success=False,
                message=f'❌ Error in node "{node.display_name}": {e}',
                context=context,
                error=str(e),
            )

        return NodeResult(
            node_id=node.id,
            success=True,
            message=f'Step {step}: Ran script node "{node.display_name}"',
            context=context if returned is None else dict(returned),
        )
