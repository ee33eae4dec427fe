"""
Run Schema - The record of one pass over a flow diagram.

A RunResult holds the terminal status and every log entry the run produced,
in the order they were produced. Both are immutable once the run returns.
"""

from datetime import UTC, datetime
from enum import StrEnum
from typing import Any

from pydantic import BaseModel, Field, computed_field


class RunStatus(StrEnum):
    """Terminal status of a run."""

    SUCCESS = "success"
    FAILED = "failed"
    EMPTY = "empty"  # No nodes to execute


class LogSeverity(StrEnum):
    """How a log entry should be presented."""

    INFO = "info"  # A step that ran normally
    ERROR = "error"  # A failure
    BANNER = "banner"  # Run start / end markers


def _utcnow() -> datetime:
    return datetime.now(UTC)


class LogEntry(BaseModel):
    """One line of the execution log."""

    text: str
    severity: LogSeverity = LogSeverity.INFO
    timestamp: datetime = Field(default_factory=_utcnow)
    node_id: str | None = None

    model_config = {"frozen": True}

    def format(self) -> str:
        """Render as ``[HH:MM:SS] text`` in local time."""
        return f"[{self.timestamp.astimezone().strftime('%H:%M:%S')}] {self.text}"


class RunResult(BaseModel):
    """
    The outcome of running a flow once.

    ``entries`` is the full trace: on failure it contains every step up to
    and including the failing one.
    """

    run_id: str
    status: RunStatus
    entries: list[LogEntry] = Field(default_factory=list)

    steps_executed: int = 0
    failed_node_id: str | None = None
    error: str | None = None

    # Context as left by the last node that ran
    final_context: dict[str, Any] = Field(default_factory=dict)

    started_at: datetime = Field(default_factory=_utcnow)
    completed_at: datetime | None = None

    model_config = {"frozen": True, "arbitrary_types_allowed": True}

    @computed_field
    @property
    def duration_ms(self) -> int:
        """Duration of the run in milliseconds."""
        if self.completed_at is None:
            return 0
        delta = self.completed_at - self.started_at
        return int(delta.total_seconds() * 1000)

    @property
    def success(self) -> bool:
        return self.status == RunStatus.SUCCESS

    def entries_with(self, severity: LogSeverity) -> list[LogEntry]:
        return [entry for entry in self.entries if entry.severity == severity]

    def texts(self) -> list[str]:
        """Entry texts without timestamps, for comparing runs."""
        return [entry.text for entry in self.entries]
