"""
Run Log - Bounded views of what runs produced, fed from the event bus.

RunLogBuffer is the log panel: it keeps the most recent entries across runs
and drops the oldest once full. NotificationCollector keeps the one summary
message each run publishes. Neither affects execution.
"""

from collections import deque
from dataclasses import dataclass

from flowdiagram.config import get_max_log_entries
from flowdiagram.runtime.event_bus import SUMMARY_EVENT_TYPES, EventBus, EventType, FlowEvent
from flowdiagram.schemas.run import LogEntry


class RunLogBuffer:
    """
    Keeps the last ``max_entries`` log entries published on a bus.

    ``max_entries`` defaults to the configured log size (``log.max_entries``).
    """

    def __init__(self, max_entries: int | None = None):
        if max_entries is None:
            max_entries = get_max_log_entries()
        if max_entries < 1:
            raise ValueError("max_entries must be at least 1")
        self._entries: deque[LogEntry] = deque(maxlen=max_entries)
        self._subscription_id: str | None = None
        self._bus: EventBus | None = None

    @property
    def entries(self) -> list[LogEntry]:
        return list(self._entries)

    def __len__(self) -> int:
        return len(self._entries)

    def attach(self, bus: EventBus) -> "RunLogBuffer":
        """Start collecting LOG_APPENDED events from ``bus``."""
        self.detach()
        self._bus = bus
        self._subscription_id = bus.subscribe([EventType.LOG_APPENDED], self._on_log)
        return self

    def detach(self) -> None:
        if self._bus is not None and self._subscription_id is not None:
            self._bus.unsubscribe(self._subscription_id)
        self._bus = None
        self._subscription_id = None

    def clear(self) -> None:
        self._entries.clear()

    def lines(self) -> list[str]:
        return [entry.format() for entry in self._entries]

    async def _on_log(self, event: FlowEvent) -> None:
        self._entries.append(event.data["entry"])


@dataclass
class Notification:
    """A one-line summary of a finished run."""

    run_id: str
    message: str
    level: str  # "success" or "error"


class NotificationCollector:
    """Records the summary notification of every run published on a bus."""

    def __init__(self, bus: EventBus):
        self.notifications: list[Notification] = []
        bus.subscribe(list(SUMMARY_EVENT_TYPES), self._on_summary)

    async def _on_summary(self, event: FlowEvent) -> None:
        self.notifications.append(
            Notification(
                run_id=event.run_id,
                message=event.data["message"],
                level=event.data["level"],
            )
        )
