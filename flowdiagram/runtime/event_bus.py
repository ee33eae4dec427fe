"""
Event Bus - Pub/sub delivery of run progress to whoever is watching.

The engine never renders anything. Instead the FlowExecutor publishes:
- one LOG_APPENDED event per log entry, in execution order
- exactly one summary event per run (RUN_SUCCEEDED, RUN_FAILED or RUN_EMPTY)

Log panels, toasts and the CLI subscribe to the events they care about.
"""

import asyncio
import logging
from collections.abc import Awaitable, Callable
from dataclasses import dataclass, field
from datetime import datetime
from enum import StrEnum
from typing import Any

logger = logging.getLogger(__name__)


class EventType(StrEnum):
    """Types of events that can be published."""

    # Run lifecycle
    RUN_STARTED = "run_started"

    # Streaming trace
    LOG_APPENDED = "log_appended"

    # Run summary (one per run)
    RUN_SUCCEEDED = "run_succeeded"
    RUN_FAILED = "run_failed"
    RUN_EMPTY = "run_empty"

    # Custom events
    CUSTOM = "custom"


SUMMARY_EVENT_TYPES = frozenset(
    {EventType.RUN_SUCCEEDED, EventType.RUN_FAILED, EventType.RUN_EMPTY}
)


@dataclass
class FlowEvent:
    """An event emitted while running a flow."""

    type: EventType
    run_id: str
    node_id: str | None = None  # Which node the event is about
    data: dict[str, Any] = field(default_factory=dict)
    timestamp: datetime = field(default_factory=datetime.now)

    def to_dict(self) -> dict:
        """Convert to dictionary for serialization."""
        return {
            "type": self.type.value,
            "run_id": self.run_id,
            "node_id": self.node_id,
            "data": self.data,
            "timestamp": self.timestamp.isoformat(),
        }


# Type for event handlers
EventHandler = Callable[[FlowEvent], Awaitable[None]]


@dataclass
class Subscription:
    """A subscription to events."""

    id: str
    event_types: set[EventType]
    handler: EventHandler
    filter_run: str | None = None  # Only receive events from this run
    filter_node: str | None = None  # Only receive events about this node


class EventBus:
    """
    Pub/sub event bus for run observers.

    Handlers are awaited in subscription order, one at a time, so observers
    see events in the order they were published. A failing handler is logged
    and never interrupts the run.

    Example:
        bus = EventBus()

        async def on_summary(event: FlowEvent):
            print(event.data["message"])

        bus.subscribe(event_types=list(SUMMARY_EVENT_TYPES), handler=on_summary)
    """

    def __init__(self, max_history: int = 1000):
        """
        Initialize event bus.

        Args:
            max_history: Maximum events to keep in history
        """
        self._subscriptions: dict[str, Subscription] = {}
        self._event_history: list[FlowEvent] = []
        self._max_history = max_history
        self._subscription_counter = 0
        self._lock = asyncio.Lock()

    def subscribe(
        self,
        event_types: list[EventType],
        handler: EventHandler,
        filter_run: str | None = None,
        filter_node: str | None = None,
    ) -> str:
        """
        Subscribe to events.

        Args:
            event_types: Types of events to receive
            handler: Async function to call when event occurs
            filter_run: Only receive events from this run
            filter_node: Only receive events about this node

        Returns:
            Subscription ID (use to unsubscribe)
        """
        self._subscription_counter += 1
        sub_id = f"sub_{self._subscription_counter}"

        self._subscriptions[sub_id] = Subscription(
            id=sub_id,
            event_types=set(event_types),
            handler=handler,
            filter_run=filter_run,
            filter_node=filter_node,
        )
        logger.debug(f"Subscription {sub_id} registered for {event_types}")

        return sub_id

    def unsubscribe(self, subscription_id: str) -> bool:
        """
        Unsubscribe from events.

        Returns:
            True if subscription was found and removed
        """
        if subscription_id in self._subscriptions:
            del self._subscriptions[subscription_id]
            logger.debug(f"Subscription {subscription_id} removed")
            return True
        return False

    async def publish(self, event: FlowEvent) -> None:
        """Publish an event to all matching subscribers."""
        async with self._lock:
            self._event_history.append(event)
            if len(self._event_history) > self._max_history:
                self._event_history = self._event_history[-self._max_history :]

        handlers = [
            subscription.handler
            for subscription in list(self._subscriptions.values())
            if self._matches(subscription, event)
        ]
        for handler in handlers:
            try:
                await handler(event)
            except Exception as e:
                logger.error(f"Handler error for {event.type}: {e}")

    def _matches(self, subscription: Subscription, event: FlowEvent) -> bool:
        """Check if a subscription matches an event."""
        if event.type not in subscription.event_types:
            return False

        if subscription.filter_run and subscription.filter_run != event.run_id:
            return False

        if subscription.filter_node and subscription.filter_node != event.node_id:
            return False

        return True

    def get_history(
        self,
        event_type: EventType | None = None,
        run_id: str | None = None,
        limit: int = 100,
    ) -> list[FlowEvent]:
        """Most recent events, optionally filtered, oldest first."""
        events = [
            event
            for event in self._event_history
            if (event_type is None or event.type == event_type)
            and (run_id is None or event.run_id == run_id)
        ]
        return events[-limit:]

    def clear_history(self) -> None:
        self._event_history.clear()

    # === CONVENIENCE PUBLISHERS ===

    async def emit_run_started(self, run_id: str, node_count: int) -> None:
        """Emit run started event."""
        await self.publish(
            FlowEvent(
                type=EventType.RUN_STARTED,
                run_id=run_id,
                data={"node_count": node_count},
            )
        )

    async def emit_log_appended(self, run_id: str, entry: Any) -> None:
        """Emit one log entry (a LogEntry) as it is produced."""
        await self.publish(
            FlowEvent(
                type=EventType.LOG_APPENDED,
                run_id=run_id,
                node_id=entry.node_id,
                data={"entry": entry},
                timestamp=entry.timestamp,
            )
        )

    async def emit_run_summary(
        self,
        event_type: EventType,
        run_id: str,
        message: str,
        level: str,
        node_id: str | None = None,
    ) -> None:
        """Emit the single summary notification for a run."""
        if event_type not in SUMMARY_EVENT_TYPES:
            raise ValueError(f"{event_type} is not a summary event")
        await self.publish(
            FlowEvent(
                type=event_type,
                run_id=run_id,
                node_id=node_id,
                data={"message": message, "level": level},
            )
        )
