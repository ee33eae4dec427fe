"""Run observers: the event bus and the log views fed from it."""

from flowdiagram.runtime.event_bus import SUMMARY_EVENT_TYPES, EventBus, EventType, FlowEvent
from flowdiagram.runtime.run_log import Notification, NotificationCollector, RunLogBuffer

__all__ = [
    "EventBus",
    "EventType",
    "FlowEvent",
    "SUMMARY_EVENT_TYPES",
    "RunLogBuffer",
    "Notification",
    "NotificationCollector",
]
