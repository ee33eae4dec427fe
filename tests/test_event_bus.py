"""Tests for the EventBus and the log views subscribed to it."""

import pytest

from flowdiagram.config import CyclePolicy, RuntimeConfig
from flowdiagram.graph.executor import FlowExecutor
from flowdiagram.runtime.event_bus import EventBus, EventType, FlowEvent
from flowdiagram.runtime.run_log import NotificationCollector, RunLogBuffer
from flowdiagram.schemas.run import LogEntry


class TestEventBus:
    @pytest.mark.asyncio
    async def test_handlers_receive_matching_events_in_order(self):
        bus = EventBus()
        received = []

        async def handler(event: FlowEvent):
            received.append((event.type, event.run_id))

        bus.subscribe([EventType.RUN_STARTED, EventType.RUN_SUCCEEDED], handler)

        await bus.emit_run_started("r1", node_count=2)
        await bus.emit_log_appended("r1", LogEntry(text="ignored"))
        await bus.emit_run_summary(EventType.RUN_SUCCEEDED, "r1", "Execution complete", "success")

        assert received == [(EventType.RUN_STARTED, "r1"), (EventType.RUN_SUCCEEDED, "r1")]

    @pytest.mark.asyncio
    async def test_run_filter(self):
        bus = EventBus()
        received = []

        async def handler(event):
            received.append(event.run_id)

        bus.subscribe([EventType.RUN_STARTED], handler, filter_run="wanted")
        await bus.emit_run_started("other", 1)
        await bus.emit_run_started("wanted", 1)

        assert received == ["wanted"]

    @pytest.mark.asyncio
    async def test_unsubscribe(self):
        bus = EventBus()
        received = []

        async def handler(event):
            received.append(event)

        sub_id = bus.subscribe([EventType.CUSTOM], handler)
        assert bus.unsubscribe(sub_id) is True
        assert bus.unsubscribe(sub_id) is False

        await bus.publish(FlowEvent(type=EventType.CUSTOM, run_id="r"))
        assert received == []

    @pytest.mark.asyncio
    async def test_history_is_bounded(self):
        bus = EventBus(max_history=3)
        for i in range(5):
            await bus.emit_run_started(f"r{i}", 0)

        assert [e.run_id for e in bus.get_history()] == ["r2", "r3", "r4"]
        assert [e.run_id for e in bus.get_history(run_id="r4")] == ["r4"]

    @pytest.mark.asyncio
    async def test_summary_requires_summary_type(self):
        with pytest.raises(ValueError):
            await EventBus().emit_run_summary(EventType.LOG_APPENDED, "r", "m", "info")

    def test_event_to_dict(self):
        event = FlowEvent(type=EventType.RUN_FAILED, run_id="r", node_id="n", data={"a": 1})
        data = event.to_dict()
        assert data["type"] == "run_failed"
        assert data["node_id"] == "n"
        assert isinstance(data["timestamp"], str)


class TestRunLogBuffer:
    @pytest.mark.asyncio
    async def test_keeps_last_entries_across_runs(self):
        bus = EventBus()
        buffer = RunLogBuffer(max_entries=4).attach(bus)
        executor = FlowExecutor(
            event_bus=bus, config=RuntimeConfig(cycle_policy=CyclePolicy.IGNORE)
        )

        await executor.run([{"id": "a", "type": "input"}])
        result = await executor.run([{"id": "b", "type": "output"}])

        assert len(buffer) == 4
        assert buffer.entries == result.entries[-4:]

    @pytest.mark.asyncio
    async def test_clear_and_detach(self):
        bus = EventBus()
        buffer = RunLogBuffer().attach(bus)
        await bus.emit_log_appended("r", LogEntry(text="one"))
        buffer.clear()
        buffer.detach()
        await bus.emit_log_appended("r", LogEntry(text="two"))

        assert buffer.entries == []

    @pytest.mark.asyncio
    async def test_lines_are_timestamped(self):
        bus = EventBus()
        buffer = RunLogBuffer().attach(bus)
        await bus.emit_log_appended("r", LogEntry(text="hello"))

        [line] = buffer.lines()
        assert line.startswith("[")
        assert line.endswith("] hello")

    def test_rejects_non_positive_size(self):
        with pytest.raises(ValueError):
            RunLogBuffer(max_entries=0)


class TestNotificationCollector:
    @pytest.mark.asyncio
    async def test_collects_one_notification_per_run(self):
        bus = EventBus()
        collector = NotificationCollector(bus)
        executor = FlowExecutor(
            event_bus=bus, config=RuntimeConfig(cycle_policy=CyclePolicy.IGNORE)
        )

        await executor.run([])
        await executor.run([{"id": "a", "type": "input"}])

        assert [(n.message, n.level) for n in collector.notifications] == [
            ("No nodes to execute", "error"),
            ("Execution complete", "success"),
        ]
