"""Tests for configuration loading."""

import json
from pathlib import Path

import pytest

from flowdiagram import config
from flowdiagram.config import CyclePolicy, RuntimeConfig
from flowdiagram.graph.executor import FlowExecutor
from flowdiagram.runtime.event_bus import EventBus
from flowdiagram.runtime.run_log import RunLogBuffer
from flowdiagram.schemas.diagram import Diagram
from flowdiagram.schemas.run import LogEntry
from flowdiagram.storage.diagram_store import DiagramStore


@pytest.fixture
def config_file(tmp_path: Path, monkeypatch):
    path = tmp_path / "configuration.json"
    monkeypatch.setattr(config, "FLOWDIAGRAM_CONFIG_FILE", path)
    monkeypatch.setattr(config, "FLOWDIAGRAM_HOME", tmp_path)
    monkeypatch.delenv("FLOWDIAGRAM_CYCLE_POLICY", raising=False)
    monkeypatch.delenv("FLOWDIAGRAM_STORAGE_DIR", raising=False)
    return path


class TestRuntimeConfig:
    def test_defaults_without_file(self, config_file: Path, tmp_path: Path):
        cfg = RuntimeConfig()
        assert cfg.cycle_policy == CyclePolicy.IGNORE
        assert cfg.max_log_entries == 120
        assert cfg.storage_dir == tmp_path / "diagrams"
        assert cfg.storage_key == "flowdiagram-app-state"

    def test_values_from_file(self, config_file: Path, tmp_path: Path):
        config_file.write_text(
            json.dumps(
                {
                    "execution": {"cycle_policy": "error"},
                    "log": {"max_entries": 50},
                    "storage": {"dir": str(tmp_path / "saved")},
                }
            )
        )
        cfg = RuntimeConfig()
        assert cfg.cycle_policy == CyclePolicy.ERROR
        assert cfg.max_log_entries == 50
        assert cfg.storage_dir == tmp_path / "saved"

    def test_environment_overrides_file(self, config_file: Path, monkeypatch):
        config_file.write_text(json.dumps({"execution": {"cycle_policy": "error"}}))
        monkeypatch.setenv("FLOWDIAGRAM_CYCLE_POLICY", "IGNORE")
        assert RuntimeConfig().cycle_policy == CyclePolicy.IGNORE

    def test_corrupt_file_ignored(self, config_file: Path):
        config_file.write_text("{oops")
        assert config.get_flowdiagram_config() == {}
        assert RuntimeConfig().cycle_policy == CyclePolicy.IGNORE

    def test_invalid_values_fall_back(self, config_file: Path):
        config_file.write_text(
            json.dumps({"execution": {"cycle_policy": "panic"}, "log": {"max_entries": -3}})
        )
        cfg = RuntimeConfig()
        assert cfg.cycle_policy == CyclePolicy.IGNORE
        assert cfg.max_log_entries == 120

    def test_non_object_sections_ignored(self, config_file: Path):
        config_file.write_text(json.dumps({"execution": "error", "log": [5], "storage": 3}))
        cfg = RuntimeConfig()
        assert cfg.cycle_policy == CyclePolicy.IGNORE
        assert cfg.max_log_entries == 120
        assert cfg.storage_dir == config.FLOWDIAGRAM_HOME / "diagrams"

    def test_executor_builds_with_malformed_file(self, config_file: Path):
        config_file.write_text(json.dumps({"execution": None, "storage": {"dir": 7}}))
        assert FlowExecutor().config.cycle_policy == CyclePolicy.IGNORE


class TestConfiguredDefaults:
    @pytest.mark.asyncio
    async def test_log_buffer_uses_configured_size(self, config_file: Path):
        config_file.write_text(json.dumps({"log": {"max_entries": 5}}))
        bus = EventBus()
        buffer = RunLogBuffer().attach(bus)

        for i in range(8):
            await bus.emit_log_appended("r", LogEntry(text=f"line {i}"))

        assert [entry.text for entry in buffer.entries] == [f"line {i}" for i in range(3, 8)]

    def test_explicit_log_size_wins(self, config_file: Path):
        config_file.write_text(json.dumps({"log": {"max_entries": 5}}))
        buffer = RunLogBuffer(max_entries=2)
        assert buffer._entries.maxlen == 2

    @pytest.mark.asyncio
    async def test_store_saves_to_configured_dir(self, config_file: Path, tmp_path: Path):
        config_file.write_text(json.dumps({"storage": {"dir": str(tmp_path / "saved")}}))
        diagram = Diagram()
        diagram.add_node("input", node_id="a")

        await DiagramStore().save(diagram)

        assert (tmp_path / "saved" / "flowdiagram-app-state.json").exists()

    def test_store_from_config(self, config_file: Path, tmp_path: Path):
        cfg = RuntimeConfig(storage_dir=tmp_path / "elsewhere", storage_key="draft")
        store = DiagramStore.from_config(cfg)
        assert store.path == tmp_path / "elsewhere" / "draft.json"
