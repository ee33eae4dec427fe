"""Shared flowdiagram configuration.

Reads ~/.flowdiagram/configuration.json, with environment variables taking
precedence, so the CLI and embedding applications resolve settings the same
way.
"""

import json
import os
from dataclasses import dataclass, field
from enum import StrEnum
from pathlib import Path
from typing import Any

DEFAULT_MAX_LOG_ENTRIES = 120
DEFAULT_STORAGE_KEY = "flowdiagram-app-state"

# ---------------------------------------------------------------------------
# Low-level config file access
# ---------------------------------------------------------------------------

FLOWDIAGRAM_HOME = Path.home() / ".flowdiagram"
FLOWDIAGRAM_CONFIG_FILE = FLOWDIAGRAM_HOME / "configuration.json"


def get_flowdiagram_config(path: Path | None = None) -> dict[str, Any]:
    """Load configuration from ~/.flowdiagram/configuration.json."""
    config_file = path or FLOWDIAGRAM_CONFIG_FILE
    if not config_file.exists():
        return {}
    try:
        with open(config_file, encoding="utf-8-sig") as f:
            data = json.load(f)
    except (json.JSONDecodeError, OSError):
        return {}
    return data if isinstance(data, dict) else {}


def get_config_section(name: str) -> dict[str, Any]:
    """Return one top-level section of the config file, or {} if it is not an object."""
    section = get_flowdiagram_config().get(name)
    return section if isinstance(section, dict) else {}


class CyclePolicy(StrEnum):
    """What a run does when the graph contains a cycle."""

    IGNORE = "ignore"  # Cycles are broken silently; cycle-only nodes never run
    ERROR = "error"  # The run fails with a "Cycle detected" entry


# ---------------------------------------------------------------------------
# Derived helpers
# ---------------------------------------------------------------------------


def get_cycle_policy() -> CyclePolicy:
    """Return the configured cycle policy, falling back to IGNORE."""
    raw = os.environ.get("FLOWDIAGRAM_CYCLE_POLICY") or get_config_section("execution").get(
        "cycle_policy"
    )
    try:
        return CyclePolicy(str(raw).lower()) if raw else CyclePolicy.IGNORE
    except ValueError:
        return CyclePolicy.IGNORE


def get_max_log_entries() -> int:
    """Return how many log entries a log panel keeps."""
    value = get_config_section("log").get("max_entries", DEFAULT_MAX_LOG_ENTRIES)
    if isinstance(value, bool) or not isinstance(value, int) or value < 1:
        return DEFAULT_MAX_LOG_ENTRIES
    return value


def get_storage_dir() -> Path:
    """Return the directory diagrams are saved to."""
    raw = os.environ.get("FLOWDIAGRAM_STORAGE_DIR") or get_config_section("storage").get("dir")
    if isinstance(raw, str) and raw:
        return Path(raw).expanduser()
    return FLOWDIAGRAM_HOME / "diagrams"


# ---------------------------------------------------------------------------
# RuntimeConfig
# ---------------------------------------------------------------------------


@dataclass
class RuntimeConfig:
    """Execution settings loaded from ~/.flowdiagram/configuration.json."""

    cycle_policy: CyclePolicy = field(default_factory=get_cycle_policy)
    max_log_entries: int = field(default_factory=get_max_log_entries)
    storage_dir: Path = field(default_factory=get_storage_dir)
    storage_key: str = DEFAULT_STORAGE_KEY
    # Restrict scripts to the safe builtins table
    restrict_builtins: bool = True
