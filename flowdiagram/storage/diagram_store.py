"""
Diagram Store - Saves and loads a diagram under a single named key.

Layout:
  {base_path}/{key}.json     # {"nodes": [...], "edges": [...]}

The engine never reads or writes this store; it is used by the editor and
the CLI to keep the diagram between sessions.
"""

import asyncio
import json
import logging
import re
from pathlib import Path

from pydantic import ValidationError

from flowdiagram.config import DEFAULT_STORAGE_KEY, RuntimeConfig, get_storage_dir
from flowdiagram.errors import DiagramNotFoundError, GraphValidationError
from flowdiagram.schemas.diagram import Diagram
from flowdiagram.utils.io import atomic_write

logger = logging.getLogger(__name__)

_KEY_PATTERN = re.compile(r"^[A-Za-z0-9_.-]+$")


def parse_diagram(text: str, source: str = "<string>") -> Diagram:
    """
    Parse a ``{"nodes": [...], "edges": [...]}`` JSON document.

    Raises:
        GraphValidationError: if the text is not valid JSON or not a diagram
    """
    try:
        data = json.loads(text)
    except json.JSONDecodeError as e:
        raise GraphValidationError(f"{source} is not valid JSON: {e}") from e
    if not isinstance(data, dict):
        raise GraphValidationError(f"{source} must contain a JSON object with nodes and edges")
    try:
        return Diagram.model_validate(
            {"nodes": data.get("nodes") or [], "edges": data.get("edges") or []}
        )
    except ValidationError as e:
        raise GraphValidationError(f"{source} is not a valid diagram: {e}") from e


def load_diagram_file(path: Path) -> Diagram:
    """Read a diagram from any JSON file (used by the CLI)."""
    path = Path(path)
    if not path.exists():
        raise DiagramNotFoundError(f"No diagram at {path}")
    return parse_diagram(path.read_text(encoding="utf-8"), source=str(path))


class DiagramStore:
    """
    Keeps one diagram per key on disk.

    Example:
        store = DiagramStore()  # configured storage dir
        await store.save(diagram)
        diagram = await store.load()
    """

    def __init__(self, base_path: Path | None = None, key: str = DEFAULT_STORAGE_KEY):
        """
        Initialize diagram store.

        Args:
            base_path: Directory the diagram file lives in. Defaults to the
                configured storage dir.
            key: Name of the saved diagram
        """
        if base_path is None:
            base_path = get_storage_dir()
        if not _KEY_PATTERN.match(key):
            raise ValueError(f"Invalid storage key: {key!r}")
        self.base_path = Path(base_path)
        self.key = key

    @classmethod
    def from_config(cls, config: RuntimeConfig) -> "DiagramStore":
        return cls(config.storage_dir, config.storage_key)

    @property
    def path(self) -> Path:
        return self.base_path / f"{self.key}.json"

    def exists(self) -> bool:
        return self.path.exists()

    async def save(self, diagram: Diagram) -> None:
        """Atomically write the diagram."""

        def _write():
            self.path.parent.mkdir(parents=True, exist_ok=True)
            with atomic_write(self.path) as f:
                f.write(json.dumps(diagram.to_payload(), indent=2))

        await asyncio.to_thread(_write)
        logger.debug(f"Saved diagram {self.key} ({len(diagram.nodes)} nodes)")

    async def load(self) -> Diagram:
        """
        Read the saved diagram.

        Raises:
            DiagramNotFoundError: if nothing was saved under this key
            GraphValidationError: if the saved file is corrupt
        """

        def _read() -> str:
            if not self.path.exists():
                raise DiagramNotFoundError(f"No diagram saved under {self.key!r}")
            return self.path.read_text(encoding="utf-8")

        text = await asyncio.to_thread(_read)
        return parse_diagram(text, source=str(self.path))

    async def delete(self) -> bool:
        """Remove the saved diagram; returns False if there was none."""

        def _delete() -> bool:
            if not self.path.exists():
                return False
            self.path.unlink()
            return True

        return await asyncio.to_thread(_delete)
