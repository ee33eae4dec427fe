"""Diagram persistence."""

from flowdiagram.storage.diagram_store import DiagramStore, load_diagram_file, parse_diagram

__all__ = ["DiagramStore", "load_diagram_file", "parse_diagram"]
