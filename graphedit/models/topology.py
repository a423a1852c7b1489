"""Topology data models for the node editor and its history.

A document is an ordered list of GraphElements. The history engine
only relies on element identity (``id``) and value equality; the
meaning of ``kind`` and ``fields`` belongs to the editor.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any


@dataclass
class GraphElement:
    """Single placed node on the canvas.

    Attributes:
        id: Stable identity, unique within one document state.
        kind: Node type tag (e.g. "redis"). Opaque to the history engine.
        x: Canvas X position [px].
        y: Canvas Y position [px].
        fields: Type-specific parameters (JSON-like values).
    """
    id: int = 0
    kind: str = ""
    x: float = 0.0
    y: float = 0.0
    fields: dict[str, Any] = field(default_factory=dict)


DocumentState = list[GraphElement]


@dataclass
class ElementChange:
    """Before/after pair for an element present on both sides of a delta."""
    id: int
    before: GraphElement
    after: GraphElement


@dataclass
class Delta:
    """Structural difference from a parent state to a child state."""
    added: list[GraphElement] = field(default_factory=list)
    removed: list[int] = field(default_factory=list)
    modified: list[ElementChange] = field(default_factory=list)

    @property
    def is_empty(self) -> bool:
        return not (self.added or self.removed or self.modified)

    @property
    def modified_ids(self) -> list[int]:
        return [change.id for change in self.modified]


@dataclass
class BranchOption:
    """Redo choice presented to the user when a version has several futures."""
    index: int
    description: str
    timestamp: datetime
