"""Topology controller: central mediator between node list and canvas UI.

Owns the live list of GraphElements and the BranchingHistory that
records it. Every completed edit commits exactly one history version;
canvas drags are batched so intermediate frames do not.
"""

from __future__ import annotations

import logging
from typing import Any

from PyQt6.QtCore import QObject, pyqtSignal

from graphedit.constants import NODE_KINDS
from graphedit.core.delta import copy_state
from graphedit.core.history import BranchingHistory
from graphedit.core.serializers import dicts_to_state, state_to_dicts
from graphedit.models.topology import BranchOption, DocumentState, GraphElement

logger = logging.getLogger(__name__)


class TopologyController(QObject):
    """Central mediator between the topology document and UI views.

    Signals use node ids (not list indices), since ids are stable
    across undo/redo while positions in the list are not.
    """

    # Full canvas rebuild needed (undo/redo/merge/load)
    topology_changed = pyqtSignal()
    node_added = pyqtSignal(int)
    node_removed = pyqtSignal(int)
    node_changed = pyqtSignal(int)
    # Undo/redo availability or branch options changed
    undo_state_changed = pyqtSignal()

    def __init__(
        self,
        nodes: DocumentState | None = None,
        parent: QObject | None = None,
        **history_options: Any,
    ):
        super().__init__(parent)
        self._nodes: DocumentState = copy_state(nodes or [])
        self._history = BranchingHistory(self._nodes, **history_options)
        self._updating: bool = False
        self._dragging: bool = False

    # ------------------------------------------------------------------
    # Properties
    # ------------------------------------------------------------------

    @property
    def nodes(self) -> DocumentState:
        """Current node list (read-only reference)."""
        return self._nodes

    @property
    def history(self) -> BranchingHistory:
        return self._history

    @property
    def is_dragging(self) -> bool:
        return self._dragging

    def node(self, node_id: int) -> GraphElement | None:
        for n in self._nodes:
            if n.id == node_id:
                return n
        return None

    # ------------------------------------------------------------------
    # Document load / export
    # ------------------------------------------------------------------

    def load_topology(self, nodes: DocumentState) -> None:
        """Replace the document and start a fresh history."""
        self._nodes = copy_state(nodes)
        self._dragging = False
        self._history.reset(self._nodes)
        self.topology_changed.emit()
        self.undo_state_changed.emit()

    def load_topology_dicts(self, data: list[dict]) -> None:
        self.load_topology(dicts_to_state(data))

    def topology_dicts(self) -> list[dict]:
        return state_to_dicts(self._nodes)

    # ------------------------------------------------------------------
    # Node mutations
    # ------------------------------------------------------------------

    def add_node(
        self, kind: str, x: float, y: float, fields: dict[str, Any] | None = None,
    ) -> int | None:
        """Place a new node of *kind*. Returns its id, or None if rejected."""
        if self._updating:
            return None
        if self._rejected_during_drag("Add"):
            return None
        if kind not in NODE_KINDS:
            logger.warning("Unknown node kind rejected: %s", kind)
            return None
        self._updating = True
        try:
            node_id = max((n.id for n in self._nodes), default=0) + 1
            self._nodes.append(GraphElement(
                id=node_id, kind=kind, x=x, y=y, fields=dict(fields or {}),
            ))
            self._commit(f"Add {kind}")
            self.node_added.emit(node_id)
            return node_id
        finally:
            self._updating = False

    def remove_node(self, node_id: int) -> None:
        if self._updating:
            return
        if self._rejected_during_drag("Remove"):
            return
        target = self.node(node_id)
        if target is None:
            logger.warning("Remove ignored, no node with id %d", node_id)
            return
        self._updating = True
        try:
            self._nodes = [n for n in self._nodes if n.id != node_id]
            self._commit(f"Remove {target.kind}")
            self.node_removed.emit(node_id)
        finally:
            self._updating = False

    def move_node(self, node_id: int, x: float, y: float) -> None:
        """Move a node. During a drag the move is not committed."""
        if self._updating:
            return
        target = self.node(node_id)
        if target is None:
            logger.warning("Move ignored, no node with id %d", node_id)
            return
        self._updating = True
        try:
            target.x = x
            target.y = y
            if not self._dragging:
                self._commit(f"Move {target.kind}")
            self.node_changed.emit(node_id)
        finally:
            self._updating = False

    def set_node_field(self, node_id: int, key: str, value: Any) -> None:
        if self._updating:
            return
        if self._rejected_during_drag("Field edit"):
            return
        target = self.node(node_id)
        if target is None:
            logger.warning("Field edit ignored, no node with id %d", node_id)
            return
        self._updating = True
        try:
            target.fields[key] = value
            self._commit(f"Set {key} on {target.kind}")
            self.node_changed.emit(node_id)
        finally:
            self._updating = False

    # -- Drag batching --

    def begin_drag(self) -> None:
        """Start a canvas drag: moves are applied but not recorded.

        Other edits are rejected until ``end_drag``.
        """
        self._dragging = True

    def end_drag(self, description: str = "Move nodes") -> None:
        """Finish a drag and record the final positions as one version."""
        if not self._dragging:
            return
        self._dragging = False
        self._commit(description)

    # ------------------------------------------------------------------
    # Undo / Redo / Merge
    # ------------------------------------------------------------------

    @property
    def can_undo(self) -> bool:
        return self._history.can_undo

    @property
    def can_redo(self) -> bool:
        return self._history.can_redo

    def branch_options(self) -> list[BranchOption]:
        return self._history.get_branch_options()

    def undo(self) -> None:
        """Revert to the previous version."""
        self._restore(self._history.undo())

    def redo(self, choice_index: int = 0) -> None:
        """Re-apply the future at *choice_index* (0 = first recorded)."""
        self._restore(self._history.redo(choice_index))

    def merge_branches(self, source_index: int, target_index: int) -> bool:
        """Merge two redo futures into a new version; True on success."""
        merged = self._history.merge_branch(source_index, target_index)
        self._restore(merged)
        return merged is not None

    def conflicting_nodes(self, source_index: int, target_index: int) -> list[int]:
        """Ids both futures modify; the target's edits win when merged."""
        return self._history.overlapping_modifications(source_index, target_index) or []

    # ------------------------------------------------------------------
    # Private helpers
    # ------------------------------------------------------------------

    def _commit(self, description: str) -> None:
        self._history.push(self._nodes, description)
        self.undo_state_changed.emit()

    def _rejected_during_drag(self, action: str) -> bool:
        if not self._dragging:
            return False
        logger.warning("%s rejected, drag in progress", action)
        return True

    def _restore(self, state: DocumentState | None) -> None:
        if state is None:
            return
        self._nodes = state
        self._dragging = False
        self.topology_changed.emit()
        self.undo_state_changed.emit()
