"""Tests for TopologyController: node edits driving the branching history.

Tests mutation methods, signal emissions, drag batching, undo/redo
across branches and merge passthrough.
"""

import os
import sys

os.environ.setdefault("QT_QPA_PLATFORM", "offscreen")

import pytest
from unittest.mock import MagicMock

from PyQt6.QtWidgets import QApplication

from graphedit.models.topology import GraphElement
from graphedit.ui.canvas.topology_controller import TopologyController

# QApplication instance needed for QObject / signals
_app = QApplication.instance() or QApplication(sys.argv)


class TestControllerDefaults:

    def setup_method(self):
        self.ctrl = TopologyController()

    def test_empty_document(self):
        assert self.ctrl.nodes == []
        assert not self.ctrl.can_undo
        assert not self.ctrl.can_redo

    def test_initial_nodes_copied(self):
        nodes = [GraphElement(id=1, kind="redis")]
        ctrl = TopologyController(nodes)
        nodes[0].x = 50
        assert ctrl.nodes[0].x == 0


class TestNodeEdits:

    def setup_method(self):
        self.ctrl = TopologyController()

    def test_add_node_assigns_next_id(self):
        first = self.ctrl.add_node("redis", 0, 0)
        second = self.ctrl.add_node("mongo", 100, 0)
        assert (first, second) == (1, 2)
        assert [n.kind for n in self.ctrl.nodes] == ["redis", "mongo"]
        assert self.ctrl.history.size == 3

    def test_add_unknown_kind_rejected(self):
        assert self.ctrl.add_node("postgres", 0, 0) is None
        assert self.ctrl.nodes == []
        assert not self.ctrl.can_undo

    def test_add_emits_signals(self):
        added = MagicMock()
        state = MagicMock()
        self.ctrl.node_added.connect(added)
        self.ctrl.undo_state_changed.connect(state)
        node_id = self.ctrl.add_node("redis", 0, 0)
        added.assert_called_once_with(node_id)
        state.assert_called()

    def test_remove_node(self):
        node_id = self.ctrl.add_node("redis", 0, 0)
        spy = MagicMock()
        self.ctrl.node_removed.connect(spy)
        self.ctrl.remove_node(node_id)
        assert self.ctrl.nodes == []
        spy.assert_called_once_with(node_id)
        assert self.ctrl.history.description == "Remove redis"

    def test_remove_unknown_id_ignored(self):
        self.ctrl.add_node("redis", 0, 0)
        size = self.ctrl.history.size
        self.ctrl.remove_node(99)
        assert self.ctrl.history.size == size

    def test_set_node_field(self):
        node_id = self.ctrl.add_node("redis", 0, 0)
        spy = MagicMock()
        self.ctrl.node_changed.connect(spy)
        self.ctrl.set_node_field(node_id, "password", "s3cret")
        assert self.ctrl.node(node_id).fields == {"password": "s3cret"}
        spy.assert_called_once_with(node_id)

    def test_same_field_value_is_not_recorded(self):
        node_id = self.ctrl.add_node("redis", 0, 0, {"password": "a"})
        size = self.ctrl.history.size
        self.ctrl.set_node_field(node_id, "password", "a")
        assert self.ctrl.history.size == size


class TestDragBatching:

    def setup_method(self):
        self.ctrl = TopologyController()
        self.node_id = self.ctrl.add_node("docker", 0, 0)

    def test_drag_frames_commit_once(self):
        size = self.ctrl.history.size
        self.ctrl.begin_drag()
        for x in range(10, 100, 10):
            self.ctrl.move_node(self.node_id, x, 0)
        assert self.ctrl.history.size == size
        self.ctrl.end_drag()
        assert self.ctrl.history.size == size + 1
        assert self.ctrl.history.description == "Move nodes"

    def test_undo_after_drag_restores_start(self):
        self.ctrl.begin_drag()
        self.ctrl.move_node(self.node_id, 10, 10)
        self.ctrl.move_node(self.node_id, 80, 30)
        self.ctrl.end_drag("Drag docker")
        self.ctrl.undo()
        assert (self.ctrl.node(self.node_id).x, self.ctrl.node(self.node_id).y) == (0, 0)

    def test_end_drag_without_begin_is_noop(self):
        size = self.ctrl.history.size
        self.ctrl.end_drag()
        assert self.ctrl.history.size == size

    def test_other_edits_rejected_during_drag(self):
        size = self.ctrl.history.size
        self.ctrl.begin_drag()
        self.ctrl.move_node(self.node_id, 50, 0)
        assert self.ctrl.add_node("redis", 0, 0) is None
        self.ctrl.set_node_field(self.node_id, "image", "nginx")
        self.ctrl.remove_node(self.node_id)
        assert self.ctrl.history.size == size
        assert [n.id for n in self.ctrl.nodes] == [self.node_id]
        assert self.ctrl.node(self.node_id).fields == {}
        self.ctrl.end_drag()
        assert self.ctrl.history.size == size + 1
        assert self.ctrl.history.description == "Move nodes"

    def test_undo_of_drag_keeps_other_state(self):
        self.ctrl.begin_drag()
        self.ctrl.move_node(self.node_id, 50, 0)
        self.ctrl.set_node_field(self.node_id, "image", "nginx")
        self.ctrl.end_drag()
        self.ctrl.undo()
        assert self.ctrl.node(self.node_id).x == 0
        assert self.ctrl.history.description == "Add docker"

    def test_edits_accepted_after_drag(self):
        self.ctrl.begin_drag()
        self.ctrl.move_node(self.node_id, 50, 0)
        self.ctrl.end_drag()
        self.ctrl.set_node_field(self.node_id, "image", "nginx")
        assert self.ctrl.node(self.node_id).fields == {"image": "nginx"}
        assert self.ctrl.history.description == "Set image on docker"

    def test_single_move_commits(self):
        self.ctrl.move_node(self.node_id, 40, 0)
        assert self.ctrl.history.description == "Move docker"


class TestUndoRedo:

    def setup_method(self):
        self.ctrl = TopologyController()
        self.node_id = self.ctrl.add_node("redis", 0, 0, {"password": "a"})

    def test_undo_redo_move(self):
        self.ctrl.move_node(self.node_id, 40, 0)
        self.ctrl.undo()
        assert self.ctrl.node(self.node_id).x == 0
        self.ctrl.redo()
        assert self.ctrl.node(self.node_id).x == 40

    def test_undo_emits_topology_changed(self):
        spy = MagicMock()
        self.ctrl.topology_changed.connect(spy)
        self.ctrl.undo()
        spy.assert_called_once()

    def test_undo_at_root_emits_nothing(self):
        self.ctrl.undo()
        spy = MagicMock()
        self.ctrl.topology_changed.connect(spy)
        self.ctrl.undo()
        spy.assert_not_called()

    def test_edit_after_undo_creates_branch(self):
        self.ctrl.move_node(self.node_id, 40, 0)
        self.ctrl.undo()
        self.ctrl.move_node(self.node_id, 0, 90)
        self.ctrl.undo()
        options = self.ctrl.branch_options()
        assert [o.index for o in options] == [0, 1]
        self.ctrl.redo(1)
        assert self.ctrl.node(self.node_id).y == 90

    def test_restored_nodes_can_be_edited_safely(self):
        self.ctrl.move_node(self.node_id, 40, 0)
        self.ctrl.undo()
        self.ctrl.node(self.node_id).fields["password"] = "mutated"
        self.ctrl.redo()
        self.ctrl.undo()
        assert self.ctrl.node(self.node_id).fields["password"] == "a"


class TestMerge:

    def setup_method(self):
        self.ctrl = TopologyController()
        self.node_id = self.ctrl.add_node("redis", 0, 0)
        self.ctrl.move_node(self.node_id, 100, 0)
        self.ctrl.undo()
        self.ctrl.move_node(self.node_id, 0, 200)
        self.ctrl.undo()

    def test_merge_branches(self):
        assert self.ctrl.merge_branches(0, 1)
        node = self.ctrl.node(self.node_id)
        assert (node.x, node.y) == (100, 200)
        assert self.ctrl.history.description == "Merged: Move redis + Move redis"

    def test_merge_invalid(self):
        assert not self.ctrl.merge_branches(0, 3)

    def test_conflicting_nodes(self):
        assert self.ctrl.conflicting_nodes(0, 1) == [self.node_id]
        assert self.ctrl.conflicting_nodes(0, 0) == []


class TestLoadTopology:

    def test_load_resets_history(self):
        ctrl = TopologyController()
        ctrl.add_node("redis", 0, 0)
        spy = MagicMock()
        ctrl.topology_changed.connect(spy)
        ctrl.load_topology_dicts([
            {"id": 5, "type": "node", "x": 10, "y": 10, "fields": {"image": "node:20"}},
        ])
        spy.assert_called_once()
        assert not ctrl.can_undo
        assert ctrl.history.size == 1
        assert ctrl.topology_dicts() == [
            {"id": 5, "type": "node", "x": 10, "y": 10, "fields": {"image": "node:20"}},
        ]

    @pytest.mark.parametrize("existing", [[], [GraphElement(id=3, kind="mongo")]])
    def test_next_id_after_load(self, existing):
        ctrl = TopologyController()
        ctrl.load_topology(existing)
        node_id = ctrl.add_node("redis", 0, 0)
        assert node_id == max([e.id for e in existing], default=0) + 1
