"""Branching undo/redo history: tree of document versions.

Each version stores a full copy of the document plus the delta from
its parent. Pushing after an undo does not discard the old future: the
new version becomes an additional child, so every node can have
several redo options. Two sibling futures can be merged into a new
child of the current version.

Pure Python class (no Qt dependency).

Usage::

    history = BranchingHistory(initial_nodes)
    history.push(nodes_after_edit, "Add redis")
    previous = history.undo()
    options = history.get_branch_options()
    following = history.redo(options[-1].index)
"""

from __future__ import annotations

import logging
import weakref
from dataclasses import dataclass, field
from datetime import datetime, timedelta
from typing import Callable

from graphedit.constants import (
    INITIAL_DESCRIPTION,
    MAX_NODE_AGE,
    MERGE_DESCRIPTION,
    PRUNE_THRESHOLD,
)
from graphedit.core.branch_merger import merge_states, overlapping_ids
from graphedit.core.delta import compute_delta, copy_state, states_equal
from graphedit.core.pruner import HistoryPruner, iter_nodes, path_to_root
from graphedit.models.topology import BranchOption, Delta, DocumentState

logger = logging.getLogger(__name__)


@dataclass(eq=False)
class HistoryNode:
    """Single version in the history tree.

    The node owns its ``state`` and ``children``. The parent link is a
    weak reference; ``parent`` returns None for the root or once the
    parent has been freed.
    """
    state: DocumentState
    delta: Delta | None
    description: str
    timestamp: datetime
    depth: int = 0
    children: list[HistoryNode] = field(default_factory=list)
    _parent_ref: weakref.ref | None = field(default=None, repr=False)

    @property
    def parent(self) -> HistoryNode | None:
        if self._parent_ref is None:
            return None
        return self._parent_ref()

    def add_child(self, child: HistoryNode) -> None:
        child._parent_ref = weakref.ref(self)
        child.depth = self.depth + 1
        self.children.append(child)


class BranchingHistory:
    """Tree-structured undo/redo manager for topology documents.

    Args:
        initial_state: Document at the root version (copied).
        prune_threshold: Node count above which pruning runs.
        max_age: Age after which off-path leaves may be swept.
        clock: Timestamp source for new versions and pruning.
    """

    def __init__(
        self,
        initial_state: DocumentState,
        *,
        prune_threshold: int = PRUNE_THRESHOLD,
        max_age: timedelta = MAX_NODE_AGE,
        clock: Callable[[], datetime] = datetime.now,
    ) -> None:
        self._prune_threshold = prune_threshold
        self._pruner = HistoryPruner(max_age)
        self._clock = clock
        self.reset(initial_state)

    def reset(self, initial_state: DocumentState) -> None:
        """Drop all versions and start over from ``initial_state``."""
        self._root = HistoryNode(
            state=copy_state(initial_state),
            delta=None,
            description=INITIAL_DESCRIPTION,
            timestamp=self._clock(),
        )
        self._current = self._root
        self._size = 1

    # ------------------------------------------------------------------
    # Inspection
    # ------------------------------------------------------------------

    @property
    def root(self) -> HistoryNode:
        return self._root

    @property
    def current(self) -> HistoryNode:
        return self._current

    @property
    def current_state(self) -> DocumentState:
        """Copy of the active version's document."""
        return copy_state(self._current.state)

    @property
    def description(self) -> str:
        return self._current.description

    @property
    def size(self) -> int:
        """Total number of versions in the tree."""
        return self._size

    @property
    def depth(self) -> int:
        """Distance of the active version from the root."""
        return self._current.depth

    @property
    def can_undo(self) -> bool:
        return self._current.parent is not None

    @property
    def can_redo(self) -> bool:
        return len(self._current.children) > 0

    @property
    def has_branches(self) -> bool:
        return len(self._current.children) > 1

    @property
    def branch_count(self) -> int:
        return len(self._current.children)

    def get_branch_options(self) -> list[BranchOption]:
        """Redo choices from the active version, oldest first."""
        return [
            BranchOption(index=i, description=child.description, timestamp=child.timestamp)
            for i, child in enumerate(self._current.children)
        ]

    def get_branch_descriptions(self) -> list[str]:
        return [child.description for child in self._current.children]

    def get_branches(self) -> list[DocumentState]:
        return [copy_state(child.state) for child in self._current.children]

    def get_current_path(self) -> list[DocumentState]:
        """Documents from the root to the active version, inclusive."""
        return [copy_state(n.state) for n in reversed(path_to_root(self._current))]

    def count_nodes(self) -> int:
        """Node count by full traversal (``size`` is the cached value)."""
        return sum(1 for _ in iter_nodes(self._root))

    # ------------------------------------------------------------------
    # Navigation
    # ------------------------------------------------------------------

    def push(self, state: DocumentState, description: str) -> None:
        """Record ``state`` as a new child of the active version.

        Ignored when ``state`` carries no change relative to the active
        version. Existing children stay in place as alternate futures.
        """
        if states_equal(state, self._current.state):
            logger.debug("Push skipped, state unchanged: %s", description)
            return

        delta = compute_delta(self._current.state, state)
        if delta.is_empty:
            logger.debug("Push skipped, reorder only: %s", description)
            return

        self._append_child(copy_state(state), delta, description)
        logger.debug(
            "Pushed '%s' (+%d -%d ~%d) at depth %d",
            description, len(delta.added), len(delta.removed),
            len(delta.modified), self._current.depth,
        )

        if self._size > self._prune_threshold:
            self._prune()

    def undo(self) -> DocumentState | None:
        """Move to the parent version.

        Returns:
            Copy of the parent's document, or None at the root.
        """
        parent = self._current.parent
        if parent is None:
            return None
        self._current = parent
        return copy_state(parent.state)

    def select_branch(self, index: int) -> DocumentState | None:
        """Move to child ``index`` of the active version.

        Returns:
            Copy of the child's document, or None if no such child.
        """
        if not 0 <= index < len(self._current.children):
            return None
        self._current = self._current.children[index]
        return copy_state(self._current.state)

    def redo(self, choice_index: int = 0) -> DocumentState | None:
        return self.select_branch(choice_index)

    # ------------------------------------------------------------------
    # Merge
    # ------------------------------------------------------------------

    def merge_branch(self, source_index: int, target_index: int) -> DocumentState | None:
        """Merge two children of the active version into a new child.

        The source delta is applied to the active document first, then
        the target delta; overlapping modifications resolve to the
        target's values.

        Returns:
            Copy of the merged document, or None if either index is
            invalid or both name the same child.
        """
        pair = self._sibling_pair(source_index, target_index)
        if pair is None:
            return None
        source, target = pair

        base = self._current.state
        merged = merge_states(base, source.delta, target.delta)
        description = MERGE_DESCRIPTION.format(
            source=source.description, target=target.description,
        )
        self._append_child(merged, compute_delta(base, merged), description)
        logger.debug("Merged branches %d and %d", source_index, target_index)
        return copy_state(merged)

    def overlapping_modifications(
        self, source_index: int, target_index: int,
    ) -> list[int] | None:
        """Element ids modified by both children (target wins on merge).

        Returns:
            List of ids, or None if the indices are invalid.
        """
        pair = self._sibling_pair(source_index, target_index)
        if pair is None:
            return None
        source, target = pair
        return overlapping_ids(source.delta, target.delta)

    # ------------------------------------------------------------------
    # Internal
    # ------------------------------------------------------------------

    def _sibling_pair(
        self, source_index: int, target_index: int,
    ) -> tuple[HistoryNode, HistoryNode] | None:
        children = self._current.children
        n = len(children)
        if source_index == target_index:
            return None
        if not (0 <= source_index < n and 0 <= target_index < n):
            return None
        return children[source_index], children[target_index]

    def _append_child(self, state: DocumentState, delta: Delta, description: str) -> None:
        node = HistoryNode(
            state=state,
            delta=delta,
            description=description,
            timestamp=self._clock(),
        )
        self._current.add_child(node)
        self._current = node
        self._size += 1

    def _prune(self) -> None:
        removed = self._pruner.prune(
            self._root,
            self._current,
            size=self._size,
            threshold=self._prune_threshold,
            now=self._clock(),
        )
        self._size -= removed
        if removed:
            logger.info("Pruned %d history versions, %d remain", removed, self._size)
