"""History pruner: bounds the version tree without touching the current path.

Two stages per invocation:

1. Age sweep: one post-order pass removing off-path, childless nodes
   older than ``max_age``. A parent whose children were all swept is
   re-checked in the same pass and goes too if it is itself old enough.
2. Single eviction: if the tree is still over its threshold, the one
   oldest off-path leaf is removed.

Traversal is iterative so deep linear histories do not hit the
interpreter's recursion limit.
"""

from __future__ import annotations

from datetime import datetime, timedelta
from typing import TYPE_CHECKING, Iterator

from graphedit.constants import MAX_NODE_AGE

if TYPE_CHECKING:
    from graphedit.core.history import HistoryNode


def iter_nodes(root: HistoryNode) -> Iterator[HistoryNode]:
    """Pre-order walk of the tree below (and including) ``root``."""
    stack = [root]
    while stack:
        node = stack.pop()
        yield node
        stack.extend(reversed(node.children))


def path_to_root(node: HistoryNode) -> list[HistoryNode]:
    """Nodes from ``node`` up to the root, ``node`` first."""
    path = []
    walker: HistoryNode | None = node
    while walker is not None:
        path.append(walker)
        walker = walker.parent
    return path


class HistoryPruner:
    """Removes stale versions from a history tree.

    Args:
        max_age: Minimum age for a leaf to be swept in stage 1.
    """

    def __init__(self, max_age: timedelta = MAX_NODE_AGE) -> None:
        self._max_age = max_age

    @property
    def max_age(self) -> timedelta:
        return self._max_age

    def prune(
        self,
        root: HistoryNode,
        current: HistoryNode,
        *,
        size: int,
        threshold: int,
        now: datetime,
    ) -> int:
        """Prune the tree rooted at ``root``.

        Args:
            root: Tree root.
            current: Active version; it and its ancestors are protected.
            size: Node count before pruning.
            threshold: Size above which stage 2 evicts a leaf.
            now: Reference time for the age check.

        Returns:
            Number of nodes removed.
        """
        protected = set(path_to_root(current))

        removed = self._sweep_aged(root, protected, now)
        if size - removed > threshold:
            if self._evict_oldest_leaf(root, protected):
                removed += 1
        return removed

    def _sweep_aged(self, root: HistoryNode, protected: set[HistoryNode], now: datetime) -> int:
        removed = 0
        # Post-order: a node is examined after all of its children
        stack: list[tuple[HistoryNode, bool]] = [(root, False)]
        while stack:
            node, expanded = stack.pop()
            if not expanded:
                stack.append((node, True))
                stack.extend((child, False) for child in node.children)
                continue

            kept = []
            for child in node.children:
                if self._is_stale(child, protected, now):
                    removed += 1
                else:
                    kept.append(child)
            node.children[:] = kept
        return removed

    def _is_stale(self, node: HistoryNode, protected: set[HistoryNode], now: datetime) -> bool:
        return (
            node not in protected
            and not node.children
            and now - node.timestamp > self._max_age
        )

    def _evict_oldest_leaf(self, root: HistoryNode, protected: set[HistoryNode]) -> bool:
        oldest: HistoryNode | None = None
        for node in iter_nodes(root):
            if node.children or node in protected:
                continue
            if oldest is None or node.timestamp < oldest.timestamp:
                oldest = node

        if oldest is None:
            return False
        parent = oldest.parent
        if parent is None:
            return False
        parent.children[:] = [c for c in parent.children if c is not oldest]
        return True
