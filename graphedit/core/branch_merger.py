"""Branch merger: combine two sibling versions by layering their deltas.

Both deltas are relative to the same parent state. The source delta is
applied first and the target delta on top of it, so when both modify
the same attribute of an element the target wins. No conflict detection is
done here; ``overlapping_ids`` lets callers check beforehand.
"""

from __future__ import annotations

from graphedit.core.delta import apply_delta, copy_state
from graphedit.models.topology import Delta, DocumentState


def merge_states(
    base: DocumentState,
    source_delta: Delta | None,
    target_delta: Delta | None,
) -> DocumentState:
    """Sequentially apply ``source_delta`` then ``target_delta`` to ``base``.

    Args:
        base: Common parent state (not mutated).
        source_delta: Delta of the first branch, or None (skipped).
        target_delta: Delta of the second branch, or None (skipped).

    Returns:
        Merged document state.
    """
    merged = copy_state(base)
    for delta in (source_delta, target_delta):
        if delta is not None:
            merged = apply_delta(merged, delta)
    return merged


def overlapping_ids(source_delta: Delta | None, target_delta: Delta | None) -> list[int]:
    """Element ids modified by both deltas, in source order."""
    if source_delta is None or target_delta is None:
        return []
    target_ids = set(target_delta.modified_ids)
    return [i for i in source_delta.modified_ids if i in target_ids]
