"""Delta computer: structural difference between two document states.

Pure functions, no state. Elements are matched by ``id``; content
equality compares kind, position and field values with ``==``.

Usage::

    delta = compute_delta(old_state, new_state)
    if not delta.is_empty:
        restored = apply_delta(old_state, delta)   # == new_state by id
"""

from __future__ import annotations

import copy

from graphedit.models.topology import (
    Delta,
    DocumentState,
    ElementChange,
    GraphElement,
)


def copy_element(element: GraphElement) -> GraphElement:
    """Independent copy of a single element (fields deep-copied)."""
    return GraphElement(
        id=element.id,
        kind=element.kind,
        x=element.x,
        y=element.y,
        fields=copy.deepcopy(element.fields),
    )


def copy_state(state: DocumentState) -> DocumentState:
    """Deep copy of a document state, preserving element order."""
    return [copy_element(e) for e in state]


def elements_equal(a: GraphElement, b: GraphElement) -> bool:
    return (
        a.id == b.id
        and a.kind == b.kind
        and a.x == b.x
        and a.y == b.y
        and a.fields == b.fields
    )


def states_equal(a: DocumentState, b: DocumentState) -> bool:
    """Positional equality: same length and pairwise-equal elements."""
    if len(a) != len(b):
        return False
    return all(elements_equal(x, y) for x, y in zip(a, b))


def compute_delta(old_state: DocumentState, new_state: DocumentState) -> Delta:
    """Diff two states keyed by element id.

    Args:
        old_state: Parent state.
        new_state: Child state.

    Returns:
        Delta with copies of every element it references, so later
        mutation of either input cannot alter the delta.
    """
    old_map = {e.id: e for e in old_state}
    new_map = {e.id: e for e in new_state}
    delta = Delta()

    for elem_id, old_elem in old_map.items():
        new_elem = new_map.get(elem_id)
        if new_elem is None:
            delta.removed.append(elem_id)
        elif not elements_equal(old_elem, new_elem):
            delta.modified.append(ElementChange(
                id=elem_id,
                before=copy_element(old_elem),
                after=copy_element(new_elem),
            ))

    for elem_id, new_elem in new_map.items():
        if elem_id not in old_map:
            delta.added.append(copy_element(new_elem))

    return delta


def patch_element(element: GraphElement, change: ElementChange) -> GraphElement:
    """Apply the attributes ``change`` altered to a copy of ``element``.

    Only kind/x/y values and field keys that differ between ``before``
    and ``after`` are written, so an edit to one attribute never resets
    another. Applied to ``change.before`` this yields ``change.after``.
    """
    before, after = change.before, change.after
    patched = copy_element(element)
    for attr in ("kind", "x", "y"):
        if getattr(after, attr) != getattr(before, attr):
            setattr(patched, attr, getattr(after, attr))

    for key, value in after.fields.items():
        if key not in before.fields or value != before.fields[key]:
            patched.fields[key] = copy.deepcopy(value)
    for key in before.fields:
        if key not in after.fields:
            patched.fields.pop(key, None)
    return patched


def apply_delta(state: DocumentState, delta: Delta) -> DocumentState:
    """Apply a delta on top of ``state`` and return the result as a new list.

    Removals first, then additions appended at the end, then each
    modified element patched with its changed attributes. Modifications
    whose id is absent from the intermediate state are skipped.
    """
    removed = set(delta.removed)
    result = [copy_element(e) for e in state if e.id not in removed]
    result.extend(copy_element(e) for e in delta.added)

    index_by_id = {e.id: i for i, e in enumerate(result)}
    for change in delta.modified:
        i = index_by_id.get(change.id)
        if i is not None:
            result[i] = patch_element(result[i], change)

    return result
