"""Serialization utilities: GraphElement ↔ JSON-safe dict conversion.

The editor and its REST layer exchange nodes as plain dicts using the
``type`` key for the element kind. Field values are passed through a
JSON round trip so exported dicts never share state with the document.
"""

from __future__ import annotations

import json

from graphedit.models.topology import DocumentState, GraphElement


# =====================================================================
# Element serialization
# =====================================================================


def element_to_dict(element: GraphElement) -> dict:
    """Serialize a GraphElement to the editor's node dict shape."""
    return {
        "id": element.id,
        "type": element.kind,
        "x": element.x,
        "y": element.y,
        "fields": json.loads(json.dumps(element.fields, default=str)),
    }


def dict_to_element(data: dict) -> GraphElement:
    """Deserialize an editor node dict.

    Accepts ``kind`` as an alias for ``type``. Missing fields fall back
    to dataclass defaults.
    """
    return GraphElement(
        id=int(data.get("id", 0)),
        kind=data.get("type", data.get("kind", "")),
        x=data.get("x", 0.0),
        y=data.get("y", 0.0),
        fields=dict(data.get("fields") or {}),
    )


def state_to_dicts(state: DocumentState) -> list[dict]:
    return [element_to_dict(e) for e in state]


def dicts_to_state(data: list[dict]) -> DocumentState:
    return [dict_to_element(d) for d in data]
