"""Tests for graphedit.core.serializers: GraphElement ↔ dict conversion.

Covers:
  - Editor node dict shape (``type`` key)
  - ``kind`` alias and missing keys on import
"""

from graphedit.core.serializers import (
    dict_to_element,
    dicts_to_state,
    element_to_dict,
    state_to_dicts,
)
from graphedit.models.topology import GraphElement


class TestElementDict:

    def test_uses_type_key(self):
        d = element_to_dict(GraphElement(id=3, kind="mongo", x=1.5, y=2.0, fields={"db": "app"}))
        assert d == {"id": 3, "type": "mongo", "x": 1.5, "y": 2.0, "fields": {"db": "app"}}

    def test_fields_are_copied(self):
        element = GraphElement(id=1, kind="docker", fields={"ports": ["80:80"]})
        d = element_to_dict(element)
        d["fields"]["ports"].append("443:443")
        assert element.fields["ports"] == ["80:80"]

    def test_from_editor_dict(self):
        e = dict_to_element({"id": 7, "type": "redis", "x": 10, "y": 20, "fields": {"password": "a"}})
        assert e == GraphElement(id=7, kind="redis", x=10, y=20, fields={"password": "a"})

    def test_kind_alias(self):
        assert dict_to_element({"id": 1, "kind": "node"}).kind == "node"

    def test_missing_keys_default(self):
        e = dict_to_element({"id": "4"})
        assert e.id == 4
        assert e.kind == ""
        assert (e.x, e.y) == (0.0, 0.0)
        assert e.fields == {}

    def test_state_lists(self):
        state = [GraphElement(id=1, kind="redis"), GraphElement(id=2, kind="node", x=5)]
        assert dicts_to_state(state_to_dicts(state)) == state
