"""
Tests for the serializer
"""

import pytest
import sys
import json

from os.path import abspath, dirname, join, basename

sys.path.append(join(dirname(dirname(dirname(__file__)))))

from imagerocket.node import ProcessNode
from imagerocket.serializer import (Serializer,UnsupportedValueError,UnknownClassError,
                                    DanglingReferenceError,MalformedRecordError,SerializationError)

DESERIALIZED = []

class Box(ProcessNode):
    """Holds a value and a list of child nodes"""
    def __init__(self, value=None, children=None):
        super().__init__()
        self.value = value
        self.children = children or []

    def serialize(self):
        return {"value": self.value, "children": self.children}

    def deserialize(self, record):
        DESERIALIZED.append(self)
        self.value = record["value"]
        self.children = record["children"]

class Tag(ProcessNode):
    class_name = "Label"
    def __init__(self, text=""):
        super().__init__()
        self.text = text
    def serialize(self):
        return {"text": self.text}
    def deserialize(self, record):
        self.text = record["text"]

class Unregistered(Box):
    pass

class Sneaky(ProcessNode):
    def serialize(self):
        return {"id": 3}
    def deserialize(self, record):
        pass


@pytest.fixture
def serializer():
    s = Serializer()
    s.add_class(Box)
    s.add_class(Tag)
    s.add_class(Sneaky)
    DESERIALIZED.clear()
    return s

def round_trip(serializer, roots):
    records = json.loads(json.dumps(serializer.serialize_all(roots)))
    return serializer.deserialize_all(records)


def test_registry(serializer):
    assert serializer.lookup_class("Box") is Box
    assert serializer.lookup_class("Label") is Tag
    assert serializer.class_name(Tag) == "Label"
    assert serializer.class_name_from_instance(Box()) == "Box"
    assert [name for (name, cls) in serializer.enumerate_classes()] == ["Box", "Label", "Sneaky"]
    with pytest.raises(UnknownClassError):
        serializer.lookup_class("Nope")
    with pytest.raises(UnknownClassError):
        serializer.class_name(Unregistered)

    # an explicit name wins; subclasses do not inherit class_name
    serializer.add_class(Unregistered, "Other")
    assert serializer.lookup_class("Other") is Unregistered

def test_ids_are_preorder(serializer):
    d = Box("d")
    b = Box("b", [d])
    c = Box("c")
    a = Box("a", [b, c, Tag("t")])
    records = serializer.serialize_all([a])
    assert records[0] == {"class": "_rootRefs", "ids": ["Box1"]}
    assert [(r["id"], r["value"] if "value" in r else r["text"]) for r in records[1:]] == \
        [("Box1", "a"), ("Box2", "b"), ("Box3", "d"), ("Box4", "c"), ("Label1", "t")]
    assert records[1]["children"] == [{"class": "_ref", "id": "Box2"},
                                      {"class": "_ref", "id": "Box4"},
                                      {"class": "_ref", "id": "Label1"}]

def test_shared_node_is_written_once(serializer):
    shared = Box("shared")
    root = Box("root", [shared, shared])
    records = serializer.serialize_all([root])
    assert len(records) == 3
    [root2] = round_trip(serializer, [root])
    assert root2.children[0] is root2.children[1]
    assert root2.children[0].value == "shared"

def test_cycle(serializer):
    a = Box("a")
    b = Box("b", [a])
    a.children.append(b)
    [a2] = round_trip(serializer, [a])
    assert a2 is not a
    assert a2.value == "a"
    assert a2.children[0].value == "b"
    assert a2.children[0].children[0] is a2

def test_self_reference(serializer):
    a = Box()
    a.value = {"me": a}
    [a2] = round_trip(serializer, [a])
    assert a2.value["me"] is a2

def test_duplicate_roots(serializer):
    a = Box("a")
    b = Box("b")
    records = serializer.serialize_all([a, b, a])
    assert records[0]["ids"] == ["Box1", "Box2", "Box1"]
    roots = serializer.deserialize_all(records)
    assert len(roots) == 3
    assert roots[0] is roots[2]
    assert roots[1].value == "b"

def test_values(serializer):
    box = Box({"list": [1, 2.5, None, True, "s"], "tuple": (1, 2), "nested": {"x": {"y": []}}})
    [box2] = round_trip(serializer, [box])
    assert box2.value == {"list": [1, 2.5, None, True, "s"], "tuple": [1, 2], "nested": {"x": {"y": []}}}

def test_unsupported_values(serializer):
    with pytest.raises(UnsupportedValueError):
        serializer.serialize_all([Box(object())])
    with pytest.raises(UnsupportedValueError):
        serializer.serialize_all([Box({1: "int key"})])
    with pytest.raises(UnsupportedValueError):
        serializer.serialize_all([Box({"set": {1, 2}})])
    with pytest.raises(UnsupportedValueError):
        serializer.serialize_all(["not a node"])
    with pytest.raises(UnsupportedValueError):
        serializer.serialize_all([Sneaky()])

def test_unregistered_instance(serializer):
    with pytest.raises(UnknownClassError):
        serializer.serialize_all([Box("root", [Unregistered()])])

def test_no_root_record(serializer):
    records = serializer.serialize_all([Box("a", [Box("b")])])[1:]
    nodes = serializer.deserialize_all(records)
    assert [n.value for n in nodes] == ["a", "b"]
    assert nodes[0].children[0] is nodes[1]

def test_forward_reference(serializer):
    records = [{"class": "_rootRefs", "ids": ["Box1"]},
               {"class": "Box", "id": "Box1", "value": 1, "children": [{"class": "_ref", "id": "Box9"}]},
               {"class": "Box", "id": "Box9", "value": 9, "children": []}]
    [root] = serializer.deserialize_all(records)
    assert root.children[0].value == 9

def test_deserialize_errors(serializer):
    with pytest.raises(UnknownClassError):
        serializer.deserialize_all([{"class": "Nope", "id": "Nope1"}])
    with pytest.raises(MalformedRecordError):
        serializer.deserialize_all([{"class": "Box", "value": 1, "children": []}])
    with pytest.raises(MalformedRecordError):
        serializer.deserialize_all([{"class": "Box", "id": "Box1", "value": 1, "children": []},
                                    {"class": "Box", "id": "Box1", "value": 2, "children": []}])
    with pytest.raises(MalformedRecordError):
        serializer.deserialize_all([{"class": "_rootRefs", "ids": "Box1"}])
    with pytest.raises(MalformedRecordError):
        serializer.deserialize_all(["Box1"])
    with pytest.raises(DanglingReferenceError):
        serializer.deserialize_all([{"class": "_rootRefs", "ids": ["Box2"]},
                                    {"class": "Box", "id": "Box1", "value": 1, "children": []}])
    assert issubclass(DanglingReferenceError, SerializationError)
    assert issubclass(SerializationError, ValueError)

def test_dangling_reference_populates_nothing(serializer):
    records = [{"class": "Box", "id": "Box1", "value": 1, "children": []},
               {"class": "Box", "id": "Box2", "value": 2, "children": [{"class": "_ref", "id": "Box3"}]}]
    with pytest.raises(DanglingReferenceError):
        serializer.deserialize_all(records)
    assert DESERIALIZED == []
