"""
Serializer - a registry of node classes and a codec that turns a graph of
nodes into a flat list of records and back.

A record is the dict returned by node.serialize() with two more keys:

    {"class": "SimpleExpander", "id": "SimpleExpander1", "expand": 4, ...}

Ids are the class name followed by a per-class counter, allocated in the
order nodes are first met during a depth-first walk from the roots. Any
node found inside a serialized value is replaced by

    {"class": "_ref", "id": "PointSampler1"}

and serialized exactly once, however often it is referenced. The output
starts with {"class": "_rootRefs", "ids": [...]}, which lists the ids of the
roots in the order given, duplicates included.

Deserializing constructs every node first and only then calls
deserialize() on each, so forward and cyclic references resolve.
"""

import logging
from collections import defaultdict

from .constants import C
from .node import ProcessNode

logger = logging.getLogger(__name__)

RESERVED_KEYS = ("class", "id")


class SerializationError(ValueError):
    """Base class for everything the codec raises."""

class UnsupportedValueError(SerializationError):
    """serialize() returned something that is not JSON compatible."""

class UnknownClassError(SerializationError):
    """No class is registered under a name, or a class has no name."""

class DanglingReferenceError(SerializationError):
    """A reference or root id names no record."""

class MalformedRecordError(SerializationError):
    """A record is not a dict, lacks its class or id, or repeats an id."""


class _GraphWriter:
    def __init__(self, serializer):
        self.serializer = serializer
        self.ids     = {}                   # id(node) -> (node, record id)
        self.counter = defaultdict(int)
        self.records = {}                   # record id -> record, in allocation order

    def add_node(self, node):
        try:
            return self.ids[id(node)][1]
        except KeyError:
            pass
        class_name = self.serializer.class_name_from_instance(node)
        self.counter[class_name] += 1
        node_id = f"{class_name}{self.counter[class_name]}"
        self.ids[id(node)] = (node, node_id)
        self.records[node_id] = None        # reserve the slot before recursing
        serialized = node.serialize()
        if not isinstance(serialized, dict):
            raise UnsupportedValueError(f"{node!r}.serialize() returned {type(serialized).__name__}, not dict")
        for key in RESERVED_KEYS:
            if key in serialized:
                raise UnsupportedValueError(f"{node!r}.serialize() uses reserved key {key!r}")
        record = {"class": class_name, "id": node_id}
        record.update(self.find_references(node, serialized))
        self.records[node_id] = record
        return node_id

    def find_references(self, node, value):
        if isinstance(value, ProcessNode):
            return {"class": C.REF_CLASS, "id": self.add_node(value)}
        if isinstance(value, (list, tuple)):
            return [self.find_references(node, e) for e in value]
        if isinstance(value, dict):
            result = {}
            for (k, v) in value.items():
                if not isinstance(k, str):
                    raise UnsupportedValueError(f"Invalid key: {k!r} in {node!r}")
                result[k] = self.find_references(node, v)
            return result
        if value is None or isinstance(value, (bool, int, float, str)):
            return value
        raise UnsupportedValueError(f"Invalid value: {value!r} in {node!r}")


class _GraphReader:
    def __init__(self, serializer):
        self.serializer = serializer
        self.node_by_id = {}

    def read(self, records):
        root_ids = None
        node_records = []
        for record in records:
            if not isinstance(record, dict):
                raise MalformedRecordError(f"record is not a dict: {record!r}")
            if record.get("class") == C.ROOT_REFS_CLASS:
                if root_ids is not None:
                    raise MalformedRecordError("more than one root record")
                root_ids = record.get("ids")
                if not isinstance(root_ids, list):
                    raise MalformedRecordError(f"root ids are not a list: {root_ids!r}")
            else:
                node_records.append(record)

        # construction pass: every node exists before any deserialize() call
        for record in node_records:
            node_id = record.get("id")
            if not isinstance(node_id, str):
                raise MalformedRecordError(f"record without id: {record!r}")
            if node_id in self.node_by_id:
                raise MalformedRecordError(f"duplicate id {node_id!r}")
            cls = self.serializer.lookup_class(record.get("class"))
            self.node_by_id[node_id] = cls()

        # resolve everything before touching any node, so failures leave nothing half-built
        resolved = [(self.node_by_id[record["id"]], self.resolve_references(record))
                    for record in node_records]
        if root_ids is not None:
            roots = [self.lookup(node_id) for node_id in root_ids]
        else:
            roots = list(self.node_by_id.values())

        for (node, record) in resolved:
            node.deserialize(record)
        return roots

    def lookup(self, node_id):
        try:
            return self.node_by_id[node_id]
        except (KeyError, TypeError):
            raise DanglingReferenceError(f"no record with id {node_id!r}") from None

    def resolve_references(self, value):
        if isinstance(value, list):
            return [self.resolve_references(e) for e in value]
        if isinstance(value, dict):
            if value.get("class") == C.REF_CLASS:
                return self.lookup(value.get("id"))
            return {k: self.resolve_references(v) for (k, v) in value.items()}
        return value


class Serializer:
    """Registry of node classes by name, plus serialize_all()/deserialize_all()."""
    def __init__(self):
        self.class_by_name = {}
        self.name_by_class = {}

    def add_class(self, cls, name=None):
        """Register a class that can be constructed without arguments.
        The name defaults to the class's own class_name, then to __name__."""
        if not name:
            name = cls.__dict__.get("class_name") or cls.__name__
        old = self.class_by_name.get(name)
        if old is not None and old is not cls:
            logger.warning("%s replaces %s as %r", cls.__qualname__, old.__qualname__, name)
        self.class_by_name[name] = cls
        self.name_by_class[cls] = name
        return cls

    def lookup_class(self, name):
        try:
            return self.class_by_name[name]
        except (KeyError, TypeError):
            raise UnknownClassError(f"no class registered as {name!r}") from None

    def class_name(self, cls):
        try:
            return self.name_by_class[cls]
        except KeyError:
            raise UnknownClassError(f"{cls.__qualname__} is not registered") from None

    def class_name_from_instance(self, node):
        return self.class_name(type(node))

    def enumerate_classes(self):
        """[(name, class)] in registration order"""
        return list(self.class_by_name.items())

    def serialize_all(self, roots):
        writer = _GraphWriter(self)
        root_ids = []
        for root in roots:
            if not isinstance(root, ProcessNode):
                raise UnsupportedValueError(f"root is not a ProcessNode: {root!r}")
            root_ids.append(writer.add_node(root))
        logger.debug("serialized %d nodes from %d roots", len(writer.records), len(root_ids))
        return [{"class": C.ROOT_REFS_CLASS, "ids": root_ids}] + list(writer.records.values())

    def deserialize_all(self, records):
        """Return the root nodes, or every node in record order if there is no root record."""
        return _GraphReader(self).read(records)


global_serializer = Serializer()
