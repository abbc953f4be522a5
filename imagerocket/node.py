"""
Node implementation.

ProcessNode is anything the serializer can store. ImageProcessingNode is a
ProcessNode that transforms buffers. ConfigurableNode keeps its settings
in a ModelBridge described by a class-level schema.
"""

import copy
import itertools
import logging
import math
import time
from abc import ABC,abstractmethod

from .constants import C
from .model_bridge import ModelBridge

logger = logging.getLogger(__name__)

# seeded from the clock in milliseconds
_node_ids = itertools.count(int(time.time() * 1000))

def next_node_id():
    return next(_node_ids)

def validate_node(node):
    if not hasattr(node,'node_id'):
        raise RuntimeError(str(node) + " did not call super().__init__()")


class ProcessNode(ABC):
    """Abstract base class for serializable nodes"""

    class_name = None           # registry name; defaults to the class name

    def __init__(self):
        self.node_id = next_node_id()

    @abstractmethod
    def serialize(self) -> dict:
        """Return a JSON compatible dict that deserialize() accepts.
        Apart from JSON types, ProcessNodes are allowed as values."""

    @abstractmethod
    def deserialize(self, record:dict):
        """Replace the entire state with the serialized state.
        Referenced nodes may not have been deserialized yet when this is called."""

    @property
    def model_bridge(self):
        """The bridge a property editor writes through, or None if there is nothing to configure."""
        return None

    @property
    def features(self):
        return frozenset()

    def __repr__(self):
        return f"<{self.__class__.__name__} #{self.node_id}>"


class ImageProcessingNode(ProcessNode):
    """A node that takes a buffer and returns a buffer."""

    def __init__(self):
        super().__init__()
        self.sum_t   = 0
        self.sum_t2  = 0
        self.count   = 0

    @abstractmethod
    async def process_image(self, buffer):
        """Return the processed buffer. May be the same buffer."""

    async def _run_buffer(self, buffer):
        """Called by the pipeline. Processes the buffer and keeps timing statistics."""
        t0 = time.time()
        result = await self.process_image(buffer)
        t = time.time() - t0
        self.sum_t  += t
        self.sum_t2 += (t*t)
        self.count  += 1
        return result

    @property
    def t_mean(self):
        return self.sum_t / self.count if self.count>0 else float("nan")

    @property
    def t2_mean(self):
        return self.sum_t2 / self.count if self.count>0 else float("nan")

    @property
    def t_variance(self):
        return self.t2_mean - self.t_mean * self.t_mean

    @property
    def t_stddev(self):
        return math.sqrt(max(self.t_variance, 0.0))


class ConfigurableNode(ImageProcessingNode):
    """A node whose settings live in a ModelBridge.

    The node reads its settings from `settings` and writes through
    `own_bridge.model`. Editors get `model_bridge`, the pair.
    Each schema property may give a "default".
    """
    schema = {"properties": []}

    def __init__(self):
        super().__init__()
        self._bridge = None

    def defaults(self):
        return {p["name"]: copy.deepcopy(p.get("default")) for p in self.schema["properties"]}

    @property
    def own_bridge(self):
        if self._bridge is None:
            self._bridge = ModelBridge(self.defaults(), self.schema)
            self.bridge_created(self._bridge)
        return self._bridge

    def bridge_created(self, bridge):
        """Register handlers for editor writes here."""

    @property
    def model_bridge(self):
        return self.own_bridge.pair

    @property
    def settings(self):
        """The raw store. Read from it; write through a bridge."""
        return self.own_bridge.raw_model

    def serialize(self):
        return self.own_bridge.export_to_model()

    def deserialize(self, record):
        self.own_bridge.patch_model(record)


class PassThrough(ImageProcessingNode):
    """Returns every buffer unchanged. Used to disable a step without removing it."""
    class_name = "PassThrough"

    def serialize(self):
        return {}

    def deserialize(self, record):
        pass

    @property
    def features(self):
        return frozenset([C.NO_EFFECT, C.PASS_THROUGH])

    async def process_image(self, buffer):
        return buffer
