"""
Reactive configuration.

ModelObserver - intercepts writes to a shared dict. A write is applied at
                once; the handlers registered for that key run later, after
                the current call stack unwinds, batched per event loop turn.

ModelBridge   - two ModelObservers over the same dict. The bridge writes
                through one and listens on the other; bridge.pair swaps them.
                A node writes through its own bridge and listens on it, a
                property editor does the same with the pair, so each side
                only ever hears the other side's writes.

Notifications are scheduled with loop.call_soon() on the running asyncio
event loop.
"""

import asyncio
import itertools
import logging
from collections.abc import MutableMapping

logger = logging.getLogger(__name__)


class ObservedModel(MutableMapping):
    """Dict-like view of the store that reports every write to its observer."""
    __slots__ = ('_observer',)

    def __init__(self, observer):
        self._observer = observer

    def __getitem__(self, key):
        return self._observer.store[key]

    def __setitem__(self, key, value):
        self._observer.store[key] = value
        self._observer.changed(key)

    def __delitem__(self, key):
        del self._observer.store[key]
        self._observer.changed(key)

    def __iter__(self):
        return iter(self._observer.store)

    def __len__(self):
        return len(self._observer.store)

    def __repr__(self):
        return f"<ObservedModel observer={self._observer.id} {self._observer.store!r}>"


class ModelObserver:
    """Holds the handlers for one side of a store."""
    id_counter = itertools.count()

    def __init__(self, store:dict, schema=None):
        self.id      = next(self.id_counter)
        self.store   = store
        self.schema  = schema
        self.model   = ObservedModel(self)
        self.handlers = {}      # key -> {handler: None}, keeps registration order
        self.pending  = {}      # ordered set of changed keys
        self.flush_scheduled = False

    def add_handler(self, key, handler):
        """handler(model, key) runs after key is written through this observer's model."""
        self.handlers.setdefault(key, {})[handler] = None

    def remove_handler(self, key, handler):
        self.handlers.get(key, {}).pop(handler, None)

    def has_handlers(self, key):
        return bool(self.handlers.get(key))

    def changed(self, key):
        if not self.has_handlers(key):
            return
        self.pending[key] = None
        self.schedule_flush()

    def schedule_flush(self):
        """Schedule delivery of the pending keys on the running loop.
        Without a running loop the keys stay pending until the next call."""
        if self.flush_scheduled or not self.pending:
            return
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            logger.debug("observer %s: no running loop, %s stay pending", self.id, list(self.pending))
            return
        self.flush_scheduled = True
        loop.call_soon(self._flush, loop)

    def _flush(self, loop):
        self.flush_scheduled = False
        batch = list(self.pending)
        self.pending.clear()
        for key in batch:
            for handler in list(self.handlers.get(key, ())):
                loop.call_soon(handler, self.model, key)

    def __repr__(self):
        return f"<ModelObserver {self.id} handlers={sorted(self.handlers)}>"


class ModelBridge:
    """One side of a pair of observers sharing a store.

    schema is a dict with a "properties" list. Each property is a dict with
    at least a "name"; "serializable" defaults to True. The remaining keys
    ("editor", "label", "min", "max", "readOnly", ...) are for editors.
    """
    def __init__(self, store:dict, schema:dict, *, input_observer=None, output_observer=None):
        self.raw_model = store
        self.schema    = schema
        self.output_observer = output_observer or ModelObserver(store, schema)
        self.input_observer  = input_observer or ModelObserver(store, schema)
        self._pair = None

    def add_handler(self, key, handler):
        """Listen for writes made through the pair."""
        self.input_observer.add_handler(key, handler)

    def remove_handler(self, key, handler):
        self.input_observer.remove_handler(key, handler)

    @property
    def model(self):
        """Writes through this mapping notify the pair's handlers."""
        return self.output_observer.model

    @property
    def pair(self):
        if self._pair is None:
            self._pair = ModelBridge(self.raw_model, self.schema,
                                     input_observer=self.output_observer,
                                     output_observer=self.input_observer)
            self._pair._pair = self
        return self._pair

    @property
    def properties(self):
        properties = self.schema.get("properties")
        return properties if isinstance(properties, list) else []

    @property
    def property_names(self):
        return [p["name"] for p in self.properties]

    @property
    def serializable_names(self):
        return [p["name"] for p in self.properties if p.get("serializable", True)]

    def property_schema(self, name):
        for p in self.properties:
            if p["name"] == name:
                return p
        raise KeyError(name)

    def export_to_model(self, extra=None, names=None):
        """Return a new dict of the serializable values, updated with extra."""
        if names is None:
            names = self.serializable_names
        result = {name: self.raw_model.get(name) for name in names}
        if extra:
            result.update(extra)
        return result

    def patch_model(self, record, names=None):
        """Write the serializable keys present in record through model."""
        if names is None:
            names = self.serializable_names
        model = self.model
        for name in names:
            if name in record:
                model[name] = record[name]

    def __repr__(self):
        return f"ModelBridge({self.input_observer.id},{self.output_observer.id})"
