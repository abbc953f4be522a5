"""
Expanders grow the crop rectangle into the expanded rectangle, which may
reach past the edges of the buffer.
"""

import logging

from .constants import C
from .node import ConfigurableNode
from .serializer import global_serializer

logger = logging.getLogger(__name__)

OVERRIDE_NAMES = ("overrideLeft", "overrideTop", "overrideRight", "overrideBottom")


def side_amounts(expand, left=None, top=None, right=None, bottom=None):
    """Per-side expansion. A None override means the side uses expand."""
    return [expand if override is None else override for override in (left, top, right, bottom)]

def expand_rect(rect, expand, left=None, top=None, right=None, bottom=None):
    """Return rect moved outward by the per-side amounts."""
    (l, t, r, b) = side_amounts(expand, left, top, right, bottom)
    return [rect[0] - l, rect[1] - t, rect[2] + r, rect[3] + b]


def _override(side):
    return {
        "name": "override" + side,
        "editor": "int?",
        "label": f"{side} border width (empty uses the border width)",
    }


class SimpleExpander(ConfigurableNode):
    """Adds a margin around the crop rectangle."""
    class_name = "SimpleExpander"
    schema = {
        "properties": [
            {
                "name": "expand",
                "editor": "exponentialSlider",
                "label": "Border width",
                "expOffset": 1,
                "expMin": 0,
                "expMax": 64,
                "default": 0,
            },
            _override("Left"),
            _override("Top"),
            _override("Right"),
            _override("Bottom"),
        ],
    }

    @property
    def expand_by(self):
        return self.settings["expand"]

    @expand_by.setter
    def expand_by(self, val):
        self.model_bridge.model["expand"] = val

    @property
    def amounts(self):
        s = self.settings
        return side_amounts(s["expand"] or 0, *(s[name] for name in OVERRIDE_NAMES))

    @property
    def features(self):
        if not any(self.amounts):
            return frozenset([C.NO_EFFECT])
        return frozenset()

    async def process_image(self, buffer):
        amounts = self.amounts
        params = buffer.crop_parameters
        if not any(amounts):
            params.clear_expanded_rect()
            return buffer
        params.expanded_rect = expand_rect(params.crop_rect, 0, *amounts)
        logger.debug("%r: crop %s expanded %s", self, params.crop_rect, params.expanded_rect)
        return buffer


global_serializer.add_class(SimpleExpander)
