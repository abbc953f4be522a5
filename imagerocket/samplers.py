"""
Samplers pick the border color and store it in the buffer's crop parameters.
"""

import math
import logging
from abc import abstractmethod

from .constants import C
from .image import format_color
from .node import ConfigurableNode
from .serializer import global_serializer

logger = logging.getLogger(__name__)


class _Absent:
    """Returned by extract_color() when a sampler has no color to offer."""
    def __repr__(self):
        return "ABSENT"

ABSENT = _Absent()


def clamp(val, lo, hi):
    return max(lo, min(hi, val))

def actual_offset(val, size):
    """Offset for a coordinate normalized to [0, 1], rounded half up."""
    return math.floor(val * size + 0.5) if val else 0


class BorderColorSampler(ConfigurableNode):
    """A sampler extracts a color from the image"""

    @abstractmethod
    def extract_color(self, buffer):
        """Return a color, or ABSENT to leave the border color alone."""

    async def process_image(self, buffer):
        color = self.extract_color(buffer)
        if color is ABSENT:
            return buffer
        buffer.crop_parameters.border_color = color
        return buffer


class TopLeftSampler(BorderColorSampler):
    """Sample the top left pixel. Kept so older documents still load;
    PointSampler at its defaults does the same."""
    class_name = "TopLeftSampler"

    def extract_color(self, buffer):
        buffer = buffer.to_byte_buffer()
        if buffer.width == 0 or buffer.height == 0:
            return ABSENT
        return int(buffer.words[0])


class PointSampler(BorderColorSampler):
    """Sample the color of one pixel. The position is a normalized
    coordinate plus a pixel offset, clamped to the image."""
    class_name = "PointSampler"
    schema = {
        "properties": [
            {
                "name": "normalizedX",
                "editor": "double",
                "label": "X coordinate normalized to [0, 1]",
                "min": 0,
                "max": 1,
                "step": 0.01,
                "default": 0,
            },
            {
                "name": "normalizedY",
                "editor": "double",
                "label": "Y coordinate normalized to [0, 1]",
                "min": 0,
                "max": 1,
                "step": 0.01,
                "default": 0,
            },
            {
                "name": "pixelX",
                "editor": "int",
                "label": "X offset in pixels",
                "default": 0,
            },
            {
                "name": "pixelY",
                "editor": "int",
                "label": "Y offset in pixels",
                "default": 0,
            },
            {
                "name": "lastX",
                "editor": "int?",
                "label": "Last X",
                "readOnly": True,
                "serializable": False,
            },
            {
                "name": "lastY",
                "editor": "int?",
                "label": "Last Y",
                "readOnly": True,
                "serializable": False,
            },
            {
                "name": "lastColor",
                "editor": "color?",
                "label": "Last border color",
                "readOnly": True,
                "serializable": False,
                "alpha": True,
            },
        ],
    }
    POSITION_NAMES = ("normalizedX", "normalizedY", "pixelX", "pixelY")

    def bridge_created(self, bridge):
        for name in self.POSITION_NAMES:
            bridge.add_handler(name, self.position_changed)

    def position_changed(self, model, prop):
        """An editor moved the sample point; the last readings no longer apply."""
        logger.debug("%r: %s changed to %r", self, prop, model[prop])
        own = self.own_bridge.model
        for name in ("lastX", "lastY", "lastColor"):
            if own[name] is not None:
                own[name] = None

    def sample_position(self, width, height):
        s = self.settings
        x = actual_offset(s["normalizedX"], width - 1) + (s["pixelX"] or 0)
        y = actual_offset(s["normalizedY"], height - 1) + (s["pixelY"] or 0)
        return (x, y)

    def extract_color(self, buffer):
        buffer = buffer.to_byte_buffer()
        if buffer.width == 0 or buffer.height == 0:
            return ABSENT
        (x, y) = self.sample_position(buffer.width, buffer.height)
        color = int(buffer.words[clamp(x, 0, buffer.width - 1) +
                                 clamp(y, 0, buffer.height - 1) * buffer.word_pitch])
        model = self.own_bridge.model
        model["lastColor"] = color
        model["lastX"] = x
        model["lastY"] = y
        logger.debug("%r: sampled %s at (%d,%d)", self, format_color(color), x, y)
        return color


class ManualColor(BorderColorSampler):
    """A fixed border color. Does nothing until a color is set."""
    class_name = "ManualColor"
    schema = {
        "properties": [
            {
                "name": "color",
                "editor": "color?",
                "label": "Border color",
                "alpha": True,
            },
        ],
    }

    @property
    def features(self):
        if self.settings["color"] is None:
            return frozenset([C.NO_EFFECT])
        return frozenset()

    def extract_color(self, buffer):
        color = self.settings["color"]
        if color is None:
            return ABSENT
        return int(color)


global_serializer.add_class(TopLeftSampler)
global_serializer.add_class(PointSampler)
global_serializer.add_class(ManualColor)
