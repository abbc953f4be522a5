"""
Crop detection: find the rectangle left after peeling border-colored
strips off the edges of a buffer.
"""

import logging

import numpy as np

from .image import color_channels
from .node import ConfigurableNode,ImageProcessingNode
from .serializer import global_serializer

logger = logging.getLogger(__name__)


def strip_matches(rows, color, rect, tolerance=0):
    """True if every pixel of rows inside rect matches color.
    With tolerance 0 the words must be equal, otherwise every channel
    may differ by up to tolerance. Empty rectangles never match."""
    (left, top, right, bottom) = rect
    if left >= right or top >= bottom:
        return False
    strip = rows[top:bottom, left:right]
    if tolerance == 0:
        return bool(np.all(strip == np.uint32(color)))
    pixels = np.ascontiguousarray(strip).view(np.uint8).reshape(-1, 4).astype(np.int16)
    diff = np.abs(pixels - color_channels(color).astype(np.int16))
    return bool(np.all(diff <= tolerance))


def detect_crop_rect(buffer, color, tolerance=0):
    """Return [left, top, right, bottom] of buffer with the border removed.

    The sides are peeled in the order left, top, right, bottom, one pixel at
    a time, and each side scans across the bounds the earlier sides left.
    A uniform buffer collapses to an empty rectangle on its right edge.
    """
    buffer = buffer.to_byte_buffer()
    rows = buffer.rows()
    (left, top, right, bottom) = (0, 0, buffer.width, buffer.height)
    while left < right and strip_matches(rows, color, (left, top, left + 1, bottom), tolerance):
        left += 1
    while top < bottom and strip_matches(rows, color, (left, top, right, top + 1), tolerance):
        top += 1
    while left < right and strip_matches(rows, color, (right - 1, top, right, bottom), tolerance):
        right -= 1
    while top < bottom and strip_matches(rows, color, (left, bottom - 1, right, bottom), tolerance):
        bottom -= 1
    return [left, top, right, bottom]


class SimpleCropDetector(ImageProcessingNode):
    """Sets the crop rectangle to the part of the buffer inside a border
    of exactly the border color."""
    class_name = "SimpleCropDetector"

    def serialize(self):
        return {}

    def deserialize(self, record):
        pass

    async def process_image(self, buffer):
        buffer = buffer.to_byte_buffer()
        params = buffer.crop_parameters
        params.crop_rect = detect_crop_rect(buffer, params.border_color)
        logger.debug("%r: crop %s", self, params.crop_rect)
        return buffer


class TolerantCropDetector(ConfigurableNode):
    """Like SimpleCropDetector, but a pixel counts as border when each
    channel is within tolerance of the border color."""
    class_name = "TolerantCropDetector"
    schema = {
        "properties": [
            {
                "name": "tolerance",
                "editor": "int",
                "label": "Maximum difference per channel",
                "min": 0,
                "max": 255,
                "default": 8,
            },
        ],
    }

    async def process_image(self, buffer):
        buffer = buffer.to_byte_buffer()
        params = buffer.crop_parameters
        tolerance = self.settings["tolerance"] or 0
        params.crop_rect = detect_crop_rect(buffer, params.border_color, tolerance)
        logger.debug("%r: crop %s (tolerance %d)", self, params.crop_rect, tolerance)
        return buffer


global_serializer.add_class(SimpleCropDetector)
global_serializer.add_class(TolerantCropDetector)
