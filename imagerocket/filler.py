"""
Materialize the expanded rectangle: copy the part of the buffer inside it
into a new buffer and paint everything outside the source with the border
color.
"""

import logging

import numpy as np

from .image import ByteImageBuffer
from .node import ImageProcessingNode
from .serializer import global_serializer

logger = logging.getLogger(__name__)


def crop_and_fill(buffer):
    """Return a new buffer holding the expanded rectangle of buffer.

    Parts of the rectangle outside the source are filled with the border
    color. If the rectangle is the whole buffer, buffer itself is returned.
    """
    params = buffer.crop_parameters
    (input_width, input_height) = (buffer.width, buffer.height)
    (left, top, right, bottom) = params.expanded_rect
    if [left, top, right, bottom] == [0, 0, input_width, input_height]:
        return buffer

    source = buffer.to_byte_buffer()
    result_width  = max(right - left, 0)
    result_height = max(bottom - top, 0)
    result = ByteImageBuffer.allocate(result_width, result_height)
    result.crop_parameters = params
    result.crop_parameters.init_crop_rect(result)

    # the part of the source that survives
    kept_width  = max(min(right, input_width) - max(left, 0), 0)
    kept_height = max(min(bottom, input_height) - max(top, 0), 0)
    (sx, sy) = (max(left, 0), max(top, 0))
    (dx, dy) = (max(-left, 0), max(-top, 0))
    logger.debug("%dx%d -> %dx%d kept %dx%d", input_width, input_height,
                 result_width, result_height, kept_width, kept_height)

    rows  = result.rows()
    color = np.uint32(params.border_color)
    if top < 0:
        rows[:min(-top, result_height)] = color
    if bottom > input_height:
        rows[max(result_height - (bottom - input_height), 0):] = color
    if left < 0:
        rows[dy:dy + kept_height, :min(-left, result_width)] = color
    if right > input_width:
        rows[dy:dy + kept_height, max(result_width - (right - input_width), 0):] = color

    # block transfer
    if kept_width > 0 and kept_height > 0:
        rows[dy:dy + kept_height, dx:dx + kept_width] = \
            source.rows()[sy:sy + kept_height, sx:sx + kept_width]
    return result


class BorderColorFiller(ImageProcessingNode):
    """Crops to the expanded rectangle and fills the overhang with the border color."""
    class_name = "BorderColorFiller"

    def serialize(self):
        return {}

    def deserialize(self, record):
        pass

    async def process_image(self, buffer):
        return crop_and_fill(buffer)


global_serializer.add_class(BorderColorFiller)
