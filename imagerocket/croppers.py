"""
SimpleCropper does the work of a detector, an expander and a filler in one
node. Pipelines built before those were split up still contain it.
"""

import logging

from .detectors import detect_crop_rect
from .expanders import expand_rect
from .filler import crop_and_fill
from .node import ConfigurableNode
from .samplers import ABSENT
from .serializer import global_serializer

logger = logging.getLogger(__name__)


class SimpleCropper(ConfigurableNode):
    """Crop to the border detected with the color of borderColorSampler,
    keeping expand pixels of border on each side."""
    class_name = "SimpleCropper"
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
            {
                "name": "borderColorSampler",
                "editor": "node",
                "label": "Border color",
                "default": None,
            },
        ],
    }

    @property
    def border_color_sampler(self):
        return self.settings["borderColorSampler"]

    @border_color_sampler.setter
    def border_color_sampler(self, sampler):
        self.own_bridge.model["borderColorSampler"] = sampler

    async def process_image(self, buffer):
        buffer = buffer.to_byte_buffer()
        params = buffer.crop_parameters
        sampler = self.border_color_sampler
        if sampler is not None:
            color = sampler.extract_color(buffer)
            if color is not ABSENT:
                params.border_color = color
        params.crop_rect = detect_crop_rect(buffer, params.border_color)
        expand = self.settings["expand"] or 0
        if expand:
            params.expanded_rect = expand_rect(params.crop_rect, expand)
        logger.debug("%r: crop %s expanded %s", self, params.crop_rect, params.expanded_rect)
        return crop_and_fill(buffer)


global_serializer.add_class(SimpleCropper)
