"""
ImageViewer sits at the end of a pipeline so the result can be looked at.
"""

import collections
import logging

import cv2

from .constants import C
from .node import ConfigurableNode
from .serializer import global_serializer

logger = logging.getLogger(__name__)

MAX_SHOWN = 16


def show_buffer(buffer, title="", wait=0):
    """show the buffer, optionally waiting for keyboard"""
    surface = buffer.to_surface_buffer()
    if surface.width == 0 or surface.height == 0:
        logger.info("%s: nothing to show for %s", title, buffer)
        return
    cv2.namedWindow(title, 0)
    cv2.imshow(title, surface.img)
    cv2.waitKey(wait)


class ImageViewer(ConfigurableNode):
    """Keeps the last buffers it saw, shows them if asked, and passes them on unchanged."""
    class_name = "ImageViewer"
    schema = {
        "properties": [
            {
                "name": "show",
                "editor": "bool",
                "label": "Show in a window",
                "default": False,
            },
            {
                "name": "wait",
                "editor": "int",
                "label": "Milliseconds to wait for a key (0 waits forever)",
                "min": 0,
                "default": 0,
            },
        ],
    }

    def __init__(self):
        super().__init__()
        self.shown = collections.deque(maxlen=MAX_SHOWN)

    @property
    def features(self):
        return frozenset([C.PASS_THROUGH, C.INTERACTIVE])

    async def process_image(self, buffer):
        self.shown.append(buffer)
        if self.settings["show"]:
            show_buffer(buffer, title=self.class_name, wait=self.settings["wait"] or 0)
        return buffer


global_serializer.add_class(ImageViewer)
