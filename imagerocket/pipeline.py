"""
Pipeline
"""

import sys
import logging

from .constants import C
from .node import ConfigurableNode,ImageProcessingNode,PassThrough,validate_node
from .serializer import global_serializer

logger = logging.getLogger(__name__)


class ImageProcessingPipeline(ConfigurableNode):
    """Runs its nodes over a buffer, one after the other."""
    class_name = "ImageProcessingPipeline"
    schema = {
        "properties": [
            {
                "name": "nodes",
                "editor": "nodeList",
                "label": "Nodes",
                "default": [],
            },
        ],
    }

    def __init__(self, nodes=None, *, verbose=False, debug=False):
        super().__init__()
        if nodes:
            self.nodes = nodes
        if debug:
            logging.getLogger("imagerocket").setLevel(logging.DEBUG)
        elif verbose:
            logging.getLogger("imagerocket").setLevel(logging.INFO)

    @property
    def nodes(self):
        return self.settings["nodes"]

    @nodes.setter
    def nodes(self, nodes):
        nodes = list(nodes)
        for node in nodes:
            validate_node(node)
            if not isinstance(node, ImageProcessingNode):
                raise TypeError(f"{node!r} cannot process images")
        self.own_bridge.model["nodes"] = nodes

    @property
    def features(self):
        if not self.nodes:
            return frozenset([C.NO_EFFECT, C.PASS_THROUGH])
        return frozenset()

    def deserialize(self, record):
        # validate through the setter; the referenced nodes exist but may not be deserialized yet
        if "nodes" in record:
            self.nodes = record["nodes"] or []

    async def process_image(self, buffer):
        """Run a buffer through the pipeline."""
        logger.info("== process %s", buffer)
        for node in self.nodes:
            logger.debug("<%s> processing %s %s", node.__class__.__name__, buffer, buffer.crop_parameters)
            buffer = await node._run_buffer(buffer)
        return buffer

    async def process_images(self, buffers):
        logger.info("== process_images ==")
        results = []
        for buffer in buffers:
            results.append(await self.process_image(buffer))
        return results

    def print_stats(self, out=sys.stdout):
        for node in self.nodes:
            name = node.__class__.__name__
            print(f"{name}: calls: {node.count}  mean: {node.t_mean:.2}s  stddev: {node.t_stddev:.2}",
                  file=out)


global_serializer.add_class(ImageProcessingPipeline)
global_serializer.add_class(PassThrough)
