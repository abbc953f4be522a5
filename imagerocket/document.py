"""
The persisted pipeline document.

A document is a JSON object whose "pipeline" key holds the records written
by Serializer.serialize_all([pipeline]). Importing this module registers
every node class with global_serializer.
"""

import json
import logging

from filelock import FileLock

from .constants import C
from .image import parse_color
from .serializer import global_serializer
from .pipeline import ImageProcessingPipeline
from .samplers import PointSampler,ManualColor
from .detectors import SimpleCropDetector,TolerantCropDetector
from .expanders import SimpleExpander
from .filler import BorderColorFiller
from .viewer import ImageViewer
from . import croppers          # pylint: disable=unused-import

logger = logging.getLogger(__name__)


class DocumentError(ValueError):
    """The document does not hold a pipeline"""


def default_pipeline(config=None):
    """The pipeline used when no document is given:
    sample, detect, expand, override the color, fill, view."""
    config = config or {}
    sampler = PointSampler()
    if config.get('sampler'):
        sampler.deserialize(config['sampler'])

    tolerance = config.get('tolerance', 0)
    if tolerance:
        detector = TolerantCropDetector()
        detector.deserialize({'tolerance': tolerance})
    else:
        detector = SimpleCropDetector()

    expander = SimpleExpander()
    expander.expand_by = config.get('expand', C.DEFAULT_EXPAND)

    manual = ManualColor()
    if config.get('manual_color'):
        manual.deserialize({'color': parse_color(config['manual_color'])})

    return ImageProcessingPipeline([sampler, detector, expander, manual,
                                    BorderColorFiller(), ImageViewer()])


def dump_document(pipeline, serializer=global_serializer):
    return {C.DOCUMENT_KEY: serializer.serialize_all([pipeline])}

def load_document(doc, serializer=global_serializer):
    """Return the first root of the document."""
    if not isinstance(doc, dict):
        raise DocumentError(f"document is a {type(doc).__name__}, not an object")
    records = doc.get(C.DOCUMENT_KEY)
    if not isinstance(records, list):
        raise DocumentError(f"document has no {C.DOCUMENT_KEY!r} list")
    roots = serializer.deserialize_all(records)
    if not roots:
        raise DocumentError("document pipeline is empty")
    return roots[0]


def save_document(path, pipeline, serializer=global_serializer):
    doc = dump_document(pipeline, serializer)
    with FileLock(path + ".lock"):
        with open(path, "w") as f:
            json.dump(doc, f, indent=2)
    logger.info("saved %s", path)

def load_document_file(path, serializer=global_serializer):
    with FileLock(path + ".lock"):
        with open(path) as f:
            try:
                doc = json.load(f)
            except json.JSONDecodeError as e:
                raise DocumentError(f"{path}: {e}") from e
    logger.info("loaded %s", path)
    return load_document(doc, serializer)
