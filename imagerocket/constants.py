"""Constants"""

# pylint: disable=too-few-public-methods
class C:
    """Constants"""
    IMAGE_EXTENSIONS = set(['.jpg','.jpeg','.png','.bmp','.tif','.tiff','.webp'])

    # Node features. Advisory hints for whoever schedules or renders a node.
    NO_EFFECT    = 'noEffect'
    PASS_THROUGH = 'passThrough'
    INTERACTIVE  = 'interactive'

    # Serialized record markers
    REF_CLASS       = '_ref'
    ROOT_REFS_CLASS = '_rootRefs'

    # Key of the node list in a persisted pipeline document
    DOCUMENT_KEY = 'pipeline'

    DEFAULT_EXPAND = 4
    DEFAULT_OUTPUT_TEMPLATE = "{stem}.png"
