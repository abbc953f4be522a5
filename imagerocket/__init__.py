"""Design document.

Abstractions related to image content:

ImageBuffer - Holds the packed pixels of one image: width, height, the row
        stride (pitch) in bytes and the storage addressed as 32-bit words.
        There are two kinds: ByteImageBuffer keeps the pixels in raw
        memory, SurfaceImageBuffer wraps an OpenCV image. Each converts
        to the other.

        Buffers never change size. A node that crops allocates a new
        buffer and returns it.

CropParameters - Every buffer carries one. It holds the crop rectangle,
        the expanded rectangle and the border color. Rectangles are
        [left, top, right, bottom] with right and bottom exclusive, and
        are always relative to the buffer that owns them.

Abstractions related to image processing:

Node - ProcessNode is the unit of serializable behavior. Every node gets a
        unique integer id when constructed. ImageProcessingNode adds
        an async process_image(buffer) that returns a buffer.

        Configurable nodes keep their settings in a ModelBridge: the
        node writes through its own side, a property editor writes
        through the pair, and each side only hears the other's writes.

Pipeline - A node that holds an ordered list of nodes and awaits each
        of them in turn.

Serializer - A registry of node classes by name. serialize_all() turns a
        set of root nodes into a flat list of records where node
        references become {"class": "_ref", "id": ...};
        deserialize_all() rebuilds the graph, shared and cyclic
        references included.

"""
