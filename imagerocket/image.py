"""This module provides the following classes:

CropParameters - The crop rectangle, expanded rectangle and border color
                 attached to a buffer.

ImageBuffer - Abstract packed-pixel image. Pixels are 32-bit words holding
              the bytes R, G, B, A in memory order.
ByteImageBuffer - ImageBuffer backed by raw memory (a numpy uint8 array).
SurfaceImageBuffer - ImageBuffer backed by an OpenCV BGRA image.

Images read from disk are cached in memory with an LRU cache, the same
way frames are, so reading the same file twice costs nothing.

"""
import os
import functools
import logging
from abc import ABC,abstractmethod

import cv2
import numpy as np

MAXSIZE_CACHE=32

logger = logging.getLogger(__name__)

class NotImageError(RuntimeError):
    """cv2 cannot read image"""

## Colors.
## A color is a python int holding one packed pixel word.

def rgba(r, g, b, a=255):
    """Pack four 8-bit channels into one pixel word."""
    return int(np.array([r, g, b, a], dtype=np.uint8).view(np.uint32)[0])

def color_channels(color):
    """Return the (r, g, b, a) channels of a pixel word as a numpy uint8 array."""
    return np.array([color], dtype=np.uint32).view(np.uint8)

def extract_red(color):
    return int(color_channels(color)[0])

def extract_green(color):
    return int(color_channels(color)[1])

def extract_blue(color):
    return int(color_channels(color)[2])

def extract_alpha(color):
    return int(color_channels(color)[3])

def format_color(color):
    """#rrggbbaa"""
    return "#" + "".join(f"{int(ch):02x}" for ch in color_channels(color))

def parse_color(s):
    """Parse #rrggbb or #rrggbbaa. A missing alpha channel is opaque."""
    digits = s[1:] if s.startswith("#") else s
    if len(digits) not in (6, 8):
        raise ValueError(f"Cannot parse color {s!r}")
    channels = bytes.fromhex(digits)
    return rgba(*channels)

OPAQUE_BLACK = rgba(0, 0, 0, 255)


class CropParameters:
    """Per-buffer crop metadata. Rectangles are [left, top, right, bottom]
    with right and bottom exclusive, relative to the owning buffer."""
    def __init__(self, copy_from=None):
        self._crop_rect = None
        self._expanded_rect = None
        self.border_color = OPAQUE_BLACK
        if copy_from is not None:
            if copy_from._crop_rect is not None:
                self._crop_rect = list(copy_from._crop_rect)
            if copy_from._expanded_rect is not None:
                self._expanded_rect = list(copy_from._expanded_rect)
            self.border_color = copy_from.border_color

    def init_crop_rect(self, buffer):
        self._crop_rect = [0, 0, buffer.width, buffer.height]
        self._expanded_rect = None
        return self

    @property
    def crop_rect(self):
        return None if self._crop_rect is None else list(self._crop_rect)

    @crop_rect.setter
    def crop_rect(self, rect):
        """Setting the crop rectangle discards the expanded rectangle."""
        self._crop_rect = [int(v) for v in rect]
        self._expanded_rect = None

    @property
    def expanded_rect(self):
        """The expanded rectangle, or the crop rectangle if nothing expanded it."""
        if self._expanded_rect is not None:
            return list(self._expanded_rect)
        return self.crop_rect

    @expanded_rect.setter
    def expanded_rect(self, rect):
        self._expanded_rect = [int(v) for v in rect]

    def clear_expanded_rect(self):
        """Drop the expansion; expanded_rect follows crop_rect again."""
        self._expanded_rect = None

    @property
    def has_expanded_rect(self):
        return self._expanded_rect is not None

    def __eq__(self, b):
        if not isinstance(b, CropParameters):
            return NotImplemented
        return (self._crop_rect == b._crop_rect and
                self.expanded_rect == b.expanded_rect and
                self.border_color == b.border_color)

    def __repr__(self):
        return f"<CropParameters {format_color(self.border_color)} crop={self._crop_rect} expanded={self.expanded_rect}>"


class ImageBuffer(ABC):
    """Abstract packed-pixel image.
    Dimensions never change; operations that change them return a new buffer."""

    _crop_parameters = None

    @property
    @abstractmethod
    def bytes(self):
        """numpy uint8 array of pitch*height bytes."""

    @property
    @abstractmethod
    def width(self):
        pass

    @property
    @abstractmethod
    def height(self):
        pass

    @property
    @abstractmethod
    def pitch(self):
        """Row stride in bytes"""

    @property
    def word_pitch(self):
        return self.pitch >> 2

    @property
    def words(self):
        """The storage as a flat numpy uint32 array. Writes go to the buffer."""
        return self.bytes.view(np.uint32)

    def rows(self):
        """The storage as a (height, word_pitch) uint32 array.
        Columns past width are row padding."""
        return self.words.reshape(self.height, self.word_pitch)

    @abstractmethod
    def to_byte_buffer(self):
        """Raw-memory version of this buffer. crop_parameters are copied."""

    @abstractmethod
    def to_surface_buffer(self):
        """OpenCV-backed version of this buffer. crop_parameters are copied."""

    @property
    def crop_parameters(self):
        if self._crop_parameters is None:
            self._crop_parameters = CropParameters().init_crop_rect(self)
        return self._crop_parameters

    @crop_parameters.setter
    def crop_parameters(self, params):
        """Assigning copies by value, so buffers never share parameters."""
        self._crop_parameters = CropParameters(params)

    @property
    def shape(self):
        """(height, width) like numpy."""
        return (self.height, self.width)

    def __repr__(self):
        return f"<{self.__class__.__name__} {self.width}x{self.height} pitch={self.pitch}>"


class ByteImageBuffer(ImageBuffer):
    """ImageBuffer in raw memory"""
    def __init__(self, data, width:int, height:int, pitch:int):
        assert pitch % 4 == 0
        assert pitch >= width * 4
        if isinstance(data, (bytes, bytearray, memoryview)):
            data = np.frombuffer(data, dtype=np.uint8)
        data = np.asarray(data, dtype=np.uint8).reshape(-1)
        assert len(data) >= pitch * height
        self._bytes  = data[:pitch * height]
        self._width  = width
        self._height = height
        self._pitch  = pitch

    @classmethod
    def allocate(cls, width:int, height:int):
        """Return a zero-filled, tightly packed buffer."""
        return cls(np.zeros(width * height * 4, dtype=np.uint8), width, height, width * 4)

    @classmethod
    def from_words(cls, words):
        """Build a buffer from a (height, width) array of pixel words. The array is copied."""
        words = np.array(words, dtype=np.uint32, ndmin=2)
        (h, w) = words.shape
        return cls(words.reshape(-1).view(np.uint8), w, h, w * 4)

    @property
    def bytes(self):
        return self._bytes

    @property
    def width(self):
        return self._width

    @property
    def height(self):
        return self._height

    @property
    def pitch(self):
        return self._pitch

    def pixels(self):
        """Copy of the visible pixels as a (height, width) uint32 array."""
        return self.rows()[:, :self._width].copy()

    def to_byte_buffer(self):
        return self

    def to_surface_buffer(self):
        rgba_img = self._bytes.reshape(self._height, self._pitch)[:, :self._width * 4]
        rgba_img = np.ascontiguousarray(rgba_img.reshape(self._height, self._width, 4))
        result = SurfaceImageBuffer(_swap_red_blue(rgba_img))
        result.crop_parameters = self.crop_parameters
        return result


class SurfaceImageBuffer(ImageBuffer):
    """ImageBuffer wrapping an OpenCV image.
    Grayscale and BGR images are promoted to BGRA with opaque alpha."""
    def __init__(self, img):
        self._img   = _to_bgra(img)
        self._bytes = None

    @property
    def img(self):
        """The BGRA image."""
        return self._img

    @property
    def bytes(self):
        """RGBA bytes, converted from the image on first access."""
        if self._bytes is None:
            self._bytes = np.ascontiguousarray(_swap_red_blue(self._img)).reshape(-1)
        return self._bytes

    @property
    def width(self):
        return self._img.shape[1]

    @property
    def height(self):
        return self._img.shape[0]

    @property
    def pitch(self):
        return self.width * 4

    def to_byte_buffer(self):
        result = ByteImageBuffer(self.bytes.copy(), self.width, self.height, self.pitch)
        result.crop_parameters = self.crop_parameters
        return result

    def to_surface_buffer(self):
        return self


def _swap_red_blue(img):
    """RGBA <-> BGRA. Always returns a new array."""
    if img.size == 0:
        return img[..., [2, 1, 0, 3]].copy()
    return cv2.cvtColor(img, cv2.COLOR_RGBA2BGRA)

def _to_bgra(img):
    if img.dtype == np.uint16:
        img = (img >> 8).astype(np.uint8)
    assert img.dtype == np.uint8
    if img.ndim == 3 and img.shape[2] == 4:
        return img
    if img.size == 0:
        return np.zeros((img.shape[0], img.shape[1], 4), dtype=np.uint8)
    if img.ndim == 2:
        return cv2.cvtColor(img, cv2.COLOR_GRAY2BGRA)
    if img.shape[2] == 3:
        return cv2.cvtColor(img, cv2.COLOR_BGR2BGRA)
    raise NotImageError(f"unsupported image shape {img.shape}")


## Reading and writing files. Only the command line uses these.

@functools.lru_cache(maxsize=MAXSIZE_CACHE)
def bytes_read(path):
    with open(path,"rb") as f:
        return f.read()

@functools.lru_cache(maxsize=MAXSIZE_CACHE)
def image_read(path):
    """Caching image read. The result is immutable to allow sharing"""
    assert path is not None
    img = cv2.imdecode(np.frombuffer(bytes_read(path), np.uint8), cv2.IMREAD_UNCHANGED)
    if img is None:
        raise NotImageError("cannot read:"+path)
    img.flags.writeable = False
    return img

def image_write(path, buffer:ImageBuffer):
    """Write buffer to path. The format comes from the extension."""
    logger.debug("write %s %s", path, buffer)
    dirname = os.path.dirname(path)
    if dirname:
        os.makedirs(dirname, exist_ok=True)
    ok, encoded = cv2.imencode(os.path.splitext(path)[1], buffer.to_surface_buffer().img)
    if not ok:
        raise NotImageError("cannot encode:"+path)
    with open(path,"wb") as f:
        f.write(encoded.tobytes())
