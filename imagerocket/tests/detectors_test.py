"""
Tests for crop detection
"""

import pytest
import sys
import asyncio

from os.path import abspath, dirname, join, basename

import numpy as np

sys.path.append(join(dirname(dirname(dirname(__file__)))))

from imagerocket.image import rgba,ByteImageBuffer
from imagerocket.detectors import detect_crop_rect,strip_matches,SimpleCropDetector,TolerantCropDetector

BLACK = rgba(0, 0, 0)
WHITE = rgba(255, 255, 255)

def canvas(w, h, color=BLACK):
    return np.full((h, w), color, dtype=np.uint32)

def test_uniform_collapses_on_the_right():
    buf = ByteImageBuffer.from_words(canvas(4, 3))
    assert detect_crop_rect(buf, BLACK) == [4, 0, 4, 3]

def test_no_border():
    words = canvas(4, 3, WHITE)
    assert detect_crop_rect(ByteImageBuffer.from_words(words), BLACK) == [0, 0, 4, 3]

def test_l_shape():
    words = canvas(6, 5)
    for (x, y) in [(1, 1), (1, 2), (1, 3), (2, 3), (3, 3)]:
        words[y, x] = WHITE
    assert detect_crop_rect(ByteImageBuffer.from_words(words), BLACK) == [1, 1, 4, 4]

def test_single_pixel():
    words = canvas(5, 5)
    words[4, 2] = WHITE
    assert detect_crop_rect(ByteImageBuffer.from_words(words), BLACK) == [2, 4, 3, 5]

def test_alpha_counts():
    words = canvas(3, 3)
    assert detect_crop_rect(ByteImageBuffer.from_words(words), rgba(0, 0, 0, 0)) == [0, 0, 3, 3]

def test_padding_is_ignored():
    # 3 pixels wide with a fourth, white padding word in every row
    words = canvas(4, 2, WHITE)
    words[:, :3] = BLACK
    words[0, 1] = WHITE
    buf = ByteImageBuffer(words.reshape(-1).view(np.uint8), 3, 2, 16)
    assert detect_crop_rect(buf, BLACK) == [1, 0, 2, 1]

def test_empty_buffer():
    assert detect_crop_rect(ByteImageBuffer.allocate(0, 0), BLACK) == [0, 0, 0, 0]

def test_strip_matches():
    rows = canvas(3, 3)
    rows[1, 1] = WHITE
    assert strip_matches(rows, BLACK, (0, 0, 3, 1))
    assert not strip_matches(rows, BLACK, (0, 1, 3, 2))
    assert not strip_matches(rows, BLACK, (1, 0, 1, 3))     # empty
    assert strip_matches(rows, rgba(250, 250, 250), (1, 1, 2, 2), tolerance=5)
    assert not strip_matches(rows, rgba(250, 250, 250), (1, 1, 2, 2), tolerance=4)

def test_tolerance():
    noisy = rgba(12, 9, 10)
    words = canvas(5, 4, rgba(10, 10, 10))
    words[0, 0] = noisy
    words[3, 4] = noisy
    words[1:3, 2] = WHITE
    buf = ByteImageBuffer.from_words(words)
    assert detect_crop_rect(buf, rgba(10, 10, 10)) == [0, 0, 5, 4]
    assert detect_crop_rect(buf, rgba(10, 10, 10), tolerance=2) == [2, 1, 3, 3]

def test_simple_crop_detector():
    words = canvas(6, 5)
    words[2, 3] = WHITE
    buf = ByteImageBuffer.from_words(words)
    buf.crop_parameters.expanded_rect = [-1, -1, 7, 6]
    node = SimpleCropDetector()
    assert node.serialize() == {}
    result = asyncio.run(node.process_image(buf.to_surface_buffer()))
    assert isinstance(result, ByteImageBuffer)
    assert result.crop_parameters.crop_rect == [3, 2, 4, 3]
    assert not result.crop_parameters.has_expanded_rect

def test_detector_uses_border_color():
    words = canvas(4, 4, WHITE)
    words[1:3, 1:3] = BLACK
    buf = ByteImageBuffer.from_words(words)
    buf.crop_parameters.border_color = WHITE
    result = asyncio.run(SimpleCropDetector().process_image(buf))
    assert result.crop_parameters.crop_rect == [1, 1, 3, 3]

def test_tolerant_crop_detector():
    node = TolerantCropDetector()
    assert node.serialize() == {"tolerance": 8}
    node.deserialize({"tolerance": 3})
    words = canvas(3, 3, rgba(2, 2, 2))
    words[1, 1] = WHITE
    result = asyncio.run(node.process_image(ByteImageBuffer.from_words(words)))
    assert result.crop_parameters.crop_rect == [1, 1, 2, 2]
