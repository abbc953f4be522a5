"""
Tests for the border color samplers
"""

import pytest
import sys
import asyncio

from os.path import abspath, dirname, join, basename

import numpy as np

sys.path.append(join(dirname(dirname(dirname(__file__)))))

from imagerocket.constants import C
from imagerocket.image import rgba,ByteImageBuffer,OPAQUE_BLACK
from imagerocket.samplers import ABSENT,TopLeftSampler,PointSampler,ManualColor,actual_offset,clamp
from imagerocket.pipeline import ImageProcessingPipeline
from imagerocket.serializer import global_serializer

RED = rgba(255, 0, 0)

def numbered(w, h):
    return ByteImageBuffer.from_words(np.arange(1, w * h + 1, dtype=np.uint32).reshape(h, w))

async def settle():
    for _ in range(4):
        await asyncio.sleep(0)

def test_helpers():
    assert clamp(-3, 0, 4) == 0
    assert clamp(9, 0, 4) == 4
    assert actual_offset(0, 100) == 0
    assert actual_offset(0.5, 3) == 2
    assert actual_offset(1, 4) == 4

def test_point_sampler_defaults():
    node = PointSampler()
    assert node.serialize() == {"normalizedX": 0, "normalizedY": 0, "pixelX": 0, "pixelY": 0}
    buf = numbered(5, 4)
    assert node.extract_color(buf) == 1
    assert (node.settings["lastX"], node.settings["lastY"], node.settings["lastColor"]) == (0, 0, 1)
    # the readings are not persisted
    assert "lastColor" not in node.serialize()

def test_point_sampler_position():
    node = PointSampler()
    buf = numbered(5, 4)
    node.deserialize({"normalizedX": 1, "normalizedY": 1})
    assert node.extract_color(buf) == 20
    node.deserialize({"normalizedX": 0.5, "normalizedY": 0, "pixelX": -1, "pixelY": 2})
    assert node.sample_position(5, 4) == (1, 2)
    assert node.extract_color(buf) == 12

def test_point_sampler_clamps():
    node = PointSampler()
    node.deserialize({"pixelX": 100, "pixelY": -100})
    assert node.extract_color(numbered(5, 4)) == 5

def test_point_sampler_empty_buffer():
    node = PointSampler()
    buf = ByteImageBuffer.allocate(0, 0)
    assert node.extract_color(buf) is ABSENT
    result = asyncio.run(node.process_image(buf))
    assert result.crop_parameters.border_color == OPAQUE_BLACK

def test_point_sampler_sets_border_color():
    buf = numbered(3, 3)
    buf.words[:] = RED
    result = asyncio.run(PointSampler().process_image(buf))
    assert result is buf
    assert buf.crop_parameters.border_color == RED

def test_editing_position_clears_readings():
    node = PointSampler()
    async def go():
        node.extract_color(numbered(3, 3))
        assert node.settings["lastColor"] == 1
        node.model_bridge.model["normalizedX"] = 0.5
        await settle()
    asyncio.run(go())
    assert node.settings["lastColor"] is None
    assert node.settings["lastX"] is None

def test_editor_hears_readings():
    node = PointSampler()
    heard = []
    async def go():
        node.model_bridge.add_handler("lastColor", lambda model, key: heard.append(model[key]))
        node.extract_color(numbered(3, 3))
        await settle()
    asyncio.run(go())
    assert heard == [1]

def test_top_left_sampler():
    node = TopLeftSampler()
    assert node.serialize() == {}
    buf = numbered(4, 3)
    assert node.extract_color(buf) == 1
    assert node.extract_color(ByteImageBuffer.allocate(0, 0)) is ABSENT
    buf.words[0] = RED
    asyncio.run(node.process_image(buf))
    assert buf.crop_parameters.border_color == RED

def test_top_left_sampler_loads_from_records():
    records = [{"class": "_rootRefs", "ids": ["ImageProcessingPipeline1"]},
               {"class": "ImageProcessingPipeline", "id": "ImageProcessingPipeline1",
                "nodes": [{"class": "_ref", "id": "TopLeftSampler1"}]},
               {"class": "TopLeftSampler", "id": "TopLeftSampler1"}]
    [pipeline] = global_serializer.deserialize_all(records)
    assert isinstance(pipeline, ImageProcessingPipeline)
    assert isinstance(pipeline.nodes[0], TopLeftSampler)

def test_manual_color():
    node = ManualColor()
    assert C.NO_EFFECT in node.features
    assert node.extract_color(numbered(2, 2)) is ABSENT
    buf = numbered(2, 2)
    buf.crop_parameters.border_color = RED
    asyncio.run(node.process_image(buf))
    assert buf.crop_parameters.border_color == RED

    node.deserialize({"color": rgba(1, 2, 3)})
    assert not node.features
    assert node.serialize() == {"color": rgba(1, 2, 3)}
    asyncio.run(node.process_image(buf))
    assert buf.crop_parameters.border_color == rgba(1, 2, 3)
