import io

import numpy as np
import pytest
from PIL import Image

from score_reader.engine import RecognitionEngine
from score_reader.models import EncodedImage, RasterImage


GOOD_TUNE = "X:1\nT:Test Tune\nM:4/4\nL:1/8\nK:G\nGABc d2B2|c2A2 G4|]"


class ScriptedEngine(RecognitionEngine):
    """Substitute engine replaying canned answers, one per call.

    Each scripted item is the text to return, None for an empty answer,
    or an exception instance to raise as a transport failure.
    """

    model_name = "scripted"

    def __init__(self, *responses):
        self.responses = list(responses)
        self.calls = []

    async def _call(self, image, instruction, context):
        self.calls.append({"image": image, "instruction": instruction, "context": context})
        if not self.responses:
            raise AssertionError("engine called more times than scripted")
        response = self.responses.pop(0)
        if isinstance(response, Exception):
            raise response
        return response, 1000, len(response or "") // 4


@pytest.fixture
def scripted_engine():
    return ScriptedEngine


@pytest.fixture
def good_tune():
    return GOOD_TUNE


@pytest.fixture
def encoded_image():
    # Tiny PNG payload; the orchestrator never looks inside it
    buffer = io.BytesIO()
    Image.new("RGB", (4, 4), (255, 255, 255)).save(buffer, format="PNG")
    return EncodedImage(data=buffer.getvalue(), mime_type="image/png")


@pytest.fixture
def image_bytes():
    """Factory: encode an RGB/RGBA uint8 array (or a solid fill) as PNG bytes."""

    def _make(width=None, height=None, color=(255, 255, 255), array=None, fmt="PNG"):
        if array is None:
            img = Image.new("RGB", (width, height), color)
        else:
            img = Image.fromarray(array)
        buffer = io.BytesIO()
        img.save(buffer, format=fmt)
        return buffer.getvalue()

    return _make


@pytest.fixture
def raster():
    """Factory: wrap an RGB array as an opaque RGBA RasterImage."""

    def _make(rgb):
        rgb = np.asarray(rgb, dtype=np.uint8)
        alpha = np.full(rgb.shape[:2] + (1,), 255, dtype=np.uint8)
        return RasterImage(pixels=np.concatenate([rgb, alpha], axis=2))

    return _make


@pytest.fixture
def staff_like_rgb():
    # 600x800 white page with dark horizontal staff lines and note-ish blobs
    rgb = np.full((800, 600, 3), 245, dtype=np.uint8)
    for y in range(100, 700, 12):
        rgb[y:y + 2, 40:560] = 20
    for x in range(60, 540, 37):
        rgb[200:210, x:x + 8] = 10
    return rgb
