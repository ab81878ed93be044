import io

import numpy as np
import pytest
from PIL import Image

from score_reader.conditioning import (
    condition_image,
    contrast_correction_factor,
    enhance_contrast,
)
from score_reader.errors import DecodeError
from score_reader.imaging import decode_image
from score_reader.models import ConditioningOptions, ImageSize
from score_reader.quality import measure_contrast


@pytest.fixture
def dim_photo_bytes():
    # 3000x4000 two-tone gray page: RMS contrast ~0.12
    img = Image.new("RGB", (3000, 4000), (110, 110, 110))
    img.paste((140, 140, 140), (1500, 0, 3000, 4000))
    buffer = io.BytesIO()
    img.save(buffer, format="PNG")
    return buffer.getvalue()


def test_large_dim_photo_is_resized_and_enhanced(dim_photo_bytes):
    assert measure_contrast(decode_image(dim_photo_bytes).pixels) == pytest.approx(0.12, abs=0.01)

    result = condition_image(dim_photo_bytes)

    assert result.original_size == ImageSize(3000, 4000)
    assert result.processed_size == ImageSize(1536, 2048)
    assert result.steps_applied == [
        "Resized from 3000x4000 to 1536x2048",
        "Applied contrast enhancement (factor: 1.3)",
    ]
    assert result.processed_image.mime_type == "image/jpeg"
    assert result.quality.contrast_score > 0.15
    assert (result.quality.width, result.quality.height) == (1536, 2048)


def test_image_within_limit_keeps_its_size(image_bytes, staff_like_rgb):
    result = condition_image(image_bytes(array=staff_like_rgb))
    assert result.processed_size == result.original_size == ImageSize(600, 800)
    assert not any(step.startswith("Resized") for step in result.steps_applied)


@pytest.mark.parametrize(
    "size, max_dimension, expected",
    [
        ((3000, 1000), 1000, (1000, 333)),
        ((1000, 3000), 1000, (333, 1000)),
        ((1001, 1001), 1000, (1000, 1000)),
        ((999, 500), 1000, (999, 500)),
    ],
)
def test_resize_caps_long_edge_and_keeps_aspect(image_bytes, size, max_dimension, expected):
    options = ConditioningOptions(max_dimension=max_dimension, enhance_contrast=False)
    result = condition_image(image_bytes(*size), options)

    processed = result.processed_size
    assert (processed.width, processed.height) == expected
    assert processed.width <= result.original_size.width
    assert processed.height <= result.original_size.height
    assert max(processed.width, processed.height) <= max_dimension


def test_unit_gain_is_identity(raster):
    assert contrast_correction_factor(1.0) == 1.0
    rgb = np.random.default_rng(11).integers(0, 256, size=(40, 30, 3))
    image = raster(rgb)
    assert np.array_equal(enhance_contrast(image, 1.0).pixels, image.pixels)


def test_gain_above_one_stretches_around_mid_gray(raster):
    image = raster(np.array([[[110, 110, 110], [140, 140, 140], [128, 128, 128]]]))
    stretched = enhance_contrast(image, 1.3).pixels

    assert stretched[0, 0, 0] < 110
    assert stretched[0, 1, 0] > 140
    assert stretched[0, 2, 0] == 128
    assert measure_contrast(stretched) > measure_contrast(image.pixels)


def test_stretch_clamps_and_leaves_alpha(raster):
    image = raster(np.array([[[0, 10, 250], [255, 128, 5]]]))
    image.pixels[..., 3] = [17, 200]
    stretched = enhance_contrast(image, 2.0).pixels

    assert stretched.dtype == np.uint8
    assert list(stretched[0, :, 3]) == [17, 200]
    assert stretched[0, 0, 0] == 0 and stretched[0, 1, 0] == 255


def test_clean_scan_is_not_enhanced_and_stays_lossless(image_bytes):
    rgb = np.full((500, 500, 3), 255, dtype=np.uint8)
    rgb[:, 250:] = 0
    result = condition_image(image_bytes(array=rgb))

    assert result.steps_applied == []
    assert result.processed_image.mime_type == "image/png"


def test_enhancement_can_be_disabled(image_bytes):
    result = condition_image(
        image_bytes(500, 500, (128, 128, 128)),
        ConditioningOptions(enhance_contrast=False),
    )
    assert result.steps_applied == []
    assert result.processed_image.mime_type == "image/jpeg"


def test_processed_image_decodes_back(image_bytes, staff_like_rgb):
    result = condition_image(image_bytes(array=staff_like_rgb))
    decoded = decode_image(result.processed_image.data)
    assert decoded.size == result.processed_size
    assert result.processed_image.data_uri.startswith(f"data:{result.processed_image.mime_type};base64,")


@pytest.mark.parametrize("payload", [b"", b"not an image at all", b"\x89PNG\r\n\x1a\n truncated"])
def test_unreadable_bytes_raise_decode_error(payload):
    with pytest.raises(DecodeError):
        condition_image(payload)


@pytest.mark.parametrize("factor", [0.0, -1.0, 2.5])
def test_invalid_contrast_factor_is_rejected(factor):
    with pytest.raises(ValueError):
        ConditioningOptions(contrast_factor=factor)


def test_invalid_max_dimension_is_rejected():
    with pytest.raises(ValueError):
        ConditioningOptions(max_dimension=0)
