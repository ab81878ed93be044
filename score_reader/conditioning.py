"""
Image Conditioning Module
Resizes, conditionally contrast-enhances and re-encodes an upload before recognition.
"""

import logging
from typing import Optional

import numpy as np

import config
from .imaging import decode_image, scaled_size, resize_raster, encode_raster
from .models import ConditioningOptions, ConditioningResult, RasterImage
from .quality import assess_quality


logger = logging.getLogger(__name__)

# Pre-enhancement contrast below this gets stretched
ENHANCE_BELOW_CONTRAST = 0.4
# Pre-enhancement contrast above this is treated as a clean scan (PNG output)
LOSSLESS_ABOVE_CONTRAST = 0.5


def contrast_correction_factor(factor: float) -> float:
    """
    Slope of the contrast-correction curve for a unitless gain.

    The gain is mapped onto the classic ``C`` parameter (``C = (gain - 1) * 255``)
    of ``F = 259 * (C + 255) / (255 * (259 - C))`` so a gain of 1.0 yields F == 1.
    """
    c = (factor - 1.0) * 255
    return (259 * (c + 255)) / (255 * (259 - c))


def enhance_contrast(raster: RasterImage, factor: float) -> RasterImage:
    """Linear contrast stretch about mid-gray on R, G and B; alpha is untouched."""
    slope = contrast_correction_factor(factor)
    pixels = raster.pixels.copy()

    rgb = pixels[..., :3].astype(np.float64)
    # Round half up, then clamp to the byte range
    stretched = np.floor(slope * (rgb - 128) + 128 + 0.5)
    pixels[..., :3] = np.clip(stretched, 0, 255).astype(np.uint8)

    return RasterImage(pixels=pixels, source_format=raster.source_format)


def condition_image(
    image_bytes: bytes,
    options: Optional[ConditioningOptions] = None,
) -> ConditioningResult:
    """
    Prepare an uploaded sheet music image for the recognition engine.

    Args:
        image_bytes: Raw image file contents
        options: Resize / enhancement settings (defaults from config)

    Returns:
        ConditioningResult with the encoded image, sizes, final quality and step trace

    Raises:
        DecodeError: If the bytes are unreadable or the image has zero area
    """
    options = options or ConditioningOptions()
    steps_applied = []

    raster = decode_image(image_bytes)
    original_size = raster.size

    # Scale down if needed
    target_size = scaled_size(original_size, options.max_dimension)
    if target_size != original_size:
        raster = resize_raster(raster, target_size)
        steps_applied.append(
            f"Resized from {original_size.width}x{original_size.height} "
            f"to {target_size.width}x{target_size.height}"
        )
        logger.info(steps_applied[-1])

    # Assess quality before contrast enhancement
    pre_quality = assess_quality(raster)
    logger.debug(
        "Pre-enhancement quality: contrast=%.3f sharpness=%.3f",
        pre_quality.contrast_score,
        pre_quality.sharpness_score,
    )

    if options.enhance_contrast and pre_quality.contrast_score < ENHANCE_BELOW_CONTRAST:
        raster = enhance_contrast(raster, options.contrast_factor)
        steps_applied.append(f"Applied contrast enhancement (factor: {options.contrast_factor})")
        logger.info(steps_applied[-1])

    quality = assess_quality(raster)
    if not quality.is_acceptable:
        logger.warning("Image quality below recognition threshold: %s", "; ".join(quality.warnings))

    # PNG for clean scans, JPEG for photos
    lossless = pre_quality.contrast_score > LOSSLESS_ABOVE_CONTRAST
    processed_image = encode_raster(raster, lossless=lossless, jpeg_quality=config.JPEG_QUALITY)

    return ConditioningResult(
        processed_image=processed_image,
        original_size=original_size,
        processed_size=raster.size,
        quality=quality,
        steps_applied=steps_applied,
    )
