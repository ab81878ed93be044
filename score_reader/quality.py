"""
Quality Assessor Module
Deterministic contrast, sharpness and resolution scoring for sheet music images.

Thresholds are fixed constants. Changing any of them changes which uploads
are accepted, so they are versioned with the code rather than configured.
"""

import numpy as np

from .imaging import decode_image, scaled_size, resize_raster
from .models import QualityReport, RasterImage


# =============================================================================
# Thresholds
# =============================================================================
RESOLUTION_WARN_BELOW = 400
RESOLUTION_SUGGEST_BELOW = 800
CONTRAST_WARN_BELOW = 0.15
CONTRAST_SUGGEST_BELOW = 0.25
SHARPNESS_WARN_BELOW = 0.10
SHARPNESS_SUGGEST_BELOW = 0.20

MIN_ACCEPTABLE_CONTRAST = 0.10
MIN_ACCEPTABLE_SHARPNESS = 0.05
MIN_ACCEPTABLE_WIDTH = 300
MIN_ACCEPTABLE_HEIGHT = 200

SHARPNESS_SAMPLE_LIMIT = 10_000
DEGENERATE_SHARPNESS = 0.5
QUICK_CHECK_LONG_EDGE = 500


def _grayscale(pixels: np.ndarray) -> np.ndarray:
    """Average of the R, G, B channels as float64; alpha is ignored."""
    return pixels[..., :3].astype(np.float64).mean(axis=2)


def measure_contrast(pixels: np.ndarray) -> float:
    """RMS contrast of the grayscale image, normalized to 0-1."""
    gray = _grayscale(pixels)
    mean = gray.mean()
    variance = (gray * gray).mean() - mean * mean
    rms_contrast = np.sqrt(max(0.0, variance)) / 255
    return float(min(1.0, rms_contrast * 2))


def measure_sharpness(pixels: np.ndarray) -> float:
    """
    Laplacian-variance sharpness, normalized to 0-1.

    Interior pixels are visited in row-major order and every ``step``-th one
    is sampled; the stencil is only evaluated at sampled pixels.
    """
    height, width = pixels.shape[:2]
    if width < 3 or height < 3:
        return DEGENERATE_SHARPNESS

    gray = _grayscale(pixels)

    interior_width = width - 2
    interior = interior_width * (height - 2)
    step = max(1, interior // min(SHARPNESS_SAMPLE_LIMIT, interior))

    index = np.arange(0, interior, step)
    rows = index // interior_width + 1
    cols = index % interior_width + 1

    laplacian = (
        4 * gray[rows, cols]
        - gray[rows - 1, cols]
        - gray[rows + 1, cols]
        - gray[rows, cols - 1]
        - gray[rows, cols + 1]
    )
    variance = float(np.mean(laplacian * laplacian))
    return float(min(1.0, variance / 500))


def is_acceptable(width: int, height: int, contrast: float, sharpness: float) -> bool:
    """Minimum bar an image must clear to be worth sending for recognition."""
    return (
        contrast >= MIN_ACCEPTABLE_CONTRAST
        and sharpness >= MIN_ACCEPTABLE_SHARPNESS
        and width >= MIN_ACCEPTABLE_WIDTH
        and height >= MIN_ACCEPTABLE_HEIGHT
    )


def build_report(width: int, height: int, contrast: float, sharpness: float) -> QualityReport:
    """Apply the fixed thresholds to already-measured scores."""
    warnings = []
    suggestions = []

    # Resolution check
    if width < RESOLUTION_WARN_BELOW or height < RESOLUTION_WARN_BELOW:
        warnings.append("Image resolution is low")
        suggestions.append("Use a higher resolution image for better accuracy")
    elif width < RESOLUTION_SUGGEST_BELOW or height < RESOLUTION_SUGGEST_BELOW:
        suggestions.append("Higher resolution may improve accuracy")

    # Contrast check
    if contrast < CONTRAST_WARN_BELOW:
        warnings.append("Very low contrast detected")
        suggestions.append("Ensure good lighting and a clear difference between notes and background")
    elif contrast < CONTRAST_SUGGEST_BELOW:
        suggestions.append("Consider using a scanner or improving lighting for better contrast")

    # Sharpness check
    if sharpness < SHARPNESS_WARN_BELOW:
        warnings.append("Image appears blurry")
        suggestions.append("Hold camera steady or use a scanner for sharper results")
    elif sharpness < SHARPNESS_SUGGEST_BELOW:
        suggestions.append("Image could be sharper - try holding camera more steady")

    return QualityReport(
        width=width,
        height=height,
        contrast_score=contrast,
        sharpness_score=sharpness,
        is_acceptable=is_acceptable(width, height, contrast, sharpness),
        warnings=warnings,
        suggestions=suggestions,
    )


def assess_quality(raster: RasterImage) -> QualityReport:
    """Score a bitmap. Pure: the same pixels always give the same report."""
    return build_report(
        raster.width,
        raster.height,
        measure_contrast(raster.pixels),
        measure_sharpness(raster.pixels),
    )


def quick_quality_check(image_bytes: bytes) -> QualityReport:
    """
    Cheap pre-upload check.

    Scores are taken from a copy shrunk to at most 500px on the long edge;
    dimensions, resolution warnings and the verdict use the original size.
    """
    raster = decode_image(image_bytes)
    small = resize_raster(raster, scaled_size(raster.size, QUICK_CHECK_LONG_EDGE))
    return build_report(
        raster.width,
        raster.height,
        measure_contrast(small.pixels),
        measure_sharpness(small.pixels),
    )
