"""
Imaging Helpers
Pillow-backed decode, resize and encode for RGBA bitmaps.
"""

import io

import numpy as np
from PIL import Image, ImageOps, UnidentifiedImageError

from .errors import DecodeError
from .models import RasterImage, EncodedImage, ImageSize


def decode_image(image_bytes: bytes) -> RasterImage:
    """
    Decode uploaded bytes into an RGBA bitmap.

    Args:
        image_bytes: Raw PNG/JPEG/... file contents

    Returns:
        RasterImage with an (H, W, 4) uint8 buffer

    Raises:
        DecodeError: If the bytes are unreadable or the image has zero area
    """
    if not image_bytes:
        raise DecodeError("No image data provided")

    try:
        with Image.open(io.BytesIO(image_bytes)) as img:
            source_format = img.format or "PNG"
            img = ImageOps.exif_transpose(img)
            rgba = img.convert("RGBA")
            pixels = np.asarray(rgba, dtype=np.uint8).copy()
    except (UnidentifiedImageError, Image.DecompressionBombError, OSError, ValueError, EOFError, SyntaxError) as e:
        raise DecodeError(f"Unreadable image data: {e}") from e

    raster = RasterImage(pixels=pixels, source_format=source_format)
    if raster.width == 0 or raster.height == 0:
        raise DecodeError(f"Image has zero area ({raster.width}x{raster.height})")
    return raster


def scaled_size(size: ImageSize, max_dimension: int) -> ImageSize:
    """Size that fits within max_dimension on the long edge; never enlarges."""
    if size.long_edge <= max_dimension:
        return ImageSize(size.width, size.height)

    scale = max_dimension / float(size.long_edge)
    return ImageSize(
        max(1, int(round(size.width * scale))),
        max(1, int(round(size.height * scale))),
    )


def resize_raster(raster: RasterImage, size: ImageSize) -> RasterImage:
    """Resample with high-quality (Lanczos) interpolation."""
    img = Image.fromarray(raster.pixels)
    resized = img.resize((size.width, size.height), Image.Resampling.LANCZOS)
    return RasterImage(
        pixels=np.asarray(resized, dtype=np.uint8).copy(),
        source_format=raster.source_format,
    )


def encode_raster(raster: RasterImage, lossless: bool, jpeg_quality: int = 90) -> EncodedImage:
    """Encode as PNG (lossless) or JPEG (lossy, alpha dropped)."""
    img = Image.fromarray(raster.pixels)
    buffer = io.BytesIO()

    if lossless:
        img.save(buffer, format="PNG", optimize=True)
        return EncodedImage(data=buffer.getvalue(), mime_type="image/png")

    img.convert("RGB").save(buffer, format="JPEG", quality=jpeg_quality, optimize=True)
    return EncodedImage(data=buffer.getvalue(), mime_type="image/jpeg")
