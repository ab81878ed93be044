"""
Data Models
Containers passed between the conditioning and transcription stages.
"""

import base64
from dataclasses import dataclass, field, asdict

import numpy as np

import config


@dataclass
class ImageSize:
    """Pixel dimensions of an image."""
    width: int
    height: int

    @property
    def long_edge(self) -> int:
        return max(self.width, self.height)


@dataclass
class RasterImage:
    """Decoded bitmap: an (height, width, 4) uint8 RGBA pixel buffer."""
    pixels: np.ndarray
    source_format: str = "PNG"

    @property
    def width(self) -> int:
        return int(self.pixels.shape[1])

    @property
    def height(self) -> int:
        return int(self.pixels.shape[0])

    @property
    def size(self) -> ImageSize:
        return ImageSize(self.width, self.height)


@dataclass
class EncodedImage:
    """Encoded image bytes ready to send to a recognition engine."""
    data: bytes
    mime_type: str

    @property
    def base64(self) -> str:
        return base64.b64encode(self.data).decode("utf-8")

    @property
    def data_uri(self) -> str:
        return f"data:{self.mime_type};base64,{self.base64}"


@dataclass
class QualityReport:
    """Deterministic quality scores and verdict for a bitmap."""
    width: int
    height: int
    contrast_score: float  # 0-1, higher is better
    sharpness_score: float  # 0-1, higher is sharper
    is_acceptable: bool
    warnings: list[str] = field(default_factory=list)
    suggestions: list[str] = field(default_factory=list)

    def to_dict(self) -> dict:
        return asdict(self)


@dataclass
class ConditioningOptions:
    """Caller-supplied conditioning configuration."""
    max_dimension: int = config.MAX_DIMENSION
    enhance_contrast: bool = config.ENHANCE_CONTRAST
    contrast_factor: float = config.CONTRAST_FACTOR  # 1.0 = no change

    def __post_init__(self):
        if self.max_dimension < 1:
            raise ValueError(f"max_dimension must be positive (got {self.max_dimension})")
        # The contrast curve has a pole just above a gain of 2.0
        if not 0.0 < self.contrast_factor <= 2.0:
            raise ValueError(f"contrast_factor must be in (0, 2] (got {self.contrast_factor})")


@dataclass
class ConditioningResult:
    """Output of the conditioning pipeline."""
    processed_image: EncodedImage
    original_size: ImageSize
    processed_size: ImageSize
    quality: QualityReport
    steps_applied: list[str] = field(default_factory=list)

    def to_dict(self) -> dict:
        return {
            "mime_type": self.processed_image.mime_type,
            "original_size": asdict(self.original_size),
            "processed_size": asdict(self.processed_size),
            "quality": self.quality.to_dict(),
            "steps_applied": list(self.steps_applied),
        }
