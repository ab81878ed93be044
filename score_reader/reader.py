"""
Sheet Music Reader
Entry point tying conditioning and multi-pass transcription together for one upload.
"""

import asyncio
import logging
from dataclasses import dataclass
from typing import Optional

from .conditioning import condition_image
from .engine import RecognitionEngine
from .models import ConditioningOptions, ConditioningResult
from .orchestrator import TranscriptionOrchestrator, TranscriptionSession


logger = logging.getLogger(__name__)


@dataclass
class ScoreReading:
    """Final ABC text plus the diagnostics trail for one upload."""
    conditioning: ConditioningResult
    session: TranscriptionSession

    @property
    def text(self) -> str:
        return self.session.final_text

    def to_dict(self) -> dict:
        result = self.session.to_dict()
        result.update({
            "warnings": list(self.conditioning.quality.warnings),
            "suggestions": list(self.conditioning.quality.suggestions),
            "steps_applied": list(self.conditioning.steps_applied),
            "quality": self.conditioning.quality.to_dict(),
        })
        return result


async def read_sheet_music(
    image_bytes: bytes,
    engine: RecognitionEngine,
    options: Optional[ConditioningOptions] = None,
) -> ScoreReading:
    """
    Condition an uploaded image and transcribe it to ABC notation.

    Args:
        image_bytes: Raw uploaded image
        engine: Recognition engine for this request
        options: Conditioning options (defaults from config)

    Returns:
        ScoreReading with final text, passes, fixes and quality diagnostics

    Raises:
        DecodeError: Unreadable or zero-area image
        EngineEmptyResponse: First pass produced nothing
        EngineTransportError: An engine call failed
    """
    # Pixel work is CPU-bound; keep it off the event loop
    conditioning = await asyncio.to_thread(condition_image, image_bytes, options)
    logger.info(
        "Conditioned %dx%d -> %dx%d (%s)",
        conditioning.original_size.width,
        conditioning.original_size.height,
        conditioning.processed_size.width,
        conditioning.processed_size.height,
        conditioning.processed_image.mime_type,
    )

    orchestrator = TranscriptionOrchestrator(engine)
    session = await orchestrator.run(conditioning.processed_image)
    return ScoreReading(conditioning=conditioning, session=session)
