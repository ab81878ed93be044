"""
Score Reader Package
"""

from .abc_syntax import RepairResult, repair_abc, find_critical_errors
from .conditioning import condition_image
from .engine import (
    RecognitionEngine,
    GeminiEngine,
    OpenAIEngine,
    EngineOk,
    EngineEmpty,
    EngineTransportFailure,
    build_engine,
)
from .errors import ScoreReaderError, DecodeError, EngineEmptyResponse, EngineTransportError
from .models import ConditioningOptions, ConditioningResult, QualityReport
from .orchestrator import TranscriptionOrchestrator, TranscriptionSession, SessionState, SessionRun
from .quality import assess_quality, quick_quality_check
from .reader import ScoreReading, read_sheet_music

__all__ = [
    "RepairResult",
    "repair_abc",
    "find_critical_errors",
    "condition_image",
    "RecognitionEngine",
    "GeminiEngine",
    "OpenAIEngine",
    "EngineOk",
    "EngineEmpty",
    "EngineTransportFailure",
    "build_engine",
    "ScoreReaderError",
    "DecodeError",
    "EngineEmptyResponse",
    "EngineTransportError",
    "ConditioningOptions",
    "ConditioningResult",
    "QualityReport",
    "TranscriptionOrchestrator",
    "TranscriptionSession",
    "SessionState",
    "SessionRun",
    "assess_quality",
    "quick_quality_check",
    "ScoreReading",
    "read_sheet_music",
]
