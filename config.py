"""
Score Reader Configuration Module
Loads settings from .env file and defines pipeline constants.
"""

import os
from pathlib import Path
from dotenv import load_dotenv

# Load environment variables from .env file
load_dotenv()

# =============================================================================
# API Keys
# =============================================================================
GOOGLE_API_KEY = os.getenv("GOOGLE_API_KEY", "")
OPENAI_API_KEY = os.getenv("OPENAI_API_KEY", "")
RECOGNITION_BACKEND = os.getenv("RECOGNITION_BACKEND", "gemini").lower()  # "gemini" or "openai"

# =============================================================================
# Model Configuration
# =============================================================================
GEMINI_MODEL = os.getenv("GEMINI_MODEL", "gemini-2.0-flash")
OPENAI_MODEL = os.getenv("OPENAI_MODEL", "gpt-4o")
ENGINE_TEMPERATURE = float(os.getenv("ENGINE_TEMPERATURE", "0.2"))
ENGINE_MAX_OUTPUT_TOKENS = int(os.getenv("ENGINE_MAX_OUTPUT_TOKENS", "4000"))
ENGINE_TIMEOUT_S = int(os.getenv("ENGINE_TIMEOUT_S", "120"))

SUPPORTED_BACKENDS = ("gemini", "openai")

# =============================================================================
# Image Conditioning Defaults
# =============================================================================
MAX_DIMENSION = int(os.getenv("MAX_DIMENSION", "2048"))  # Long-edge cap in pixels
ENHANCE_CONTRAST = os.getenv("ENHANCE_CONTRAST", "true").lower() == "true"
CONTRAST_FACTOR = float(os.getenv("CONTRAST_FACTOR", "1.3"))  # 1.0 = no change
JPEG_QUALITY = int(os.getenv("JPEG_QUALITY", "90"))

# =============================================================================
# Paths
# =============================================================================
BASE_DIR = Path(__file__).parent
OUTPUT_DIR = Path(os.getenv("OUTPUT_DIR", str(BASE_DIR / "output")))


# =============================================================================
# Validation
# =============================================================================
def validate_config() -> dict:
    """Validate configuration and return status."""
    issues = []

    if RECOGNITION_BACKEND not in SUPPORTED_BACKENDS:
        issues.append(
            f"RECOGNITION_BACKEND must be one of {', '.join(SUPPORTED_BACKENDS)} "
            f"(got '{RECOGNITION_BACKEND}')"
        )

    if RECOGNITION_BACKEND == "gemini" and not GOOGLE_API_KEY:
        issues.append("GOOGLE_API_KEY is not set in .env file")

    if RECOGNITION_BACKEND == "openai" and not OPENAI_API_KEY:
        issues.append("OPENAI_API_KEY is required when RECOGNITION_BACKEND=openai")

    return {
        "valid": len(issues) == 0,
        "issues": issues,
        "config": {
            "backend": RECOGNITION_BACKEND,
            "model": OPENAI_MODEL if RECOGNITION_BACKEND == "openai" else GEMINI_MODEL,
            "max_dimension": MAX_DIMENSION,
            "enhance_contrast": ENHANCE_CONTRAST,
            "contrast_factor": CONTRAST_FACTOR,
        }
    }
