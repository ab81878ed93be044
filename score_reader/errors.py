"""
Error Taxonomy
Typed failures surfaced to callers of the score reader.

Recoverable conditions (an empty verification pass, structural defects in
the notation) never raise; they are absorbed into the fix trail.
"""

from typing import Optional


GENERIC_USER_MESSAGE = (
    "Failed to read sheet music from image. "
    "Try a clearer, well-lit photo or a flatbed scan of the page."
)


class ScoreReaderError(Exception):
    """Base class for all fatal score reader failures."""

    user_message = GENERIC_USER_MESSAGE


class DecodeError(ScoreReaderError):
    """The uploaded bytes are not a readable, non-empty image."""

    user_message = (
        "The uploaded file could not be read as an image. "
        "Please upload a PNG or JPEG photo or scan of the sheet music."
    )


class EngineEmptyResponse(ScoreReaderError):
    """The recognition engine returned no text on the first pass."""

    def __init__(self, pass_index: int = 1):
        super().__init__(f"Recognition engine returned an empty response on pass {pass_index}")
        self.pass_index = pass_index


class EngineTransportError(ScoreReaderError):
    """The recognition engine call failed (network, auth, quota, timeout)."""

    def __init__(self, detail: str, pass_index: Optional[int] = None):
        where = f" on pass {pass_index}" if pass_index is not None else ""
        super().__init__(f"Recognition engine call failed{where}: {detail}")
        self.detail = detail
        self.pass_index = pass_index
