"""
Recognition Engine Module
Vision LLM clients that turn a sheet music image plus an instruction into ABC text.

Engines are constructed explicitly and handed to the orchestrator. Every call
is normalized into one of three results, so callers never see raw SDK objects
or SDK exceptions:

- EngineOk(text): the engine answered with something
- EngineEmpty(): the engine answered with nothing usable
- EngineTransportFailure(detail): the call itself failed
"""

import logging
import time
from dataclasses import dataclass
from typing import Optional, Union

import google.generativeai as genai

import config
from .abc_syntax import strip_code_fences
from .models import EncodedImage
from .prompts import SYSTEM_PROMPT
from .usage import UsageLedger, extract_gemini_usage, extract_openai_usage


logger = logging.getLogger(__name__)

CONTEXT_LABEL = "Transcription to review (ABC notation):"


@dataclass
class EngineOk:
    """Non-empty engine answer, exactly as returned."""
    text: str


@dataclass
class EngineEmpty:
    """The engine returned no text (or only code fences / whitespace)."""
    reason: str = "empty response"


@dataclass
class EngineTransportFailure:
    """The engine call raised: network, auth, quota, safety block, timeout."""
    detail: str


EngineResult = Union[EngineOk, EngineEmpty, EngineTransportFailure]


def normalize_response(text: Optional[str]) -> EngineResult:
    """Map raw engine text onto Ok / Empty."""
    if text is None or not strip_code_fences(text):
        return EngineEmpty()
    return EngineOk(text=text)


class RecognitionEngine:
    """
    Base class for vision recognition engines.

    Subclasses implement ``_call`` and may raise freely; ``recognize`` turns
    the outcome into an EngineResult and records usage.
    """

    model_name = "unknown"

    async def recognize(
        self,
        image: EncodedImage,
        instruction: str,
        context: Optional[str] = None,
        *,
        stage: str = "recognize",
        ledger: Optional[UsageLedger] = None,
    ) -> EngineResult:
        """
        Run one recognition call.

        Args:
            image: Conditioned image to read
            instruction: Prompt text for this pass
            context: Prior transcription the instruction refers to, if any
            stage: Label recorded in the usage ledger
            ledger: Session ledger to record the call in

        Returns:
            EngineOk, EngineEmpty or EngineTransportFailure
        """
        start_time = time.perf_counter()
        try:
            text, input_tokens, output_tokens = await self._call(image, instruction, context)
        except Exception as e:
            # Upstream detail stays at DEBUG; ERROR output reaches end users
            logger.error("Engine call failed during %s (%s)", stage, type(e).__name__)
            logger.debug("Engine failure detail: %s", e)
            return EngineTransportFailure(detail=f"{type(e).__name__}: {e}")
        duration_ms = (time.perf_counter() - start_time) * 1000

        if ledger is not None:
            ledger.add_call(
                stage=stage,
                model=self.model_name,
                input_tokens=input_tokens,
                output_tokens=output_tokens,
                duration_ms=duration_ms,
            )
        logger.debug("%s answered %s in %.0fms", self.model_name, stage, duration_ms)

        return normalize_response(text)

    async def _call(
        self,
        image: EncodedImage,
        instruction: str,
        context: Optional[str],
    ) -> tuple[Optional[str], int, int]:
        """Return (text, input_tokens, output_tokens)."""
        raise NotImplementedError


class GeminiEngine(RecognitionEngine):
    """Recognition engine backed by Google Gemini."""

    def __init__(
        self,
        model_name: Optional[str] = None,
        api_key: Optional[str] = None,
        temperature: float = config.ENGINE_TEMPERATURE,
        max_output_tokens: int = config.ENGINE_MAX_OUTPUT_TOKENS,
        timeout_s: int = config.ENGINE_TIMEOUT_S,
    ):
        genai.configure(api_key=api_key or config.GOOGLE_API_KEY)
        self.model_name = model_name or config.GEMINI_MODEL
        self.model = genai.GenerativeModel(self.model_name, system_instruction=SYSTEM_PROMPT)
        self.temperature = temperature
        self.max_output_tokens = max_output_tokens
        self.timeout_s = timeout_s

    async def _call(self, image, instruction, context):
        parts = [instruction, {"mime_type": image.mime_type, "data": image.base64}]
        if context:
            parts.extend([CONTEXT_LABEL, context])

        response = await self.model.generate_content_async(
            parts,
            generation_config={
                "temperature": self.temperature,
                "max_output_tokens": self.max_output_tokens,
            },
            request_options={"timeout": self.timeout_s},
        )
        input_tokens, output_tokens = extract_gemini_usage(response)

        # A blocked or truncated-to-nothing answer has no parts
        if not response.candidates or not response.candidates[0].content.parts:
            finish_reason = response.candidates[0].finish_reason if response.candidates else "UNKNOWN"
            logger.warning("Gemini returned no content (finish_reason: %s)", finish_reason)
            return None, input_tokens, output_tokens

        return response.text, input_tokens, output_tokens


class OpenAIEngine(RecognitionEngine):
    """Recognition engine backed by OpenAI vision chat completions."""

    def __init__(
        self,
        model_name: Optional[str] = None,
        api_key: Optional[str] = None,
        temperature: float = config.ENGINE_TEMPERATURE,
        max_output_tokens: int = config.ENGINE_MAX_OUTPUT_TOKENS,
        timeout_s: int = config.ENGINE_TIMEOUT_S,
    ):
        import openai
        self.client = openai.AsyncOpenAI(
            api_key=api_key or config.OPENAI_API_KEY,
            timeout=timeout_s,
            max_retries=0,
        )
        self.model_name = model_name or config.OPENAI_MODEL
        self.temperature = temperature
        self.max_output_tokens = max_output_tokens

    async def _call(self, image, instruction, context):
        content = [
            {"type": "text", "text": instruction},
            {
                "type": "image_url",
                "image_url": {"url": image.data_uri, "detail": "high"},
            },
        ]
        if context:
            content.append({"type": "text", "text": f"{CONTEXT_LABEL}\n{context}"})

        response = await self.client.chat.completions.create(
            model=self.model_name,
            messages=[
                {"role": "system", "content": SYSTEM_PROMPT},
                {"role": "user", "content": content},
            ],
            max_tokens=self.max_output_tokens,
            temperature=self.temperature,
        )
        input_tokens, output_tokens = extract_openai_usage(response)

        if not response.choices:
            return None, input_tokens, output_tokens
        return response.choices[0].message.content, input_tokens, output_tokens


def build_engine(backend: Optional[str] = None, model_name: Optional[str] = None) -> RecognitionEngine:
    """Construct the engine for the configured (or given) backend."""
    backend = (backend or config.RECOGNITION_BACKEND).lower()
    if backend == "gemini":
        return GeminiEngine(model_name=model_name)
    if backend == "openai":
        return OpenAIEngine(model_name=model_name)
    raise ValueError(f"Unknown recognition backend: {backend!r} (expected one of {', '.join(config.SUPPORTED_BACKENDS)})")
