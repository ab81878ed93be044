"""
Transcription Orchestrator
Drives the sequential transcribe -> verify -> (retry) protocol against a recognition engine.

The protocol is an explicit state machine. Each state handler does one thing
and returns the next state:

    PASS1_TRANSCRIBE -> PASS1_VALIDATE -> PASS2_VERIFY -> PASS2_VALIDATE
        -> CRITICAL_CHECK -> DONE
                          -> RETRY_TRANSCRIBE -> RETRY_VALIDATE -> DONE

Engine calls are awaited one at a time: pass 2 reviews pass 1's text and the
retry depends on what the critical check found. Transport failures are never
retried here; the only retry is the content-driven one.
"""

import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Optional

from .abc_syntax import repair_abc, find_critical_errors
from .engine import RecognitionEngine, EngineOk, EngineEmpty, EngineTransportFailure, EngineResult
from .errors import EngineEmptyResponse, EngineTransportError
from .models import EncodedImage
from .prompts import TRANSCRIBE_PROMPT, VERIFY_PROMPT, build_retry_prompt
from .usage import UsageLedger


logger = logging.getLogger(__name__)


class SessionState(Enum):
    INIT = "init"
    PASS1_TRANSCRIBE = "pass1_transcribe"
    PASS1_VALIDATE = "pass1_validate"
    PASS2_VERIFY = "pass2_verify"
    PASS2_VALIDATE = "pass2_validate"
    CRITICAL_CHECK = "critical_check"
    RETRY_TRANSCRIBE = "retry_transcribe"
    RETRY_VALIDATE = "retry_validate"
    DONE = "done"


class PromptVariant(Enum):
    TRANSCRIBE = "transcribe"
    VERIFY = "verify"
    RETRY = "retry"


@dataclass
class TranscriptionAttempt:
    """One engine pass and what validation made of it."""
    pass_index: int
    prompt_variant: PromptVariant
    raw_output: str
    text: str
    fixes: list[str] = field(default_factory=list)
    critical_errors: list[str] = field(default_factory=list)
    fell_back: bool = False


@dataclass
class TranscriptionSession:
    """All passes for one upload. Lives only as long as the request."""
    attempts: list[TranscriptionAttempt] = field(default_factory=list)
    final_text: str = ""
    fixes: list[str] = field(default_factory=list)
    states: list[SessionState] = field(default_factory=list)
    usage: UsageLedger = field(default_factory=UsageLedger)

    @property
    def passes(self) -> int:
        return len(self.attempts)

    @property
    def retried(self) -> bool:
        return any(a.prompt_variant is PromptVariant.RETRY for a in self.attempts)

    def to_dict(self) -> dict:
        return {
            "text": self.final_text,
            "passes": self.passes,
            "fixes": list(self.fixes),
        }


@dataclass
class SessionRun:
    """Mutable state threaded through the handlers of a single run."""
    image: EncodedImage
    session: TranscriptionSession
    pending: Optional[EngineResult] = None
    critical_errors: list[str] = field(default_factory=list)

    @property
    def current_text(self) -> str:
        return self.session.attempts[-1].text if self.session.attempts else ""


class TranscriptionOrchestrator:
    """
    Runs the multi-pass recognition protocol for one conditioned image.

    The engine is injected, so tests can drive every transition with a
    scripted substitute.
    """

    def __init__(self, engine: RecognitionEngine):
        self.engine = engine
        self._handlers = {
            SessionState.INIT: self._init,
            SessionState.PASS1_TRANSCRIBE: self._pass1_transcribe,
            SessionState.PASS1_VALIDATE: self._pass1_validate,
            SessionState.PASS2_VERIFY: self._pass2_verify,
            SessionState.PASS2_VALIDATE: self._pass2_validate,
            SessionState.CRITICAL_CHECK: self._critical_check,
            SessionState.RETRY_TRANSCRIBE: self._retry_transcribe,
            SessionState.RETRY_VALIDATE: self._retry_validate,
        }

    async def run(self, image: EncodedImage) -> TranscriptionSession:
        """
        Transcribe an image to validated ABC notation.

        Args:
            image: Conditioned, encoded sheet music image

        Returns:
            TranscriptionSession with final text, 2 or 3 attempts and the fix trail

        Raises:
            EngineEmptyResponse: Pass 1 returned nothing
            EngineTransportError: Any engine call failed
        """
        run = SessionRun(image=image, session=TranscriptionSession())
        state = SessionState.INIT

        while state is not SessionState.DONE:
            run.session.states.append(state)
            state = await self.step(state, run)

        run.session.states.append(SessionState.DONE)
        run.session.final_text = run.current_text
        logger.info(
            "Transcription finished after %d passes with %d fixes",
            run.session.passes,
            len(run.session.fixes),
        )
        return run.session

    async def step(self, state: SessionState, run: SessionRun) -> SessionState:
        """Execute one state's handler and return the next state."""
        logger.debug("State %s", state.value)
        return await self._handlers[state](run)

    # ------------------------------------------------------------------
    # Engine states
    # ------------------------------------------------------------------

    async def _init(self, run: SessionRun) -> SessionState:
        return SessionState.PASS1_TRANSCRIBE

    async def _pass1_transcribe(self, run: SessionRun) -> SessionState:
        result = await self._recognize(run, TRANSCRIBE_PROMPT, None, SessionState.PASS1_TRANSCRIBE, pass_index=1)
        if isinstance(result, EngineEmpty):
            logger.error("Pass 1 returned an empty response; nothing to validate")
            raise EngineEmptyResponse(pass_index=1)
        run.pending = result
        return SessionState.PASS1_VALIDATE

    async def _pass2_verify(self, run: SessionRun) -> SessionState:
        run.pending = await self._recognize(
            run, VERIFY_PROMPT, run.current_text, SessionState.PASS2_VERIFY, pass_index=2
        )
        return SessionState.PASS2_VALIDATE

    async def _retry_transcribe(self, run: SessionRun) -> SessionState:
        prompt = build_retry_prompt(run.critical_errors)
        run.pending = await self._recognize(
            run, prompt, run.current_text, SessionState.RETRY_TRANSCRIBE, pass_index=3
        )
        return SessionState.RETRY_VALIDATE

    async def _recognize(
        self,
        run: SessionRun,
        instruction: str,
        context: Optional[str],
        state: SessionState,
        pass_index: int,
    ) -> EngineResult:
        result = await self.engine.recognize(
            run.image,
            instruction,
            context,
            stage=state.value,
            ledger=run.session.usage,
        )
        if isinstance(result, EngineTransportFailure):
            raise EngineTransportError(result.detail, pass_index=pass_index)
        return result

    # ------------------------------------------------------------------
    # Validation states
    # ------------------------------------------------------------------

    async def _pass1_validate(self, run: SessionRun) -> SessionState:
        self._record_attempt(run, 1, PromptVariant.TRANSCRIBE)
        return SessionState.PASS2_VERIFY

    async def _pass2_validate(self, run: SessionRun) -> SessionState:
        self._record_attempt(run, 2, PromptVariant.VERIFY)
        return SessionState.CRITICAL_CHECK

    async def _critical_check(self, run: SessionRun) -> SessionState:
        run.critical_errors = find_critical_errors(run.current_text)
        run.session.attempts[-1].critical_errors = list(run.critical_errors)

        if run.critical_errors:
            logger.warning("Critical problems after verification, retrying once: %s", "; ".join(run.critical_errors))
            return SessionState.RETRY_TRANSCRIBE
        return SessionState.DONE

    async def _retry_validate(self, run: SessionRun) -> SessionState:
        # Accepted as final without re-running the critical check
        self._record_attempt(run, 3, PromptVariant.RETRY)
        return SessionState.DONE

    def _record_attempt(self, run: SessionRun, pass_index: int, variant: PromptVariant) -> TranscriptionAttempt:
        """Validate the pending engine output, or fall back to the previous text."""
        result, run.pending = run.pending, None

        if isinstance(result, EngineOk):
            repaired = repair_abc(result.text)
            attempt = TranscriptionAttempt(
                pass_index=pass_index,
                prompt_variant=variant,
                raw_output=result.text,
                text=repaired.text,
                fixes=repaired.fixes,
            )
            run.session.fixes.extend(f"Pass {pass_index}: {fix}" for fix in repaired.fixes)
            if repaired.fixes:
                logger.info("Pass %d: applied %d syntax fixes", pass_index, len(repaired.fixes))
        else:
            logger.warning("Pass %d returned an empty response; keeping the previous transcription", pass_index)
            # Pass 1 never falls back, so a source attempt always exists
            source = next(a for a in reversed(run.session.attempts) if not a.fell_back)
            attempt = TranscriptionAttempt(
                pass_index=pass_index,
                prompt_variant=variant,
                raw_output="",
                text=run.current_text,
                fell_back=True,
            )
            run.session.fixes.append(
                f"Pass {pass_index}: engine returned no text; kept the pass {source.pass_index} transcription"
            )

        run.session.attempts.append(attempt)
        return attempt
