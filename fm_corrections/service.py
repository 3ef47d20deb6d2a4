"""
Correction checks against the on-device Apple Foundation Model.

A check hands the model the previous message and the newly typed text and
asks for a structured ``MessageCorrection``: the complete corrected
sentence plus a flag saying whether the new text was a correction at all.
"""

import asyncio
import functools
import logging
import time
from collections.abc import Callable
from typing import Any

from .config import DEFAULT_TEMPERATURE
from .exceptions import AppleFMSetupError, CorrectionError, ensure_model_available, require_apple_fm
from .models import CorrectionSuggestion
from .protocols import ModelProtocol, SessionProtocol, create_model, create_session

logger = logging.getLogger("fm_corrections.service")

CORRECTION_INSTRUCTIONS = """\
You are a correction assistant for messaging. Your task is to determine if a user's *newly typed message* explicitly indicates a correction or clarification to their *immediately preceding message*. These corrections are often short, target a specific part of the previous message, and may use shorthand or special characters (like an asterisk *).

The user is *not* retyping the full previous message with the correction incorporated. Instead, they are providing a direct correction to an error or ambiguity in the previous message.

When a correction is detected, return the COMPLETE ORIGINAL SENTENCE with ONLY the corrected part replaced. Never return just the correction word on its own.

If the new message is *not* a correction, the 'message' field must be the original Previous Message unchanged.

Examples:

1. Direct word correction
   Previous Message: "I'm going to the store for some milk and bred."
   Newly Typed Message: "bread*"
   message: "I'm going to the store for some milk and bread."
   is_correction: true

2. Grammar correction with target
   Previous Message: "Her and I went to the park."
   Newly Typed Message: "She and I*"
   message: "She and I went to the park."
   is_correction: true

3. Adding missing information
   Previous Message: "Meeting at 3."
   Newly Typed Message: "*PM"
   message: "Meeting at 3 PM."
   is_correction: true

4. Single-character typo
   Previous Message: "That's gret!"
   Newly Typed Message: "great*"
   message: "That's great!"
   is_correction: true

5. Not a correction (new information)
   Previous Message: "I'm heading home now."
   Newly Typed Message: "I'll pick up dinner on the way."
   message: "I'm heading home now."
   is_correction: false

6. Not a correction (follow-up question)
   Previous Message: "Did you finish the report?"
   Newly Typed Message: "When is it due?"
   message: "Did you finish the report?"
   is_correction: false

7. Not a correction (simple response)
   Previous Message: "Are you free later?"
   Newly Typed Message: "Yes."
   message: "Are you free later?"
   is_correction: false
"""


def build_correction_prompt(previous: str, new: str) -> str:
    return f"Previous: {previous}\nNew: {new}"


@functools.lru_cache(maxsize=1)
def correction_schema() -> type:
    """Build the generable output schema on first use."""
    fm = require_apple_fm()

    @fm.generable()
    class MessageCorrection:
        message: str = fm.guide(
            description=(
                "The COMPLETE corrected sentence. If a correction is detected, return the FULL "
                "original sentence with the corrected part replaced. If no correction is made, "
                "return the original Previous Message unchanged. NEVER return just the "
                "correction word alone."
            )
        )
        is_correction: bool = fm.guide(
            description=(
                "True if the newly typed text was a correction or clarification to the "
                "immediately preceding message, False otherwise."
            )
        )

    return MessageCorrection


def _generation_options(fm: Any, temperature: float) -> Any | None:
    options_cls = getattr(fm, "GenerationOptions", None)
    if options_cls is None:
        return None
    try:
        return options_cls(temperature=temperature)
    except TypeError:
        logger.debug("[FMCorrections] GenerationOptions rejected temperature; using defaults.")
        return None


def to_suggestion(result: Any, previous: str) -> CorrectionSuggestion:
    """Coerce a generated record into a ``CorrectionSuggestion``."""
    message = str(getattr(result, "message", "") or "").strip()
    is_correction = bool(getattr(result, "is_correction", False))
    if is_correction and not message:
        return CorrectionSuggestion.none_for(previous)
    return CorrectionSuggestion(message=message or previous, is_correction=is_correction)


class CorrectionService:
    """Asks the language model whether new text corrects the previous message.

    Every check opens a fresh session so no conversation history leaks
    between keystrokes.

    Args:
        model: The language model. Defaults to the system model on first use.
        temperature: Sampling temperature requested when the SDK supports it.
        debug_timing: Log how long each check took.
        session_factory: ``instructions -> session`` override, mainly for tests.
        schema: Output schema override; defaults to ``MessageCorrection``.
    """

    def __init__(
        self,
        model: ModelProtocol | None = None,
        *,
        temperature: float = DEFAULT_TEMPERATURE,
        debug_timing: bool = False,
        session_factory: Callable[[str], SessionProtocol] | None = None,
        schema: type | None = None,
    ) -> None:
        self.model = model
        self.temperature = temperature
        self.debug_timing = debug_timing
        self._session_factory = session_factory
        self._schema = schema
        self._model_checked = False

    @property
    def schema(self) -> type:
        if self._schema is None:
            self._schema = correction_schema()
        return self._schema

    def _open_session(self) -> SessionProtocol:
        if self._session_factory is not None:
            return self._session_factory(CORRECTION_INSTRUCTIONS)

        if self.model is None:
            self.model = create_model()
        if not self._model_checked:
            ensure_model_available(self.model, context="correction check")
            self._model_checked = True
        return create_session(CORRECTION_INSTRUCTIONS, model=self.model)

    def _respond_kwargs(self) -> dict[str, Any]:
        kwargs: dict[str, Any] = {"generating": self.schema}
        if self._session_factory is None:
            options = _generation_options(require_apple_fm(), self.temperature)
            if options is not None:
                kwargs["options"] = options
        return kwargs

    async def check(self, previous: str, new: str) -> CorrectionSuggestion:
        """Return the suggestion for ``new`` typed after ``previous``.

        Raises:
            AppleFMSetupError: The SDK or the system model is unavailable.
            CorrectionError: The session could not be opened or failed to respond.
        """
        prompt = build_correction_prompt(previous, new)
        logger.debug("[FMCorrections] Checking correction. Previous=%r New=%r", previous, new)

        try:
            session = self._open_session()
            kwargs = self._respond_kwargs()
            start_time = time.perf_counter()
            result = await session.respond(prompt, **kwargs)
            elapsed = time.perf_counter() - start_time
        except (asyncio.CancelledError, AppleFMSetupError):
            raise
        except Exception as exc:
            raise CorrectionError(f"Correction check failed: {exc}") from exc

        suggestion = to_suggestion(result, previous)
        if self.debug_timing:
            logger.info(
                "[FMCorrections] Correction check completed in %.3fs. Input length: %d chars.",
                elapsed,
                len(prompt),
            )
        logger.debug(
            "[FMCorrections] Model response. Message=%r IsCorrection=%s",
            suggestion.message,
            suggestion.is_correction,
        )
        return suggestion
