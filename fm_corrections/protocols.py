"""
Structural types for the language model seam.

The controller and service only rely on these shapes, so tests can hand in
fakes without the SDK being installed.
"""

from __future__ import annotations

from typing import Any, Protocol, runtime_checkable

from .exceptions import require_apple_fm


@runtime_checkable
class ModelProtocol(Protocol):
    def is_available(self) -> tuple[bool, Any]: ...


@runtime_checkable
class SessionProtocol(Protocol):
    async def respond(self, prompt: str, **kwargs: Any) -> Any: ...


def create_model() -> ModelProtocol:
    """Return the system on-device language model."""
    fm = require_apple_fm()
    return fm.SystemLanguageModel()


def create_session(instructions: str, model: ModelProtocol | None = None) -> SessionProtocol:
    """Open a fresh session; no history is shared between sessions."""
    fm = require_apple_fm()
    if model is None:
        model = fm.SystemLanguageModel()
    return fm.LanguageModelSession(model=model, instructions=instructions)
