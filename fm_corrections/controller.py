"""
State and actions behind the chat window.

The controller knows nothing about widgets. Views subscribe to it and
re-render whenever it reports a change; every keystroke goes through
``set_input`` which drives the debounced correction check.
"""

from __future__ import annotations

import logging
from collections.abc import Awaitable, Callable
from typing import Protocol

from .config import DEFAULT_DEBOUNCE_SECONDS
from .debounce import Debouncer
from .models import AnimatingBubble, CorrectionSuggestion, Message, MessageKind

logger = logging.getLogger("fm_corrections")

Listener = Callable[["ChatController"], None]


class CorrectionChecker(Protocol):
    def check(self, previous: str, new: str) -> Awaitable[CorrectionSuggestion]: ...


class ChatController:
    """Messages, compose text, and the current correction suggestion."""

    def __init__(
        self,
        checker: CorrectionChecker,
        *,
        debounce_seconds: float = DEFAULT_DEBOUNCE_SECONDS,
    ) -> None:
        self.checker = checker
        self.messages: list[Message] = []
        self.input_text = ""
        self.current_correction: CorrectionSuggestion | None = None
        self.is_checking = False
        self.animating_bubbles: list[AnimatingBubble] = []
        self._debouncer: Debouncer[CorrectionSuggestion] = Debouncer(
            debounce_seconds, name="correction check"
        )
        self._listeners: list[Listener] = []

    # ── Observation ───────────────────────────────────────────────────────

    def subscribe(self, listener: Listener) -> Callable[[], None]:
        """Register ``listener``; returns a callable that removes it."""
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def _notify(self) -> None:
        for listener in list(self._listeners):
            listener(self)

    @property
    def visible_correction(self) -> CorrectionSuggestion | None:
        """The suggestion worth offering, i.e. only actual corrections."""
        correction = self.current_correction
        if correction is not None and correction.is_correction:
            return correction
        return None

    @property
    def can_send(self) -> bool:
        return bool(self.input_text.strip())

    @property
    def last_message(self) -> Message | None:
        return self.messages[-1] if self.messages else None

    def is_bubble_animating(self, message_id: str) -> bool:
        return any(bubble.id == message_id for bubble in self.animating_bubbles)

    # ── Correction checks ─────────────────────────────────────────────────

    def set_input(self, text: str) -> None:
        """Record compose text; any existing suggestion is now stale."""
        if text == self.input_text:
            return
        self.input_text = text
        self.current_correction = None
        self.check_for_correction()

    def check_for_correction(self) -> None:
        """Restart the quiet-period timer for the current compose text."""
        self._debouncer.cancel()
        self.is_checking = False

        last = self.last_message
        if not self.input_text.strip() or last is None:
            self.current_correction = None
            self._notify()
            return

        current_input = self.input_text
        previous_text = last.text

        self._debouncer.schedule(
            lambda: self.checker.check(previous_text, current_input),
            self._on_correction,
            on_start=self._on_check_started,
            on_error=self._on_check_failed,
        )
        self._notify()

    def _on_check_started(self) -> None:
        self.is_checking = True
        logger.info("[FMCorrections] Checking correction for %r", self.input_text)
        self._notify()

    def _on_correction(self, correction: CorrectionSuggestion) -> None:
        logger.info(
            "[FMCorrections] Model response: message=%r is_correction=%s",
            correction.message,
            correction.is_correction,
        )
        self.current_correction = correction
        self.is_checking = False
        self._notify()

    def _on_check_failed(self, exc: BaseException) -> None:
        logger.warning("[FMCorrections] Error checking correction: %s", exc)
        self.current_correction = None
        self.is_checking = False
        self._notify()

    def _reset_compose(self) -> None:
        self._debouncer.cancel()
        self.input_text = ""
        self.current_correction = None
        self.is_checking = False

    # ── Actions ───────────────────────────────────────────────────────────

    def send(self) -> Message | None:
        """Append the compose text as a user message and queue its animation."""
        if not self.can_send:
            return None

        message = Message(text=self.input_text, kind=MessageKind.USER)
        self.messages.append(message)
        self.animating_bubbles.append(AnimatingBubble(id=message.id, message=message))
        logger.info(
            "[FMCorrections] Sent message %r (total messages: %d).",
            message.text,
            len(self.messages),
        )

        self._reset_compose()
        self._notify()
        return message

    def receive(self, text: str) -> Message | None:
        """Append a message from the other side of the conversation.

        Any pending check or suggestion targeted the old last message, so it
        is dropped.
        """
        if not text.strip():
            return None
        self._debouncer.cancel()
        self.current_correction = None
        self.is_checking = False
        message = Message(text=text, kind=MessageKind.RECIPIENT, completed_loading=True)
        self.messages.append(message)
        self._notify()
        return message

    def apply_correction(self) -> Message | None:
        """Replace the last message's text with the suggested sentence."""
        correction = self.visible_correction
        last = self.last_message
        if correction is None or last is None:
            return None

        logger.info("[FMCorrections] Applying correction %r -> %r", last.text, correction.message)
        last.text = correction.message

        self._reset_compose()
        self._notify()
        return last

    def finish_animation(self, bubble_id: str) -> bool:
        """Drop a finished bubble animation and mark its message loaded."""
        remaining = [bubble for bubble in self.animating_bubbles if bubble.id != bubble_id]
        if len(remaining) == len(self.animating_bubbles):
            return False
        self.animating_bubbles = remaining
        for message in self.messages:
            if message.id == bubble_id:
                message.completed_loading = True
                break
        self._notify()
        return True

    # ── Lifecycle ─────────────────────────────────────────────────────────

    async def wait_idle(self) -> None:
        """Wait until the pending correction check (if any) has settled."""
        await self._debouncer.wait()

    def close(self) -> None:
        self._debouncer.cancel()
        self.is_checking = False
