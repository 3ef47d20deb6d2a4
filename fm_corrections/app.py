"""Toga chat window that offers on-device message corrections.

Highlights:
- iMessage-style bubbles with timestamps and delivery/read markers
- debounced "is this a correction?" check after every keystroke
- one-click replacement of the previous message with the corrected sentence
- light/dark palettes that follow the system appearance
"""

from __future__ import annotations

import asyncio
import contextlib
import logging

import toga
from toga.style import Pack
from toga.style.pack import COLUMN, HIDDEN, ROW, VISIBLE

from .config import Settings
from .controller import ChatController
from .exceptions import AppleFMSetupError, ensure_model_available
from .models import Message
from .protocols import create_model
from .service import CorrectionService
from .theme import Palette, palette_for_mode

logger = logging.getLogger("fm_corrections")

APP_FORMAL_NAME = "FM Message Corrections"
APP_ID = "com.fmcorrections.chat"
COMPOSE_PLACEHOLDER = "Type a message..."
BUBBLE_MAX_WIDTH = 280
BORDER_WIDTH = 1
BUBBLE_MARGIN = (12, 16, 12, 16)
REVEAL_STEP_CHARS = 6
REVEAL_INTERVAL_SECONDS = 0.02

FONT_SIZE_BODY = 12
FONT_SIZE_META = 9
FONT_SIZE_BANNER = 10

USER_MARKER = "✓"
RECIPIENT_MARKER = "●"
CORRECTION_ICON = "✨"


def bordered(widget: toga.Widget, color: str, **style) -> toga.Box:
    """Wrap ``widget`` in a box whose background shows as a thin border."""
    widget.style.margin = BORDER_WIDTH
    frame = toga.Box(style=Pack(background_color=color, **style))
    frame.add(widget)
    return frame


class MessageCorrectionsApp(toga.App):
    """Chat window wired to a ``ChatController``."""

    def __init__(self, *args, settings: Settings | None = None, **kwargs) -> None:
        self.settings = settings or Settings.from_env()
        super().__init__(*args, **kwargs)

    def startup(self) -> None:
        """Build UI, check the model, and attach the controller."""
        self.palette: Palette = palette_for_mode(getattr(self, "dark_mode", None))
        self._reveal_tasks: dict[str, asyncio.Task] = {}
        self._reveal_progress: dict[str, int] = {}
        self._rendered_signature: tuple = ()

        model = None
        status = "On-device model ready. Type a correction like 'bread*' after a message."
        try:
            model = create_model()
            ensure_model_available(model, context="chat startup")
        except AppleFMSetupError as exc:
            logger.warning("%s", exc)
            status = f"Corrections unavailable. {exc}"

        service = CorrectionService(
            model,
            temperature=self.settings.temperature,
            debug_timing=self.settings.debug_timing,
        )
        self.controller = ChatController(
            service, debounce_seconds=self.settings.debounce_seconds
        )

        self._build_ui()
        self.status_label.text = status
        self._unsubscribe = self.controller.subscribe(self._on_state_changed)
        if self.settings.greeting:
            self.controller.receive(self.settings.greeting)
        self._render()
        self.main_window.show()

    # ── Layout ────────────────────────────────────────────────────────────

    def _build_ui(self) -> None:
        """Construct application widgets and layout."""
        p = self.palette

        self.status_label = toga.Label(
            "",
            style=Pack(
                color=p.text_muted,
                font_size=FONT_SIZE_META,
                margin=(8, 16, 4, 16),
            ),
        )

        self.bubbles_box = toga.Box(
            style=Pack(direction=COLUMN, margin=(20, 16, 16, 16), background_color=p.app_bg)
        )
        self.bubbles_scroll = toga.ScrollContainer(
            horizontal=False,
            vertical=True,
            content=self.bubbles_box,
            style=Pack(flex=1, background_color=p.app_bg),
        )

        self.correction_icon = toga.Label(
            CORRECTION_ICON,
            style=Pack(font_size=FONT_SIZE_BANNER, margin=(0, 8, 0, 0), color=p.accent),
        )
        self.correction_caption = toga.Label(
            "Correction:",
            style=Pack(font_size=FONT_SIZE_BANNER, color=p.banner_label, margin=(0, 8, 0, 0)),
        )
        self.correction_text = toga.Label(
            "",
            style=Pack(
                flex=1,
                font_size=FONT_SIZE_BANNER,
                font_weight="bold",
                color=p.banner_text,
            ),
        )
        self.correction_banner = toga.Box(
            style=Pack(
                direction=ROW,
                align_items="center",
                margin=(12, 16, 8, 16),
                background_color=p.banner_bg,
                visibility=HIDDEN,
            )
        )
        self.correction_banner.add(self.correction_icon)
        self.correction_banner.add(self.correction_caption)
        self.correction_banner.add(self.correction_text)

        self.prompt_input = toga.TextInput(
            placeholder=COMPOSE_PLACEHOLDER,
            on_change=self.on_prompt_change,
            on_confirm=self.on_send,
            style=Pack(
                flex=1,
                font_size=FONT_SIZE_BODY,
                background_color=p.input_bg,
                color=p.recipient_bubble_text,
            ),
        )
        self.checking_spinner = toga.ActivityIndicator(
            running=False,
            style=Pack(width=14, height=14, margin=(0, 8, 0, 0), visibility=HIDDEN),
        )
        self.apply_button = toga.Button(
            CORRECTION_ICON,
            on_press=self.on_apply_correction,
            style=Pack(
                width=44,
                margin=(0, 8, 0, 0),
                background_color=p.accent,
                color="#FFFFFF",
                visibility=HIDDEN,
            ),
        )
        self.send_button = toga.Button(
            "↑",
            on_press=self.on_send,
            enabled=False,
            style=Pack(
                width=44,
                background_color=p.send_idle,
                color="#FFFFFF",
                font_weight="bold",
            ),
        )

        compose_row = toga.Box(
            style=Pack(
                direction=ROW,
                align_items="center",
                margin=(12, 16, 12, 16),
                background_color=p.compose_bg,
            )
        )
        compose_row.add(
            bordered(self.prompt_input, p.input_border, flex=1, margin=(0, 8, 0, 0))
        )
        compose_row.add(self.checking_spinner)
        compose_row.add(self.apply_button)
        compose_row.add(self.send_button)

        compose_area = toga.Box(style=Pack(direction=COLUMN, background_color=p.compose_bg))
        compose_area.add(self.correction_banner)
        compose_area.add(compose_row)

        root = toga.Box(style=Pack(direction=COLUMN, flex=1, background_color=p.app_bg))
        root.add(self.status_label)
        root.add(self.bubbles_scroll)
        root.add(compose_area)

        self.main_window = toga.MainWindow(title=self.formal_name, size=(420, 720))
        self.main_window.content = root

    def _bubble_for(self, message: Message) -> toga.Box:
        """Build one message bubble, aligned by sender."""
        p = self.palette
        if message.is_user:
            bubble_bg = p.user_bubble_bg
            border = None
            text_color, meta_color = p.user_bubble_text, p.user_meta_text
            marker, align = USER_MARKER, "right"
        else:
            bubble_bg = p.recipient_bubble_bg
            border = p.recipient_bubble_border
            text_color, meta_color = p.recipient_bubble_text, p.recipient_meta_text
            marker, align = RECIPIENT_MARKER, "left"

        revealed = self._reveal_progress.get(message.id)
        text = message.text if revealed is None else message.text[:revealed]

        body = toga.Label(
            text,
            style=Pack(
                font_size=FONT_SIZE_BODY,
                font_weight="bold",
                color=text_color,
                text_align=align,
            ),
        )
        meta = toga.Label(
            f"{message.time_string()} {marker}",
            style=Pack(
                font_size=FONT_SIZE_META,
                color=meta_color,
                text_align=align,
                margin=(4, 0, 0, 0),
            ),
        )
        bubble = toga.Box(
            style=Pack(
                direction=COLUMN,
                width=BUBBLE_MAX_WIDTH,
                background_color=bubble_bg,
                margin=BUBBLE_MARGIN,
            )
        )
        bubble.add(body)
        bubble.add(meta)
        if border is not None:
            bubble = bordered(bubble, border, margin=BUBBLE_MARGIN)

        row = toga.Box(style=Pack(direction=ROW, margin=(0, 0, 16, 0)))
        spacer = toga.Box(style=Pack(flex=1))
        if message.is_user:
            row.add(spacer)
            row.add(bubble)
        else:
            row.add(bubble)
            row.add(spacer)
        return row

    # ── Rendering ─────────────────────────────────────────────────────────

    def _on_state_changed(self, controller: ChatController) -> None:
        del controller
        self._start_pending_reveals()
        self._render()

    def _messages_signature(self) -> tuple:
        return tuple(
            (message.id, message.text, self._reveal_progress.get(message.id))
            for message in self.controller.messages
        )

    def _render(self) -> None:
        """Sync widgets with controller state; bubbles rebuild only on change."""
        signature = self._messages_signature()
        if signature != self._rendered_signature:
            grew = len(signature) > len(self._rendered_signature)
            self._rendered_signature = signature
            for child in list(self.bubbles_box.children):
                self.bubbles_box.remove(child)
            for message in self.controller.messages:
                self.bubbles_box.add(self._bubble_for(message))
            if grew:
                scroll = self.bubbles_scroll
                with contextlib.suppress(Exception):
                    scroll.vertical_position = scroll.max_vertical_position

        self._render_compose()

    def _render_compose(self) -> None:
        controller = self.controller
        p = self.palette

        if (self.prompt_input.value or "") != controller.input_text:
            self.prompt_input.value = controller.input_text

        correction = controller.visible_correction
        if correction is None:
            self.correction_banner.style.visibility = HIDDEN
            self.apply_button.style.visibility = HIDDEN
            self.correction_text.text = ""
        else:
            self.correction_text.text = correction.message
            self.correction_banner.style.visibility = VISIBLE
            self.apply_button.style.visibility = VISIBLE

        if controller.is_checking:
            self.checking_spinner.style.visibility = VISIBLE
            with contextlib.suppress(Exception):
                self.checking_spinner.start()
        else:
            with contextlib.suppress(Exception):
                self.checking_spinner.stop()
            self.checking_spinner.style.visibility = HIDDEN

        can_send = controller.can_send
        self.send_button.enabled = can_send
        self.send_button.style.background_color = p.user_bubble_bg if can_send else p.send_idle

    # ── Arrival animation ─────────────────────────────────────────────────

    def _start_pending_reveals(self) -> None:
        for bubble in self.controller.animating_bubbles:
            if bubble.id in self._reveal_tasks:
                continue
            self._reveal_progress[bubble.id] = 0
            self._reveal_tasks[bubble.id] = asyncio.create_task(self._reveal_bubble(bubble.id))

    async def _reveal_bubble(self, bubble_id: str) -> None:
        """Type the sent text into its bubble, then settle it."""
        message = next((m for m in self.controller.messages if m.id == bubble_id), None)
        if message is None:
            self._reveal_tasks.pop(bubble_id, None)
            self._reveal_progress.pop(bubble_id, None)
            return
        try:
            shown = 0
            while shown < len(message.text):
                shown = min(len(message.text), shown + REVEAL_STEP_CHARS)
                self._reveal_progress[bubble_id] = shown
                self._render()
                await asyncio.sleep(REVEAL_INTERVAL_SECONDS)
        except asyncio.CancelledError:
            return
        finally:
            self._reveal_progress.pop(bubble_id, None)
            self._reveal_tasks.pop(bubble_id, None)
        self.controller.finish_animation(bubble_id)

    # ── Handlers ──────────────────────────────────────────────────────────

    def on_prompt_change(self, widget: toga.Widget) -> None:
        """Forward every keystroke to the controller."""
        del widget
        self.controller.set_input(self.prompt_input.value or "")

    def on_send(self, widget: toga.Widget) -> None:
        del widget
        self.controller.send()

    def on_apply_correction(self, widget: toga.Widget) -> None:
        del widget
        self.controller.apply_correction()

    def on_exit(self) -> bool:
        """Cancel pending checks and animations when the app exits."""
        self._unsubscribe()
        self.controller.close()
        for task in list(self._reveal_tasks.values()):
            if not task.done():
                task.cancel()
        return True


def main(settings: Settings | None = None) -> MessageCorrectionsApp:
    """Application entrypoint."""
    return MessageCorrectionsApp(
        formal_name=APP_FORMAL_NAME,
        app_id=APP_ID,
        settings=settings,
    )
