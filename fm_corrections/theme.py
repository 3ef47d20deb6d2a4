"""Light and dark palettes for the chat window."""

from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True)
class Palette:
    app_bg: str
    compose_bg: str
    input_bg: str
    input_border: str
    user_bubble_bg: str
    user_bubble_text: str
    user_meta_text: str
    recipient_bubble_bg: str
    recipient_bubble_border: str
    recipient_bubble_text: str
    recipient_meta_text: str
    banner_bg: str
    banner_label: str
    banner_text: str
    accent: str
    send_idle: str
    text_muted: str


DARK = Palette(
    app_bg="#000000",
    compose_bg="#0B0D12",
    input_bg="#1C1C1E",
    input_border="#3A3A3C",
    user_bubble_bg="#2F6BE6",
    user_bubble_text="#FFFFFF",
    user_meta_text="#DCE6FF",
    recipient_bubble_bg="#2C2C2E",
    recipient_bubble_border="#3A3A3C",
    recipient_bubble_text="#FFFFFF",
    recipient_meta_text="#98989F",
    banner_bg="#F2EEF8",
    banner_label="#6B6478",
    banner_text="#1B1726",
    accent="#9B5CF6",
    send_idle="#48484A",
    text_muted="#98989F",
)

LIGHT = Palette(
    app_bg="#F2F2F7",
    compose_bg="#FAFAFC",
    input_bg="#FFFFFF",
    input_border="#E5E5EA",
    user_bubble_bg="#3478F6",
    user_bubble_text="#FFFFFF",
    user_meta_text="#E4ECFF",
    recipient_bubble_bg="#F2F2F7",
    recipient_bubble_border="#E5E5EA",
    recipient_bubble_text="#000000",
    recipient_meta_text="#8A8A8E",
    banner_bg="#FFFFFF",
    banner_label="#6E6E73",
    banner_text="#1C1C1E",
    accent="#8E4EF0",
    send_idle="#C7C7CC",
    text_muted="#8A8A8E",
)


def palette_for_mode(dark_mode: bool | None) -> Palette:
    """Pick the palette for the system appearance; unknown means dark."""
    if dark_mode is False:
        return LIGHT
    return DARK
