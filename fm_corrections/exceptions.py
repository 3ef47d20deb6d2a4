"""Error types and Apple Foundation Models setup guards."""

from __future__ import annotations

import importlib
from types import ModuleType
from typing import Any

INSTALL_HINT = (
    "Install the Apple Foundation Models SDK manually (macOS 26+, Apple Silicon):\n"
    "  git clone https://github.com/apple/python-apple-fm-sdk\n"
    "  uv pip install -e python-apple-fm-sdk"
)


class AppleFMSetupError(RuntimeError):
    """The SDK is not importable or the on-device model cannot be used."""


class CorrectionError(RuntimeError):
    """A correction check failed inside the language model session."""


def require_apple_fm() -> ModuleType:
    """Import ``apple_fm_sdk`` or raise a setup error with install guidance."""
    try:
        return importlib.import_module("apple_fm_sdk")
    except ImportError as exc:
        raise AppleFMSetupError(
            "[FMCorrections] Error: 'apple-fm-sdk' is not installed.\n" + INSTALL_HINT
        ) from exc


def ensure_model_available(model: Any, context: str = "model") -> None:
    """Raise ``AppleFMSetupError`` when ``model.is_available()`` reports False."""
    try:
        is_available, reason = model.is_available()
    except Exception as exc:
        raise AppleFMSetupError(
            f"[FMCorrections] Could not query Foundation Model availability ({context}): {exc}"
        ) from exc

    if not is_available:
        raise AppleFMSetupError(
            f"[FMCorrections] Foundation Model is not available ({context}): {reason}"
        )
