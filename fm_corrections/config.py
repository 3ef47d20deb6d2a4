"""Runtime settings with environment overrides."""

from __future__ import annotations

import logging
import os
from collections.abc import Mapping
from dataclasses import asdict, dataclass
from typing import Any

logger = logging.getLogger("fm_corrections")

ENV_PREFIX = "FM_CORRECTIONS_"
DEFAULT_DEBOUNCE_SECONDS = 0.8
DEFAULT_TEMPERATURE = 0.1
VALID_LOG_LEVELS = ["debug", "info", "warning", "error", "critical"]


def _as_float(value: Any, fallback: float, *, low: float, high: float) -> float:
    try:
        parsed = float(value)
    except (TypeError, ValueError):
        logger.warning("[FMCorrections] Ignoring invalid number %r; using %s.", value, fallback)
        return fallback
    if not low <= parsed <= high:
        logger.warning(
            "[FMCorrections] %s is outside [%s, %s]; using %s.", parsed, low, high, fallback
        )
        return fallback
    return parsed


def _as_bool(value: Any) -> bool:
    if isinstance(value, bool):
        return value
    return str(value).strip().lower() in {"1", "true", "yes", "on"}


def _normalize_choice(value: str, allowed: list[str], fallback: str) -> str:
    needle = value.strip().lower()
    for option in allowed:
        if option == needle:
            return option
    return fallback


@dataclass(frozen=True)
class Settings:
    """Knobs for the correction pipeline and the chat window."""

    debounce_seconds: float = DEFAULT_DEBOUNCE_SECONDS
    temperature: float = DEFAULT_TEMPERATURE
    debug_timing: bool = False
    greeting: str = ""
    log_level: str = "warning"

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> Settings:
        """Build settings with safe defaults for missing or invalid values."""
        return cls(
            debounce_seconds=_as_float(
                data.get("debounce_seconds", DEFAULT_DEBOUNCE_SECONDS),
                DEFAULT_DEBOUNCE_SECONDS,
                low=0.0,
                high=10.0,
            ),
            temperature=_as_float(
                data.get("temperature", DEFAULT_TEMPERATURE),
                DEFAULT_TEMPERATURE,
                low=0.0,
                high=2.0,
            ),
            debug_timing=_as_bool(data.get("debug_timing", False)),
            greeting=str(data.get("greeting", "") or ""),
            log_level=_normalize_choice(
                str(data.get("log_level", "warning")), VALID_LOG_LEVELS, "warning"
            ),
        )

    @classmethod
    def from_env(cls, environ: Mapping[str, str] | None = None) -> Settings:
        """Read ``FM_CORRECTIONS_*`` variables, e.g. ``FM_CORRECTIONS_DEBOUNCE_SECONDS``."""
        env = os.environ if environ is None else environ
        data: dict[str, Any] = {}
        for name in cls.__dataclass_fields__:
            key = ENV_PREFIX + name.upper()
            if key in env:
                data[name] = env[key]
        return cls.from_dict(data)

    def merged(self, **overrides: Any) -> Settings:
        """Return a copy with non-None overrides applied (CLI flags)."""
        data = self.to_dict()
        data.update({k: v for k, v in overrides.items() if v is not None})
        return Settings.from_dict(data)
