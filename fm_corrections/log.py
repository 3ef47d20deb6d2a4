import logging
import sys

logger = logging.getLogger("fm_corrections")

LOG_FORMAT = "%(asctime)s %(levelname)-7s %(name)s: %(message)s"


def resolve_log_level(level: str | int, fallback: int = logging.WARNING) -> int:
    """Turn ``"info"``, ``"20"`` or ``20`` into a logging level."""
    if isinstance(level, int):
        return level
    if isinstance(level, str):
        if level.isdigit():
            return int(level)
        resolved = logging.getLevelName(level.upper())
        if isinstance(resolved, int):
            return resolved
    logger.warning(
        "[FMCorrections] Unsupported log level '%s'; falling back to %s.",
        level,
        logging.getLevelName(fallback),
    )
    return fallback


def configure_logging(level: str | int = "warning") -> None:
    """Attach a single stderr handler to the package logger."""
    resolved = resolve_log_level(level)
    for handler in list(logger.handlers):
        if getattr(handler, "_fm_corrections", False):
            logger.removeHandler(handler)

    handler = logging.StreamHandler(sys.stderr)
    handler.setFormatter(logging.Formatter(LOG_FORMAT))
    handler._fm_corrections = True  # type: ignore[attr-defined]
    logger.addHandler(handler)
    logger.setLevel(resolved)
