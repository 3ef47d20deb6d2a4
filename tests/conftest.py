"""Shared fakes for the correction pipeline tests."""

import asyncio
import logging
from dataclasses import dataclass
from unittest.mock import MagicMock

import pytest

from fm_corrections.models import CorrectionSuggestion


def make_mock_model(available: bool = True, reason: str = "Apple Intelligence is disabled"):
    model = MagicMock()
    model.is_available.return_value = (True, None) if available else (False, reason)
    return model


@dataclass
class MockMessageCorrection:
    message: str = "I'm going to the store for some milk and bread."
    is_correction: bool = True


class DummySchema:
    message: str
    is_correction: bool


class RecordingChecker:
    """Answers immediately; records every (previous, new) pair."""

    def __init__(self, is_correction: bool = True, error: Exception | None = None):
        self.calls: list[tuple[str, str]] = []
        self.is_correction = is_correction
        self.error = error

    async def check(self, previous: str, new: str) -> CorrectionSuggestion:
        self.calls.append((previous, new))
        if self.error is not None:
            raise self.error
        if not self.is_correction:
            return CorrectionSuggestion(message=previous, is_correction=False)
        return CorrectionSuggestion(message=f"{previous} [{new}]", is_correction=True)


class GatedChecker:
    """Blocks each check until ``release(index)`` is called."""

    def __init__(self):
        self.calls: list[tuple[str, str]] = []
        self.gates: list[asyncio.Event] = []

    async def check(self, previous: str, new: str) -> CorrectionSuggestion:
        gate = asyncio.Event()
        self.calls.append((previous, new))
        self.gates.append(gate)
        await gate.wait()
        return CorrectionSuggestion(message=f"{previous} [{new}]", is_correction=True)

    def release(self, index: int = -1) -> None:
        self.gates[index].set()

    async def wait_for_calls(self, count: int, timeout: float = 1.0) -> None:
        async def poll():
            while len(self.calls) < count:
                await asyncio.sleep(0.001)

        await asyncio.wait_for(poll(), timeout)


@pytest.fixture(autouse=True)
def _reset_package_logger():
    """configure_logging() binds handlers to the captured stderr; drop them after each test."""
    package_logger = logging.getLogger("fm_corrections")
    handlers = list(package_logger.handlers)
    level = package_logger.level
    yield
    for handler in list(package_logger.handlers):
        if handler not in handlers:
            package_logger.removeHandler(handler)
    package_logger.setLevel(level)
