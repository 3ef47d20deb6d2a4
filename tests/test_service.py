"""
Tests for fm_corrections.service.

Covers:
  - Prompt rendering and session wiring (instructions, schema)
  - Coercion of generated records into CorrectionSuggestion
  - Error wrapping and cancellation passthrough
  - Default SDK path: availability check and generation options
"""

import asyncio
from types import SimpleNamespace
from unittest.mock import AsyncMock, MagicMock, patch

import pytest

from fm_corrections.exceptions import AppleFMSetupError, CorrectionError
from fm_corrections.models import CorrectionSuggestion
from fm_corrections.service import (
    CORRECTION_INSTRUCTIONS,
    CorrectionService,
    build_correction_prompt,
    to_suggestion,
)

from .conftest import DummySchema, MockMessageCorrection, make_mock_model


def make_service(result=None, side_effect=None):
    session = MagicMock()
    session.respond = AsyncMock(return_value=result, side_effect=side_effect)
    factory = MagicMock(return_value=session)
    service = CorrectionService(session_factory=factory, schema=DummySchema)
    return service, factory, session


# ========================================================================
# Prompt and session wiring
# ========================================================================


class TestPrompt:
    def test_prompt_format(self):
        assert build_correction_prompt("Meeting at 3.", "*PM") == "Previous: Meeting at 3.\nNew: *PM"

    def test_instructions_cover_both_outcomes(self):
        assert "COMPLETE ORIGINAL SENTENCE" in CORRECTION_INSTRUCTIONS
        assert "bread*" in CORRECTION_INSTRUCTIONS
        assert "is_correction: false" in CORRECTION_INSTRUCTIONS

    async def test_check_sends_prompt_with_schema(self):
        service, factory, session = make_service(result=MockMessageCorrection())

        suggestion = await service.check("I'm going to the store for some milk and bred.", "bread*")

        factory.assert_called_once_with(CORRECTION_INSTRUCTIONS)
        session.respond.assert_awaited_once_with(
            "Previous: I'm going to the store for some milk and bred.\nNew: bread*",
            generating=DummySchema,
        )
        assert suggestion == CorrectionSuggestion(
            message="I'm going to the store for some milk and bread.", is_correction=True
        )

    async def test_fresh_session_per_check(self):
        service, factory, _ = make_service(result=MockMessageCorrection())

        await service.check("a", "b")
        await service.check("a", "c")

        assert factory.call_count == 2


# ========================================================================
# Coercion
# ========================================================================


class TestToSuggestion:
    def test_not_a_correction_keeps_message(self):
        result = MockMessageCorrection(message="Are you free later?", is_correction=False)
        assert to_suggestion(result, "Are you free later?") == CorrectionSuggestion(
            message="Are you free later?", is_correction=False
        )

    def test_blank_correction_is_downgraded(self):
        result = MockMessageCorrection(message="   ", is_correction=True)
        assert to_suggestion(result, "That's gret!") == CorrectionSuggestion(
            message="That's gret!", is_correction=False
        )

    def test_missing_fields_fall_back_to_previous(self):
        assert to_suggestion(SimpleNamespace(), "Yes.") == CorrectionSuggestion(
            message="Yes.", is_correction=False
        )

    def test_message_is_stripped(self):
        result = MockMessageCorrection(message="  Meeting at 3 PM.\n", is_correction=True)
        assert to_suggestion(result, "Meeting at 3.").message == "Meeting at 3 PM."


# ========================================================================
# Failures
# ========================================================================


class TestFailures:
    async def test_session_error_is_wrapped(self):
        service, _, _ = make_service(side_effect=ValueError("guardrail violation"))

        with pytest.raises(CorrectionError, match="guardrail violation") as excinfo:
            await service.check("a", "b")

        assert isinstance(excinfo.value.__cause__, ValueError)

    async def test_session_creation_failure_is_wrapped(self):
        model = make_mock_model(available=True)

        with (
            patch(
                "fm_corrections.service.create_session",
                side_effect=RuntimeError("session init failed"),
            ),
            patch("fm_corrections.service.require_apple_fm", return_value=SimpleNamespace()),
        ):
            service = CorrectionService(model, schema=DummySchema)
            with pytest.raises(CorrectionError, match="session init failed") as excinfo:
                await service.check("a", "b")

        assert isinstance(excinfo.value.__cause__, RuntimeError)

    async def test_session_factory_failure_is_wrapped(self):
        factory = MagicMock(side_effect=OSError("no session"))
        service = CorrectionService(session_factory=factory, schema=DummySchema)

        with pytest.raises(CorrectionError, match="no session"):
            await service.check("a", "b")

    async def test_cancellation_passes_through(self):
        service, _, _ = make_service(side_effect=asyncio.CancelledError())

        with pytest.raises(asyncio.CancelledError):
            await service.check("a", "b")

    async def test_debug_timing_logs(self, caplog):
        service, _, _ = make_service(result=MockMessageCorrection())
        service.debug_timing = True

        with caplog.at_level("INFO", logger="fm_corrections.service"):
            await service.check("a", "b")

        assert any("completed in" in record.message for record in caplog.records)


# ========================================================================
# Default SDK path
# ========================================================================


class TestDefaultSessionPath:
    async def test_unavailable_model_raises_setup_error(self):
        model = make_mock_model(available=False, reason="Device not eligible")
        service = CorrectionService(model, schema=DummySchema)

        with pytest.raises(AppleFMSetupError, match="Device not eligible"):
            await service.check("a", "b")

    async def test_generation_options_requested(self):
        model = make_mock_model(available=True)
        session = MagicMock()
        session.respond = AsyncMock(return_value=MockMessageCorrection())
        fake_fm = SimpleNamespace(GenerationOptions=MagicMock(return_value="greedy-ish"))

        with (
            patch("fm_corrections.service.create_session", return_value=session) as create,
            patch("fm_corrections.service.require_apple_fm", return_value=fake_fm),
        ):
            service = CorrectionService(model, temperature=0.1, schema=DummySchema)
            await service.check("a", "b")
            await service.check("a", "c")

        create.assert_called_with(CORRECTION_INSTRUCTIONS, model=model)
        fake_fm.GenerationOptions.assert_called_with(temperature=0.1)
        assert session.respond.await_args.kwargs["options"] == "greedy-ish"
        model.is_available.assert_called_once()

    async def test_sdk_without_generation_options(self):
        model = make_mock_model(available=True)
        session = MagicMock()
        session.respond = AsyncMock(return_value=MockMessageCorrection())

        with (
            patch("fm_corrections.service.create_session", return_value=session),
            patch("fm_corrections.service.require_apple_fm", return_value=SimpleNamespace()),
        ):
            await CorrectionService(model, schema=DummySchema).check("a", "b")

        assert "options" not in session.respond.await_args.kwargs

    async def test_model_created_lazily(self):
        model = make_mock_model(available=True)
        session = MagicMock()
        session.respond = AsyncMock(return_value=MockMessageCorrection())

        with (
            patch("fm_corrections.service.create_model", return_value=model) as create_model,
            patch("fm_corrections.service.create_session", return_value=session),
            patch("fm_corrections.service.require_apple_fm", return_value=SimpleNamespace()),
        ):
            service = CorrectionService(schema=DummySchema)
            await service.check("a", "b")

        create_model.assert_called_once_with()
        assert service.model is model


def test_real_schema_has_both_fields():
    pytest.importorskip("apple_fm_sdk")
    from fm_corrections.service import correction_schema

    schema = correction_schema()
    assert schema.__name__ == "MessageCorrection"
    assert {"message", "is_correction"} <= set(schema.__annotations__)
