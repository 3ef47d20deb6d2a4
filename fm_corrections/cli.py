"""
FM Corrections CLI — chat window, one-shot checks, and diagnostics.

Registered as `fm-corrections` console script via pyproject.toml.
"""

import asyncio
import importlib.util
import json
import platform
import sys

import click

from .config import VALID_LOG_LEVELS, Settings
from .exceptions import AppleFMSetupError, CorrectionError, ensure_model_available
from .log import configure_logging
from .models import CorrectionSuggestion
from .protocols import create_model
from .service import CorrectionService


def _missing_python_modules(modules: list[str]) -> list[str]:
    """Return modules that cannot be imported in the current interpreter."""
    return [name for name in modules if importlib.util.find_spec(name) is None]


def _fail_missing_dependencies(
    *,
    command_name: str,
    missing: list[str],
    install_steps: list[str],
) -> None:
    """Exit with detailed, actionable dependency guidance."""
    if not missing:
        return
    click.secho(
        f"{command_name} requires optional dependencies that are missing:",
        fg="red",
        err=True,
        bold=True,
    )
    for module in missing:
        click.echo(f"  - {module}", err=True)
    click.echo("", err=True)
    click.secho("Install with:", fg="cyan", err=True)
    for step in install_steps:
        click.echo(f"  {step}", err=True)
    raise SystemExit(2)


# ── Main group ────────────────────────────────────────────────────────────────


@click.group(context_settings={"help_option_names": ["-h", "--help"]})
@click.version_option(package_name="fm-message-corrections")
@click.option(
    "--log-level",
    type=click.Choice(VALID_LOG_LEVELS, case_sensitive=False),
    default=None,
    help="Logging verbosity (overrides FM_CORRECTIONS_LOG_LEVEL).",
)
@click.option(
    "--debounce",
    "debounce_seconds",
    type=float,
    default=None,
    help="Quiet period in seconds before a correction check runs.",
)
@click.option("--temperature", type=float, default=None, help="Sampling temperature.")
@click.option("--debug-timing", is_flag=True, default=None, help="Log model latency.")
@click.pass_context
def cli(
    ctx: click.Context,
    log_level: str | None,
    debounce_seconds: float | None,
    temperature: float | None,
    debug_timing: bool | None,
) -> None:
    """FM Corrections — on-device message correction suggestions."""
    settings = Settings.from_env().merged(
        log_level=log_level.lower() if log_level else None,
        debounce_seconds=debounce_seconds,
        temperature=temperature,
        debug_timing=debug_timing or None,
    )
    configure_logging(settings.log_level)
    ctx.obj = settings


# ── Chat ──────────────────────────────────────────────────────────────────────


@cli.command()
@click.option("--greeting", default=None, help="Recipient message shown at start-up.")
@click.pass_obj
def chat(settings: Settings, greeting: str | None) -> None:
    """Open the chat window.

    \b
    Examples:
        fm-corrections chat
        fm-corrections --debounce 0.5 chat --greeting "Hey! Free later?"
    """
    _fail_missing_dependencies(
        command_name="fm-corrections chat",
        missing=_missing_python_modules(["toga"]),
        install_steps=['uv pip install -e ".[app]"'],
    )
    from .app import main as app_main

    app_main(settings.merged(greeting=greeting)).main_loop()


# ── One-shot check ────────────────────────────────────────────────────────────


@cli.command()
@click.argument("previous")
@click.argument("new")
@click.option("--json", "as_json", is_flag=True, help="Print the suggestion as JSON.")
@click.pass_obj
def check(settings: Settings, previous: str, new: str, as_json: bool) -> None:
    """Ask whether NEW corrects PREVIOUS and print the suggestion.

    \b
    Examples:
        fm-corrections check "Meeting at 3." "*PM"
        fm-corrections check "That's gret!" "great*" --json
    """
    if not new.strip():
        suggestion = CorrectionSuggestion.none_for(previous)
    else:
        service = CorrectionService(
            temperature=settings.temperature,
            debug_timing=settings.debug_timing,
        )
        try:
            suggestion = asyncio.run(service.check(previous, new))
        except CorrectionError as exc:
            click.secho(str(exc), fg="red", err=True)
            raise SystemExit(1) from exc

    if as_json:
        click.echo(
            json.dumps(
                {"message": suggestion.message, "is_correction": suggestion.is_correction},
                ensure_ascii=False,
            )
        )
        return

    if suggestion.is_correction:
        click.secho("Correction detected", fg="green", bold=True)
        click.echo(f"  {suggestion.message}")
    else:
        click.secho("Not a correction", fg="yellow")


# ── Doctor ────────────────────────────────────────────────────────────────────


@cli.command()
def doctor() -> None:
    """Check that the SDK imports and the on-device model is available."""
    ok = True
    click.secho("\nFM Corrections doctor\n", fg="cyan", bold=True)
    click.echo(f"  Python:   {sys.version.split()[0]}")
    click.echo(f"  Platform: {platform.platform()}")

    missing = _missing_python_modules(["apple_fm_sdk", "toga"])
    for module in ("apple_fm_sdk", "toga"):
        if module in missing:
            click.secho(f"  [missing] {module}", fg="red")
            ok = False
        else:
            click.secho(f"  [ok]      {module}", fg="green")

    if "apple_fm_sdk" not in missing:
        try:
            ensure_model_available(create_model(), context="doctor")
            click.secho("  [ok]      system language model available", fg="green")
        except AppleFMSetupError as exc:
            click.secho(f"  [error]   {exc}", fg="red")
            ok = False

    click.echo()
    raise SystemExit(0 if ok else 1)


# ── Entry point ───────────────────────────────────────────────────────────────


def cli_entry() -> None:
    """Entry point for the console_scripts."""
    try:
        cli()
    except AppleFMSetupError as exc:
        click.secho(str(exc), fg="red", err=True)
        raise SystemExit(2) from exc


if __name__ == "__main__":
    cli_entry()
