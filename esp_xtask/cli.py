"""Typer-based CLI for the ESP32 workspace build and codegen tasks."""

from __future__ import annotations

from pathlib import Path
from typing import Optional

import typer

from . import __version__
from .cli_build import build, order
from .cli_codegen import codegen
from .cli_context import XTaskState
from .logging_utils import color_choice, init_logging, level_for
from .process import CommandRunner

app = typer.Typer(
    help="Build and codegen tasks for the ESP32 Rust workspace.",
    no_args_is_help=True,
    rich_markup_mode="rich",
)

app.command("codegen")(codegen)
app.command("build")(build)
app.command("order")(order)


def version_callback(value: bool):
    """Print version and exit."""
    if value:
        typer.echo(f"xtask v{__version__}")
        raise typer.Exit()


@app.callback()
def main(
    ctx: typer.Context,
    verbose: int = typer.Option(
        0, "--verbose", "-v", count=True,
        help="Increase verbosity. Pass twice for trace output.",
    ),
    quiet: int = typer.Option(
        0, "--quiet", "-q", count=True,
        help="Decrease verbosity: warnings, then errors, then nothing.",
    ),
    force_color: bool = typer.Option(False, "--force-color", "-c", help="Force color output."),
    force_ansi: bool = typer.Option(False, "--force-ansi", "-C", help="Force ANSI color output."),
    no_color: bool = typer.Option(False, "--no-color", help="Prevent color output."),
    idf_path: Optional[Path] = typer.Option(
        None, "--idf-path", envvar="XTASK_IDF_PATH",
        help="ESP-IDF checkout to use instead of ./esp-idf in the workspace.",
    ),
    version: Optional[bool] = typer.Option(
        None,
        "--version",
        help="Show version and exit.",
        callback=version_callback,
        is_eager=True,
    ),
):
    """xtask: cross-compile workspace crates and generate ESP-IDF bindings."""
    try:
        level = level_for(verbose, quiet)
        choice = color_choice(force_color, force_ansi, no_color)
    except ValueError as e:
        raise typer.BadParameter(str(e)) from e

    console = init_logging(level, choice)
    ctx.obj = XTaskState(
        runner=CommandRunner(),
        console=console,
        # Relative to where the user ran us, not the workspace root
        idf_override=idf_path.resolve() if idf_path is not None else None,
    )
