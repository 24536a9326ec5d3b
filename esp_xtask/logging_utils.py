"""Console logging setup for the xtask CLI.

Log records go through the standard :mod:`logging` module and are rendered
by rich. A ``TRACE`` level below ``DEBUG`` carries per-variable environment
output.
"""

from __future__ import annotations

import logging
from enum import Enum
from typing import Optional

from rich.console import Console
from rich.logging import RichHandler

TRACE = 5
OFF = logging.CRITICAL + 10

logging.addLevelName(TRACE, "TRACE")


class ColorChoice(str, Enum):
    AUTO = "auto"
    ALWAYS = "always"
    ANSI = "ansi"
    NEVER = "never"


def color_choice(force_color: bool, force_ansi: bool, no_color: bool) -> ColorChoice:
    """Collapse the three mutually exclusive color flags into one choice."""
    if sum((force_color, force_ansi, no_color)) > 1:
        raise ValueError("--force-color, --force-ansi and --no-color are mutually exclusive")
    if force_color:
        return ColorChoice.ALWAYS
    if force_ansi:
        return ColorChoice.ANSI
    if no_color:
        return ColorChoice.NEVER
    return ColorChoice.AUTO


def level_for(verbose: int, quiet: int) -> int:
    """Map ``-v``/``-q`` occurrence counts to a logging level.

    No flags gives INFO. One ``-v`` gives DEBUG, two or more TRACE. One
    ``-q`` gives WARNING, two ERROR, more silences logging entirely.
    """
    if verbose and quiet:
        raise ValueError("--verbose and --quiet cannot be combined")
    if verbose == 1:
        return logging.DEBUG
    if verbose > 1:
        return TRACE
    if quiet == 1:
        return logging.WARNING
    if quiet == 2:
        return logging.ERROR
    if quiet > 2:
        return OFF
    return logging.INFO


def make_console(choice: ColorChoice) -> Console:
    if choice is ColorChoice.ALWAYS:
        return Console(force_terminal=True)
    if choice is ColorChoice.ANSI:
        return Console(force_terminal=True, color_system="standard")
    if choice is ColorChoice.NEVER:
        return Console(no_color=True, highlight=False)
    return Console()


def init_logging(level: int, choice: ColorChoice = ColorChoice.AUTO, console: Optional[Console] = None) -> Console:
    """Install a rich handler on the root logger and return its console."""
    console = console or make_console(choice)
    handler = RichHandler(
        console=console,
        level=level,
        show_time=False,
        show_path=False,
        markup=False,
        rich_tracebacks=True,
    )
    handler.setFormatter(logging.Formatter("%(name)s %(message)s"))
    logging.basicConfig(level=level, handlers=[handler], force=True)
    return console


def trace(logger: logging.Logger, msg: str, *args) -> None:
    """Log *msg* at TRACE level."""
    if logger.isEnabledFor(TRACE):
        logger.log(TRACE, msg, *args)
