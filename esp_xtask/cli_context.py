"""Shared state and helpers for the xtask subcommands."""

from __future__ import annotations

import contextlib
import logging
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, Iterator, MutableMapping, Optional

import typer
from rich.console import Console

from .config_manager import load_settings
from .environment import bootstrap, resolve_idf_path
from .errors import XTaskError
from .process import CommandRunner
from .workspace import find_workspace

logger = logging.getLogger(__name__)


def process_environ() -> MutableMapping[str, str]:
    return os.environ


@dataclass
class XTaskState:
    """Per-invocation state handed from the app callback to subcommands."""
    runner: CommandRunner
    console: Console
    idf_override: Optional[Path] = None
    environ: MutableMapping[str, str] = field(default_factory=lambda: process_environ())
    workspace: Optional[Path] = None
    settings: Dict[str, Dict[str, Any]] = field(default_factory=dict)
    idf_path: Optional[Path] = None


def get_state(ctx: typer.Context) -> XTaskState:
    state = ctx.obj
    if not isinstance(state, XTaskState):
        raise RuntimeError("xtask state missing; commands must run through the main app")
    return state


def enter_workspace(state: XTaskState) -> Path:
    """Locate the workspace, make it the cwd and load its settings."""
    if state.workspace is None:
        workspace = find_workspace(state.runner)
        logger.debug("cwd = %s", workspace)
        os.chdir(workspace)
        state.workspace = workspace
        state.settings = load_settings(workspace)
    return state.workspace


def bootstrap_environment(state: XTaskState) -> Path:
    """Export the IDF environment; must happen before any compiler runs."""
    enter_workspace(state)
    if state.idf_path is None:
        idf_path = resolve_idf_path(state.idf_override, state.settings["idf"]["path"])
        bootstrap(idf_path, state.runner, state.environ, state.settings)
        state.idf_path = idf_path
    return state.idf_path


@contextlib.contextmanager
def fatal_errors() -> Iterator[None]:
    """Turn orchestrator errors into a message and exit status 1."""
    try:
        yield
    except XTaskError as e:
        logger.debug("fatal error", exc_info=True)
        typer.echo(f"error: {e}", err=True)
        raise typer.Exit(code=1) from e
