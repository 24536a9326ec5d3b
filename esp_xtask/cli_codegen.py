"""CLI command for binding generation."""

from __future__ import annotations

import typer

from .cli_context import bootstrap_environment, fatal_errors, get_state
from .codegen import generate_all


def codegen(ctx: typer.Context):
    """Generate Rust bindings for every sys/*/Bindings.toml.

    Example:
      xtask codegen
      xtask -vv codegen
    """
    state = get_state(ctx)
    with fatal_errors():
        idf_path = bootstrap_environment(state)
        outputs = generate_all(
            state.workspace, idf_path, state.runner, state.settings, state.environ,
        )

    typer.echo(f"Generated {len(outputs)} binding file(s).")
