"""CLI commands for building workspace packages and inspecting build order."""

from __future__ import annotations

from pathlib import Path
from typing import Optional, Tuple

import typer
from rich.table import Table

from . import config
from .build import build_packages
from .cli_context import bootstrap_environment, enter_workspace, fatal_errors, get_state
from .graph import build_dependency_graph, resolve_build_order
from .graph_export import export_dot
from .workspace import load_metadata


def toolchain_dirs(
    rust_xtensa_path: Optional[Path],
    rust_xtensa_bin: Optional[Path],
    rust_xtensa_lib: Optional[Path],
) -> Tuple[Path, Path]:
    """Pick the compiler bin dir and std source dir from the given options.

    Explicit ``--rust-xtensa-bin``/``--rust-xtensa-lib`` win over the layout
    derived from ``--rust-xtensa-path``.
    """
    if rust_xtensa_path is None and (rust_xtensa_bin is None or rust_xtensa_lib is None):
        raise typer.BadParameter(
            "Pass --rust-xtensa-path, or both --rust-xtensa-bin and --rust-xtensa-lib."
        )
    bin_dir = rust_xtensa_bin or rust_xtensa_path / config.RUST_XTENSA_BIN_SUBDIR
    lib_dir = rust_xtensa_lib or rust_xtensa_path / config.RUST_XTENSA_LIB_SUBDIR
    return bin_dir.expanduser().resolve(), lib_dir.expanduser().resolve()


def build(
    ctx: typer.Context,
    rust_xtensa_path: Optional[Path] = typer.Option(
        None, "--rust-xtensa-path", envvar="RUST_XTENSA_PATH",
        help="Root of a rust-xtensa checkout built locally.",
    ),
    rust_xtensa_bin: Optional[Path] = typer.Option(
        None, "--rust-xtensa-bin", envvar="RUST_XTENSA_BIN",
        help="Directory holding the xtensa rustc and rustdoc.",
    ),
    rust_xtensa_lib: Optional[Path] = typer.Option(
        None, "--rust-xtensa-lib", envvar="RUST_XTENSA_LIB",
        help="Rust standard library sources for the xtensa toolchain.",
    ),
):
    """Build every workspace library for the ESP32, dependencies first.

    Example:
      xtask build --rust-xtensa-path ~/src/rust-xtensa
      xtask build --rust-xtensa-bin ./bin --rust-xtensa-lib ./library
    """
    bin_dir, lib_dir = toolchain_dirs(rust_xtensa_path, rust_xtensa_bin, rust_xtensa_lib)
    state = get_state(ctx)

    with fatal_errors():
        bootstrap_environment(state)
        graph = build_dependency_graph(
            load_metadata(state.runner), exclude=state.settings["build"]["exclude"],
        )
        packages = resolve_build_order(graph)
        build_packages(
            packages, bin_dir, lib_dir, state.runner, state.environ, state.settings["build"],
        )

    typer.echo(f"Built {len(packages)} package(s).")


def order(
    ctx: typer.Context,
    dot: Optional[Path] = typer.Option(None, "--dot", help="Also write the dependency graph as DOT."),
    focus: str = typer.Option("", "--focus", "-f", help="Limit the DOT graph to one package and its dependencies."),
):
    """Show the order `build` would compile packages in."""
    state = get_state(ctx)

    with fatal_errors():
        enter_workspace(state)
        graph = build_dependency_graph(
            load_metadata(state.runner), exclude=state.settings["build"]["exclude"],
        )
        packages = resolve_build_order(graph)

    table = Table(title="Build order")
    table.add_column("#", justify="right")
    table.add_column("Package", style="bold")
    table.add_column("Depends on")
    table.add_column("Manifest", style="dim")
    for i, package in enumerate(packages, 1):
        deps = ", ".join(graph.package(dep).name for dep in package.dependencies)
        table.add_row(str(i), package.name, deps or "-", str(package.manifest_path))
    state.console.print(table)

    if dot is not None:
        try:
            export_dot(graph, dot, focus)
        except KeyError as e:
            raise typer.BadParameter(str(e.args[0]), param_hint="--focus") from e
        typer.echo(f"Wrote dependency graph to {dot}")
