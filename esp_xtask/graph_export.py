"""Graph export helpers for the package dependency graph."""

from __future__ import annotations

from pathlib import Path
from typing import List, Set

from .graph import DependencyGraph


def render_dot(graph: DependencyGraph, focus: str = "") -> str:
    """Render *graph* as DOT, optionally limited to *focus* and its dependencies."""
    selected = _focused_subgraph(graph, focus)

    lines = ["digraph Workspace {"]
    lines.append("  rankdir=LR;")

    for package in graph.packages:
        if package.package_id not in selected:
            continue
        lines.append(f'  "{_esc(package.name)}";')

    for src, dst in graph.edges():
        if src not in selected or dst not in selected:
            continue
        lines.append(
            f'  "{_esc(graph.package(src).name)}" -> "{_esc(graph.package(dst).name)}";'
        )

    lines.append("}")
    return "\n".join(lines) + "\n"


def export_dot(graph: DependencyGraph, output_file: Path, focus: str = "") -> None:
    output_file.write_text(render_dot(graph, focus), encoding="utf-8")


def _focused_subgraph(graph: DependencyGraph, focus: str) -> Set[str]:
    if not focus:
        return {p.package_id for p in graph.packages}

    roots = [p.package_id for p in graph.packages if p.name == focus]
    if not roots:
        raise KeyError(f"No workspace package named '{focus}'")

    seen: Set[str] = set()
    stack: List[str] = list(roots)
    while stack:
        current = stack.pop()
        if current in seen:
            continue
        seen.add(current)
        stack.extend(graph.dependencies(current))
    return seen


def _esc(text: str) -> str:
    return text.replace("\\", "\\\\").replace('"', '\\"')
