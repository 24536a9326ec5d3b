"""Tests for DOT export of the dependency graph."""

from pathlib import Path

import pytest

from esp_xtask.graph import build_dependency_graph
from esp_xtask.graph_export import export_dot, render_dot


def test_render_dot(sample_metadata):
    """Test rendering the whole graph."""
    dot = render_dot(build_dependency_graph(sample_metadata))

    assert dot.startswith("digraph Workspace {")
    assert '"app" -> "hal";' in dot
    assert '"hal" -> "core";' in dot
    assert "xtask" not in dot
    assert "log" not in dot


def test_focus_limits_to_dependencies(sample_metadata):
    """Test focusing on one package."""
    dot = render_dot(build_dependency_graph(sample_metadata), focus="hal")

    assert '"hal" -> "core";' in dot
    assert '"app"' not in dot


def test_unknown_focus(sample_metadata):
    """Test focusing on a package that doesn't exist."""
    with pytest.raises(KeyError):
        render_dot(build_dependency_graph(sample_metadata), focus="nope")


def test_export_dot(sample_metadata, temp_dir: Path):
    """Test writing the DOT file."""
    out = temp_dir / "deps.dot"
    export_dot(build_dependency_graph(sample_metadata), out)

    assert out.read_text(encoding="utf-8").rstrip().endswith("}")
