"""Core data models shared by the graph, environment, and codegen layers."""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, List, Tuple


@dataclass(frozen=True)
class Package:
    package_id: str
    name: str
    manifest_path: Path
    dependencies: Tuple[str, ...] = ()


@dataclass(frozen=True)
class CodegenConfig:
    """Declarative binding-generation settings for one ``sys/*`` crate."""
    component: str
    headers: Tuple[str, ...]
    functions: Tuple[str, ...]
    path: Path

    @property
    def crate_dir(self) -> Path:
        return self.path.parent

    @property
    def output_file(self) -> Path:
        return self.crate_dir / "src" / "bindings.rs"


@dataclass
class EnvironmentSnapshot:
    """Variables to export plus the fully merged ``PATH`` search list."""
    variables: Dict[str, str] = field(default_factory=dict)
    path: List[str] = field(default_factory=list)

    def path_value(self, sep: str) -> str:
        return sep.join(self.path)
