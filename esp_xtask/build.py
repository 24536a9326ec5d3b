"""Sequential cross-compilation of workspace packages."""

from __future__ import annotations

import logging
import os
from pathlib import Path
from typing import Any, Dict, List, MutableMapping, Optional, Sequence

from .config_manager import default_settings
from .environment import set_var
from .errors import PackageBuildFailed, SubprocessFailure
from .models import Package
from .process import CommandRunner

logger = logging.getLogger(__name__)


def toolchain_environment(rust_bin: Path, rust_lib: Path) -> Dict[str, str]:
    """Compiler overrides pointing cargo at the xtensa-enabled rust toolchain."""
    return {
        "RUSTC": str(rust_bin / "rustc"),
        "RUSTDOC": str(rust_bin / "rustdoc"),
        "XARGO_RUST_SRC": str(rust_lib),
    }


def build_command(package: Package, settings: Dict[str, Any]) -> List[str]:
    cmd = list(settings["command"])
    cmd.extend(["--manifest-path", str(package.manifest_path), "--target", settings["target"]])
    if settings["release"]:
        cmd.append("--release")
    return cmd


def build_packages(
    order: Sequence[Package],
    rust_bin: Path,
    rust_lib: Path,
    runner: CommandRunner,
    environ: Optional[MutableMapping[str, str]] = None,
    settings: Optional[Dict[str, Any]] = None,
) -> None:
    """Build each package in *order*, stopping at the first failure.

    Raises:
        PackageBuildFailed: Carrying the name of the package that failed.
    """
    environ = os.environ if environ is None else environ
    settings = settings or default_settings()["build"]

    for name, value in toolchain_environment(rust_bin, rust_lib).items():
        set_var(environ, name, value)

    for package in order:
        logger.info("Building %s", package.name)
        cmd = build_command(package, settings)
        try:
            runner.run(cmd, env=dict(environ))
        except SubprocessFailure as e:
            raise PackageBuildFailed(package.name, e.command, e.returncode, e.reason) from e
