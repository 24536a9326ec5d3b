"""ESP-IDF toolchain environment bootstrap.

``idf_tools.py export --format key-value`` prints one ``NAME=VALUE`` line per
variable. Its ``PATH`` line ends with a reference to the previous ``PATH``
(``:$PATH`` or ``;%PATH%``) because it expects a shell to expand it. We drop
that marker and compose the search list ourselves::

    [IDF tool dirs] + [exported PATH entries] + [PATH before bootstrap]

The whole export is parsed before anything is written, so a malformed line
or a failing tool leaves the environment untouched.
"""

from __future__ import annotations

import logging
import os
from pathlib import Path
from typing import Any, Dict, Iterable, List, MutableMapping, Optional, Sequence, Tuple

from . import config
from .config_manager import default_settings
from .errors import (
    ConfigurationError,
    DependencyCheckFailed,
    MalformedEnvironmentLine,
    SubprocessFailure,
)
from .logging_utils import trace
from .models import EnvironmentSnapshot
from .process import CommandRunner

logger = logging.getLogger(__name__)


def resolve_idf_path(override: Optional[Path] = None, default: str = config.DEFAULT_IDF_DIR) -> Path:
    """Return the IDF root: the explicit *override*, else ``<cwd>/<default>`` canonicalized."""
    if override is not None:
        return Path(override).expanduser().resolve()
    try:
        return Path(default).resolve(strict=True)
    except (FileNotFoundError, RuntimeError) as e:
        raise ConfigurationError(
            f"ESP-IDF not found at '{default}'. Check it out there or pass --idf-path."
        ) from e


def parse_export_line(line: str, lineno: Optional[int] = None) -> Tuple[str, str]:
    """Split ``NAME=VALUE`` on the first ``=``."""
    name, sep, value = line.partition("=")
    if not sep or not name:
        raise MalformedEnvironmentLine(line, lineno)
    return name, value


def strip_path_marker(value: str, marker: str = config.PATH_MARKER) -> str:
    while marker and value.endswith(marker):
        value = value[: -len(marker)]
    return value


def split_path(value: str, sep: str = os.pathsep) -> List[str]:
    """Split a search path; empty segments (the cwd on POSIX) are kept."""
    return value.split(sep) if value else []


def merge_path(tool_dirs: Sequence[str], exported: Sequence[str], prior: Sequence[str]) -> List[str]:
    """Compose the final ``PATH`` entries; nothing is dropped or deduplicated."""
    return [*tool_dirs, *exported, *prior]


def tool_directories(idf_path: Path, relative_dirs: Iterable[str]) -> List[str]:
    return [str(idf_path.joinpath(*Path(d).parts)) for d in relative_dirs]


def collect_environment(
    lines: Iterable[str],
    prior_path: Sequence[str],
    tool_dirs: Sequence[str],
    marker: str = config.PATH_MARKER,
    sep: str = os.pathsep,
    initial: Optional[Dict[str, str]] = None,
) -> EnvironmentSnapshot:
    """Parse export tool output into a snapshot without touching any environment.

    Raises:
        MalformedEnvironmentLine: On the first line without ``=``, blank lines included.
    """
    variables: Dict[str, str] = dict(initial or {})
    exported: List[str] = []
    for lineno, line in enumerate(lines, 1):
        name, value = parse_export_line(line, lineno)
        if name == "PATH":
            exported.extend(split_path(strip_path_marker(value, marker), sep))
        else:
            variables[name] = value

    return EnvironmentSnapshot(
        variables=variables,
        path=merge_path(tool_dirs, exported, prior_path),
    )


def set_var(environ: MutableMapping[str, str], name: str, value: str) -> None:
    trace(logger, "%s=%s", name, value)
    environ[name] = value


def apply_environment(
    snapshot: EnvironmentSnapshot,
    environ: MutableMapping[str, str],
    sep: str = os.pathsep,
) -> None:
    for name, value in snapshot.variables.items():
        set_var(environ, name, value)
    set_var(environ, "PATH", snapshot.path_value(sep))


def bootstrap(
    idf_path: Path,
    runner: CommandRunner,
    environ: Optional[MutableMapping[str, str]] = None,
    settings: Optional[Dict[str, Dict[str, Any]]] = None,
    marker: str = config.PATH_MARKER,
    sep: str = os.pathsep,
) -> EnvironmentSnapshot:
    """Export the IDF toolchain environment into *environ* (default ``os.environ``).

    Runs once per invocation, before any compiler is started.

    Returns:
        The snapshot that was applied.

    Raises:
        MalformedEnvironmentLine: The export tool printed a line without ``=``.
        SubprocessFailure: The export tool failed.
        DependencyCheckFailed: The IDF python dependency check failed.
    """
    environ = os.environ if environ is None else environ
    idf = (settings or default_settings())["idf"]

    prior_path = split_path(environ.get("PATH", ""), sep)
    root = {config.IDF_PATH_VAR: str(idf_path)}
    child_env = {**environ, **root}

    export_cmd = [
        idf["python"], idf_path / idf["export_script"], "export", "--format", "key-value",
    ]
    snapshot = collect_environment(
        runner.lines(export_cmd, env=child_env),
        prior_path=prior_path,
        tool_dirs=tool_directories(idf_path, idf["tool_dirs"]),
        marker=marker,
        sep=sep,
        initial=root,
    )
    apply_environment(snapshot, environ, sep)
    logger.debug("exported %d variables, PATH has %d entries", len(snapshot.variables), len(snapshot.path))

    check_cmd = [idf["python"], idf_path / idf["check_script"]]
    try:
        runner.read(check_cmd, env=dict(environ))
    except SubprocessFailure as e:
        raise DependencyCheckFailed(e.command, e.returncode, e.reason) from e

    return snapshot
