"""Exception hierarchy for xtask failures.

Every error is fatal for the current invocation. The CLI catches
:class:`XTaskError`, prints the message and exits non-zero.
"""

from __future__ import annotations

from typing import List, Optional, Sequence


class XTaskError(Exception):
    """Base class for all orchestrator failures."""


class ConfigurationError(XTaskError):
    """Missing or malformed user-supplied input (metadata, config files, paths)."""


class MetadataUnavailable(ConfigurationError):
    """The workspace query failed or returned something we cannot use."""


class CyclicDependency(XTaskError):
    """The package dependency graph is not a DAG."""

    def __init__(self, packages: Sequence[str]):
        self.packages: List[str] = list(packages)
        super().__init__(
            "Dependency cycle detected involving: " + ", ".join(self.packages)
        )


class MalformedEnvironmentLine(XTaskError):
    """An export tool line did not have the ``NAME=VALUE`` shape."""

    def __init__(self, line: str, lineno: Optional[int] = None):
        self.line = line
        self.lineno = lineno
        where = f" (line {lineno})" if lineno is not None else ""
        super().__init__(f"Malformed environment line{where}: {line!r}")


class CodegenFailed(XTaskError):
    """Binding generation failed for a component."""

    def __init__(self, component: str, reason: str = ""):
        self.component = component
        message = f"Binding generation failed for component '{component}'"
        if reason:
            message += f": {reason}"
        super().__init__(message)


class SubprocessFailure(XTaskError):
    """An external tool exited non-zero or could not be spawned."""

    def __init__(self, command: Sequence[str], returncode: Optional[int] = None, reason: str = ""):
        self.command = [str(part) for part in command]
        self.returncode = returncode
        self.reason = reason
        if returncode is not None:
            detail = f"exited with status {returncode}"
        else:
            detail = reason or "could not be started"
        super().__init__(f"Command `{' '.join(self.command)}` {detail}")


class DependencyCheckFailed(SubprocessFailure):
    """The IDF python dependency check reported a problem."""


class PackageBuildFailed(SubprocessFailure):
    """Cross-compiling a workspace package failed."""

    def __init__(self, package: str, command: Sequence[str], returncode: Optional[int] = None, reason: str = ""):
        self.package = package
        super().__init__(command, returncode, reason)
        self.args = (f"Failed to build package '{package}': {self.args[0]}",)