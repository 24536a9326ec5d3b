"""Blocking subprocess helpers with command logging.

All external tools (cargo, bindgen, the IDF python scripts) go through
:class:`CommandRunner` so tests can substitute a recording fake.
"""

from __future__ import annotations

import logging
import subprocess
from pathlib import Path
from typing import Iterator, Mapping, Optional, Sequence, Union

from .errors import SubprocessFailure

logger = logging.getLogger(__name__)

Arg = Union[str, Path]


def format_command(cmd: Sequence[Arg]) -> str:
    """Render a command the way it is logged: program followed by quoted args."""
    program, *args = [str(part) for part in cmd]
    return " ".join([program] + [f'"{arg}"' for arg in args])


class CommandRunner:
    """Run external commands sequentially, raising on any failure."""

    def _spawn(self, cmd: Sequence[Arg], **kwargs) -> subprocess.Popen:
        argv = [str(part) for part in cmd]
        logger.debug("running: %s", format_command(argv))
        try:
            return subprocess.Popen(argv, **kwargs)
        except OSError as e:
            raise SubprocessFailure(argv, reason=f"could not be started: {e}") from e

    def read(
        self,
        cmd: Sequence[Arg],
        env: Optional[Mapping[str, str]] = None,
        cwd: Optional[Path] = None,
    ) -> str:
        """Run *cmd* and return its complete standard output."""
        proc = self._spawn(cmd, stdout=subprocess.PIPE, text=True, env=env, cwd=cwd)
        out, _ = proc.communicate()
        if proc.returncode != 0:
            raise SubprocessFailure(cmd, proc.returncode)
        return out

    def lines(
        self,
        cmd: Sequence[Arg],
        env: Optional[Mapping[str, str]] = None,
        cwd: Optional[Path] = None,
    ) -> Iterator[str]:
        """Yield standard output line by line while *cmd* runs.

        The exit status is checked once the output is exhausted. Stderr is
        inherited so the pipe can never fill up unread.
        """
        proc = self._spawn(
            cmd, stdout=subprocess.PIPE, text=True, bufsize=1, env=env, cwd=cwd,
        )
        assert proc.stdout is not None
        try:
            for line in proc.stdout:
                yield line.rstrip("\r\n")
        finally:
            proc.stdout.close()
            returncode = proc.wait()
        if returncode != 0:
            raise SubprocessFailure(cmd, returncode)

    def run(
        self,
        cmd: Sequence[Arg],
        env: Optional[Mapping[str, str]] = None,
        cwd: Optional[Path] = None,
    ) -> None:
        """Run *cmd* with inherited stdio and wait for it."""
        proc = self._spawn(cmd, env=env, cwd=cwd)
        returncode = proc.wait()
        if returncode != 0:
            raise SubprocessFailure(cmd, returncode)
