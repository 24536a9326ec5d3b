"""Pytest configuration and fixtures for xtask tests."""

import json
import shutil
import tempfile
from pathlib import Path
from typing import Callable, Dict, Generator, List, Optional, Tuple

import pytest

from esp_xtask.errors import SubprocessFailure


class FakeRunner:
    """Stand-in for :class:`CommandRunner` that records every command.

    Responses and failures are matched by substring against the command line
    joined with spaces. The most recently registered response wins.
    """

    def __init__(self) -> None:
        self.calls: List[Tuple[str, List[str], Optional[dict]]] = []
        self._responses: List[Tuple[str, str]] = []
        self._failures: List[Tuple[str, int]] = []
        self.on_run: Optional[Callable[[List[str]], None]] = None

    def respond(self, pattern: str, output: str) -> None:
        self._responses.insert(0, (pattern, output))

    def fail_on(self, pattern: str, returncode: int = 1) -> None:
        self._failures.append((pattern, returncode))

    def commands(self, kind: Optional[str] = None) -> List[List[str]]:
        return [argv for k, argv, _ in self.calls if kind is None or k == kind]

    def _record(self, kind: str, cmd, env) -> List[str]:
        argv = [str(part) for part in cmd]
        self.calls.append((kind, argv, dict(env) if env is not None else None))
        return argv

    def _output(self, argv: List[str]) -> str:
        line = " ".join(argv)
        for pattern, output in self._responses:
            if pattern in line:
                return output
        return ""

    def _check(self, argv: List[str]) -> None:
        line = " ".join(argv)
        for pattern, returncode in self._failures:
            if pattern in line:
                raise SubprocessFailure(argv, returncode)

    def read(self, cmd, env=None, cwd=None) -> str:
        argv = self._record("read", cmd, env)
        self._check(argv)
        return self._output(argv)

    def lines(self, cmd, env=None, cwd=None):
        argv = self._record("lines", cmd, env)
        for line in self._output(argv).splitlines():
            yield line
        self._check(argv)

    def run(self, cmd, env=None, cwd=None) -> None:
        argv = self._record("run", cmd, env)
        if self.on_run is not None:
            self.on_run(argv)
        self._check(argv)


@pytest.fixture
def temp_dir() -> Generator[Path, None, None]:
    """Create a temporary directory for tests."""
    tmp = Path(tempfile.mkdtemp())
    yield tmp
    shutil.rmtree(tmp, ignore_errors=True)


@pytest.fixture
def fake_runner() -> FakeRunner:
    return FakeRunner()


def make_metadata(root: Path) -> Dict:
    """cargo metadata output for a small workspace.

    app -> hal -> core, app -> core, hal -> log (external), xtask -> core.
    """

    def pkg(name: str, deps: List[str], member: bool = True) -> Dict:
        return {
            "id": f"{name} 0.1.0 (path+file://{root}/{name})" if member else f"{name} 0.4.0 (registry)",
            "name": name,
            "manifest_path": str(root / name / "Cargo.toml"),
            "dependencies": [{"name": d, "kind": None} for d in deps],
        }

    packages = [
        pkg("app", ["hal", "core", "log"]),
        pkg("hal", ["core", "log", "core"]),
        pkg("core", []),
        pkg("xtask", ["core", "typer"]),
        pkg("log", [], member=False),
    ]
    return {
        "packages": packages,
        "workspace_members": [p["id"] for p in packages if "registry" not in p["id"]],
    }


@pytest.fixture
def sample_metadata(temp_dir: Path) -> Dict:
    return make_metadata(temp_dir)


@pytest.fixture
def workspace(temp_dir: Path) -> Path:
    """A workspace with an ESP-IDF tree, a local include dir and one codegen config."""
    root = temp_dir / "ws"
    for component in ("esp_system", "log", "freertos"):
        (root / "esp-idf" / "components" / component / "include").mkdir(parents=True)
    (root / "esp-idf" / "components" / "esptool_py").mkdir(parents=True)
    (root / "esp-idf" / "tools").mkdir(parents=True)
    (root / "script" / "include").mkdir(parents=True)
    (root / "rustfmt.toml").write_text('edition = "2018"\n', encoding="utf-8")
    (root / "Cargo.toml").write_text("[workspace]\n", encoding="utf-8")

    crate = root / "sys" / "esp_system"
    crate.mkdir(parents=True)
    (crate / "Bindings.toml").write_text(
        'component = "esp_system"\n'
        'headers = ["esp_system.h", "esp_random.h"]\n'
        'functions = ["esp_restart", "esp_random", "esp_get_free_heap_size"]\n',
        encoding="utf-8",
    )
    return root


@pytest.fixture
def cargo_runner(fake_runner: FakeRunner, workspace: Path) -> FakeRunner:
    """FakeRunner answering the cargo and IDF queries for :func:`workspace`."""
    fake_runner.respond(
        "cargo locate-project", json.dumps({"root": str(workspace / "Cargo.toml")})
    )
    fake_runner.respond("cargo metadata", json.dumps(make_metadata(workspace)))
    fake_runner.respond(
        "idf_tools.py export",
        "IDF_TOOLS_EXPORT_CMD=/idf/export.sh\n"
        "OPENOCD_SCRIPTS=/tools/openocd/share/openocd/scripts\n"
        "PATH=/tools/xtensa-esp32-elf/bin:/tools/openocd/bin:$PATH\n",
    )
    return fake_runner
