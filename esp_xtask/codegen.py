"""Per-component Rust binding generation with bindgen.

Each ``sys/<crate>/Bindings.toml`` names an IDF component, the headers to
read from its include directory and the exact functions to let through::

    component = "esp_system"
    headers = ["esp_system.h"]
    functions = ["esp_restart", "esp_get_free_heap_size"]

Output goes to ``sys/<crate>/src/bindings.rs`` and is overwritten each run.
"""

from __future__ import annotations

import logging
import os
import tempfile
from pathlib import Path
from typing import Any, Dict, List, Mapping, Optional, Sequence, TextIO

import toml

from .config_manager import default_settings
from .errors import CodegenFailed, ConfigurationError, SubprocessFailure
from .models import CodegenConfig
from .process import CommandRunner

logger = logging.getLogger(__name__)


def _string_list(data: Dict[str, Any], key: str, path: Path) -> tuple:
    value = data.get(key)
    if not isinstance(value, list) or not all(isinstance(v, str) for v in value):
        raise ConfigurationError(f"{path}: '{key}' must be a list of strings")
    return tuple(value)


def load_codegen_config(path: Path) -> CodegenConfig:
    """Parse one ``Bindings.toml`` file.

    Raises:
        ConfigurationError: If the file can't be read or a field is missing
            or has the wrong type.
    """
    try:
        data = toml.loads(path.read_text(encoding="utf-8"))
    except (OSError, toml.TomlDecodeError) as e:
        raise ConfigurationError(f"Could not read codegen config {path}: {e}") from e

    component = data.get("component")
    if not isinstance(component, str) or not component:
        raise ConfigurationError(f"{path}: 'component' must be a non-empty string")

    config = CodegenConfig(
        component=component,
        headers=_string_list(data, "headers", path),
        functions=_string_list(data, "functions", path),
        path=path,
    )
    logger.debug("bindgen: %s", config)
    return config


def discover_configs(workspace: Path, pattern: str = "sys/*/Bindings.toml") -> List[Path]:
    return sorted(workspace.glob(pattern))


def include_directories(
    idf_path: Path,
    local_include: Path,
    include_glob: str = "components/*/include",
) -> List[Path]:
    """Every component include dir under the IDF root, then the local override.

    Raises:
        ConfigurationError: If the local include directory doesn't exist.
    """
    includes = sorted(p for p in idf_path.glob(include_glob) if p.is_dir())
    try:
        includes.append(local_include.resolve(strict=True))
    except FileNotFoundError as e:
        raise ConfigurationError(f"Local include directory not found: {local_include}") from e
    return includes


def write_aggregate_header(headers: Sequence[str], fp: TextIO) -> None:
    for header in headers:
        fp.write(f'#include "{header}"\n')


def bindgen_command(
    config: CodegenConfig,
    headers: Sequence[Path],
    includes: Sequence[Path],
    output: Path,
    settings: Dict[str, Any],
    rustfmt_config: Optional[Path] = None,
) -> List[str]:
    """Assemble the bindgen argv for one component.

    Args:
        config: Component config supplying the function allowlist.
        headers: Header file(s) to pass as bindgen inputs.
        includes: Include directories, in search order.
        output: Destination ``bindings.rs``.
        settings: The ``[codegen]`` settings section.
        rustfmt_config: rustfmt.toml used to format the output, if any.
    """
    cmd: List[str] = [settings["generator"]]
    cmd.extend(str(h) for h in headers)
    cmd.extend(["-o", str(output)])
    if settings["raw_line"]:
        cmd.extend(["--raw-line", settings["raw_line"]])
    if rustfmt_config is not None:
        cmd.extend(["--rustfmt-configuration-file", str(rustfmt_config)])
    cmd.extend(settings["flags"])
    if settings["ctypes_prefix"]:
        cmd.extend(["--ctypes-prefix", settings["ctypes_prefix"]])
    for function in config.functions:
        cmd.extend(["--allowlist-function", function])

    # Everything after "--" goes to clang
    cmd.append("--")
    cmd.extend(f"-D{define}" for define in settings["defines"])
    cmd.extend(f"-I{include}" for include in includes)
    return cmd


def generate_bindings(
    config: CodegenConfig,
    includes: Sequence[Path],
    runner: CommandRunner,
    idf_path: Path,
    settings: Optional[Dict[str, Any]] = None,
    rustfmt_config: Optional[Path] = None,
    environ: Optional[Mapping[str, str]] = None,
) -> Path:
    """Generate ``src/bindings.rs`` for one component.

    bindgen runs with *environ* (default ``os.environ``), which must already
    carry the IDF toolchain environment.

    Raises:
        CodegenFailed: If bindgen fails or can't be started.
    """
    settings = settings or default_settings()["codegen"]
    output = config.output_file
    output.parent.mkdir(parents=True, exist_ok=True)
    environ = os.environ if environ is None else environ

    aggregate: Optional[Path] = None
    try:
        if settings["header_mode"] == "direct":
            include_dir = idf_path / "components" / config.component / "include"
            headers = [include_dir / header for header in config.headers]
        else:
            with tempfile.NamedTemporaryFile(
                "w", suffix=".h", prefix=f"{config.component}_", delete=False, encoding="utf-8",
            ) as fp:
                aggregate = Path(fp.name)
                write_aggregate_header(config.headers, fp)
            headers = [aggregate]

        cmd = bindgen_command(config, headers, includes, output, settings, rustfmt_config)
        runner.run(cmd, env=dict(environ))
    except SubprocessFailure as e:
        raise CodegenFailed(config.component, str(e)) from e
    finally:
        if aggregate is not None:
            os.unlink(aggregate)

    logger.info("Writing to file: %s", output)
    return output


def generate_all(
    workspace: Path,
    idf_path: Path,
    runner: CommandRunner,
    settings: Optional[Dict[str, Dict[str, Any]]] = None,
    environ: Optional[Mapping[str, str]] = None,
) -> List[Path]:
    """Generate bindings for every config under *workspace*, one after another.

    The first failure aborts the run.
    """
    codegen = (settings or default_settings())["codegen"]
    includes = include_directories(
        idf_path, workspace / codegen["local_include"], codegen["include_glob"],
    )
    rustfmt = workspace / codegen["rustfmt_config"]
    rustfmt_config = rustfmt.resolve() if rustfmt.is_file() else None
    if rustfmt_config is None:
        logger.debug("no %s found, using bindgen's default formatting", codegen["rustfmt_config"])

    configs = discover_configs(workspace, codegen["glob"])
    if not configs:
        logger.warning("No codegen configs match %s", codegen["glob"])

    outputs = []
    for path in configs:
        logger.info("Generating bindings from %s", path)
        config = load_codegen_config(path)
        outputs.append(
            generate_bindings(
                config, includes, runner, idf_path, codegen, rustfmt_config, environ,
            )
        )
    return outputs
