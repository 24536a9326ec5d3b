"""Settings manager for xtask using an optional ``xtask.toml`` in the workspace."""

from __future__ import annotations

import copy
import logging
from pathlib import Path
from typing import Any, Dict, Optional

import toml

from .config import (
    CODEGEN_GLOB,
    CONFIG_FILE_NAME,
    DEFAULT_IDF_DIR,
    LOCAL_INCLUDE_DIR,
    RUSTFMT_CONFIG,
    SELF_PACKAGE,
    TARGET_TRIPLE,
)
from .errors import ConfigurationError

logger = logging.getLogger(__name__)


# Defaults follow the current ESP-IDF layout; every value can be overridden
# from the matching section of xtask.toml.
DEFAULT_SETTINGS: Dict[str, Dict[str, Any]] = {
    "idf": {
        "path": DEFAULT_IDF_DIR,
        "python": "python",
        "export_script": "tools/idf_tools.py",
        "check_script": "tools/check_python_dependencies.py",
        # Prepended to PATH in this order
        "tool_dirs": [
            "components/partition_table",
            "components/espcoredump",
            "components/app_update",
            "components/esptool_py/esptool",
        ],
    },
    "build": {
        "command": ["cargo", "xbuild"],
        "target": TARGET_TRIPLE,
        "release": True,
        "exclude": [SELF_PACKAGE],
    },
    "codegen": {
        "glob": CODEGEN_GLOB,
        "include_glob": "components/*/include",
        "local_include": LOCAL_INCLUDE_DIR,
        "rustfmt_config": RUSTFMT_CONFIG,
        "generator": "bindgen",
        "header_mode": "aggregate",
        "raw_line": "#![allow(non_camel_case_types, non_upper_case_globals)]",
        "flags": ["--size_t-is-usize", "--use-core", "--generate-block"],
        "ctypes_prefix": "",
        "defines": ["__GLIBC_USE(x)=0", "SSIZE_MAX"],
    },
}

HEADER_MODES = ("aggregate", "direct")


def default_settings() -> Dict[str, Dict[str, Any]]:
    """Return a fresh copy of the built-in settings."""
    return copy.deepcopy(DEFAULT_SETTINGS)


def _check_type(section: str, key: str, value: Any, default: Any) -> None:
    where = f"[{section}] {key}"
    if isinstance(default, bool):
        if not isinstance(value, bool):
            raise ConfigurationError(f"{where} must be a boolean, got {value!r}")
    elif isinstance(default, str):
        if not isinstance(value, str):
            raise ConfigurationError(f"{where} must be a string, got {value!r}")
    elif isinstance(default, list):
        if not isinstance(value, list) or not all(isinstance(v, str) for v in value):
            raise ConfigurationError(f"{where} must be a list of strings, got {value!r}")


def merge_settings(overrides: Dict[str, Any]) -> Dict[str, Dict[str, Any]]:
    """Merge user overrides section by section over :data:`DEFAULT_SETTINGS`.

    Args:
        overrides: Parsed TOML document.

    Returns:
        Complete settings dictionary.

    Raises:
        ConfigurationError: If a known key has the wrong type.
    """
    settings = default_settings()
    for section, values in overrides.items():
        if section not in settings:
            logger.warning("Ignoring unknown config section [%s]", section)
            continue
        if not isinstance(values, dict):
            raise ConfigurationError(f"[{section}] must be a table")
        for key, value in values.items():
            if key not in settings[section]:
                logger.warning("Ignoring unknown config key [%s] %s", section, key)
                continue
            _check_type(section, key, value, settings[section][key])
            settings[section][key] = value

    mode = settings["codegen"]["header_mode"]
    if mode not in HEADER_MODES:
        raise ConfigurationError(
            f"[codegen] header_mode must be one of {', '.join(HEADER_MODES)}, got {mode!r}"
        )
    return settings


def load_settings(workspace: Optional[Path] = None) -> Dict[str, Dict[str, Any]]:
    """Load settings from ``xtask.toml`` in *workspace* (or the cwd).

    Falls back to the defaults if the file doesn't exist.
    """
    config_file = (workspace or Path.cwd()) / CONFIG_FILE_NAME
    if not config_file.exists():
        return default_settings()

    try:
        with open(config_file, "r", encoding="utf-8") as f:
            overrides = toml.load(f)
    except (OSError, toml.TomlDecodeError) as e:
        raise ConfigurationError(f"Could not read {config_file}: {e}") from e

    logger.debug("loaded settings from %s", config_file)
    return merge_settings(overrides)
