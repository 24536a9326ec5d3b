"""Default paths and constants for the xtask orchestrator."""

from __future__ import annotations

import os
from pathlib import Path

CONFIG_FILE_NAME = os.environ.get("XTASK_CONFIG", "xtask.toml")

# Relative to the workspace root
DEFAULT_IDF_DIR = "esp-idf"
LOCAL_INCLUDE_DIR = "script/include"
RUSTFMT_CONFIG = "rustfmt.toml"
CODEGEN_GLOB = "sys/*/Bindings.toml"

SELF_PACKAGE = "xtask"
TARGET_TRIPLE = "xtensa-esp32-none-elf"

# Layout of a locally built rust-xtensa checkout
RUST_XTENSA_BIN_SUBDIR = Path("build") / "x86_64-unknown-linux-gnu" / "stage2" / "bin"
RUST_XTENSA_LIB_SUBDIR = Path("library")

IDF_PATH_VAR = "IDF_PATH"

# Trailing "append the old PATH here" marker emitted by idf_tools.py
PATH_MARKER = ";%PATH%" if os.name == "nt" else ":$PATH"
