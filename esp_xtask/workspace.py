"""Workspace discovery and package metadata via cargo."""

from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Any, Dict

from .errors import MetadataUnavailable, SubprocessFailure
from .process import CommandRunner

logger = logging.getLogger(__name__)

LOCATE_PROJECT_CMD = ["cargo", "locate-project", "--workspace"]
METADATA_CMD = ["cargo", "metadata", "--no-deps", "--all-features", "--format-version", "1"]


def _query_json(runner: CommandRunner, cmd: list) -> Any:
    try:
        output = runner.read(cmd)
    except SubprocessFailure as e:
        raise MetadataUnavailable(f"Workspace query failed: {e}") from e
    try:
        return json.loads(output)
    except json.JSONDecodeError as e:
        raise MetadataUnavailable(f"`{' '.join(cmd)}` returned invalid JSON: {e}") from e


def find_workspace(runner: CommandRunner) -> Path:
    """Return the workspace root directory (the parent of the root manifest)."""
    payload = _query_json(runner, LOCATE_PROJECT_CMD)
    root = payload.get("root") if isinstance(payload, dict) else None
    if not isinstance(root, str) or not root:
        raise MetadataUnavailable("`cargo locate-project` output has no 'root' manifest path")
    return Path(root).parent


def load_metadata(runner: CommandRunner) -> Dict[str, Any]:
    """Fetch workspace metadata (packages and workspace members) from cargo."""
    metadata = _query_json(runner, METADATA_CMD)
    if not isinstance(metadata, dict):
        raise MetadataUnavailable("cargo metadata output is not a JSON object")
    for key in ("packages", "workspace_members"):
        if not isinstance(metadata.get(key), list):
            raise MetadataUnavailable(f"cargo metadata output is missing '{key}'")
    logger.debug(
        "metadata: %d packages, %d workspace members",
        len(metadata["packages"]),
        len(metadata["workspace_members"]),
    )
    return metadata
