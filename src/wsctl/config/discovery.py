"""Config file and project root discovery.

Walk-up finders locate ``wsctl.toml`` (like git finds ``.git/``) and the
nearest ``package.json`` that declares ``workspaces``.
Supports the WSCTL_CONFIG env var and --config CLI flag overrides.
"""

from __future__ import annotations

import json
import os
from collections.abc import Iterator
from pathlib import Path

CONFIG_FILENAME = "wsctl.toml"
CONFIG_ENV_VAR = "WSCTL_CONFIG"
MANIFEST_FILENAME = "package.json"


def _walk_up(start: Path | None) -> Iterator[Path]:
    current = (start or Path.cwd()).resolve()
    while True:
        yield current
        parent = current.parent
        if parent == current:
            return
        current = parent


def find_config(start: Path | None = None) -> Path | None:
    """Walk up from *start* (default: cwd) looking for wsctl.toml.

    Returns the path to the config file, or None if not found.
    Checks WSCTL_CONFIG env var first.
    """
    env_path = os.environ.get(CONFIG_ENV_VAR)
    if env_path:
        p = Path(env_path)
        return p if p.is_file() else None

    for directory in _walk_up(start):
        candidate = directory / CONFIG_FILENAME
        if candidate.is_file():
            return candidate
    return None


def find_project_root(start: Path | None = None) -> Path | None:
    """Walk up from *start* to the nearest package.json declaring ``workspaces``."""
    for directory in _walk_up(start):
        candidate = directory / MANIFEST_FILENAME
        if not candidate.is_file():
            continue
        try:
            data = json.loads(candidate.read_text(encoding="utf-8"))
        except (OSError, ValueError):
            continue
        if isinstance(data, dict) and "workspaces" in data:
            return directory
    return None
